"""Centralized configuration for the alignment engine.

All weight tables, thresholds and keyword dictionaries live here. The
configuration is immutable once built; components receive it through their
constructors and fall back to the global instance from ``get_config()``.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from requirements_graph.schema import PatternType, RequirementType


class FrozenConfig(BaseModel):
    """Base for configuration sections: immutable, unknown keys rejected."""
    model_config = ConfigDict(frozen=True, extra="forbid")


class AlignmentThresholdsConfig(FrozenConfig):
    """Score thresholds used to classify alignments.

    Scores at or above ``excellent`` are fully aligned; scores between
    ``minimum`` and ``excellent`` are partially aligned; anything below
    ``minimum`` is misaligned and needs review.
    """
    minimum: float = Field(0.3, description="Below this an alignment is misaligned")
    good: float = Field(0.7, description="Good alignment boundary")
    excellent: float = Field(0.9, description="Fully aligned boundary")
    gap_threshold: float = Field(
        0.5,
        description="Rule sub-scores below this produce a gap and a recommendation"
    )


class RuleWeightConfig(FrozenConfig):
    """One weighted validation rule, resolved by name in the rule registry."""
    name: str
    weight: float


def _default_rules() -> dict[RequirementType, list[RuleWeightConfig]]:
    return {
        RequirementType.NON_FUNCTIONAL: [
            RuleWeightConfig(name="Performance Alignment", weight=0.8),
            RuleWeightConfig(name="Scalability Alignment", weight=0.7),
        ],
        RequirementType.FUNCTIONAL: [
            RuleWeightConfig(name="Feature Support", weight=0.9),
            RuleWeightConfig(name="Interface Compatibility", weight=0.6),
        ],
        RequirementType.COMPLIANCE: [
            RuleWeightConfig(name="Regulatory Compliance", weight=1.0),
            RuleWeightConfig(name="Security Standards", weight=0.9),
        ],
    }


class ValidationRulesConfig(FrozenConfig):
    """Requirement type to weighted validation rules.

    Types without an entry have no rules and score 0.0.
    """
    rules: dict[RequirementType, list[RuleWeightConfig]] = Field(default_factory=_default_rules)
    neutral_score: float = Field(
        0.7,
        description="Sub-score when the requirement does not raise the rule's concern"
    )
    unsupported_score: float = Field(
        0.2,
        description="Sub-score when the concern is raised but the decision shows no support"
    )
    evidence_base: float = Field(0.5, description="Sub-score floor once any support is found")
    evidence_step: float = Field(0.15, description="Added per piece of supporting evidence")


def _default_pattern_weights() -> dict[RequirementType, dict[PatternType, float]]:
    return {
        RequirementType.NON_FUNCTIONAL: {
            PatternType.MICROSERVICES: 0.9,
            PatternType.EVENT_DRIVEN: 0.8,
            PatternType.SERVERLESS: 0.7,
            PatternType.CQRS: 0.6,
            PatternType.LAYERED: 0.4,
            PatternType.MONOLITHIC: 0.3,
        },
        RequirementType.FUNCTIONAL: {
            PatternType.LAYERED: 0.8,
            PatternType.HEXAGONAL: 0.7,
            PatternType.MICROSERVICES: 0.6,
            PatternType.MONOLITHIC: 0.7,
            PatternType.EVENT_DRIVEN: 0.5,
        },
        RequirementType.BUSINESS: {
            PatternType.LAYERED: 0.8,
            PatternType.HEXAGONAL: 0.7,
            PatternType.MICROSERVICES: 0.6,
            PatternType.SAGA: 0.5,
        },
    }


def _default_characteristic_bonuses() -> dict[str, dict[PatternType, float]]:
    return {
        "high_scalability": {
            PatternType.MICROSERVICES: 0.1,
            PatternType.EVENT_DRIVEN: 0.1,
            PatternType.SERVERLESS: 0.1,
            PatternType.CQRS: 0.05,
        },
        "security": {
            PatternType.LAYERED: 0.05,
            PatternType.HEXAGONAL: 0.05,
        },
        "compliance": {
            PatternType.LAYERED: 0.05,
            PatternType.MONOLITHIC: 0.05,
        },
        "strong_consistency": {
            PatternType.SAGA: 0.1,
            PatternType.CQRS: 0.05,
            PatternType.MONOLITHIC: 0.05,
        },
        "high_integration": {
            PatternType.EVENT_DRIVEN: 0.1,
            PatternType.HEXAGONAL: 0.05,
        },
    }


def _default_quality_attributes() -> dict[str, list[str]]:
    return {
        "performance": ["scalability", "throughput", "latency", "response time"],
        "security": ["authentication", "authorization", "encryption", "compliance"],
        "reliability": ["availability", "fault tolerance", "disaster recovery"],
        "maintainability": ["modularity", "testability", "documentation"],
        "usability": ["user experience", "accessibility", "internationalization"],
    }


def _default_pattern_complexity() -> dict[PatternType, str]:
    return {
        PatternType.MICROSERVICES: "HIGH",
        PatternType.EVENT_DRIVEN: "HIGH",
        PatternType.CQRS: "HIGH",
        PatternType.SAGA: "HIGH",
        PatternType.SERVERLESS: "MEDIUM",
        PatternType.HEXAGONAL: "MEDIUM",
        PatternType.LAYERED: "LOW",
        PatternType.MONOLITHIC: "LOW",
    }


def _default_pattern_technologies() -> dict[PatternType, list[str]]:
    return {
        PatternType.MICROSERVICES: ["kubernetes", "docker", "spring boot", "grpc", "istio", "node.js"],
        PatternType.EVENT_DRIVEN: ["kafka", "rabbitmq", "event hubs", "sns", "sqs", "nats"],
        PatternType.SERVERLESS: ["lambda", "azure functions", "cloud run", "cloud functions"],
        PatternType.CQRS: ["eventstore", "kafka", "postgresql", "axon"],
        PatternType.SAGA: ["temporal", "camunda", "kafka", "step functions"],
        PatternType.LAYERED: ["django", "spring", "asp.net", "rails", "express"],
        PatternType.HEXAGONAL: ["spring", "django", "fastapi", "nestjs"],
        PatternType.MONOLITHIC: ["django", "rails", "spring boot", "laravel", "express"],
    }


class RecommendationConfig(FrozenConfig):
    """Weights, cutoffs and keyword tables for the recommendation engine."""

    # Pattern scoring
    pattern_weights: dict[RequirementType, dict[PatternType, float]] = Field(
        default_factory=_default_pattern_weights,
        description="Per requirement type preference for each pattern type"
    )
    default_pattern_weight: float = Field(0.1, description="Weight for unlisted type/pattern pairs")
    base_alignment: float = Field(0.5, description="Starting per-requirement pattern alignment")
    condition_match_bonus: float = Field(0.1, description="Per applicability condition found")
    positive_attribute_bonus: float = Field(0.15, description="Per positive quality attribute named")
    negative_attribute_penalty: float = Field(0.1, description="Per negative quality attribute named")
    characteristic_bonuses: dict[str, dict[PatternType, float]] = Field(
        default_factory=_default_characteristic_bonuses,
        description="Characteristic signal to per-pattern bonus"
    )
    success_rate_weight: float = Field(0.1, description="Multiplier on historical success rate")
    min_pattern_score: float = Field(0.5, description="Patterns must score strictly above this")
    max_patterns: int = Field(5, description="Maximum patterns returned")

    # Technology scoring
    team_expertise_weight: float = 0.3
    stack_success_weight: float = 0.2
    pattern_compatibility_weight: float = 0.3
    requirement_alignment_weight: float = 0.2
    default_team_expertise: float = Field(0.5, description="Used when a stack has no expertise rating")
    default_stack_success: float = Field(0.5, description="Used when a stack has no success rate")
    min_technology_score: float = Field(0.4, description="Stacks must score strictly above this")
    max_technologies: int = Field(3, description="Maximum stacks returned")
    pattern_technologies: dict[PatternType, list[str]] = Field(
        default_factory=_default_pattern_technologies,
        description="Technology names that signal compatibility with a pattern"
    )
    pattern_complexity: dict[PatternType, str] = Field(
        default_factory=_default_pattern_complexity,
        description="Implementation complexity (LOW/MEDIUM/HIGH) per pattern"
    )

    # Keyword families
    scalability_keywords: list[str] = Field(
        default_factory=lambda: ["scalable", "scale", "concurrent", "users", "load", "traffic"]
    )
    high_scalability_keywords: list[str] = Field(
        default_factory=lambda: ["concurrent", "scale", "load"]
    )
    security_keywords: list[str] = Field(
        default_factory=lambda: ["secure", "security", "authentication", "authorization", "encrypt", "compliance"]
    )
    performance_keywords: list[str] = Field(
        default_factory=lambda: ["performance", "latency", "throughput", "response time", "fast"]
    )
    integration_keywords: list[str] = Field(
        default_factory=lambda: ["integrate", "integration", "third-party", "api", "external system", "interoperab"]
    )
    consistency_keywords: list[str] = Field(
        default_factory=lambda: ["consistent", "consistency", "transaction", "atomic", "acid"]
    )
    quality_attributes: dict[str, list[str]] = Field(
        default_factory=_default_quality_attributes,
        description="Quality attribute to the keywords that reveal it"
    )
    compliance_frameworks: list[str] = Field(
        default_factory=lambda: ["GDPR", "HIPAA", "PCI-DSS", "PCI", "SOX", "ISO 27001", "SOC 2", "CCPA"]
    )
    default_team_expertise_level: float = Field(0.7, description="Team expertise when no context is given")

    # Strategy
    big_bang_max_requirements: int = 5
    phased_min_requirements: int = 15
    modular_monolith_max_requirements: int = 10
    hours_per_priority: dict[str, float] = Field(
        default_factory=lambda: {"CRITICAL": 40.0, "HIGH": 24.0, "MEDIUM": 16.0, "LOW": 8.0}
    )


class ImpactConfig(FrozenConfig):
    """Impact analysis parameters."""
    effort_per_change_hours: float = Field(8.0, description="Effort estimate per cascading change")
    high_complexity_changes: int = Field(5, description="More changes than this is HIGH complexity")
    medium_complexity_changes: int = Field(2, description="More changes than this is MEDIUM complexity")


class IntegrityConfig(FrozenConfig):
    """Integrity sweep and auto-correction parameters."""
    stale_after_days: int = Field(30, description="Alignments older than this are stale")
    auto_mapping_confidence: float = Field(
        0.8,
        description="Minimum pattern score for auto-correction to create a mapping"
    )
    validation_coverage_target: float = Field(0.8, description="Health check coverage goal")
    confidence_target: float = Field(0.7, description="Health check average confidence goal")


class MigrationConfig(FrozenConfig):
    """Defaults and weights for migration runs."""
    confidence_threshold: float = Field(0.7, description="Minimum recommendation score to create a mapping")
    coverage_weight: float = 0.4
    confidence_weight: float = 0.3
    validation_weight: float = 0.2
    health_weight: float = 0.1
    health_scores: dict[str, float] = Field(
        default_factory=lambda: {"HEALTHY": 1.0, "WARNING": 0.7, "CRITICAL": 0.3},
        description="Health bucket to quality contribution"
    )
    default_health_score: float = Field(0.5, description="Contribution for unlisted health states")
    unmapped_ratio_warning: float = 0.2
    skipped_ratio_warning: float = 0.3
    quality_target: float = 0.7


class LoggingConfig(FrozenConfig):
    """Logging defaults for the CLI."""
    level: str = Field("WARNING", description="Root log level")
    log_file: Optional[str] = Field(None, description="Optional log file path")
    logfire: bool = Field(False, description="Also send log records to Logfire")


class EngineConfig(FrozenConfig):
    """Complete configuration for the alignment engine."""
    thresholds: AlignmentThresholdsConfig = Field(default_factory=AlignmentThresholdsConfig)
    validation_rules: ValidationRulesConfig = Field(default_factory=ValidationRulesConfig)
    recommendation: RecommendationConfig = Field(default_factory=RecommendationConfig)
    impact: ImpactConfig = Field(default_factory=ImpactConfig)
    integrity: IntegrityConfig = Field(default_factory=IntegrityConfig)
    migration: MigrationConfig = Field(default_factory=MigrationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Global config instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the current configuration.

    Returns the global config, initializing with defaults if not yet loaded.
    """
    global _config
    if _config is None:
        _config = EngineConfig()
    return _config


def load_config(path: Path) -> EngineConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The loaded EngineConfig.
    """
    global _config

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    _config = EngineConfig.model_validate(data or {})
    return _config


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _config
    _config = EngineConfig()


def find_config_file() -> Optional[Path]:
    """Find an engine configuration file.

    Looks in (order of priority):
    1. ALIGNMENT_ENGINE_CONFIG environment variable
    2. ./alignment-config.yaml
    3. ./alignment-config.yml
    4. ~/.config/alignment-engine/config.yaml
    """
    env_path = os.environ.get("ALIGNMENT_ENGINE_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    for name in ["alignment-config.yaml", "alignment-config.yml"]:
        path = Path(name)
        if path.exists():
            return path

    user_config = Path.home() / ".config" / "alignment-engine" / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def save_default_config(path: Path) -> None:
    """Save the default configuration to a YAML file.

    Args:
        path: Path where to save the configuration.
    """
    data = EngineConfig().model_dump(mode="json")

    yaml_content = """# Alignment Engine Configuration
# ==============================
#
# Thresholds, validation rule weights, pattern weight tables and keyword
# dictionaries used to score requirement/architecture alignment.
#
# Copy this file to one of these locations:
#   - ./alignment-config.yaml (current directory)
#   - ~/.config/alignment-engine/config.yaml (user config)
#
# Or set the ALIGNMENT_ENGINE_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
