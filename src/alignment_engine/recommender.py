"""Recommendation Engine.

Turns a set of requirements into ranked pattern and technology stack
recommendations, constraints, quality attributes, an implementation strategy
and alternative approaches.
"""

import logging
from typing import Optional

from requirements_graph.exceptions import InputValidationError, RecommendationFailedError
from requirements_graph.schema import (
    ArchitecturePattern,
    LearningCurve,
    PatternType,
    QualityImpact,
    Requirement,
    TechnologyMaturity,
    TechnologyStack,
)
from requirements_graph.store import GraphStore

from .characteristics import CharacteristicsExtractor, mentions
from .config import EngineConfig, get_config
from .constraints import ConstraintExtractor, QualityAttributeMapper
from .schema import (
    ArchitecturalCharacteristics,
    Level,
    LearningCurveImpact,
    PatternRecommendation,
    ProjectContext,
    RecommendationResult,
    TechnologyRecommendation,
)
from .strategy import StrategyPlanner

logger = logging.getLogger(__name__)


PATTERN_PREREQUISITES = {
    PatternType.MICROSERVICES: [
        "Container orchestration platform",
        "Service discovery and API gateway",
        "Distributed tracing and centralized logging",
    ],
    PatternType.EVENT_DRIVEN: [
        "Message broker infrastructure",
        "Event schema governance",
    ],
    PatternType.SERVERLESS: [
        "Cloud provider account with function runtime",
        "Infrastructure-as-code tooling",
    ],
    PatternType.CQRS: [
        "Separate read and write data stores",
        "Event or change propagation mechanism",
    ],
    PatternType.SAGA: [
        "Reliable messaging between services",
        "Compensating transaction design",
    ],
    PatternType.HEXAGONAL: ["Clear domain model and port definitions"],
    PatternType.LAYERED: ["Agreed layer boundaries and dependency rules"],
    PatternType.MONOLITHIC: ["Modular code organization guidelines"],
}

# Onboarding hours per technology by learning curve
LEARNING_CURVE_HOURS = {LearningCurve.LOW: 8.0, LearningCurve.MEDIUM: 16.0, LearningCurve.HIGH: 32.0}


class RecommendationEngine:
    """Generates architecture recommendations for a requirement set.

    Pipeline:
    1. Characteristic extraction
    2. Pattern scoring (weighted per-requirement alignment, bonuses, success rate)
    3. Technology scoring against the selected patterns
    4. Constraint extraction and quality attribute mapping
    5. Implementation strategy and alternatives
    """

    def __init__(self, store: GraphStore, config: Optional[EngineConfig] = None):
        self.store = store
        self.config = config or get_config()
        self.settings = self.config.recommendation
        self.characteristics = CharacteristicsExtractor(self.config)
        self.constraints = ConstraintExtractor(self.config)
        self.quality_attributes = QualityAttributeMapper(self.config)
        self.strategy = StrategyPlanner(self.config)

    def recommend(
        self,
        requirements: list[Requirement],
        project_context: Optional[ProjectContext] = None,
    ) -> RecommendationResult:
        """Produce a complete recommendation.

        Args:
            requirements: Requirements to recommend for (at least one)
            project_context: Optional team expertise and existing technologies

        Returns:
            RecommendationResult

        Raises:
            InputValidationError: If ``requirements`` is empty
            RecommendationFailedError: If candidate patterns or stacks cannot be loaded
        """
        if not requirements:
            raise InputValidationError("At least one requirement is needed for recommendations")

        try:
            patterns = self.store.list_patterns()
            stacks = self.store.list_technology_stacks()
        except Exception as e:
            logger.error("Failed to load recommendation candidates: %s", e)
            raise RecommendationFailedError(f"Failed to load recommendation candidates: {e}") from e

        characteristics = self.characteristics.extract(requirements, project_context)
        pattern_recommendations = self.score_patterns(patterns, requirements, characteristics)
        technology_recommendations = self.score_technologies(
            stacks, requirements, pattern_recommendations, characteristics, project_context
        )

        result = RecommendationResult(
            requirement_ids=[r.id for r in requirements],
            characteristics=characteristics,
            patterns=pattern_recommendations,
            technologies=technology_recommendations,
            constraints=self.constraints.extract(requirements),
            quality_attributes=self.quality_attributes.map(requirements),
            implementation_strategy=self.strategy.plan(
                requirements, pattern_recommendations, technology_recommendations
            ),
            alternatives=self.strategy.alternatives(requirements, pattern_recommendations),
        )
        logger.info(
            "Recommended %d patterns and %d stacks for %d requirements",
            len(result.patterns), len(result.technologies), len(requirements),
        )
        return result

    # =========================================================================
    # Patterns
    # =========================================================================

    def score_patterns(
        self,
        patterns: list[ArchitecturePattern],
        requirements: list[Requirement],
        characteristics: Optional[ArchitecturalCharacteristics] = None,
    ) -> list[PatternRecommendation]:
        """Score every candidate pattern and keep the best.

        Only patterns scoring strictly above ``min_pattern_score`` are kept,
        sorted by score descending and truncated to ``max_patterns``.
        """
        recommendations = []
        for pattern in patterns:
            score = self.calculate_pattern_score(pattern, requirements, characteristics)
            if score <= self.settings.min_pattern_score:
                continue
            recommendations.append(PatternRecommendation(
                pattern=pattern,
                applicability_score=score,
                benefits=self.pattern_benefits(pattern, requirements),
                risks=self.pattern_risks(pattern),
                implementation_complexity=self.pattern_complexity(pattern),
                prerequisites=list(PATTERN_PREREQUISITES.get(pattern.type, [])),
            ))

        recommendations.sort(key=lambda r: r.applicability_score, reverse=True)
        return recommendations[:self.settings.max_patterns]

    def calculate_pattern_score(
        self,
        pattern: ArchitecturePattern,
        requirements: list[Requirement],
        characteristics: Optional[ArchitecturalCharacteristics] = None,
    ) -> float:
        """Normalized weighted alignment + characteristic bonus + success rate, capped at 1.0."""
        weighted = 0.0
        total_weight = 0.0
        for requirement in requirements:
            weight = self.settings.pattern_weights.get(requirement.type, {}).get(
                pattern.type, self.settings.default_pattern_weight
            )
            weighted += weight * self.requirement_pattern_alignment(requirement, pattern)
            total_weight += weight

        base = weighted / total_weight if total_weight > 0 else 0.0
        bonus = self.characteristic_bonus(pattern, characteristics) if characteristics else 0.0
        success = pattern.success_rate * self.settings.success_rate_weight
        return min(1.0, base + bonus + success)

    def requirement_pattern_alignment(self, requirement: Requirement, pattern: ArchitecturePattern) -> float:
        settings = self.settings
        text = requirement.text
        alignment = settings.base_alignment

        for condition in pattern.applicability_conditions:
            if condition and condition.lower() in text:
                alignment += settings.condition_match_bonus

        for attribute in pattern.quality_attributes:
            if attribute.name.lower() not in text:
                continue
            if attribute.impact == QualityImpact.POSITIVE:
                alignment += settings.positive_attribute_bonus
            elif attribute.impact == QualityImpact.NEGATIVE:
                alignment -= settings.negative_attribute_penalty

        return min(1.0, max(0.0, alignment))

    def characteristic_bonus(
        self, pattern: ArchitecturePattern, characteristics: ArchitecturalCharacteristics
    ) -> float:
        bonus = 0.0
        for signal in self.characteristics.active_signals(characteristics):
            bonus += self.settings.characteristic_bonuses.get(signal, {}).get(pattern.type, 0.0)
        return bonus

    def pattern_complexity(self, pattern: ArchitecturePattern) -> Level:
        return Level(self.settings.pattern_complexity.get(pattern.type, Level.MEDIUM.value))

    def pattern_benefits(self, pattern: ArchitecturePattern, requirements: list[Requirement]) -> list[str]:
        benefits = [
            f"Improves {qa.name}: {qa.description}"
            for qa in pattern.quality_attributes
            if qa.impact == QualityImpact.POSITIVE
        ]
        if pattern.type == PatternType.MICROSERVICES and any(
            mentions(r.text, self.settings.scalability_keywords) for r in requirements
        ):
            benefits.append("Enables independent scaling of services")
            benefits.append("Supports technology diversity")
        return benefits

    def pattern_risks(self, pattern: ArchitecturePattern) -> list[str]:
        risks = [
            f"May negatively impact {qa.name}: {qa.description}"
            for qa in pattern.quality_attributes
            if qa.impact == QualityImpact.NEGATIVE
        ]
        if pattern.type == PatternType.MICROSERVICES:
            risks.append("Increased operational complexity")
            risks.append("Network latency and reliability concerns")
            risks.append("Distributed system debugging challenges")
        return risks

    # =========================================================================
    # Technology stacks
    # =========================================================================

    def score_technologies(
        self,
        stacks: list[TechnologyStack],
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
        characteristics: Optional[ArchitecturalCharacteristics] = None,
        project_context: Optional[ProjectContext] = None,
    ) -> list[TechnologyRecommendation]:
        """Score every candidate stack; keep those strictly above ``min_technology_score``."""
        recommendations = []
        for stack in stacks:
            score = self.calculate_technology_score(stack, requirements, patterns, characteristics, project_context)
            if score <= self.settings.min_technology_score:
                continue
            recommendations.append(TechnologyRecommendation(
                stack=stack,
                suitability_score=score,
                alignment_reason=self.alignment_reason(stack, requirements, patterns),
                implementation_effort=self.implementation_effort(stack, requirements),
                learning_curve_impact=self.learning_curve_impact(stack),
                risk_factors=self.technology_risks(stack),
            ))

        recommendations.sort(key=lambda r: r.suitability_score, reverse=True)
        return recommendations[:self.settings.max_technologies]

    def _stack_expertise(self, stack: TechnologyStack) -> float:
        if stack.team_expertise is not None:
            return stack.team_expertise
        return self.settings.default_team_expertise

    def calculate_technology_score(
        self,
        stack: TechnologyStack,
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
        characteristics: Optional[ArchitecturalCharacteristics] = None,
        project_context: Optional[ProjectContext] = None,
    ) -> float:
        settings = self.settings
        success_rate = stack.success_rate if stack.success_rate is not None else settings.default_stack_success
        score = (
            self._stack_expertise(stack) * settings.team_expertise_weight
            + success_rate * settings.stack_success_weight
            + self.pattern_compatibility(stack, patterns) * settings.pattern_compatibility_weight
            + self.requirement_technology_alignment(stack, requirements, characteristics, project_context)
            * settings.requirement_alignment_weight
        )
        return min(1.0, score)

    def pattern_compatibility(self, stack: TechnologyStack, patterns: list[PatternRecommendation]) -> float:
        """Share of recommended patterns the stack has a known-compatible technology for.

        Neutral 0.5 when there are no recommended patterns.
        """
        if not patterns:
            return 0.5
        names = [tech.name.lower() for tech in stack.technologies]
        supported = 0
        for recommendation in patterns:
            signals = self.settings.pattern_technologies.get(recommendation.pattern.type, [])
            if any(signal in name for signal in signals for name in names):
                supported += 1
        return supported / len(patterns)

    def requirement_technology_alignment(
        self,
        stack: TechnologyStack,
        requirements: list[Requirement],
        characteristics: Optional[ArchitecturalCharacteristics] = None,
        project_context: Optional[ProjectContext] = None,
    ) -> float:
        names = [tech.name.lower() for tech in stack.technologies]
        if requirements and names:
            mentioned = sum(1 for r in requirements if any(name in r.text for name in names))
            alignment = 0.5 + 0.5 * mentioned / len(requirements)
        else:
            alignment = 0.5

        metrics = stack.performance_metrics
        if characteristics is not None and characteristics.scalability_needs == Level.HIGH \
                and metrics.scalability is not None:
            alignment = (alignment + metrics.scalability) / 2

        if project_context is not None and project_context.existing_technologies:
            existing = {t.lower() for t in project_context.existing_technologies}
            overlap = sum(1 for name in names if name in existing)
            alignment += 0.1 * overlap

        return min(1.0, alignment)

    def alignment_reason(
        self,
        stack: TechnologyStack,
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
    ) -> str:
        supported = [
            r.pattern.name for r in patterns
            if any(
                signal in tech.name.lower()
                for signal in self.settings.pattern_technologies.get(r.pattern.type, [])
                for tech in stack.technologies
            )
        ]
        if supported:
            return f"{stack.name} supports the recommended {', '.join(supported)} pattern(s)"
        return f"{stack.name} aligns with the requirements of {len(requirements)} requirement(s)"

    def implementation_effort(self, stack: TechnologyStack, requirements: list[Requirement]) -> float:
        """Hours to adopt the stack, discounted by team expertise."""
        onboarding = sum(LEARNING_CURVE_HOURS[tech.learning_curve] for tech in stack.technologies)
        delivery = 4.0 * len(requirements)
        return (onboarding + delivery) * (1.5 - self._stack_expertise(stack))

    def learning_curve_impact(self, stack: TechnologyStack) -> LearningCurveImpact:
        expertise = self._stack_expertise(stack)
        technologies = stack.technologies
        steep = sum(1 for tech in technologies if tech.learning_curve == LearningCurve.HIGH)
        if expertise < 0.4 or (technologies and steep * 2 >= len(technologies)):
            return LearningCurveImpact.SIGNIFICANT
        if expertise >= 0.7 and steep == 0:
            return LearningCurveImpact.MINIMAL
        return LearningCurveImpact.MODERATE

    def technology_risks(self, stack: TechnologyStack) -> list[str]:
        risks = []
        names = {tech.name.lower() for tech in stack.technologies}
        for tech in stack.technologies:
            if tech.maturity == TechnologyMaturity.DEPRECATED:
                risks.append(f"{tech.name} is deprecated")
            elif tech.maturity == TechnologyMaturity.EXPERIMENTAL:
                risks.append(f"{tech.name} is experimental")
        for pair in stack.compatibility.incompatible:
            if len(pair) == 2 and pair[0].lower() in names and pair[1].lower() in names:
                risks.append(f"{pair[0]} is incompatible with {pair[1]}")
        for name, required in stack.compatibility.requires.items():
            if name.lower() not in names:
                continue
            for dependency in required:
                if dependency.lower() not in names:
                    risks.append(f"{name} requires {dependency}, which is not part of the stack")
        if stack.success_rate is not None and stack.success_rate < 0.6:
            risks.append("Low historical success rate")
        if self._stack_expertise(stack) < 0.4:
            risks.append("Limited team expertise with this stack")
        return risks
