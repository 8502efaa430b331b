"""Pydantic models for alignment engine inputs and outputs."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from requirements_graph.exceptions import PartialFailureError
from requirements_graph.schema import (
    AlignmentType,
    ArchitectureDecision,
    ArchitecturePattern,
    ArchitectureRequirementAlignment,
    PatternType,
    Priority,
    Project,
    Requirement,
    RequirementArchitectureMapping,
    TechnologyStack,
    ValidationStatus,
    utc_now,
)


class Level(str, Enum):
    """Three-step rating used for complexity, scalability and risk."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Severity(str, Enum):
    """Severity of an integrity or consistency issue."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


SEVERITY_RANK = {Severity.LOW: 1, Severity.MEDIUM: 2, Severity.HIGH: 3}


# =============================================================================
# Alignment
# =============================================================================

class RuleScore(BaseModel):
    """Sub-score produced by a single validation rule."""
    name: str
    weight: float
    score: float


class AlignmentResult(BaseModel):
    """Scored alignment between one requirement and one architecture artifact."""
    requirement_id: str
    target_id: str
    alignment_score: float
    alignment_type: AlignmentType
    gaps: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    validation_status: ValidationStatus
    rule_scores: list[RuleScore] = Field(default_factory=list)


# =============================================================================
# Recommendations
# =============================================================================

class ArchitecturalCharacteristics(BaseModel):
    """Architecture-relevant signals extracted from a requirement set."""
    scalability_needs: Level = Level.LOW
    performance_requirements: list[str] = Field(default_factory=list)
    security_requirements: list[str] = Field(default_factory=list)
    compliance_requirements: list[str] = Field(default_factory=list)
    integration_complexity: Level = Level.LOW
    data_consistency_needs: str = Field("EVENTUAL", description="EVENTUAL or STRONG")
    team_expertise: float = 0.7


class PatternRecommendation(BaseModel):
    """A recommended pattern with its score and consequences."""
    pattern: ArchitecturePattern
    applicability_score: float
    benefits: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    implementation_complexity: Level = Level.MEDIUM
    prerequisites: list[str] = Field(default_factory=list)


class LearningCurveImpact(str, Enum):
    """Expected learning effort for the team."""
    MINIMAL = "MINIMAL"
    MODERATE = "MODERATE"
    SIGNIFICANT = "SIGNIFICANT"


class TechnologyRecommendation(BaseModel):
    """A recommended technology stack."""
    stack: TechnologyStack
    suitability_score: float
    alignment_reason: str = ""
    implementation_effort: float = Field(0.0, description="Estimated hours")
    learning_curve_impact: LearningCurveImpact = LearningCurveImpact.MODERATE
    risk_factors: list[str] = Field(default_factory=list)


class ConstraintType(str, Enum):
    """Architectural constraint categories."""
    PERFORMANCE = "PERFORMANCE"
    SECURITY = "SECURITY"
    SCALABILITY = "SCALABILITY"
    COMPLIANCE = "COMPLIANCE"
    INTEGRATION = "INTEGRATION"
    OPERATIONAL = "OPERATIONAL"
    BUDGET = "BUDGET"


class ArchitecturalConstraint(BaseModel):
    """A constraint the architecture must honor."""
    type: ConstraintType
    description: str
    impact: Level = Level.MEDIUM
    mandatory: bool = False
    validation_criteria: list[str] = Field(default_factory=list)
    source_requirement_ids: list[str] = Field(default_factory=list)


class QualityAttributeMapping(BaseModel):
    """A quality attribute revealed by one requirement."""
    requirement_id: str
    quality_attribute: str
    target_value: str
    measurement_criteria: str
    architectural_implication: str
    verification_method: str


class StrategyApproach(str, Enum):
    """How the recommended architecture should be rolled out."""
    BIG_BANG = "BIG_BANG"
    PHASED = "PHASED"
    INCREMENTAL = "INCREMENTAL"
    PARALLEL = "PARALLEL"


class ImplementationPhase(BaseModel):
    """A phase of a phased rollout."""
    name: str
    description: str
    requirement_ids: list[str] = Field(default_factory=list)
    duration_weeks: int = 0
    deliverables: list[str] = Field(default_factory=list)


class ImplementationStrategy(BaseModel):
    """Rollout strategy for a recommendation."""
    approach: StrategyApproach
    complexity: Level
    phases: list[ImplementationPhase] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    risk_mitigations: list[str] = Field(default_factory=list)
    estimated_effort_hours: float = 0.0
    timeline: str = ""


class AlternativeApproach(BaseModel):
    """An alternative architecture worth considering."""
    name: str
    description: str
    patterns: list[PatternType] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    suitability_conditions: list[str] = Field(default_factory=list)


class RecommendationResult(BaseModel):
    """Complete recommendation for a set of requirements."""
    requirement_ids: list[str] = Field(default_factory=list)
    characteristics: ArchitecturalCharacteristics
    patterns: list[PatternRecommendation] = Field(default_factory=list)
    technologies: list[TechnologyRecommendation] = Field(default_factory=list)
    constraints: list[ArchitecturalConstraint] = Field(default_factory=list)
    quality_attributes: list[QualityAttributeMapping] = Field(default_factory=list)
    implementation_strategy: ImplementationStrategy
    alternatives: list[AlternativeApproach] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)


class ProjectContext(BaseModel):
    """Optional context that refines recommendations."""
    team_expertise: Optional[float] = Field(None, ge=0.0, le=1.0)
    existing_technologies: list[str] = Field(default_factory=list)


# =============================================================================
# Integrity
# =============================================================================

class ConsistencyIssueType(str, Enum):
    MISSING_REQUIREMENT = "MISSING_REQUIREMENT"
    MISSING_ARCHITECTURE_DECISION = "MISSING_ARCHITECTURE_DECISION"
    POOR_ALIGNMENT = "POOR_ALIGNMENT"
    MISSING_PATTERN = "MISSING_PATTERN"
    MISSING_TECHNOLOGY_STACK = "MISSING_TECHNOLOGY_STACK"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"


class ConsistencyIssue(BaseModel):
    type: ConsistencyIssueType
    description: str
    severity: Severity
    affected_component: str


class MappingConsistencyResult(BaseModel):
    """Outcome of checking one mapping."""
    mapping_id: str
    is_consistent: bool
    overall_severity: Severity
    issues: list[ConsistencyIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    validated_at: datetime = Field(default_factory=utc_now)


class IntegrityIssueType(str, Enum):
    ORPHANED_MAPPINGS = "ORPHANED_MAPPINGS"
    UNMAPPED_REQUIREMENTS = "UNMAPPED_REQUIREMENTS"
    UNMAPPED_ARCHITECTURE_DECISIONS = "UNMAPPED_ARCHITECTURE_DECISIONS"
    STALE_ALIGNMENTS = "STALE_ALIGNMENTS"


class IntegrityIssue(BaseModel):
    """One aggregate finding of the integrity sweep."""
    type: IntegrityIssueType
    count: int
    description: str
    severity: Severity
    affected_items: list[str] = Field(default_factory=list)


class HealthStatus(str, Enum):
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    DEGRADED = "DEGRADED"


class IntegrityValidationResult(BaseModel):
    """Outcome of a cross-module integrity sweep."""
    project_id: Optional[str] = None
    overall_health: HealthStatus
    total_issues: int
    issues: list[IntegrityIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    total_mappings: int = 0
    total_alignments: int = 0
    validated_at: datetime = Field(default_factory=utc_now)

    def issue(self, issue_type: IntegrityIssueType) -> Optional[IntegrityIssue]:
        return next((i for i in self.issues if i.type == issue_type), None)


class CorrectionType(str, Enum):
    DELETE_ORPHANED_MAPPING = "DELETE_ORPHANED_MAPPING"
    CREATE_AUTO_MAPPING = "CREATE_AUTO_MAPPING"


class CorrectionAction(BaseModel):
    type: CorrectionType
    description: str
    severity: Severity
    parameters: dict[str, Any] = Field(default_factory=dict)
    applied: bool = False


class AutoCorrectionResult(BaseModel):
    dry_run: bool
    total_corrections: int
    applied_corrections: int
    corrections: list[CorrectionAction] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Impact
# =============================================================================

class ChangeTargetType(str, Enum):
    REQUIREMENT = "REQUIREMENT"
    ARCHITECTURE_DECISION = "ARCHITECTURE_DECISION"
    PATTERN = "PATTERN"
    TECHNOLOGY = "TECHNOLOGY"


class ChangeType(str, Enum):
    UPDATE = "UPDATE"
    DEPRECATE = "DEPRECATE"
    CREATE = "CREATE"
    VALIDATE = "VALIDATE"


class CascadingChange(BaseModel):
    """Follow-on change required in a dependent artifact."""
    target_type: ChangeTargetType
    target_id: Optional[str] = None
    change_type: ChangeType
    reason: str
    priority: Priority


class RiskCategory(str, Enum):
    TECHNICAL = "TECHNICAL"
    BUSINESS = "BUSINESS"
    OPERATIONAL = "OPERATIONAL"
    COMPLIANCE = "COMPLIANCE"


class RiskFactor(BaseModel):
    category: RiskCategory
    description: str
    probability: float
    impact: float
    score: float


class RiskAssessment(BaseModel):
    overall_risk: Level
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    mitigation_strategies: list[str] = Field(default_factory=list)
    contingency_plan: str = ""


class ImpactAnalysis(BaseModel):
    """Cascading impact of a requirement change."""
    requirement_id: str
    impacted_decisions: list[str] = Field(default_factory=list)
    impacted_patterns: list[str] = Field(default_factory=list)
    impacted_technologies: list[str] = Field(default_factory=list)
    cascading_changes: list[CascadingChange] = Field(default_factory=list)
    risk_assessment: RiskAssessment
    change_complexity: Level
    estimated_effort: float = Field(0.0, description="Hours")
    analyzed_at: datetime = Field(default_factory=utc_now)


class RequirementChangeEvent(BaseModel):
    """A requirement was edited."""
    requirement_id: str
    changed_fields: list[str] = Field(default_factory=list)
    previous_values: dict[str, Any] = Field(default_factory=dict)
    changed_by: str = "system"


class RequirementChangeOutcome(BaseModel):
    """Follow-up work performed for a requirement change."""
    requirement_id: str
    impact: ImpactAnalysis
    revalidated_alignments: list[ArchitectureRequirementAlignment] = Field(default_factory=list)
    recommendations: Optional[RecommendationResult] = None
    errors: list[str] = Field(default_factory=list)


# =============================================================================
# Metrics and health
# =============================================================================

class IntegrationMetrics(BaseModel):
    """Coverage and quality metrics of the requirement/architecture mapping."""
    project_id: Optional[str] = None
    total_requirements: int = 0
    mapped_requirements: int = 0
    unmapped_requirements: int = 0
    total_mappings: int = 0
    average_confidence: float = 0.0
    alignment_distribution: dict[str, int] = Field(default_factory=dict)
    mapping_type_distribution: dict[str, int] = Field(default_factory=dict)
    validation_coverage: float = 0.0
    recommendation_accuracy: float = 0.0
    implementation_progress: float = 0.0
    calculated_at: datetime = Field(default_factory=utc_now)

    @property
    def coverage(self) -> float:
        if not self.total_requirements:
            return 0.0
        return self.mapped_requirements / self.total_requirements


class IntegrationHealthCheck(BaseModel):
    project_id: Optional[str] = None
    status: HealthStatus
    issues: list[IntegrityIssue] = Field(default_factory=list)
    metrics: IntegrationMetrics
    recommendations: list[str] = Field(default_factory=list)
    checked_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Migration
# =============================================================================

class MigrationOptions(BaseModel):
    """Options for a migration run. ``None`` threshold uses the configured default."""
    confidence_threshold: Optional[float] = None
    create_missing_components: bool = False
    validate_alignments: bool = True
    dry_run: bool = False
    created_by: str = "migration"


class PhaseStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class MigrationPhase(BaseModel):
    name: str
    status: PhaseStatus
    started_at: datetime = Field(default_factory=utc_now)
    duration_ms: float = 0.0
    details: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)


class MigrationStatistics(BaseModel):
    requirements_processed: int = 0
    architecture_decisions_processed: int = 0
    mappings_created: int = 0
    mappings_skipped: int = 0
    alignments_validated: int = 0
    errors_encountered: int = 0

    def add(self, other: "MigrationStatistics") -> None:
        for name in type(self).model_fields:
            setattr(self, name, getattr(self, name) + getattr(other, name))


class MigrationResult(BaseModel):
    """Auditable report of one project migration."""
    project_id: str
    success: bool
    dry_run: bool = False
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    total_duration_ms: float = 0.0
    phases: list[MigrationPhase] = Field(default_factory=list)
    statistics: MigrationStatistics = Field(default_factory=MigrationStatistics)
    errors: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    quality_score: float = 0.0

    def phase(self, name: str) -> Optional[MigrationPhase]:
        return next((p for p in self.phases if p.name == name), None)


class BatchMigrationResult(BaseModel):
    """Migration of every project."""
    total_projects: int = 0
    successful: int = 0
    failed: int = 0
    results: list[MigrationResult] = Field(default_factory=list)
    statistics: MigrationStatistics = Field(default_factory=MigrationStatistics)

    def raise_for_failures(self) -> None:
        """Raise ``PartialFailureError`` if any project failed."""
        if self.failed:
            failures = [r.project_id for r in self.results if not r.success]
            raise PartialFailureError(
                f"{self.failed} of {self.total_projects} project migrations failed", failures
            )


class RollbackActionType(str, Enum):
    REMOVE_MAPPINGS = "REMOVE_MAPPINGS"
    REMOVE_ALIGNMENTS = "REMOVE_ALIGNMENTS"
    REMOVE_AUTO_COMPONENTS = "REMOVE_AUTO_COMPONENTS"


class RollbackAction(BaseModel):
    action: RollbackActionType
    description: str
    count: int = 0
    success: bool = True


class RollbackResult(BaseModel):
    project_id: str
    success: bool
    actions: list[RollbackAction] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=utc_now)


EXPORT_VERSION = "1.0"


class ExportData(BaseModel):
    projects: list[Project] = Field(default_factory=list)
    requirements: list[Requirement] = Field(default_factory=list)
    architecture_decisions: list[ArchitectureDecision] = Field(default_factory=list)
    patterns: list[ArchitecturePattern] = Field(default_factory=list)
    technology_stacks: list[TechnologyStack] = Field(default_factory=list)
    mappings: list[RequirementArchitectureMapping] = Field(default_factory=list)
    alignments: list[ArchitectureRequirementAlignment] = Field(default_factory=list)


class ExportMetadata(BaseModel):
    total_requirements: int = 0
    total_architecture_decisions: int = 0
    total_patterns: int = 0
    total_technology_stacks: int = 0
    total_mappings: int = 0
    total_alignments: int = 0


class IntegrationDataExport(BaseModel):
    """Versioned export document for one project."""
    version: str = EXPORT_VERSION
    project_id: str
    exported_at: datetime = Field(default_factory=utc_now)
    data: ExportData = Field(default_factory=ExportData)
    metadata: ExportMetadata = Field(default_factory=ExportMetadata)


class ImportResult(BaseModel):
    success: bool
    imported: dict[str, int] = Field(default_factory=dict)
    skipped: dict[str, int] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
