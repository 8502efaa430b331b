"""Pydantic models for the requirements/architecture graph."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Timezone-aware current time used for every persisted timestamp."""
    return datetime.now(timezone.utc)


class RequirementType(str, Enum):
    """Requirement classification."""
    BUSINESS = "BUSINESS"
    FUNCTIONAL = "FUNCTIONAL"
    NON_FUNCTIONAL = "NON_FUNCTIONAL"
    USER_STORY = "USER_STORY"
    ACCEPTANCE_CRITERIA = "ACCEPTANCE_CRITERIA"
    BUSINESS_RULE = "BUSINESS_RULE"
    COMPLIANCE = "COMPLIANCE"


class RequirementStatus(str, Enum):
    """Requirement lifecycle status."""
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    APPROVED = "APPROVED"
    IMPLEMENTED = "IMPLEMENTED"
    VALIDATED = "VALIDATED"
    DEPRECATED = "DEPRECATED"


class Priority(str, Enum):
    """Priority rating shared by requirements and cascading changes."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class DecisionStatus(str, Enum):
    """Architecture decision lifecycle status."""
    DRAFT = "DRAFT"
    PROPOSED = "PROPOSED"
    APPROVED = "APPROVED"
    IMPLEMENTED = "IMPLEMENTED"
    DEPRECATED = "DEPRECATED"
    SUPERSEDED = "SUPERSEDED"


class PatternType(str, Enum):
    """Architecture pattern styles."""
    MICROSERVICES = "MICROSERVICES"
    MONOLITHIC = "MONOLITHIC"
    SERVERLESS = "SERVERLESS"
    EVENT_DRIVEN = "EVENT_DRIVEN"
    LAYERED = "LAYERED"
    HEXAGONAL = "HEXAGONAL"
    CQRS = "CQRS"
    SAGA = "SAGA"


class QualityImpact(str, Enum):
    """Effect a pattern has on a quality attribute."""
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"


class TechnologyMaturity(str, Enum):
    """Maturity of a single technology."""
    EXPERIMENTAL = "EXPERIMENTAL"
    STABLE = "STABLE"
    MATURE = "MATURE"
    DEPRECATED = "DEPRECATED"


class LearningCurve(str, Enum):
    """Learning curve of a single technology."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MappingType(str, Enum):
    """How a requirement relates to the architecture artifact it maps to."""
    DIRECT = "DIRECT"
    DERIVED = "DERIVED"
    INFLUENCED = "INFLUENCED"
    CONSTRAINT = "CONSTRAINT"
    QUALITY_ATTRIBUTE = "QUALITY_ATTRIBUTE"


class AlignmentType(str, Enum):
    """Alignment classification derived from the alignment score."""
    FULLY_ALIGNED = "FULLY_ALIGNED"
    PARTIALLY_ALIGNED = "PARTIALLY_ALIGNED"
    MISALIGNED = "MISALIGNED"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class ValidationStatus(str, Enum):
    """Review state of an alignment record."""
    PENDING = "PENDING"
    VALIDATED = "VALIDATED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    REJECTED = "REJECTED"


# Forward order of the requirement lifecycle. DEPRECATED is reachable from anywhere.
REQUIREMENT_STATUS_ORDER = [
    RequirementStatus.DRAFT,
    RequirementStatus.REVIEW,
    RequirementStatus.APPROVED,
    RequirementStatus.IMPLEMENTED,
    RequirementStatus.VALIDATED,
]

DECISION_STATUS_ORDER = [
    DecisionStatus.DRAFT,
    DecisionStatus.PROPOSED,
    DecisionStatus.APPROVED,
    DecisionStatus.IMPLEMENTED,
]

# Statuses that make an entity count as "committed" for coverage checks.
COMMITTED_REQUIREMENT_STATUSES = {RequirementStatus.APPROVED, RequirementStatus.IMPLEMENTED}
COMMITTED_DECISION_STATUSES = {DecisionStatus.APPROVED, DecisionStatus.IMPLEMENTED}


# =============================================================================
# Graph entities
# =============================================================================

class Project(BaseModel):
    """A project groups requirements and architecture decisions."""
    id: str = Field(..., description="Unique project identifier")
    name: str = Field(..., description="Project name")
    description: str = Field(default="", description="Project description")
    created_at: datetime = Field(default_factory=utc_now)


class Requirement(BaseModel):
    """A single requirement captured by the intake workflow."""

    id: str = Field(..., description="Unique requirement identifier")
    project_id: Optional[str] = Field(None, description="Owning project")
    title: str = Field(default="", description="Short requirement title")
    description: str = Field(default="", description="Full requirement text")
    type: RequirementType = Field(default=RequirementType.FUNCTIONAL)
    status: RequirementStatus = Field(default=RequirementStatus.DRAFT)
    priority: Priority = Field(default=Priority.MEDIUM)

    embedding: Optional[list[float]] = Field(None, description="Text embedding vector")
    completeness_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    quality_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    dependencies: list[str] = Field(
        default_factory=list,
        description="Ids of requirements this requirement depends on"
    )

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def text(self) -> str:
        """Title and description as one lowercase searchable string."""
        return f"{self.title} {self.description}".lower()

    def can_transition_to(self, status: RequirementStatus) -> bool:
        """Whether the lifecycle allows moving to ``status``."""
        if self.status == RequirementStatus.DEPRECATED:
            return False
        if status == RequirementStatus.DEPRECATED:
            return True
        return REQUIREMENT_STATUS_ORDER.index(status) > REQUIREMENT_STATUS_ORDER.index(self.status)


class DecisionAlternative(BaseModel):
    """An option considered and rejected for an architecture decision."""
    name: str
    description: str = ""
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)


class TradeOff(BaseModel):
    """A trade-off accepted by an architecture decision."""
    description: str
    impact: str = ""
    accepted: bool = True


class ArchitectureDecision(BaseModel):
    """An architecture decision record."""

    id: str = Field(..., description="Unique decision identifier")
    project_id: Optional[str] = Field(None, description="Owning project")
    title: str = Field(default="")
    description: str = Field(default="")
    rationale: str = Field(default="")
    status: DecisionStatus = Field(default=DecisionStatus.DRAFT)
    alternatives: list[DecisionAlternative] = Field(default_factory=list)
    tradeoffs: list[TradeOff] = Field(default_factory=list)
    requirement_ids: list[str] = Field(
        default_factory=list,
        description="Requirements this decision addresses"
    )
    pattern_ids: list[str] = Field(
        default_factory=list,
        description="Patterns this decision uses"
    )
    superseded_by: Optional[str] = Field(None, description="Replacement decision id")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def text(self) -> str:
        """All free text of the decision, lowercased, for keyword evidence."""
        parts = [self.title, self.description, self.rationale]
        for alternative in self.alternatives:
            parts.append(alternative.description)
        for tradeoff in self.tradeoffs:
            parts.append(f"{tradeoff.description} {tradeoff.impact}")
        return " ".join(parts).lower()

    def can_transition_to(self, status: DecisionStatus) -> bool:
        """Forward-only transitions; deprecation and supersession from any live state."""
        if self.status in (DecisionStatus.DEPRECATED, DecisionStatus.SUPERSEDED):
            return False
        if status in (DecisionStatus.DEPRECATED, DecisionStatus.SUPERSEDED):
            return True
        return DECISION_STATUS_ORDER.index(status) > DECISION_STATUS_ORDER.index(self.status)


class QualityAttribute(BaseModel):
    """Quality attribute a pattern affects."""
    name: str
    impact: QualityImpact = QualityImpact.NEUTRAL
    description: str = ""


class ArchitecturePattern(BaseModel):
    """A reusable architecture style with historical success metrics."""

    id: str = Field(..., description="Unique pattern identifier")
    name: str = Field(..., description="Pattern name")
    type: PatternType
    description: str = Field(default="")
    applicability_conditions: list[str] = Field(
        default_factory=list,
        description="Keywords describing where the pattern applies"
    )
    quality_attributes: list[QualityAttribute] = Field(default_factory=list)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    adoption_count: int = Field(default=0, ge=0)

    auto_generated: bool = Field(default=False, description="Created by a migration run")
    generated_for_project: Optional[str] = Field(None)
    created_at: datetime = Field(default_factory=utc_now)


class Technology(BaseModel):
    """A single technology inside a stack layer."""
    name: str
    version: str = ""
    purpose: str = ""
    maturity: TechnologyMaturity = TechnologyMaturity.STABLE
    learning_curve: LearningCurve = LearningCurve.MEDIUM


class TechnologyLayer(BaseModel):
    """A layer (frontend, backend, data, ...) of a technology stack."""
    name: str
    technologies: list[Technology] = Field(default_factory=list)


class CompatibilityMatrix(BaseModel):
    """Known compatibility facts between technologies of a stack."""
    compatible: list[list[str]] = Field(default_factory=list)
    incompatible: list[list[str]] = Field(default_factory=list)
    requires: dict[str, list[str]] = Field(default_factory=dict)


class PerformanceMetrics(BaseModel):
    """Expected performance profile of a stack (0-1 ratings unless noted)."""
    throughput: Optional[float] = None
    latency_ms: Optional[float] = None
    scalability: Optional[float] = None
    reliability: Optional[float] = None
    maintainability: Optional[float] = None


class CostEstimate(BaseModel):
    """Rough cost figures attached to a stack."""
    development: float = 0.0
    operational: float = 0.0
    licensing: float = 0.0
    training: float = 0.0
    currency: str = "USD"


class TechnologyStack(BaseModel):
    """A technology stack candidate."""

    id: str = Field(..., description="Unique stack identifier")
    name: str = Field(..., description="Stack name")
    description: str = Field(default="")
    layers: list[TechnologyLayer] = Field(default_factory=list)
    compatibility: CompatibilityMatrix = Field(default_factory=CompatibilityMatrix)
    performance_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    cost_estimate: CostEstimate = Field(default_factory=CostEstimate)
    team_expertise: Optional[float] = Field(None, ge=0.0, le=1.0)
    success_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    adoption_count: int = Field(default=0, ge=0)

    auto_generated: bool = Field(default=False, description="Created by a migration run")
    generated_for_project: Optional[str] = Field(None)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def technologies(self) -> list[Technology]:
        """All technologies across layers."""
        return [tech for layer in self.layers for tech in layer.technologies]


class RequirementArchitectureMapping(BaseModel):
    """Edge entity linking one requirement to architecture artifacts.

    Confidence is stored as given; callers are responsible for keeping it in [0, 1].
    """

    id: str = Field(..., description="Unique mapping identifier")
    requirement_id: str
    architecture_decision_id: Optional[str] = None
    architecture_pattern_id: Optional[str] = None
    technology_stack_id: Optional[str] = None
    mapping_type: MappingType = MappingType.DIRECT
    confidence: float = 0.0
    rationale: str = ""
    tradeoffs: Optional[list[str]] = None

    created_at: datetime = Field(default_factory=utc_now)
    created_by: str = "system"
    validated_at: Optional[datetime] = None
    validated_by: Optional[str] = None

    @property
    def target_ids(self) -> list[str]:
        """Non-null target ids in decision, pattern, stack order."""
        return [
            target for target in (
                self.architecture_decision_id,
                self.architecture_pattern_id,
                self.technology_stack_id,
            )
            if target
        ]


class ArchitectureRequirementAlignment(BaseModel):
    """Scored alignment of one requirement with one architecture decision.

    Keyed by the (requirement_id, architecture_decision_id) pair; ``id`` is
    derived from the pair so repeated validation overwrites the same record.
    """

    requirement_id: str
    architecture_decision_id: str
    alignment_score: float = 0.0
    alignment_type: AlignmentType = AlignmentType.NOT_APPLICABLE
    gaps: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    validation_status: ValidationStatus = ValidationStatus.PENDING
    last_assessed: datetime = Field(default_factory=utc_now)
    assessed_by: str = "system"

    @property
    def id(self) -> str:
        return alignment_id(self.requirement_id, self.architecture_decision_id)


def alignment_id(requirement_id: str, architecture_decision_id: str) -> str:
    """Deterministic id of the alignment record for a pair."""
    return f"alignment_{requirement_id}_{architecture_decision_id}"
