"""Integration engine facade.

Wires the store, scorer, recommender, validators and orchestrator together
and exposes the operations callers use.
"""

import logging
import uuid
from typing import Iterable, Optional, Union

from requirements_graph.analysis import KeywordRequirementAnalyzer
from requirements_graph.exceptions import InputValidationError
from requirements_graph.schema import (
    ArchitectureDecision,
    ArchitecturePattern,
    ArchitectureRequirementAlignment,
    DecisionStatus,
    MappingType,
    Priority,
    Project,
    Requirement,
    RequirementArchitectureMapping,
    RequirementStatus,
    RequirementType,
    TechnologyStack,
    utc_now,
)
from requirements_graph.store import GraphStore

from .alignment import AlignmentValidator
from .config import EngineConfig, get_config
from .health import HealthMonitor
from .impact import ImpactAnalyzer
from .integrity import IntegrityValidator
from .mappings import MappingManager
from .migration import MigrationOrchestrator
from .recommender import RecommendationEngine
from .schema import (
    AutoCorrectionResult,
    BatchMigrationResult,
    ImpactAnalysis,
    ImportResult,
    IntegrationDataExport,
    IntegrationHealthCheck,
    IntegrationMetrics,
    IntegrityValidationResult,
    MappingConsistencyResult,
    MigrationOptions,
    MigrationResult,
    ProjectContext,
    RecommendationResult,
    RequirementChangeEvent,
    RequirementChangeOutcome,
    RollbackResult,
)
from .scorer import AlignmentScorer
from .tasks import BackgroundTasks

logger = logging.getLogger(__name__)


class IntegrationEngine:
    """Single entry point to the requirement/architecture alignment engine.

    Components share one store and one immutable configuration. Mapping
    creation schedules impact analysis on the background task queue.
    """

    def __init__(
        self,
        store: GraphStore,
        config: Optional[EngineConfig] = None,
        analyzer: Optional[KeywordRequirementAnalyzer] = None,
        tasks: Optional[BackgroundTasks] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.analyzer = analyzer or KeywordRequirementAnalyzer()
        self.tasks = tasks or BackgroundTasks()

        self.scorer = AlignmentScorer(self.config)
        self.recommender = RecommendationEngine(store, self.config)
        self.validator = AlignmentValidator(store, self.scorer, self.recommender, self.config)
        self.impact = ImpactAnalyzer(store, self.config, self.validator, self.recommender)
        self.mappings = MappingManager(store, self.tasks, self.impact)
        self.integrity = IntegrityValidator(store, self.scorer, self.recommender, self.mappings, self.config)
        self.health = HealthMonitor(store, self.integrity, self.config)
        self.migration = MigrationOrchestrator(
            store, self.recommender, self.validator, self.mappings, self.health, self.config
        )

    def close(self) -> None:
        self.tasks.shutdown(wait=True)
        self.store.close()

    def __enter__(self) -> "IntegrationEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # Entities
    # =========================================================================

    def save_project(self, project: Project) -> Project:
        return self.store.save_project(project)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.store.get_project(project_id)

    def list_projects(self) -> list[Project]:
        return self.store.list_projects()

    def save_requirement(self, requirement: Requirement) -> Requirement:
        return self.store.save_requirement(requirement)

    def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        return self.store.get_requirement(requirement_id)

    def list_requirements(self, project_id: Optional[str] = None) -> list[Requirement]:
        return self.store.list_requirements(project_id)

    def intake_requirement(self, project_id: str, text: str, title: Optional[str] = None) -> Requirement:
        """Analyze free text and store it as a DRAFT requirement.

        Raises:
            NotFoundError: If the project does not exist
            InputValidationError: If the text is empty or too long
        """
        self.store.require_project(project_id)
        analysis = self.analyzer.analyze(text)
        requirement = Requirement(
            id=f"req_{uuid.uuid4().hex[:12]}",
            project_id=project_id,
            title=title or analysis.suggested_title,
            description=text.strip(),
            type=analysis.type,
            priority=analysis.priority,
            status=RequirementStatus.DRAFT,
            embedding=analysis.embedding,
            completeness_score=analysis.completeness_score,
            quality_score=analysis.quality_score,
        )
        logger.info("Intake created requirement %s (%s)", requirement.id, requirement.type.value)
        return self.store.save_requirement(requirement)

    def update_requirement(
        self,
        requirement_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        type: Optional[RequirementType] = None,
        priority: Optional[Priority] = None,
        changed_by: str = "system",
    ) -> RequirementChangeOutcome:
        """Edit a requirement and process the change.

        Raises:
            NotFoundError: If the requirement does not exist
        """
        requirement = self.store.require_requirement(requirement_id)
        updates = {
            name: value
            for name, value in (("title", title), ("description", description), ("type", type), ("priority", priority))
            if value is not None and getattr(requirement, name) != value
        }
        previous = {name: getattr(requirement, name) for name in updates}
        if updates:
            updates["updated_at"] = utc_now()
            self.store.save_requirement(requirement.model_copy(update=updates))

        return self.handle_requirement_change(RequirementChangeEvent(
            requirement_id=requirement_id,
            changed_fields=[name for name in updates if name != "updated_at"],
            previous_values={k: getattr(v, "value", v) for k, v in previous.items()},
            changed_by=changed_by,
        ))

    def transition_requirement(self, requirement_id: str, status: RequirementStatus) -> Requirement:
        """Move a requirement forward in its lifecycle.

        Raises:
            NotFoundError: If the requirement does not exist
            InputValidationError: If the transition is not allowed
        """
        requirement = self.store.require_requirement(requirement_id)
        if not requirement.can_transition_to(status):
            raise InputValidationError(
                f"Requirement {requirement_id} cannot move from {requirement.status.value} to {status.value}"
            )
        updated = requirement.model_copy(update={"status": status, "updated_at": utc_now()})
        return self.store.save_requirement(updated)

    def save_decision(self, decision: ArchitectureDecision) -> ArchitectureDecision:
        return self.store.save_decision(decision)

    def get_decision(self, decision_id: str) -> Optional[ArchitectureDecision]:
        return self.store.get_decision(decision_id)

    def list_decisions(self, project_id: Optional[str] = None) -> list[ArchitectureDecision]:
        return self.store.list_decisions(project_id)

    def transition_decision(
        self,
        decision_id: str,
        status: DecisionStatus,
        superseded_by: Optional[str] = None,
    ) -> ArchitectureDecision:
        """Move a decision forward, deprecate it, or supersede it.

        Deprecation and supersession both record the replacement decision.

        Raises:
            NotFoundError: If the decision (or its replacement) does not exist
            InputValidationError: If the transition is not allowed
        """
        decision = self.store.require_decision(decision_id)
        if not decision.can_transition_to(status):
            raise InputValidationError(
                f"Decision {decision_id} cannot move from {decision.status.value} to {status.value}"
            )
        updates = {"status": status, "updated_at": utc_now()}
        if status in (DecisionStatus.DEPRECATED, DecisionStatus.SUPERSEDED):
            if not superseded_by:
                raise InputValidationError(
                    f"A {status.value.lower()} decision needs a replacement decision id"
                )
            if superseded_by == decision_id:
                raise InputValidationError("A decision cannot replace itself")
            self.store.require_decision(superseded_by)
            updates["superseded_by"] = superseded_by
        return self.store.save_decision(decision.model_copy(update=updates))

    def save_pattern(self, pattern: ArchitecturePattern) -> ArchitecturePattern:
        return self.store.save_pattern(pattern)

    def get_pattern(self, pattern_id: str) -> Optional[ArchitecturePattern]:
        return self.store.get_pattern(pattern_id)

    def list_patterns(self) -> list[ArchitecturePattern]:
        return self.store.list_patterns()

    def record_pattern_outcome(self, pattern_id: str, success: bool) -> ArchitecturePattern:
        return self.store.record_pattern_outcome(pattern_id, success)

    def save_technology_stack(self, stack: TechnologyStack) -> TechnologyStack:
        return self.store.save_technology_stack(stack)

    def get_technology_stack(self, stack_id: str) -> Optional[TechnologyStack]:
        return self.store.get_technology_stack(stack_id)

    def list_technology_stacks(self) -> list[TechnologyStack]:
        return self.store.list_technology_stacks()

    def record_stack_outcome(self, stack_id: str, success: bool) -> TechnologyStack:
        return self.store.record_stack_outcome(stack_id, success)

    # =========================================================================
    # Mappings, recommendations, alignment
    # =========================================================================

    def create_mapping(
        self,
        requirement_id: str,
        architecture_decision_id: Optional[str] = None,
        architecture_pattern_id: Optional[str] = None,
        technology_stack_id: Optional[str] = None,
        mapping_type: MappingType = MappingType.DIRECT,
        confidence: float = 1.0,
        rationale: str = "",
        tradeoffs: Optional[list[str]] = None,
        created_by: str = "system",
    ) -> RequirementArchitectureMapping:
        return self.mappings.create_mapping(
            requirement_id,
            architecture_decision_id=architecture_decision_id,
            architecture_pattern_id=architecture_pattern_id,
            technology_stack_id=technology_stack_id,
            mapping_type=mapping_type,
            confidence=confidence,
            rationale=rationale,
            tradeoffs=tradeoffs,
            created_by=created_by,
        )

    def generate_recommendations(
        self,
        requirement_ids: Optional[Iterable[str]] = None,
        project_id: Optional[str] = None,
        project_context: Optional[ProjectContext] = None,
    ) -> RecommendationResult:
        """Recommend for explicit requirements, or for every requirement of a project.

        Raises:
            NotFoundError: If a requirement id does not resolve
            InputValidationError: If no requirements were selected
            RecommendationFailedError: If candidates cannot be loaded
        """
        if requirement_ids is not None:
            requirements = [self.store.require_requirement(r) for r in requirement_ids]
        elif project_id is not None:
            requirements = self.store.list_requirements(project_id)
        else:
            requirements = []
        return self.recommender.recommend(requirements, project_context)

    def validate_alignment(
        self, requirement_id: str, architecture_decision_id: str, assessed_by: str = "system"
    ) -> ArchitectureRequirementAlignment:
        return self.validator.validate_requirement_architecture_alignment(
            requirement_id, architecture_decision_id, assessed_by
        )

    def batch_validate_alignments(
        self, pairs: Iterable[tuple[str, str]], assessed_by: str = "system"
    ) -> list[ArchitectureRequirementAlignment]:
        return self.validator.batch_validate_alignments(pairs, assessed_by)

    # =========================================================================
    # Impact, integrity, health
    # =========================================================================

    def analyze_requirement_impact(self, requirement_id: str) -> ImpactAnalysis:
        return self.impact.analyze_requirement_impact(requirement_id)

    def handle_requirement_change(self, event: RequirementChangeEvent) -> RequirementChangeOutcome:
        return self.impact.handle_requirement_change(event)

    def validate_mapping_consistency(self, mapping_id: str) -> MappingConsistencyResult:
        return self.integrity.validate_mapping_consistency(mapping_id)

    def validate_cross_module_integrity(self, project_id: Optional[str] = None) -> IntegrityValidationResult:
        return self.integrity.validate_cross_module_integrity(project_id)

    def auto_correct_integrity_issues(
        self, dry_run: bool = True, project_id: Optional[str] = None
    ) -> AutoCorrectionResult:
        return self.integrity.auto_correct_integrity_issues(dry_run, project_id)

    def get_integration_metrics(self, project_id: Optional[str] = None) -> IntegrationMetrics:
        return self.health.get_integration_metrics(project_id)

    def perform_health_check(self, project_id: Optional[str] = None) -> IntegrationHealthCheck:
        return self.health.perform_health_check(project_id)

    # =========================================================================
    # Migration
    # =========================================================================

    def migrate_project_integration(
        self, project_id: str, options: Optional[MigrationOptions] = None
    ) -> MigrationResult:
        return self.migration.migrate_project_integration(project_id, options)

    def migrate_all_projects(self, options: Optional[MigrationOptions] = None) -> BatchMigrationResult:
        return self.migration.migrate_all_projects(options)

    def rollback_migration(self, project_id: str, remove_auto_components: bool = True) -> RollbackResult:
        return self.migration.rollback_migration(project_id, remove_auto_components)

    def export_integration_data(self, project_id: str) -> IntegrationDataExport:
        return self.migration.export_integration_data(project_id)

    def import_integration_data(
        self, document: Union[IntegrationDataExport, dict], project_id: Optional[str] = None
    ) -> ImportResult:
        return self.migration.import_integration_data(document, project_id)
