"""Migration/Backfill Orchestrator.

Backfills requirement/architecture mappings for existing projects, validates
the result, and supports rollback, export and import of integration data.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from requirements_graph.schema import (
    ArchitectureDecision,
    ArchitecturePattern,
    MappingType,
    Project,
    Requirement,
    RequirementArchitectureMapping,
    TechnologyStack,
    utc_now,
)
from requirements_graph.store import GraphStore

from .alignment import AlignmentValidator
from .config import EngineConfig, get_config
from .defaults import default_patterns, default_technology_stacks
from .health import HealthMonitor
from .mappings import MappingManager
from .recommender import RecommendationEngine
from .schema import (
    EXPORT_VERSION,
    BatchMigrationResult,
    ExportData,
    ExportMetadata,
    HealthStatus,
    ImportResult,
    IntegrationDataExport,
    MigrationOptions,
    MigrationPhase,
    MigrationResult,
    MigrationStatistics,
    PhaseStatus,
    RollbackAction,
    RollbackActionType,
    RollbackResult,
)

logger = logging.getLogger(__name__)

PhaseOutput = tuple[dict[str, Any], list[str]]


@dataclass
class Discovery:
    """What a migration found in the graph before changing anything."""
    requirements: list[Requirement] = field(default_factory=list)
    decisions: list[ArchitectureDecision] = field(default_factory=list)
    patterns: list[ArchitecturePattern] = field(default_factory=list)
    technology_stacks: list[TechnologyStack] = field(default_factory=list)
    mappings: list[RequirementArchitectureMapping] = field(default_factory=list)
    unmapped_requirements: list[Requirement] = field(default_factory=list)
    unmapped_decisions: list[ArchitectureDecision] = field(default_factory=list)


class MigrationOrchestrator:
    """Runs multi-phase migrations over projects.

    Migration principles:
    - Each phase records its own status, duration and details
    - A failing phase never aborts the phases after it
    - Dry runs compute everything and write nothing
    """

    def __init__(
        self,
        store: GraphStore,
        recommender: Optional[RecommendationEngine] = None,
        validator: Optional[AlignmentValidator] = None,
        mappings: Optional[MappingManager] = None,
        health: Optional[HealthMonitor] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.settings = self.config.migration
        self.recommender = recommender or RecommendationEngine(store, self.config)
        self.validator = validator or AlignmentValidator(store, recommender=self.recommender, config=self.config)
        self.mappings = mappings or MappingManager(store)
        self.health = health or HealthMonitor(store, config=self.config)

    # =========================================================================
    # Project migration
    # =========================================================================

    def migrate_project_integration(
        self,
        project_id: str,
        options: Optional[MigrationOptions] = None,
    ) -> MigrationResult:
        """Backfill mappings and alignments for one project.

        Args:
            project_id: Project to migrate
            options: Migration options; defaults from configuration

        Returns:
            MigrationResult with one entry per phase that ran

        Raises:
            NotFoundError: If the project does not exist (before any phase runs)
        """
        options = options or MigrationOptions()
        self.store.require_project(project_id)
        threshold = options.confidence_threshold
        if threshold is None:
            threshold = self.settings.confidence_threshold

        logger.info("Starting integration migration for project %s (dry_run=%s)", project_id, options.dry_run)
        started = time.perf_counter()
        result = MigrationResult(project_id=project_id, success=False, dry_run=options.dry_run)

        discovery = Discovery()

        def discover() -> PhaseOutput:
            nonlocal discovery
            discovery = self._discover(project_id)
            result.statistics.requirements_processed = len(discovery.requirements)
            result.statistics.architecture_decisions_processed = len(discovery.decisions)
            return {
                "requirements": len(discovery.requirements),
                "architecture_decisions": len(discovery.decisions),
                "patterns": len(discovery.patterns),
                "technology_stacks": len(discovery.technology_stacks),
                "existing_mappings": len(discovery.mappings),
                "unmapped_requirements": len(discovery.unmapped_requirements),
                "unmapped_architecture_decisions": len(discovery.unmapped_decisions),
            }, []

        self._run_phase(result, "Data Discovery", discover)

        if options.create_missing_components:
            self._run_phase(
                result, "Component Creation",
                lambda: self._create_missing_components(project_id, discovery, options),
                failure_status=PhaseStatus.FAILED,
            )

        self._run_phase(
            result, "Mapping Generation",
            lambda: self._generate_mappings(discovery, threshold, options, result.statistics),
        )

        if options.validate_alignments:
            self._run_phase(
                result, "Alignment Validation",
                lambda: self._validate_alignments(project_id, options, result.statistics),
            )

        health_status = None

        def assess() -> PhaseOutput:
            nonlocal health_status
            metrics = self.health.get_integration_metrics(project_id)
            check = self.health.perform_health_check(project_id)
            health_status = check.status
            result.quality_score = self.quality_score(
                metrics.coverage, metrics.average_confidence, metrics.validation_coverage, check.status
            )
            return {
                "quality_score": result.quality_score,
                "health_status": check.status.value,
                "coverage": metrics.coverage,
                "average_confidence": metrics.average_confidence,
                "validation_coverage": metrics.validation_coverage,
            }, []

        self._run_phase(result, "Quality Assessment", assess)

        def recommend() -> PhaseOutput:
            result.recommendations = self.migration_recommendations(
                discovery, result.statistics, result.quality_score, health_status
            )
            return {"recommendations": len(result.recommendations)}, []

        self._run_phase(result, "Recommendations", recommend)

        result.statistics.errors_encountered = len(result.errors)
        result.success = all(p.status != PhaseStatus.FAILED for p in result.phases)
        result.completed_at = utc_now()
        result.total_duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Integration migration for project %s finished: success=%s, %d mapping(s), %d error(s)",
            project_id, result.success, result.statistics.mappings_created, len(result.errors),
        )
        return result

    def _run_phase(
        self,
        result: MigrationResult,
        name: str,
        func: Callable[[], PhaseOutput],
        failure_status: PhaseStatus = PhaseStatus.PARTIAL,
    ) -> MigrationPhase:
        phase = MigrationPhase(name=name, status=PhaseStatus.COMPLETED)
        started = time.perf_counter()
        try:
            details, errors = func()
            phase.details = details
            phase.errors = errors
            if errors:
                phase.status = failure_status
        except Exception as e:
            logger.exception("Migration phase %s failed for project %s", name, result.project_id)
            phase.status = PhaseStatus.FAILED
            phase.errors = [f"{name} failed: {e}"]
        phase.duration_ms = (time.perf_counter() - started) * 1000
        result.phases.append(phase)
        result.errors.extend(phase.errors)
        return phase

    def _discover(self, project_id: str) -> Discovery:
        requirements = self.store.list_requirements(project_id)
        decisions = self.store.list_decisions(project_id)
        mappings = self.store.list_mappings(project_id)
        mapped_requirements = {m.requirement_id for m in mappings}
        mapped_decisions = {m.architecture_decision_id for m in mappings if m.architecture_decision_id}
        return Discovery(
            requirements=requirements,
            decisions=decisions,
            patterns=self.store.list_patterns(),
            technology_stacks=self.store.list_technology_stacks(),
            mappings=mappings,
            unmapped_requirements=[r for r in requirements if r.id not in mapped_requirements],
            unmapped_decisions=[d for d in decisions if d.id not in mapped_decisions],
        )

    def _create_missing_components(
        self, project_id: str, discovery: Discovery, options: MigrationOptions
    ) -> PhaseOutput:
        created = {"patterns": 0, "technology_stacks": 0}
        errors = []
        if not discovery.patterns:
            try:
                for pattern in default_patterns(project_id):
                    if not options.dry_run:
                        self.store.save_pattern(pattern)
                    created["patterns"] += 1
            except Exception as e:
                errors.append(f"Failed to create default patterns: {e}")
        if not discovery.technology_stacks:
            try:
                for stack in default_technology_stacks(project_id):
                    if not options.dry_run:
                        self.store.save_technology_stack(stack)
                    created["technology_stacks"] += 1
            except Exception as e:
                errors.append(f"Failed to create default technology stacks: {e}")
        return {"components_created": created}, errors

    def _generate_mappings(
        self,
        discovery: Discovery,
        threshold: float,
        options: MigrationOptions,
        statistics: MigrationStatistics,
    ) -> PhaseOutput:
        errors = []
        for requirement in discovery.unmapped_requirements:
            try:
                recommendation = self.recommender.recommend([requirement])
                for pattern_rec in recommendation.patterns:
                    if pattern_rec.applicability_score < threshold:
                        continue
                    if not options.dry_run:
                        self.mappings.create_mapping(
                            requirement.id,
                            architecture_pattern_id=pattern_rec.pattern.id,
                            mapping_type=MappingType.DERIVED,
                            confidence=pattern_rec.applicability_score,
                            rationale=(
                                "Auto-generated mapping based on pattern recommendation "
                                f"(score: {pattern_rec.applicability_score:.2f})"
                            ),
                            created_by=options.created_by,
                        )
                    statistics.mappings_created += 1
                for tech_rec in recommendation.technologies:
                    if tech_rec.suitability_score < threshold:
                        continue
                    if not options.dry_run:
                        self.mappings.create_mapping(
                            requirement.id,
                            technology_stack_id=tech_rec.stack.id,
                            mapping_type=MappingType.INFLUENCED,
                            confidence=tech_rec.suitability_score,
                            rationale=(
                                "Auto-generated mapping based on technology recommendation "
                                f"(score: {tech_rec.suitability_score:.2f})"
                            ),
                            created_by=options.created_by,
                        )
                    statistics.mappings_created += 1
            except Exception as e:
                logger.warning("Mapping generation failed for requirement %s: %s", requirement.id, e)
                errors.append(f"Failed to create mapping for requirement {requirement.id}: {e}")
                statistics.mappings_skipped += 1

        return {
            "candidates": len(discovery.unmapped_requirements),
            "mappings_created": statistics.mappings_created,
            "mappings_skipped": statistics.mappings_skipped,
            "confidence_threshold": threshold,
        }, errors

    def _validate_alignments(
        self, project_id: str, options: MigrationOptions, statistics: MigrationStatistics
    ) -> PhaseOutput:
        errors = []
        failed = 0
        total_score = 0.0
        for mapping in self.store.list_mappings(project_id):
            if not mapping.architecture_decision_id:
                continue
            try:
                if options.dry_run:
                    requirement = self.store.require_requirement(mapping.requirement_id)
                    decision = self.store.require_decision(mapping.architecture_decision_id)
                    score = self.validator.scorer.score(requirement, decision).alignment_score
                else:
                    score = self.validator.validate_requirement_architecture_alignment(
                        mapping.requirement_id, mapping.architecture_decision_id, assessed_by=options.created_by
                    ).alignment_score
                total_score += score
                statistics.alignments_validated += 1
            except Exception as e:
                errors.append(f"Failed to validate alignment for mapping {mapping.id}: {e}")
                failed += 1

        validated = statistics.alignments_validated
        return {
            "alignments_validated": validated,
            "alignments_failed": failed,
            "average_alignment_score": total_score / validated if validated else 0.0,
        }, errors

    def quality_score(
        self,
        coverage: float,
        average_confidence: float,
        validation_coverage: float,
        health: HealthStatus,
    ) -> float:
        """Weighted blend of coverage, confidence, validation and health, capped at 1.0."""
        settings = self.settings
        health_score = settings.health_scores.get(health.value, settings.default_health_score)
        score = (
            coverage * settings.coverage_weight
            + average_confidence * settings.confidence_weight
            + validation_coverage * settings.validation_weight
            + health_score * settings.health_weight
        )
        return min(1.0, score)

    def migration_recommendations(
        self,
        discovery: Discovery,
        statistics: MigrationStatistics,
        quality_score: float,
        health: Optional[HealthStatus],
    ) -> list[str]:
        settings = self.settings
        recommendations = []
        if len(discovery.unmapped_requirements) > len(discovery.requirements) * settings.unmapped_ratio_warning:
            recommendations.append(
                "Consider manual review of unmapped requirements to ensure complete architecture coverage"
            )
        if statistics.mappings_skipped > statistics.mappings_created * settings.skipped_ratio_warning:
            recommendations.append(
                "Review skipped mappings - many requirements may need custom architecture solutions"
            )
        if quality_score < settings.quality_target:
            recommendations.append(
                "Integration quality is below optimal - consider manual validation and refinement"
            )
        if health != HealthStatus.HEALTHY:
            recommendations.append("Address integration health issues identified in the assessment")
        return recommendations

    def migrate_all_projects(self, options: Optional[MigrationOptions] = None) -> BatchMigrationResult:
        """Migrate every project in turn. A failing project never stops the batch."""
        logger.info("Starting batch migration for all projects")
        batch = BatchMigrationResult()
        for project in self.store.list_projects():
            try:
                result = self.migrate_project_integration(project.id, options)
            except Exception as e:
                logger.error("Migration failed for project %s: %s", project.id, e)
                result = MigrationResult(
                    project_id=project.id,
                    success=False,
                    dry_run=bool(options and options.dry_run),
                    completed_at=utc_now(),
                    statistics=MigrationStatistics(errors_encountered=1),
                    errors=[str(e)],
                )
            batch.results.append(result)
            batch.statistics.add(result.statistics)

        batch.total_projects = len(batch.results)
        batch.successful = sum(1 for r in batch.results if r.success)
        batch.failed = batch.total_projects - batch.successful
        logger.info("Batch migration completed: %d/%d successful", batch.successful, batch.total_projects)
        return batch

    # =========================================================================
    # Rollback
    # =========================================================================

    def rollback_migration(self, project_id: str, remove_auto_components: bool = True) -> RollbackResult:
        """Remove the mappings, alignments and generated components of a project."""
        logger.info("Starting rollback for project %s", project_id)
        result = RollbackResult(project_id=project_id, success=True)

        steps: list[tuple[RollbackActionType, Callable[[str], int], str]] = [
            (RollbackActionType.REMOVE_MAPPINGS, self.store.delete_project_mappings,
             "Removed {count} integration mappings"),
            (RollbackActionType.REMOVE_ALIGNMENTS, self.store.delete_project_alignments,
             "Removed {count} alignment validations"),
        ]
        if remove_auto_components:
            steps.append((RollbackActionType.REMOVE_AUTO_COMPONENTS, self.store.delete_auto_generated_components,
                          "Removed {count} auto-generated components"))

        for action_type, delete, template in steps:
            try:
                count = delete(project_id)
                result.actions.append(RollbackAction(
                    action=action_type, description=template.format(count=count), count=count,
                ))
            except Exception as e:
                logger.error("Rollback step %s failed for project %s: %s", action_type.value, project_id, e)
                result.actions.append(RollbackAction(
                    action=action_type, description=f"{action_type.value} failed: {e}", success=False,
                ))
                result.errors.append(str(e))
                result.success = False

        result.completed_at = utc_now()
        return result

    # =========================================================================
    # Export / import
    # =========================================================================

    def export_integration_data(self, project_id: str) -> IntegrationDataExport:
        """Export a project's integration data as a versioned document.

        Raises:
            NotFoundError: If the project does not exist
        """
        project = self.store.require_project(project_id)
        requirements = self.store.list_requirements(project_id)
        decisions = self.store.list_decisions(project_id)
        mappings = self.store.list_mappings(project_id)
        alignments = self.store.list_alignments(project_id)

        pattern_ids = {m.architecture_pattern_id for m in mappings if m.architecture_pattern_id}
        for decision in decisions:
            pattern_ids.update(decision.pattern_ids)
        stack_ids = {m.technology_stack_id for m in mappings if m.technology_stack_id}
        patterns = [
            p for p in self.store.list_patterns()
            if p.id in pattern_ids or p.generated_for_project == project_id
        ]
        stacks = [
            s for s in self.store.list_technology_stacks()
            if s.id in stack_ids or s.generated_for_project == project_id
        ]

        return IntegrationDataExport(
            project_id=project_id,
            data=ExportData(
                projects=[project],
                requirements=requirements,
                architecture_decisions=decisions,
                patterns=patterns,
                technology_stacks=stacks,
                mappings=mappings,
                alignments=alignments,
            ),
            metadata=ExportMetadata(
                total_requirements=len(requirements),
                total_architecture_decisions=len(decisions),
                total_patterns=len(patterns),
                total_technology_stacks=len(stacks),
                total_mappings=len(mappings),
                total_alignments=len(alignments),
            ),
        )

    def import_integration_data(
        self,
        document: Union[IntegrationDataExport, dict],
        project_id: Optional[str] = None,
    ) -> ImportResult:
        """Import an export document, skipping ids that already exist.

        Args:
            document: Export document (model or parsed JSON)
            project_id: Import into this project instead of the exported one

        Returns:
            ImportResult with per-category counts; success means no errors
        """
        if isinstance(document, dict):
            document = IntegrationDataExport.model_validate(document)
        result = ImportResult(success=False)
        if document.version != EXPORT_VERSION:
            result.warnings.append(
                f"Export version {document.version} differs from supported version {EXPORT_VERSION}"
            )

        target = project_id or document.project_id
        data = document.data

        def run(category: str, items: list, exists: Callable[[Any], bool], save: Callable[[Any], Any],
                label: Callable[[Any], str]) -> None:
            result.imported.setdefault(category, 0)
            result.skipped.setdefault(category, 0)
            for item in items:
                try:
                    if exists(item):
                        result.skipped[category] += 1
                        continue
                    save(item)
                    result.imported[category] += 1
                except Exception as e:
                    result.errors.append(f"Failed to import {category[:-1].replace('_', ' ')} {label(item)}: {e}")

        source = next((p for p in data.projects if p.id == document.project_id), None)
        project = source.model_copy(update={"id": target}) if source else Project(id=target, name=target)
        run("projects", [project], lambda p: self.store.get_project(p.id) is not None,
            self.store.save_project, lambda p: p.id)

        run("requirements", [r.model_copy(update={"project_id": target}) for r in data.requirements],
            lambda r: self.store.get_requirement(r.id) is not None,
            self.store.save_requirement, lambda r: r.id)
        run("architecture_decisions",
            [d.model_copy(update={"project_id": target}) for d in data.architecture_decisions],
            lambda d: self.store.get_decision(d.id) is not None,
            self.store.save_decision, lambda d: d.id)
        run("patterns", data.patterns, lambda p: self.store.get_pattern(p.id) is not None,
            self.store.save_pattern, lambda p: p.id)
        run("technology_stacks", data.technology_stacks,
            lambda s: self.store.get_technology_stack(s.id) is not None,
            self.store.save_technology_stack, lambda s: s.id)
        run("mappings", data.mappings, lambda m: self.store.get_mapping(m.id) is not None,
            self.store.create_mapping, lambda m: m.id)
        run("alignments", data.alignments,
            lambda a: self.store.get_alignment(a.requirement_id, a.architecture_decision_id) is not None,
            self.store.upsert_alignment, lambda a: a.id)

        result.success = not result.errors
        logger.info(
            "Imported integration data into project %s: %s imported, %d error(s)",
            target, sum(result.imported.values()), len(result.errors),
        )
        return result
