"""Integration metrics and health checks."""

import logging
from collections import Counter
from typing import Optional

from requirements_graph.schema import AlignmentType, RequirementStatus, ValidationStatus
from requirements_graph.store import GraphStore

from .config import EngineConfig, get_config
from .integrity import IntegrityValidator
from .schema import IntegrationHealthCheck, IntegrationMetrics

logger = logging.getLogger(__name__)

ACCURATE_ALIGNMENTS = {AlignmentType.FULLY_ALIGNED, AlignmentType.PARTIALLY_ALIGNED}
DONE_STATUSES = {RequirementStatus.IMPLEMENTED, RequirementStatus.VALIDATED}


class HealthMonitor:
    """Computes coverage metrics and an overall integration health status."""

    def __init__(
        self,
        store: GraphStore,
        integrity: Optional[IntegrityValidator] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.integrity = integrity or IntegrityValidator(store, config=self.config)

    def get_integration_metrics(self, project_id: Optional[str] = None) -> IntegrationMetrics:
        requirements = self.store.list_requirements(project_id)
        mappings = self.store.list_mappings(project_id)
        alignments = self.store.list_alignments(project_id)

        requirement_ids = {r.id for r in requirements}
        mapped = {m.requirement_id for m in mappings} & requirement_ids
        validated = [a for a in alignments if a.validation_status == ValidationStatus.VALIDATED]

        def share(part: int, whole: int) -> float:
            return part / whole if whole else 0.0

        return IntegrationMetrics(
            project_id=project_id,
            total_requirements=len(requirements),
            mapped_requirements=len(mapped),
            unmapped_requirements=len(requirement_ids) - len(mapped),
            total_mappings=len(mappings),
            average_confidence=share(sum(m.confidence for m in mappings), len(mappings)),
            alignment_distribution=dict(Counter(a.alignment_type.value for a in alignments)),
            mapping_type_distribution=dict(Counter(m.mapping_type.value for m in mappings)),
            validation_coverage=share(len(validated), len(alignments)),
            recommendation_accuracy=share(
                sum(1 for a in validated if a.alignment_type in ACCURATE_ALIGNMENTS), len(validated)
            ),
            implementation_progress=share(
                sum(1 for r in requirements if r.status in DONE_STATUSES), len(requirements)
            ),
        )

    def perform_health_check(self, project_id: Optional[str] = None) -> IntegrationHealthCheck:
        """Combine the integrity sweep with metrics. Never raises for unhealthy states."""
        integrity = self.integrity.validate_cross_module_integrity(project_id)
        metrics = self.get_integration_metrics(project_id)
        logger.info("Health check (project=%s): %s", project_id or "all", integrity.overall_health.value)
        return IntegrationHealthCheck(
            project_id=project_id,
            status=integrity.overall_health,
            issues=integrity.issues,
            metrics=metrics,
            recommendations=self.health_recommendations(metrics),
        )

    def health_recommendations(self, metrics: IntegrationMetrics) -> list[str]:
        settings = self.config.integrity
        recommendations = []
        if metrics.unmapped_requirements > 0:
            recommendations.append(f"Review and map {metrics.unmapped_requirements} unmapped requirements")
        if metrics.validation_coverage < settings.validation_coverage_target:
            recommendations.append(
                "Increase validation coverage by reviewing requirement-architecture alignments"
            )
        if metrics.average_confidence < settings.confidence_target:
            recommendations.append(
                "Review and improve mapping confidence through better requirement analysis"
            )
        return recommendations
