"""Mapping Graph Manager.

Creates requirement to architecture mappings and schedules impact
re-analysis for the mapped requirement in the background.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Optional

from requirements_graph.schema import MappingType, RequirementArchitectureMapping, utc_now
from requirements_graph.store import GraphStore

from .tasks import BackgroundTasks

if TYPE_CHECKING:
    from .impact import ImpactAnalyzer

logger = logging.getLogger(__name__)


class MappingManager:
    """Owns mapping creation and validation metadata."""

    def __init__(
        self,
        store: GraphStore,
        tasks: Optional[BackgroundTasks] = None,
        impact_analyzer: Optional["ImpactAnalyzer"] = None,
    ):
        self.store = store
        self.tasks = tasks
        self.impact_analyzer = impact_analyzer

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
        """Create a mapping and its typed edges in one write.

        Confidence is stored as given. Impact re-analysis is submitted to the
        background queue; this call never waits for it.

        Raises:
            NotFoundError: If the requirement does not exist
        """
        mapping = RequirementArchitectureMapping(
            id=f"mapping_{uuid.uuid4().hex}",
            requirement_id=requirement_id,
            architecture_decision_id=architecture_decision_id,
            architecture_pattern_id=architecture_pattern_id,
            technology_stack_id=technology_stack_id,
            mapping_type=mapping_type,
            confidence=confidence,
            rationale=rationale,
            tradeoffs=tradeoffs,
            created_by=created_by,
        )
        created = self.store.create_mapping(mapping)
        logger.info("Created %s mapping %s for requirement %s", mapping_type.value, created.id, requirement_id)

        if self.tasks is not None and self.impact_analyzer is not None:
            self.tasks.submit(
                f"impact-analysis:{requirement_id}",
                self.impact_analyzer.analyze_requirement_impact,
                requirement_id,
            )
        return created

    def get_mapping(self, mapping_id: str) -> Optional[RequirementArchitectureMapping]:
        return self.store.get_mapping(mapping_id)

    def list_mappings(
        self,
        project_id: Optional[str] = None,
        requirement_id: Optional[str] = None,
    ) -> list[RequirementArchitectureMapping]:
        if requirement_id is not None:
            return self.store.list_requirement_mappings(requirement_id)
        return self.store.list_mappings(project_id)

    def mark_validated(self, mapping_id: str, validated_by: str) -> RequirementArchitectureMapping:
        """Record who validated a mapping and when.

        Raises:
            NotFoundError: If the mapping does not exist
        """
        self.store.require_mapping(mapping_id)
        self.store.mark_mapping_validated(mapping_id, utc_now(), validated_by)
        return self.store.require_mapping(mapping_id)
