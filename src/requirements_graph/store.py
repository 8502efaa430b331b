"""Typed repository interface over the requirements/architecture graph.

``GraphStore`` is implemented by ``Neo4jGraphStore`` (production) and
``InMemoryGraphStore`` (tests, snapshots, offline runs). Both give the same
guarantees: single-call writes are atomic, alignment upserts merge on the
(requirement, decision) pair, and running aggregates are updated in one step.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from .exceptions import NotFoundError
from .schema import (
    ArchitectureDecision,
    ArchitecturePattern,
    ArchitectureRequirementAlignment,
    DecisionStatus,
    Project,
    Requirement,
    RequirementArchitectureMapping,
    RequirementStatus,
    TechnologyStack,
)


@dataclass
class MappedComponents:
    """Artifacts one mapping hop away from a requirement."""
    decisions: list[ArchitectureDecision] = field(default_factory=list)
    patterns: list[ArchitecturePattern] = field(default_factory=list)
    technology_stacks: list[TechnologyStack] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.decisions) + len(self.patterns) + len(self.technology_stacks)


class GraphStore(ABC):
    """Repository interface used by every engine component."""

    # --- Projects ---------------------------------------------------------

    @abstractmethod
    def save_project(self, project: Project) -> Project: ...

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]: ...

    @abstractmethod
    def list_projects(self) -> list[Project]: ...

    # --- Requirements -----------------------------------------------------

    @abstractmethod
    def save_requirement(self, requirement: Requirement) -> Requirement:
        """Create or replace a requirement (and its project membership)."""

    @abstractmethod
    def get_requirement(self, requirement_id: str) -> Optional[Requirement]: ...

    @abstractmethod
    def list_requirements(self, project_id: Optional[str] = None) -> list[Requirement]: ...

    # --- Architecture decisions -------------------------------------------

    @abstractmethod
    def save_decision(self, decision: ArchitectureDecision) -> ArchitectureDecision: ...

    @abstractmethod
    def get_decision(self, decision_id: str) -> Optional[ArchitectureDecision]: ...

    @abstractmethod
    def list_decisions(self, project_id: Optional[str] = None) -> list[ArchitectureDecision]: ...

    @abstractmethod
    def delete_decision(self, decision_id: str) -> bool:
        """Remove a decision node and its relationships. Mappings stay behind."""

    # --- Patterns and stacks ----------------------------------------------

    @abstractmethod
    def save_pattern(self, pattern: ArchitecturePattern) -> ArchitecturePattern: ...

    @abstractmethod
    def get_pattern(self, pattern_id: str) -> Optional[ArchitecturePattern]: ...

    @abstractmethod
    def list_patterns(self) -> list[ArchitecturePattern]: ...

    @abstractmethod
    def record_pattern_outcome(self, pattern_id: str, success: bool) -> ArchitecturePattern:
        """Fold one application outcome into successRate/adoptionCount atomically."""

    @abstractmethod
    def save_technology_stack(self, stack: TechnologyStack) -> TechnologyStack: ...

    @abstractmethod
    def get_technology_stack(self, stack_id: str) -> Optional[TechnologyStack]: ...

    @abstractmethod
    def list_technology_stacks(self) -> list[TechnologyStack]: ...

    @abstractmethod
    def record_stack_outcome(self, stack_id: str, success: bool) -> TechnologyStack:
        """Fold one application outcome into the stack's running aggregate atomically."""

    # --- Mappings ---------------------------------------------------------

    @abstractmethod
    def create_mapping(self, mapping: RequirementArchitectureMapping) -> RequirementArchitectureMapping:
        """Create the mapping and all of its typed target edges in one write.

        Raises:
            NotFoundError: If the mapping's requirement does not exist
        """

    @abstractmethod
    def get_mapping(self, mapping_id: str) -> Optional[RequirementArchitectureMapping]: ...

    @abstractmethod
    def list_mappings(self, project_id: Optional[str] = None) -> list[RequirementArchitectureMapping]: ...

    @abstractmethod
    def list_requirement_mappings(self, requirement_id: str) -> list[RequirementArchitectureMapping]: ...

    @abstractmethod
    def delete_mapping(self, mapping_id: str) -> bool:
        """Delete a mapping. Returns False when it was already gone."""

    @abstractmethod
    def mark_mapping_validated(self, mapping_id: str, validated_at: datetime, validated_by: str) -> bool: ...

    # --- Alignments -------------------------------------------------------

    @abstractmethod
    def upsert_alignment(self, alignment: ArchitectureRequirementAlignment) -> ArchitectureRequirementAlignment:
        """Merge on (requirement_id, architecture_decision_id) and overwrite the values."""

    @abstractmethod
    def get_alignment(
        self, requirement_id: str, architecture_decision_id: str
    ) -> Optional[ArchitectureRequirementAlignment]: ...

    @abstractmethod
    def list_alignments(self, project_id: Optional[str] = None) -> list[ArchitectureRequirementAlignment]: ...

    # --- Integrity queries ------------------------------------------------

    @abstractmethod
    def find_orphaned_mappings(self, project_id: Optional[str] = None) -> list[RequirementArchitectureMapping]:
        """Mappings whose requirement or any target id does not resolve.

        Project scope is resolved through the mapping's requirement, so a mapping
        whose requirement is gone only shows up in an unscoped sweep.
        """

    @abstractmethod
    def find_unmapped_requirements(
        self,
        statuses: Iterable[RequirementStatus],
        project_id: Optional[str] = None,
    ) -> list[Requirement]: ...

    @abstractmethod
    def find_unmapped_decisions(
        self,
        statuses: Iterable[DecisionStatus],
        project_id: Optional[str] = None,
    ) -> list[ArchitectureDecision]: ...

    @abstractmethod
    def find_stale_alignments(
        self, assessed_before: datetime, project_id: Optional[str] = None
    ) -> list[ArchitectureRequirementAlignment]: ...

    @abstractmethod
    def get_mapped_components(self, requirement_id: str) -> MappedComponents:
        """Existing decisions, patterns and stacks one mapping hop away."""

    # --- Rollback ---------------------------------------------------------

    @abstractmethod
    def delete_project_mappings(self, project_id: str) -> int: ...

    @abstractmethod
    def delete_project_alignments(self, project_id: str) -> int: ...

    @abstractmethod
    def delete_auto_generated_components(self, project_id: str) -> int: ...

    # --- Helpers ----------------------------------------------------------

    def require_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def require_requirement(self, requirement_id: str) -> Requirement:
        requirement = self.get_requirement(requirement_id)
        if requirement is None:
            raise NotFoundError("Requirement", requirement_id)
        return requirement

    def require_decision(self, decision_id: str) -> ArchitectureDecision:
        decision = self.get_decision(decision_id)
        if decision is None:
            raise NotFoundError("ArchitectureDecision", decision_id)
        return decision

    def require_pattern(self, pattern_id: str) -> ArchitecturePattern:
        pattern = self.get_pattern(pattern_id)
        if pattern is None:
            raise NotFoundError("ArchitecturePattern", pattern_id)
        return pattern

    def require_technology_stack(self, stack_id: str) -> TechnologyStack:
        stack = self.get_technology_stack(stack_id)
        if stack is None:
            raise NotFoundError("TechnologyStack", stack_id)
        return stack

    def require_mapping(self, mapping_id: str) -> RequirementArchitectureMapping:
        mapping = self.get_mapping(mapping_id)
        if mapping is None:
            raise NotFoundError("RequirementArchitectureMapping", mapping_id)
        return mapping

    def close(self) -> None:
        """Release resources held by the store."""
