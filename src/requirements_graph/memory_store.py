"""In-process graph store with the same semantics as the Neo4j store.

Used by the test-suite, by the CLI ``--snapshot`` mode, and for offline runs.
State can be saved to and loaded from a JSON snapshot.
"""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

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
from .store import GraphStore, MappedComponents

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


def _running_average(rate: Optional[float], count: int, success: bool) -> float:
    return ((rate or 0.0) * count + (1.0 if success else 0.0)) / (count + 1)


class InMemoryGraphStore(GraphStore):
    """Dict-backed store guarded by one re-entrant lock.

    Entities are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._projects: dict[str, Project] = {}
        self._requirements: dict[str, Requirement] = {}
        self._decisions: dict[str, ArchitectureDecision] = {}
        self._patterns: dict[str, ArchitecturePattern] = {}
        self._stacks: dict[str, TechnologyStack] = {}
        self._mappings: dict[str, RequirementArchitectureMapping] = {}
        self._alignments: dict[tuple[str, str], ArchitectureRequirementAlignment] = {}

    # --- Projects ---------------------------------------------------------

    def save_project(self, project: Project) -> Project:
        with self._lock:
            self._projects[project.id] = project.model_copy(deep=True)
            return project

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._lock:
            project = self._projects.get(project_id)
            return project.model_copy(deep=True) if project else None

    def list_projects(self) -> list[Project]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._projects.values()]

    # --- Requirements -----------------------------------------------------

    def save_requirement(self, requirement: Requirement) -> Requirement:
        with self._lock:
            self._requirements[requirement.id] = requirement.model_copy(deep=True)
            return requirement

    def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        with self._lock:
            requirement = self._requirements.get(requirement_id)
            return requirement.model_copy(deep=True) if requirement else None

    def list_requirements(self, project_id: Optional[str] = None) -> list[Requirement]:
        with self._lock:
            return [
                r.model_copy(deep=True) for r in self._requirements.values()
                if project_id is None or r.project_id == project_id
            ]

    # --- Architecture decisions -------------------------------------------

    def save_decision(self, decision: ArchitectureDecision) -> ArchitectureDecision:
        with self._lock:
            self._decisions[decision.id] = decision.model_copy(deep=True)
            return decision

    def get_decision(self, decision_id: str) -> Optional[ArchitectureDecision]:
        with self._lock:
            decision = self._decisions.get(decision_id)
            return decision.model_copy(deep=True) if decision else None

    def list_decisions(self, project_id: Optional[str] = None) -> list[ArchitectureDecision]:
        with self._lock:
            return [
                d.model_copy(deep=True) for d in self._decisions.values()
                if project_id is None or d.project_id == project_id
            ]

    def delete_decision(self, decision_id: str) -> bool:
        with self._lock:
            return self._decisions.pop(decision_id, None) is not None

    # --- Patterns and stacks ----------------------------------------------

    def save_pattern(self, pattern: ArchitecturePattern) -> ArchitecturePattern:
        with self._lock:
            self._patterns[pattern.id] = pattern.model_copy(deep=True)
            return pattern

    def get_pattern(self, pattern_id: str) -> Optional[ArchitecturePattern]:
        with self._lock:
            pattern = self._patterns.get(pattern_id)
            return pattern.model_copy(deep=True) if pattern else None

    def list_patterns(self) -> list[ArchitecturePattern]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._patterns.values()]

    def record_pattern_outcome(self, pattern_id: str, success: bool) -> ArchitecturePattern:
        with self._lock:
            pattern = self._patterns.get(pattern_id)
            if pattern is None:
                raise NotFoundError("ArchitecturePattern", pattern_id)
            pattern.success_rate = _running_average(pattern.success_rate, pattern.adoption_count, success)
            pattern.adoption_count += 1
            return pattern.model_copy(deep=True)

    def save_technology_stack(self, stack: TechnologyStack) -> TechnologyStack:
        with self._lock:
            self._stacks[stack.id] = stack.model_copy(deep=True)
            return stack

    def get_technology_stack(self, stack_id: str) -> Optional[TechnologyStack]:
        with self._lock:
            stack = self._stacks.get(stack_id)
            return stack.model_copy(deep=True) if stack else None

    def list_technology_stacks(self) -> list[TechnologyStack]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._stacks.values()]

    def record_stack_outcome(self, stack_id: str, success: bool) -> TechnologyStack:
        with self._lock:
            stack = self._stacks.get(stack_id)
            if stack is None:
                raise NotFoundError("TechnologyStack", stack_id)
            stack.success_rate = _running_average(stack.success_rate, stack.adoption_count, success)
            stack.adoption_count += 1
            return stack.model_copy(deep=True)

    # --- Mappings ---------------------------------------------------------

    def create_mapping(self, mapping: RequirementArchitectureMapping) -> RequirementArchitectureMapping:
        with self._lock:
            if mapping.requirement_id not in self._requirements:
                raise NotFoundError("Requirement", mapping.requirement_id)
            self._mappings[mapping.id] = mapping.model_copy(deep=True)
            return mapping

    def get_mapping(self, mapping_id: str) -> Optional[RequirementArchitectureMapping]:
        with self._lock:
            mapping = self._mappings.get(mapping_id)
            return mapping.model_copy(deep=True) if mapping else None

    def _in_project(self, requirement_id: str, project_id: Optional[str]) -> bool:
        if project_id is None:
            return True
        requirement = self._requirements.get(requirement_id)
        return requirement is not None and requirement.project_id == project_id

    def list_mappings(self, project_id: Optional[str] = None) -> list[RequirementArchitectureMapping]:
        with self._lock:
            return [
                m.model_copy(deep=True) for m in self._mappings.values()
                if self._in_project(m.requirement_id, project_id)
            ]

    def list_requirement_mappings(self, requirement_id: str) -> list[RequirementArchitectureMapping]:
        with self._lock:
            return [
                m.model_copy(deep=True) for m in self._mappings.values()
                if m.requirement_id == requirement_id
            ]

    def delete_mapping(self, mapping_id: str) -> bool:
        with self._lock:
            return self._mappings.pop(mapping_id, None) is not None

    def mark_mapping_validated(self, mapping_id: str, validated_at: datetime, validated_by: str) -> bool:
        with self._lock:
            mapping = self._mappings.get(mapping_id)
            if mapping is None:
                return False
            mapping.validated_at = validated_at
            mapping.validated_by = validated_by
            return True

    # --- Alignments -------------------------------------------------------

    def upsert_alignment(self, alignment: ArchitectureRequirementAlignment) -> ArchitectureRequirementAlignment:
        with self._lock:
            key = (alignment.requirement_id, alignment.architecture_decision_id)
            self._alignments[key] = alignment.model_copy(deep=True)
            return alignment

    def get_alignment(
        self, requirement_id: str, architecture_decision_id: str
    ) -> Optional[ArchitectureRequirementAlignment]:
        with self._lock:
            alignment = self._alignments.get((requirement_id, architecture_decision_id))
            return alignment.model_copy(deep=True) if alignment else None

    def list_alignments(self, project_id: Optional[str] = None) -> list[ArchitectureRequirementAlignment]:
        with self._lock:
            return [
                a.model_copy(deep=True) for a in self._alignments.values()
                if self._in_project(a.requirement_id, project_id)
            ]

    # --- Integrity queries ------------------------------------------------

    def _is_orphaned(self, mapping: RequirementArchitectureMapping) -> bool:
        return (
            mapping.requirement_id not in self._requirements
            or (mapping.architecture_decision_id is not None
                and mapping.architecture_decision_id not in self._decisions)
            or (mapping.architecture_pattern_id is not None
                and mapping.architecture_pattern_id not in self._patterns)
            or (mapping.technology_stack_id is not None
                and mapping.technology_stack_id not in self._stacks)
        )

    def find_orphaned_mappings(self, project_id: Optional[str] = None) -> list[RequirementArchitectureMapping]:
        with self._lock:
            return [
                m.model_copy(deep=True) for m in self._mappings.values()
                if self._is_orphaned(m) and (
                    project_id is None or self._in_project(m.requirement_id, project_id)
                )
            ]

    def find_unmapped_requirements(
        self,
        statuses: Iterable[RequirementStatus],
        project_id: Optional[str] = None,
    ) -> list[Requirement]:
        statuses = set(statuses)
        with self._lock:
            mapped = {m.requirement_id for m in self._mappings.values()}
            return [
                r.model_copy(deep=True) for r in self._requirements.values()
                if r.status in statuses
                and r.id not in mapped
                and (project_id is None or r.project_id == project_id)
            ]

    def find_unmapped_decisions(
        self,
        statuses: Iterable[DecisionStatus],
        project_id: Optional[str] = None,
    ) -> list[ArchitectureDecision]:
        statuses = set(statuses)
        with self._lock:
            referenced = {
                m.architecture_decision_id for m in self._mappings.values()
                if m.architecture_decision_id
            }
            return [
                d.model_copy(deep=True) for d in self._decisions.values()
                if d.status in statuses
                and d.id not in referenced
                and (project_id is None or d.project_id == project_id)
            ]

    def find_stale_alignments(
        self, assessed_before: datetime, project_id: Optional[str] = None
    ) -> list[ArchitectureRequirementAlignment]:
        with self._lock:
            return [
                a.model_copy(deep=True) for a in self._alignments.values()
                if a.last_assessed < assessed_before
                and self._in_project(a.requirement_id, project_id)
            ]

    def get_mapped_components(self, requirement_id: str) -> MappedComponents:
        with self._lock:
            components = MappedComponents()
            seen: set[str] = set()
            for mapping in self._mappings.values():
                if mapping.requirement_id != requirement_id:
                    continue
                targets = (
                    (mapping.architecture_decision_id, self._decisions, components.decisions),
                    (mapping.architecture_pattern_id, self._patterns, components.patterns),
                    (mapping.technology_stack_id, self._stacks, components.technology_stacks),
                )
                for target_id, table, bucket in targets:
                    if target_id and target_id in table and target_id not in seen:
                        seen.add(target_id)
                        bucket.append(table[target_id].model_copy(deep=True))
            return components

    # --- Rollback ---------------------------------------------------------

    def delete_project_mappings(self, project_id: str) -> int:
        with self._lock:
            doomed = [
                m.id for m in self._mappings.values()
                if self._in_project(m.requirement_id, project_id)
            ]
            for mapping_id in doomed:
                del self._mappings[mapping_id]
            return len(doomed)

    def delete_project_alignments(self, project_id: str) -> int:
        with self._lock:
            doomed = [
                key for key, a in self._alignments.items()
                if self._in_project(a.requirement_id, project_id)
            ]
            for key in doomed:
                del self._alignments[key]
            return len(doomed)

    def delete_auto_generated_components(self, project_id: str) -> int:
        with self._lock:
            removed = 0
            for table in (self._patterns, self._stacks):
                doomed = [
                    item_id for item_id, item in table.items()
                    if item.auto_generated and item.generated_for_project == project_id
                ]
                for item_id in doomed:
                    del table[item_id]
                removed += len(doomed)
            return removed

    # --- Snapshots --------------------------------------------------------

    def to_snapshot(self) -> dict:
        """Serialize the whole store to a JSON-compatible dict."""
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "projects": [p.model_dump(mode="json") for p in self._projects.values()],
                "requirements": [r.model_dump(mode="json") for r in self._requirements.values()],
                "architecture_decisions": [d.model_dump(mode="json") for d in self._decisions.values()],
                "patterns": [p.model_dump(mode="json") for p in self._patterns.values()],
                "technology_stacks": [s.model_dump(mode="json") for s in self._stacks.values()],
                "mappings": [m.model_dump(mode="json") for m in self._mappings.values()],
                "alignments": [a.model_dump(mode="json") for a in self._alignments.values()],
            }

    @classmethod
    def from_snapshot(cls, data: dict) -> "InMemoryGraphStore":
        """Build a store from ``to_snapshot`` output. Missing sections are empty."""
        store = cls()
        for item in data.get("projects", []):
            store.save_project(Project.model_validate(item))
        for item in data.get("requirements", []):
            store.save_requirement(Requirement.model_validate(item))
        for item in data.get("architecture_decisions", []):
            store.save_decision(ArchitectureDecision.model_validate(item))
        for item in data.get("patterns", []):
            store.save_pattern(ArchitecturePattern.model_validate(item))
        for item in data.get("technology_stacks", []):
            store.save_technology_stack(TechnologyStack.model_validate(item))
        with store._lock:
            for item in data.get("mappings", []):
                mapping = RequirementArchitectureMapping.model_validate(item)
                store._mappings[mapping.id] = mapping
        for item in data.get("alignments", []):
            store.upsert_alignment(ArchitectureRequirementAlignment.model_validate(item))
        return store

    def save(self, path: Union[str, Path]) -> None:
        """Write a JSON snapshot to ``path``."""
        path = Path(path)
        path.write_text(json.dumps(self.to_snapshot(), indent=2))
        logger.debug("Saved graph snapshot to %s", path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "InMemoryGraphStore":
        """Load a JSON snapshot; a missing file yields an empty store."""
        path = Path(path)
        if not path.exists():
            logger.info("Snapshot %s not found, starting with an empty graph", path)
            return cls()
        with open(path) as f:
            return cls.from_snapshot(json.load(f))
