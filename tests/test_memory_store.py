"""Tests for the in-memory graph store and its JSON snapshots."""

import json
from datetime import timedelta

import pytest

from requirements_graph.exceptions import NotFoundError
from requirements_graph.memory_store import SNAPSHOT_VERSION, InMemoryGraphStore
from requirements_graph.schema import (
    ArchitectureRequirementAlignment,
    DecisionStatus,
    PatternType,
    RequirementArchitectureMapping,
    RequirementStatus,
    TechnologyStack,
    utc_now,
)

from conftest import PROJECT_ID, make_decision, make_pattern, make_requirement


def mapping(mapping_id, requirement_id="R1", **targets):
    return RequirementArchitectureMapping(id=mapping_id, requirement_id=requirement_id, confidence=0.8, **targets)


class TestEntities:
    """Copy semantics and lookups."""

    def test_returned_entities_are_copies(self, populated_store):
        requirement = populated_store.get_requirement("R1")
        requirement.title = "changed"
        assert populated_store.get_requirement("R1").title == "Peak traffic"

    def test_saved_entities_are_copies(self, store):
        requirement = make_requirement()
        store.save_requirement(requirement)
        requirement.description = "changed"
        assert store.get_requirement("R1").description != "changed"

    def test_project_scoping(self, populated_store):
        populated_store.save_requirement(make_requirement("R9", project_id="other"))
        assert [r.id for r in populated_store.list_requirements(PROJECT_ID)] == ["R1"]
        assert len(populated_store.list_requirements()) == 2

    def test_require_helpers(self, store):
        with pytest.raises(NotFoundError) as excinfo:
            store.require_requirement("R404")
        assert excinfo.value.entity == "Requirement"
        assert str(excinfo.value) == "Requirement not found: R404"


class TestOutcomes:
    """Running-average success rates."""

    def test_pattern_running_average(self, store):
        store.save_pattern(make_pattern("p1", PatternType.LAYERED))
        assert store.record_pattern_outcome("p1", True).success_rate == pytest.approx(1.0)
        assert store.record_pattern_outcome("p1", False).success_rate == pytest.approx(0.5)
        pattern = store.record_pattern_outcome("p1", True)
        assert pattern.success_rate == pytest.approx(2 / 3)
        assert pattern.adoption_count == 3

    def test_stack_without_history(self, store):
        store.save_technology_stack(TechnologyStack(id="s1", name="Stack"))
        assert store.record_stack_outcome("s1", False).success_rate == 0.0

    def test_unknown_pattern(self, store):
        with pytest.raises(NotFoundError):
            store.record_pattern_outcome("missing", True)


class TestMappingQueries:
    """Integrity queries over mappings."""

    def test_create_mapping_needs_requirement(self, populated_store):
        with pytest.raises(NotFoundError):
            populated_store.create_mapping(mapping("m1", requirement_id="R404"))

    def test_orphaned_mappings(self, populated_store):
        populated_store.create_mapping(mapping("m_ok", architecture_decision_id="A1"))
        populated_store.create_mapping(mapping("m_bad", architecture_pattern_id="pattern_missing"))
        assert [m.id for m in populated_store.find_orphaned_mappings()] == ["m_bad"]

    def test_decision_deleted_after_mapping(self, populated_store):
        populated_store.create_mapping(mapping("m_ok", architecture_decision_id="A1"))
        populated_store.delete_decision("A1")
        assert [m.id for m in populated_store.find_orphaned_mappings(PROJECT_ID)] == ["m_ok"]

    def test_missing_requirement_only_in_unscoped_sweep(self, populated_store):
        populated_store.create_mapping(mapping("m1", architecture_decision_id="A1"))
        snapshot = populated_store.to_snapshot()
        snapshot["requirements"] = []
        store = InMemoryGraphStore.from_snapshot(snapshot)

        assert [m.id for m in store.find_orphaned_mappings()] == ["m1"]
        assert store.find_orphaned_mappings(PROJECT_ID) == []

    def test_unmapped_by_status(self, populated_store):
        populated_store.save_requirement(make_requirement("R2", status=RequirementStatus.DRAFT))
        populated_store.create_mapping(mapping("m1", architecture_decision_id="A1"))
        approved = {RequirementStatus.APPROVED}
        assert populated_store.find_unmapped_requirements(approved) == []
        drafts = populated_store.find_unmapped_requirements({RequirementStatus.DRAFT})
        assert [r.id for r in drafts] == ["R2"]
        decisions = populated_store.find_unmapped_decisions({DecisionStatus.APPROVED})
        assert [d.id for d in decisions] == ["A2"]

    def test_stale_alignments(self, populated_store):
        old = utc_now() - timedelta(days=40)
        populated_store.upsert_alignment(ArchitectureRequirementAlignment(
            requirement_id="R1", architecture_decision_id="A1", last_assessed=old,
        ))
        populated_store.upsert_alignment(ArchitectureRequirementAlignment(
            requirement_id="R1", architecture_decision_id="A2",
        ))
        stale = populated_store.find_stale_alignments(utc_now() - timedelta(days=30))
        assert [a.id for a in stale] == ["alignment_R1_A1"]

    def test_mapped_components_deduplicated(self, populated_store):
        populated_store.save_pattern(make_pattern("p1", PatternType.MICROSERVICES))
        populated_store.create_mapping(mapping("m1", architecture_decision_id="A1", architecture_pattern_id="p1"))
        populated_store.create_mapping(mapping("m2", architecture_decision_id="A1"))
        populated_store.create_mapping(mapping("m3", architecture_decision_id="missing"))

        components = populated_store.get_mapped_components("R1")
        assert [d.id for d in components.decisions] == ["A1"]
        assert [p.id for p in components.patterns] == ["p1"]
        assert components.technology_stacks == []
        assert components.total == 2

    def test_mark_validated(self, populated_store):
        populated_store.create_mapping(mapping("m1", architecture_decision_id="A1"))
        assert populated_store.mark_mapping_validated("m1", utc_now(), "architect")
        assert not populated_store.mark_mapping_validated("m_missing", utc_now(), "architect")
        assert populated_store.get_mapping("m1").validated_by == "architect"


class TestRollbackQueries:
    """Project-scoped deletes."""

    def test_delete_project_data(self, populated_store):
        populated_store.save_requirement(make_requirement("R9", project_id="other"))
        populated_store.create_mapping(mapping("m1", architecture_decision_id="A1"))
        populated_store.create_mapping(mapping("m9", requirement_id="R9", architecture_decision_id="A1"))
        populated_store.upsert_alignment(ArchitectureRequirementAlignment(
            requirement_id="R1", architecture_decision_id="A1",
        ))

        assert populated_store.delete_project_mappings(PROJECT_ID) == 1
        assert populated_store.delete_project_alignments(PROJECT_ID) == 1
        assert [m.id for m in populated_store.list_mappings()] == ["m9"]

    def test_delete_generated_components(self, store):
        store.save_pattern(make_pattern("p_gen", PatternType.LAYERED, auto_generated=True,
                                        generated_for_project=PROJECT_ID))
        store.save_pattern(make_pattern("p_other", PatternType.LAYERED, auto_generated=True,
                                        generated_for_project="other"))
        store.save_pattern(make_pattern("p_manual", PatternType.LAYERED))
        assert store.delete_auto_generated_components(PROJECT_ID) == 1
        assert {p.id for p in store.list_patterns()} == {"p_other", "p_manual"}


class TestSnapshots:
    """JSON snapshot persistence."""

    def test_round_trip(self, populated_store, tmp_path):
        populated_store.create_mapping(mapping("m1", architecture_decision_id="A2"))
        populated_store.upsert_alignment(ArchitectureRequirementAlignment(
            requirement_id="R1", architecture_decision_id="A2", alignment_score=1.0,
        ))
        path = tmp_path / "graph.json"
        populated_store.save(path)

        data = json.loads(path.read_text())
        assert data["version"] == SNAPSHOT_VERSION

        loaded = InMemoryGraphStore.load(path)
        assert loaded.get_project(PROJECT_ID).name == "Checkout"
        assert loaded.get_requirement("R1") == populated_store.get_requirement("R1")
        assert loaded.get_mapping("m1").architecture_decision_id == "A2"
        assert loaded.get_alignment("R1", "A2").alignment_score == 1.0

    def test_orphans_survive_snapshot(self, store, tmp_path):
        store.save_requirement(make_requirement())
        store.create_mapping(mapping("m1", architecture_decision_id="missing"))
        path = tmp_path / "graph.json"
        store.save(path)
        assert [m.id for m in InMemoryGraphStore.load(path).find_orphaned_mappings()] == ["m1"]

    def test_missing_file_is_empty(self, tmp_path):
        store = InMemoryGraphStore.load(tmp_path / "missing.json")
        assert store.list_projects() == []

    def test_partial_snapshot(self):
        store = InMemoryGraphStore.from_snapshot({"architecture_decisions": [
            make_decision().model_dump(mode="json"),
        ]})
        assert [d.id for d in store.list_decisions()] == ["A1"]
