"""Tests for migration, rollback, export and import."""

import pytest

from alignment_engine.engine import IntegrationEngine
from alignment_engine.migration import MigrationOrchestrator
from alignment_engine.schema import (
    EXPORT_VERSION,
    HealthStatus,
    MigrationOptions,
    PhaseStatus,
    RollbackActionType,
)
from requirements_graph.exceptions import NotFoundError, PartialFailureError
from requirements_graph.memory_store import InMemoryGraphStore
from requirements_graph.schema import MappingType, Project, RequirementArchitectureMapping

from conftest import PROJECT_ID, make_requirement

ALL_PHASES = [
    "Data Discovery",
    "Component Creation",
    "Mapping Generation",
    "Alignment Validation",
    "Quality Assessment",
    "Recommendations",
]


@pytest.fixture
def backfill_options():
    return MigrationOptions(confidence_threshold=0.5, create_missing_components=True)


class TestProjectMigration:
    """migrate_project_integration"""

    def test_backfill_with_component_creation(self, engine, populated_store, backfill_options):
        result = engine.migrate_project_integration(PROJECT_ID, backfill_options)

        assert result.success
        assert [p.name for p in result.phases] == ALL_PHASES
        assert all(p.status == PhaseStatus.COMPLETED for p in result.phases)
        assert result.phase("Component Creation").details["components_created"] == {
            "patterns": 3, "technology_stacks": 2,
        }
        assert result.statistics.requirements_processed == 1
        assert result.statistics.architecture_decisions_processed == 2
        assert result.statistics.mappings_created == 3

        mappings = populated_store.list_requirement_mappings("R1")
        assert len(mappings) == 3
        assert {m.mapping_type for m in mappings} == {MappingType.DERIVED, MappingType.INFLUENCED}
        assert all(m.created_by == "migration" for m in mappings)
        assert 0.0 < result.quality_score <= 1.0

    def test_only_unmapped_requirements_get_mappings(self, engine, populated_store, strong_microservices_pattern):
        populated_store.save_pattern(strong_microservices_pattern)
        requirement_ids = ["R1"] + [f"R{n}" for n in range(2, 11)]
        for requirement_id in requirement_ids[1:]:
            populated_store.save_requirement(make_requirement(requirement_id))
        premapped = requirement_ids[:3]
        for requirement_id in premapped:
            populated_store.create_mapping(RequirementArchitectureMapping(
                id=f"m_{requirement_id}", requirement_id=requirement_id,
                architecture_decision_id="A2", created_by="architect",
            ))

        result = engine.migrate_project_integration(PROJECT_ID)

        assert result.success
        assert result.phase("Component Creation") is None
        assert result.statistics.requirements_processed == 10
        assert result.statistics.mappings_created == 7
        assert result.phase("Mapping Generation").details["candidates"] == 7

        generated = [m for m in populated_store.list_mappings(PROJECT_ID) if m.created_by == "migration"]
        assert sorted(m.requirement_id for m in generated) == sorted(requirement_ids[3:])
        assert all(m.architecture_pattern_id == "pattern_ms" for m in generated)
        for requirement_id in premapped:
            assert [m.id for m in populated_store.list_requirement_mappings(requirement_id)] == [f"m_{requirement_id}"]

    def test_default_phases(self, engine):
        result = engine.migrate_project_integration(PROJECT_ID)
        assert [p.name for p in result.phases] == [
            "Data Discovery", "Mapping Generation", "Alignment Validation",
            "Quality Assessment", "Recommendations",
        ]
        assert result.statistics.mappings_created == 0
        assert "Address integration health issues identified in the assessment" in result.recommendations

    def test_skip_alignment_validation(self, engine):
        result = engine.migrate_project_integration(PROJECT_ID, MigrationOptions(validate_alignments=False))
        assert result.phase("Alignment Validation") is None

    def test_dry_run_writes_nothing(self, engine, populated_store, backfill_options):
        options = backfill_options.model_copy(update={"dry_run": True})
        result = engine.migrate_project_integration(PROJECT_ID, options)

        assert result.success
        assert result.dry_run
        assert result.phase("Component Creation").details["components_created"]["patterns"] == 3
        assert populated_store.list_patterns() == []
        assert populated_store.list_technology_stacks() == []
        assert populated_store.list_mappings() == []
        assert populated_store.list_alignments() == []

    def test_existing_decision_mappings_validated(self, engine, populated_store):
        populated_store.create_mapping(RequirementArchitectureMapping(
            id="m_1", requirement_id="R1", architecture_decision_id="A2", confidence=0.9,
        ))
        result = engine.migrate_project_integration(PROJECT_ID)
        details = result.phase("Alignment Validation").details
        assert details["alignments_validated"] == 1
        assert details["average_alignment_score"] == pytest.approx(1.0)
        assert populated_store.get_alignment("R1", "A2") is not None

    def test_unknown_project(self, engine, populated_store):
        with pytest.raises(NotFoundError):
            engine.migrate_project_integration("proj_missing")
        assert populated_store.list_mappings() == []

    def test_failing_phase_does_not_abort(self, engine, monkeypatch):
        def broken(project_id):
            raise RuntimeError("graph unavailable")

        monkeypatch.setattr(engine.migration, "_discover", broken)
        result = engine.migrate_project_integration(PROJECT_ID)

        assert not result.success
        assert result.phases[0].status == PhaseStatus.FAILED
        assert result.phases[0].errors == ["Data Discovery failed: graph unavailable"]
        assert len(result.phases) == 5
        assert result.statistics.errors_encountered == 1


class TestBatchMigration:
    """migrate_all_projects"""

    def test_failure_isolated_per_project(self, engine, populated_store, monkeypatch):
        populated_store.save_project(Project(id="proj_2", name="Search"))
        original = engine.migration._discover

        def flaky(project_id):
            if project_id == PROJECT_ID:
                raise RuntimeError("graph unavailable")
            return original(project_id)

        monkeypatch.setattr(engine.migration, "_discover", flaky)
        batch = engine.migrate_all_projects()

        assert batch.total_projects == 2
        assert batch.successful == 1
        assert batch.failed == 1
        with pytest.raises(PartialFailureError) as excinfo:
            batch.raise_for_failures()
        assert excinfo.value.failures == [PROJECT_ID]

    def test_all_successful(self, engine, backfill_options):
        batch = engine.migrate_all_projects(backfill_options)
        assert batch.failed == 0
        assert batch.statistics.mappings_created == 3
        batch.raise_for_failures()


class TestRollback:
    """rollback_migration"""

    def test_rollback_removes_migration_output(self, engine, populated_store, backfill_options):
        engine.migrate_project_integration(PROJECT_ID, backfill_options)
        engine.validate_alignment("R1", "A2")

        result = engine.rollback_migration(PROJECT_ID)
        assert result.success
        counts = {a.action: a.count for a in result.actions}
        assert counts == {
            RollbackActionType.REMOVE_MAPPINGS: 3,
            RollbackActionType.REMOVE_ALIGNMENTS: 1,
            RollbackActionType.REMOVE_AUTO_COMPONENTS: 5,
        }
        assert populated_store.list_mappings() == []
        assert populated_store.list_alignments() == []
        assert populated_store.list_patterns() == []
        assert populated_store.get_requirement("R1") is not None

    def test_keep_generated_components(self, engine, populated_store, backfill_options):
        engine.migrate_project_integration(PROJECT_ID, backfill_options)
        result = engine.rollback_migration(PROJECT_ID, remove_auto_components=False)
        assert [a.action for a in result.actions] == [
            RollbackActionType.REMOVE_MAPPINGS, RollbackActionType.REMOVE_ALIGNMENTS,
        ]
        assert len(populated_store.list_patterns()) == 3

    def test_unknown_project_is_a_noop(self, engine):
        result = engine.rollback_migration("proj_missing")
        assert result.success
        assert all(a.count == 0 for a in result.actions)


class TestExportImport:
    """export_integration_data and import_integration_data"""

    def test_export_contents(self, engine, backfill_options):
        engine.migrate_project_integration(PROJECT_ID, backfill_options)
        export = engine.export_integration_data(PROJECT_ID)

        assert export.version == EXPORT_VERSION
        assert export.metadata.total_requirements == 1
        assert export.metadata.total_architecture_decisions == 2
        assert export.metadata.total_mappings == 3
        assert export.metadata.total_patterns == 3
        assert export.metadata.total_technology_stacks == 2

    def test_import_into_empty_graph_then_again(self, engine, populated_store, config):
        engine.validate_alignment("R1", "A2")
        document = engine.export_integration_data(PROJECT_ID).model_dump(mode="json")

        target = InMemoryGraphStore()
        with IntegrationEngine(target, config) as other:
            first = other.import_integration_data(document)
            second = other.import_integration_data(document)

        assert first.success
        assert first.imported["requirements"] == 1
        assert first.imported["architecture_decisions"] == 2
        assert first.imported["alignments"] == 1
        assert second.success
        assert sum(second.imported.values()) == 0
        assert second.skipped["requirements"] == 1
        assert target.get_alignment("R1", "A2") is not None

    def test_import_into_other_project(self, engine, config):
        document = engine.export_integration_data(PROJECT_ID)
        target = InMemoryGraphStore()
        result = MigrationOrchestrator(target, config=config).import_integration_data(document, "proj_copy")

        assert result.success
        assert target.get_project("proj_copy").name == "Checkout"
        assert target.get_requirement("R1").project_id == "proj_copy"

    def test_version_mismatch_warns(self, engine, config):
        document = engine.export_integration_data(PROJECT_ID).model_copy(update={"version": "0.9"})
        result = MigrationOrchestrator(InMemoryGraphStore(), config=config).import_integration_data(document)
        assert result.success
        assert result.warnings == [f"Export version 0.9 differs from supported version {EXPORT_VERSION}"]

    def test_unknown_project_export(self, engine):
        with pytest.raises(NotFoundError):
            engine.export_integration_data("proj_missing")


class TestQualityScore:
    """Weighted quality blend."""

    @pytest.mark.parametrize("args,expected", [
        ((1.0, 1.0, 1.0, HealthStatus.HEALTHY), 1.0),
        ((0.0, 0.0, 0.0, HealthStatus.CRITICAL), 0.03),
        ((0.5, 0.5, 0.0, HealthStatus.DEGRADED), 0.4),
    ])
    def test_quality_score(self, store, config, args, expected):
        orchestrator = MigrationOrchestrator(store, config=config)
        assert orchestrator.quality_score(*args) == pytest.approx(expected)
