"""Tests for mapping consistency checks, integrity sweeps and auto-correction."""

from datetime import timedelta

import pytest

from alignment_engine.engine import IntegrationEngine
from alignment_engine.integrity import health_from_issues, overall_severity
from alignment_engine.schema import (
    ConsistencyIssueType,
    CorrectionType,
    HealthStatus,
    IntegrityIssue,
    IntegrityIssueType,
    Severity,
)
from requirements_graph.exceptions import IntegrityViolationError, NotFoundError
from requirements_graph.schema import (
    ArchitectureRequirementAlignment,
    MappingType,
    RequirementArchitectureMapping,
    utc_now,
)

from conftest import PROJECT_ID


def add_mapping(store, mapping_id, **targets):
    data = {"id": mapping_id, "requirement_id": "R1", "confidence": 0.9}
    data.update(targets)
    return store.create_mapping(RequirementArchitectureMapping(**data))


class TestMappingConsistency:
    """validate_mapping_consistency and require_consistent"""

    def test_consistent_mapping(self, engine, populated_store):
        add_mapping(populated_store, "m_good", architecture_decision_id="A2", confidence=1.0)
        result = engine.validate_mapping_consistency("m_good")
        assert result.is_consistent
        assert result.overall_severity == Severity.LOW
        assert result.issues == []

    def test_poor_alignment(self, engine, populated_store):
        add_mapping(populated_store, "m_poor", architecture_decision_id="A1")
        result = engine.validate_mapping_consistency("m_poor")
        assert not result.is_consistent
        assert [i.type for i in result.issues] == [ConsistencyIssueType.POOR_ALIGNMENT]
        assert result.overall_severity == Severity.MEDIUM
        assert "Review and improve requirement-architecture alignment" in result.recommendations

    def test_missing_targets(self, engine, populated_store):
        add_mapping(
            populated_store, "m_dangling",
            architecture_decision_id="dec_missing",
            architecture_pattern_id="pattern_missing",
            technology_stack_id="stack_missing",
            confidence=0.1,
        )
        result = engine.validate_mapping_consistency("m_dangling")
        assert [i.type for i in result.issues] == [
            ConsistencyIssueType.MISSING_ARCHITECTURE_DECISION,
            ConsistencyIssueType.MISSING_PATTERN,
            ConsistencyIssueType.MISSING_TECHNOLOGY_STACK,
            ConsistencyIssueType.LOW_CONFIDENCE,
        ]
        assert result.overall_severity == Severity.HIGH

    def test_unknown_mapping(self, engine):
        with pytest.raises(NotFoundError):
            engine.validate_mapping_consistency("m_unknown")

    def test_require_consistent_raises_on_high(self, engine, populated_store):
        add_mapping(populated_store, "m_orphan", architecture_decision_id="dec_missing")
        with pytest.raises(IntegrityViolationError) as excinfo:
            engine.integrity.require_consistent("m_orphan")
        assert excinfo.value.mapping_id == "m_orphan"
        assert len(excinfo.value.issues) == 1

    def test_require_consistent_allows_medium(self, engine, populated_store):
        add_mapping(populated_store, "m_poor", architecture_decision_id="A1")
        result = engine.integrity.require_consistent("m_poor")
        assert not result.is_consistent


class TestIntegritySweep:
    """validate_cross_module_integrity"""

    def test_empty_store_is_healthy(self, store, config):
        with IntegrationEngine(store, config) as engine:
            result = engine.validate_cross_module_integrity()
        assert result.overall_health == HealthStatus.HEALTHY
        assert result.total_issues == 0

    def test_orphan_makes_graph_critical(self, engine, populated_store):
        add_mapping(populated_store, "m_orphan", architecture_decision_id="dec_missing")
        result = engine.validate_cross_module_integrity(PROJECT_ID)

        assert result.overall_health == HealthStatus.CRITICAL
        by_type = {issue.type: issue for issue in result.issues}
        assert by_type[IntegrityIssueType.ORPHANED_MAPPINGS].affected_items == ["m_orphan"]
        assert set(by_type[IntegrityIssueType.UNMAPPED_ARCHITECTURE_DECISIONS].affected_items) == {"A1", "A2"}
        assert IntegrityIssueType.UNMAPPED_REQUIREMENTS not in by_type
        assert result.total_mappings == 1

    def test_unmapped_requirement_is_warning(self, engine):
        result = engine.validate_cross_module_integrity()
        assert result.overall_health == HealthStatus.WARNING
        assert "Review and create architecture mappings for approved requirements" in result.recommendations

    def test_stale_alignment_reported(self, engine, populated_store):
        populated_store.upsert_alignment(ArchitectureRequirementAlignment(
            requirement_id="R1",
            architecture_decision_id="A2",
            last_assessed=utc_now() - timedelta(days=45),
        ))
        result = engine.validate_cross_module_integrity()
        stale = next(i for i in result.issues if i.type == IntegrityIssueType.STALE_ALIGNMENTS)
        assert stale.severity == Severity.LOW
        assert stale.affected_items == ["alignment_R1_A2"]

    def test_other_project_scope(self, engine, populated_store):
        add_mapping(populated_store, "m_orphan", architecture_decision_id="dec_missing")
        result = engine.validate_cross_module_integrity("another_project")
        assert result.overall_health == HealthStatus.HEALTHY


class TestAutoCorrection:
    """auto_correct_integrity_issues"""

    def test_orphan_dry_run_then_apply(self, engine, populated_store):
        add_mapping(populated_store, "m_orphan", architecture_decision_id="dec_missing")

        planned = engine.auto_correct_integrity_issues(dry_run=True)
        assert planned.dry_run
        assert planned.total_corrections == 1
        assert planned.applied_corrections == 0
        assert planned.corrections[0].type == CorrectionType.DELETE_ORPHANED_MAPPING
        assert populated_store.get_mapping("m_orphan") is not None

        applied = engine.auto_correct_integrity_issues(dry_run=False)
        assert applied.applied_corrections == 1
        assert populated_store.get_mapping("m_orphan") is None
        assert engine.validate_cross_module_integrity().overall_health != HealthStatus.CRITICAL

    def test_orphan_round_trip(self, engine, populated_store):
        mapping = engine.create_mapping("R1", architecture_decision_id="A2", confidence=0.9)
        populated_store.delete_decision("A2")

        sweep = engine.validate_cross_module_integrity(PROJECT_ID)
        orphans = [i for i in sweep.issues if i.type == IntegrityIssueType.ORPHANED_MAPPINGS]
        assert len(orphans) == 1
        assert orphans[0].count == 1
        assert orphans[0].affected_items == [mapping.id]

        first = engine.auto_correct_integrity_issues(dry_run=False)
        assert first.applied_corrections == 1
        assert first.errors == []

        after = engine.validate_cross_module_integrity(PROJECT_ID)
        assert IntegrityIssueType.ORPHANED_MAPPINGS not in {i.type for i in after.issues}

        second = engine.auto_correct_integrity_issues(dry_run=False)
        assert second.total_corrections == 0
        assert second.errors == []

    def test_failed_delete_does_not_abort_run(self, engine, populated_store, monkeypatch):
        add_mapping(populated_store, "m_orphan_1", architecture_decision_id="dec_missing")
        add_mapping(populated_store, "m_orphan_2", architecture_pattern_id="pattern_missing")
        delete_mapping = populated_store.delete_mapping

        def flaky_delete(mapping_id):
            if mapping_id == "m_orphan_1":
                raise RuntimeError("connection reset")
            return delete_mapping(mapping_id)

        monkeypatch.setattr(populated_store, "delete_mapping", flaky_delete)
        result = engine.auto_correct_integrity_issues(dry_run=False)

        assert result.total_corrections == 2
        assert result.applied_corrections == 1
        assert [c.applied for c in result.corrections] == [False, True]
        assert result.errors == ["Mapping m_orphan_1: connection reset"]
        assert populated_store.get_mapping("m_orphan_1") is not None
        assert populated_store.get_mapping("m_orphan_2") is None

    def test_no_candidates_means_no_auto_mapping(self, engine):
        result = engine.auto_correct_integrity_issues(dry_run=False)
        assert result.total_corrections == 0
        assert result.errors == []

    def test_auto_mapping_to_strong_pattern(self, engine, populated_store, strong_microservices_pattern):
        populated_store.save_pattern(strong_microservices_pattern)

        planned = engine.auto_correct_integrity_issues(dry_run=True)
        assert [c.type for c in planned.corrections] == [CorrectionType.CREATE_AUTO_MAPPING]
        assert populated_store.list_requirement_mappings("R1") == []

        applied = engine.auto_correct_integrity_issues(dry_run=False)
        assert applied.applied_corrections == 1
        mappings = populated_store.list_requirement_mappings("R1")
        assert len(mappings) == 1
        assert mappings[0].architecture_pattern_id == "pattern_ms"
        assert mappings[0].mapping_type == MappingType.DERIVED
        assert mappings[0].created_by == "auto-correction"
        assert mappings[0].confidence == pytest.approx(0.9)


class TestSeverityHelpers:
    """Aggregation of severities into health."""

    def test_overall_severity(self):
        assert overall_severity([]) == Severity.LOW
        assert overall_severity([Severity.LOW, Severity.HIGH, Severity.MEDIUM]) == Severity.HIGH

    @pytest.mark.parametrize("severities,expected", [
        ([], HealthStatus.HEALTHY),
        ([Severity.LOW], HealthStatus.DEGRADED),
        ([Severity.LOW, Severity.MEDIUM], HealthStatus.WARNING),
        ([Severity.MEDIUM, Severity.HIGH], HealthStatus.CRITICAL),
    ])
    def test_health_from_issues(self, severities, expected):
        issues = [
            IntegrityIssue(type=IntegrityIssueType.STALE_ALIGNMENTS, count=1, description="x", severity=s)
            for s in severities
        ]
        assert health_from_issues(issues) == expected
