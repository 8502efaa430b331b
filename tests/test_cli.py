"""Tests for the alignment-engine CLI, run against a JSON snapshot store."""

import json

import pytest
import yaml
from click.testing import CliRunner

from alignment_engine.cli import main
from requirements_graph.memory_store import InMemoryGraphStore
from requirements_graph.schema import RequirementArchitectureMapping

from conftest import PROJECT_ID


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return CliRunner()


@pytest.fixture
def snapshot(tmp_path, populated_store):
    path = tmp_path / "graph.json"
    populated_store.save(path)
    return path


def invoke(runner, snapshot, *args):
    return runner.invoke(main, ["--snapshot", str(snapshot), *args])


def reload(snapshot) -> InMemoryGraphStore:
    return InMemoryGraphStore.load(snapshot)


class TestGeneral:
    """Group options and setup commands"""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_init_schema_is_noop_for_snapshots(self, runner, snapshot):
        result = invoke(runner, snapshot, "init-schema")
        assert result.exit_code == 0
        assert "nothing to do" in result.output

    def test_config_init_refuses_overwrite(self, runner, tmp_path):
        out = tmp_path / "engine.yaml"

        first = runner.invoke(main, ["config-init", "--out", str(out)])
        assert first.exit_code == 0
        assert "thresholds" in yaml.safe_load(out.read_text())

        second = runner.invoke(main, ["config-init", "--out", str(out)])
        assert second.exit_code == 1
        assert "already exists" in second.output

        forced = runner.invoke(main, ["config-init", "--out", str(out), "--force"])
        assert forced.exit_code == 0

    def test_invalid_config_file_exits(self, runner, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("thresholds:\n  unknown_key: 1\n")
        result = runner.invoke(main, ["--config", str(bad), "analyze", "text"])
        assert result.exit_code == 1
        assert "Could not load config" in result.output

    def test_analyze_json(self, runner):
        result = runner.invoke(main, ["analyze", "--json", "The system must keep latency under 200ms"])
        assert result.exit_code == 0
        analysis = json.loads(result.stdout)
        assert analysis["type"] == "NON_FUNCTIONAL"


class TestAlignmentCommands:
    """validate-alignment, recommend and create-mapping"""

    def test_validate_alignment_persists(self, runner, snapshot):
        result = invoke(runner, snapshot, "validate-alignment", "R1", "A2", "--json")

        assert result.exit_code == 0
        alignment = json.loads(result.stdout)
        assert alignment["alignment_type"] == "FULLY_ALIGNED"
        assert alignment["alignment_score"] == pytest.approx(1.0)
        assert reload(snapshot).get_alignment("R1", "A2") is not None

    def test_validate_alignment_unknown_decision(self, runner, snapshot):
        result = invoke(runner, snapshot, "validate-alignment", "R1", "missing")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_recommend_requires_selector(self, runner, snapshot):
        result = invoke(runner, snapshot, "recommend")
        assert result.exit_code == 1
        assert "--project or at least one --requirement" in result.output

    def test_recommend_to_file(self, runner, snapshot, tmp_path):
        out = tmp_path / "recommendations.json"
        result = invoke(runner, snapshot, "recommend", "-r", "R1", "--out", str(out))

        assert result.exit_code == 0
        data = json.loads(out.read_text())
        assert data["requirement_ids"] == ["R1"]
        assert "patterns" in data

    def test_create_mapping(self, runner, snapshot):
        result = invoke(
            runner, snapshot, "create-mapping", "R1", "--decision", "A2",
            "--confidence", "0.75", "--rationale", "Scale-out tier serves the load",
        )

        assert result.exit_code == 0
        assert "Created mapping" in result.output
        mappings = reload(snapshot).list_requirement_mappings("R1")
        assert len(mappings) == 1
        assert mappings[0].architecture_decision_id == "A2"
        assert mappings[0].confidence == 0.75
        assert mappings[0].created_by == "cli"

    def test_create_mapping_unknown_requirement(self, runner, snapshot):
        result = invoke(runner, snapshot, "create-mapping", "R404", "--decision", "A2")
        assert result.exit_code == 1
        assert reload(snapshot).list_mappings() == []


class TestIntegrityCommands:
    """check-mapping, integrity and auto-correct"""

    @pytest.fixture
    def orphan_snapshot(self, populated_store, tmp_path):
        populated_store.create_mapping(RequirementArchitectureMapping(
            id="m_orphan", requirement_id="R1", architecture_decision_id="dec_missing", confidence=0.9,
        ))
        path = tmp_path / "orphan.json"
        populated_store.save(path)
        return path

    def test_check_mapping_reports_issues(self, runner, orphan_snapshot):
        result = invoke(runner, orphan_snapshot, "check-mapping", "m_orphan", "--json")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["is_consistent"] is False
        assert data["overall_severity"] == "HIGH"

    def test_check_mapping_strict_fails_on_high(self, runner, orphan_snapshot):
        result = invoke(runner, orphan_snapshot, "check-mapping", "m_orphan", "--strict")
        assert result.exit_code == 1
        assert "failed consistency checks" in result.output

    def test_integrity_sweep(self, runner, orphan_snapshot):
        result = invoke(runner, orphan_snapshot, "integrity", "--project", PROJECT_ID, "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["overall_health"] == "CRITICAL"

    def test_auto_correct_dry_run_then_apply(self, runner, orphan_snapshot):
        dry = invoke(runner, orphan_snapshot, "auto-correct", "--json")
        assert dry.exit_code == 0
        assert json.loads(dry.stdout)["dry_run"] is True
        assert reload(orphan_snapshot).get_mapping("m_orphan") is not None

        applied = invoke(runner, orphan_snapshot, "auto-correct", "--apply", "--json")
        assert applied.exit_code == 0
        data = json.loads(applied.stdout)
        assert data["applied_corrections"] == 1
        assert reload(orphan_snapshot).get_mapping("m_orphan") is None

    def test_health(self, runner, snapshot):
        result = invoke(runner, snapshot, "health", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["metrics"]["total_requirements"] == 1
        assert data["status"] == "WARNING"


class TestMigrationCommands:
    """migrate, rollback, export and import"""

    def test_migrate_backfills_and_writes_back(self, runner, snapshot):
        result = invoke(
            runner, snapshot, "migrate", PROJECT_ID,
            "--threshold", "0.5", "--create-missing", "--json",
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert data["statistics"]["mappings_created"] == 3

        store = reload(snapshot)
        assert len(store.list_requirement_mappings("R1")) == 3
        assert all(m.created_by == "cli-migration" for m in store.list_mappings())

    def test_migrate_dry_run_leaves_snapshot(self, runner, snapshot):
        result = invoke(runner, snapshot, "migrate", PROJECT_ID, "--create-missing", "--dry-run", "--json")
        assert result.exit_code == 0
        assert reload(snapshot).list_patterns() == []

    def test_migrate_unknown_project(self, runner, snapshot):
        result = invoke(runner, snapshot, "migrate", "nope")
        assert result.exit_code == 1

    def test_rollback(self, runner, snapshot):
        invoke(runner, snapshot, "migrate", PROJECT_ID, "--threshold", "0.5", "--create-missing")

        result = invoke(runner, snapshot, "rollback", PROJECT_ID, "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["success"] is True

        store = reload(snapshot)
        assert store.list_mappings() == []
        assert store.list_patterns() == []

    def test_export_import_into_new_snapshot(self, runner, snapshot, tmp_path):
        validated = invoke(runner, snapshot, "validate-alignment", "R1", "A2")
        assert validated.exit_code == 0

        export_file = tmp_path / "export.json"
        exported = invoke(runner, snapshot, "export", PROJECT_ID, "--out", str(export_file))
        assert exported.exit_code == 0
        assert "Exported 1 requirements" in exported.output

        target = tmp_path / "target.json"
        imported = invoke(runner, target, "import", str(export_file), "--json")
        assert imported.exit_code == 0
        data = json.loads(imported.stdout)
        assert data["imported"]["requirements"] == 1
        assert data["imported"]["alignments"] == 1

        store = reload(target)
        assert store.get_requirement("R1") is not None
        assert store.get_alignment("R1", "A2") is not None

    def test_export_to_stdout(self, runner, snapshot):
        result = invoke(runner, snapshot, "export", PROJECT_ID)
        assert result.exit_code == 0
        assert json.loads(result.stdout)["project_id"] == PROJECT_ID
