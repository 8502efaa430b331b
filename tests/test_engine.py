"""Tests for the IntegrationEngine facade: intake, lifecycle and wiring."""

import pytest

from alignment_engine.engine import IntegrationEngine
from requirements_graph.exceptions import InputValidationError, NotFoundError
from requirements_graph.schema import (
    DecisionStatus,
    PatternType,
    Priority,
    RequirementStatus,
    RequirementType,
)

from conftest import PROJECT_ID, make_pattern


class TestIntake:
    """intake_requirement"""

    def test_analyzed_draft(self, engine, populated_store):
        requirement = engine.intake_requirement(
            PROJECT_ID, "The system must keep latency under 200ms for 5,000 concurrent users",
        )
        assert requirement.id.startswith("req_")
        assert requirement.status == RequirementStatus.DRAFT
        assert requirement.type == RequirementType.NON_FUNCTIONAL
        assert requirement.priority == Priority.HIGH
        assert requirement.completeness_score == 1.0
        assert len(requirement.embedding) == 64
        assert populated_store.get_requirement(requirement.id) is not None

    def test_explicit_title(self, engine):
        requirement = engine.intake_requirement(PROJECT_ID, "Export invoices nightly", title="Invoice export")
        assert requirement.title == "Invoice export"

    def test_unknown_project(self, engine):
        with pytest.raises(NotFoundError):
            engine.intake_requirement("proj_missing", "Export invoices nightly")

    def test_empty_text(self, engine):
        with pytest.raises(InputValidationError):
            engine.intake_requirement(PROJECT_ID, "   ")


class TestLifecycle:
    """Status transitions for requirements and decisions."""

    def test_requirement_moves_forward(self, engine):
        assert engine.transition_requirement("R1", RequirementStatus.IMPLEMENTED).status == RequirementStatus.IMPLEMENTED

    def test_requirement_cannot_move_back(self, engine):
        with pytest.raises(InputValidationError, match="cannot move from APPROVED to DRAFT"):
            engine.transition_requirement("R1", RequirementStatus.DRAFT)

    def test_deprecated_requirement_is_final(self, engine):
        engine.transition_requirement("R1", RequirementStatus.DEPRECATED)
        with pytest.raises(InputValidationError):
            engine.transition_requirement("R1", RequirementStatus.VALIDATED)

    def test_supersede_decision(self, engine, populated_store):
        decision = engine.transition_decision("A1", DecisionStatus.SUPERSEDED, superseded_by="A2")
        assert decision.status == DecisionStatus.SUPERSEDED
        assert populated_store.get_decision("A1").superseded_by == "A2"
        with pytest.raises(InputValidationError):
            engine.transition_decision("A1", DecisionStatus.IMPLEMENTED)

    def test_supersede_needs_replacement(self, engine, populated_store):
        with pytest.raises(InputValidationError):
            engine.transition_decision("A1", DecisionStatus.SUPERSEDED)
        with pytest.raises(NotFoundError):
            engine.transition_decision("A1", DecisionStatus.SUPERSEDED, superseded_by="A404")
        assert populated_store.get_decision("A1").status == DecisionStatus.APPROVED

    def test_deprecate_needs_replacement(self, engine, populated_store):
        with pytest.raises(InputValidationError, match="deprecated decision needs a replacement"):
            engine.transition_decision("A1", DecisionStatus.DEPRECATED)
        with pytest.raises(NotFoundError):
            engine.transition_decision("A1", DecisionStatus.DEPRECATED, superseded_by="A404")
        with pytest.raises(InputValidationError):
            engine.transition_decision("A1", DecisionStatus.DEPRECATED, superseded_by="A1")
        assert populated_store.get_decision("A1").status == DecisionStatus.APPROVED

    def test_deprecate_records_replacement(self, engine, populated_store):
        decision = engine.transition_decision("A1", DecisionStatus.DEPRECATED, superseded_by="A2")
        assert decision.status == DecisionStatus.DEPRECATED
        assert populated_store.get_decision("A1").superseded_by == "A2"


class TestRecommendations:
    """generate_recommendations selection rules."""

    def test_no_selection(self, engine):
        with pytest.raises(InputValidationError):
            engine.generate_recommendations()

    def test_unknown_requirement(self, engine):
        with pytest.raises(NotFoundError):
            engine.generate_recommendations(requirement_ids=["R404"])

    def test_by_project(self, engine, strong_microservices_pattern):
        engine.save_pattern(strong_microservices_pattern)
        result = engine.generate_recommendations(project_id=PROJECT_ID)
        assert result.requirement_ids == ["R1"]
        assert result.patterns[0].pattern.id == "pattern_ms"

    def test_empty_project(self, engine):
        with pytest.raises(InputValidationError):
            engine.generate_recommendations(project_id="proj_empty")


class TestOutcomes:
    """Success-rate bookkeeping through the facade."""

    def test_pattern_outcomes(self, engine):
        engine.save_pattern(make_pattern("p1", PatternType.SERVERLESS))
        engine.record_pattern_outcome("p1", True)
        assert engine.record_pattern_outcome("p1", False).success_rate == pytest.approx(0.5)

    def test_context_manager_closes(self, store, config):
        with IntegrationEngine(store, config) as engine:
            future = engine.tasks.submit("noop", lambda: None)
        assert future.done()
        with pytest.raises(RuntimeError):
            engine.tasks.submit("late", lambda: None)
