"""Tests for alignment validation and persistence."""

import pytest

from alignment_engine.alignment import FAILED_VALIDATION_GAP, AlignmentValidator
from alignment_engine.defaults import default_patterns, default_technology_stacks
from requirements_graph.exceptions import NotFoundError
from requirements_graph.schema import AlignmentType, ValidationStatus

from conftest import PROJECT_ID


@pytest.fixture
def validator(populated_store, config):
    return AlignmentValidator(populated_store, config=config)


class TestSinglePair:
    """validate_requirement_architecture_alignment"""

    def test_poor_alignment_persisted(self, validator, populated_store):
        alignment = validator.validate_requirement_architecture_alignment("R1", "A1", assessed_by="reviewer")
        assert alignment.alignment_score == pytest.approx(0.2)
        assert alignment.alignment_type == AlignmentType.MISALIGNED
        assert alignment.validation_status == ValidationStatus.NEEDS_REVIEW
        assert len(alignment.gaps) == 2

        stored = populated_store.get_alignment("R1", "A1")
        assert stored.id == "alignment_R1_A1"
        assert stored.assessed_by == "reviewer"

    def test_full_alignment(self, validator):
        alignment = validator.validate_requirement_architecture_alignment("R1", "A2")
        assert alignment.alignment_score == pytest.approx(1.0)
        assert alignment.alignment_type == AlignmentType.FULLY_ALIGNED
        assert alignment.validation_status == ValidationStatus.VALIDATED

    def test_revalidation_overwrites(self, validator, populated_store):
        first = validator.validate_requirement_architecture_alignment("R1", "A1")
        second = validator.validate_requirement_architecture_alignment("R1", "A1")
        assert len(populated_store.list_alignments()) == 1
        assert second.alignment_score == first.alignment_score
        assert second.last_assessed >= first.last_assessed

    def test_missing_decision(self, validator, populated_store):
        with pytest.raises(NotFoundError) as excinfo:
            validator.validate_requirement_architecture_alignment("R1", "A404")
        assert excinfo.value.entity_id == "A404"
        assert populated_store.list_alignments() == []


class TestBatch:
    """Per-pair isolation in batch validation."""

    def test_failed_pair_isolated(self, validator, populated_store):
        results = validator.batch_validate_alignments([("R1", "A1"), ("R1", "A404"), ("R1", "A2")])

        assert len(results) == 3
        assert results[0].alignment_type == AlignmentType.MISALIGNED
        assert results[2].alignment_type == AlignmentType.FULLY_ALIGNED

        failed = results[1]
        assert failed.alignment_score == 0.0
        assert failed.alignment_type == AlignmentType.NOT_APPLICABLE
        assert failed.validation_status == ValidationStatus.REJECTED
        assert failed.gaps == [FAILED_VALIDATION_GAP]

        assert {a.architecture_decision_id for a in populated_store.list_alignments()} == {"A1", "A2"}

    def test_empty_batch(self, validator):
        assert validator.batch_validate_alignments([]) == []


class TestPatternAndTechnology:
    """Heuristic alignment against patterns and stacks."""

    def test_pattern_alignment(self, validator, populated_store, strong_microservices_pattern):
        populated_store.save_pattern(strong_microservices_pattern)
        result = validator.validate_requirement_pattern_alignment("R1", "pattern_ms")
        assert result.alignment_score == pytest.approx(0.9)
        assert result.validation_status == ValidationStatus.VALIDATED
        assert result.gaps == []
        assert "Increased operational complexity" in result.recommendations

    def test_pattern_without_matching_condition(self, validator, populated_store):
        layered = default_patterns(PROJECT_ID)[0]
        populated_store.save_pattern(layered)
        result = validator.validate_requirement_pattern_alignment("R1", layered.id)
        assert result.gaps == [
            "Requirement does not match any applicability condition of Layered Architecture"
        ]

    def test_technology_alignment(self, validator, populated_store):
        stack = default_technology_stacks(PROJECT_ID)[1]
        populated_store.save_technology_stack(stack)
        result = validator.validate_requirement_technology_alignment("R1", stack.id)
        assert result.target_id == stack.id
        assert 0.0 <= result.alignment_score <= 1.0
        assert result.gaps == []

    def test_missing_pattern(self, validator):
        with pytest.raises(NotFoundError):
            validator.validate_requirement_pattern_alignment("R1", "pattern_missing")
