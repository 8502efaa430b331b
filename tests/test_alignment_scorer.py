"""Tests for alignment scoring, classification and the validation rule registry."""

import pytest

from alignment_engine.config import (
    AlignmentThresholdsConfig,
    EngineConfig,
    RuleWeightConfig,
    ValidationRulesConfig,
)
from alignment_engine.rules import RULE_REGISTRY, evidence_score, resolve_rule
from alignment_engine.schema import RuleScore
from alignment_engine.scorer import AlignmentScorer
from requirements_graph.schema import AlignmentType, RequirementType, ValidationStatus

from conftest import SCALABLE_DESCRIPTION, make_decision, make_requirement


@pytest.fixture
def scorer(config):
    return AlignmentScorer(config)


class TestEndToEndScenario:
    """R1 (10,000 concurrent users, sub-200ms) against a decision with no performance support."""

    def test_score_below_good_threshold(self, scorer):
        result = scorer.score(make_requirement(), make_decision())
        assert result.alignment_score < 0.7

    def test_gap_mentions_performance_or_scalability(self, scorer):
        result = scorer.score(make_requirement(), make_decision())
        assert any("Performance" in gap or "Scalability" in gap for gap in result.gaps)

    def test_needs_review(self, scorer):
        result = scorer.score(make_requirement(), make_decision())
        assert result.validation_status == ValidationStatus.NEEDS_REVIEW
        assert result.alignment_type == AlignmentType.MISALIGNED

    def test_one_recommendation_per_gap(self, scorer):
        result = scorer.score(make_requirement(), make_decision())
        assert len(result.gaps) == len(result.recommendations) == 2
        assert "Improve performance alignment between requirement and architecture" in result.recommendations

    def test_supporting_decision_fully_aligned(self, scorer):
        decision = make_decision("A2", description=SCALABLE_DESCRIPTION)
        result = scorer.score(make_requirement(), decision)
        assert result.alignment_score == pytest.approx(1.0)
        assert result.alignment_type == AlignmentType.FULLY_ALIGNED
        assert result.validation_status == ValidationStatus.VALIDATED
        assert result.gaps == []


class TestDeterminism:
    """Same inputs always produce the same result."""

    def test_repeated_scoring_identical(self, scorer):
        requirement, decision = make_requirement(), make_decision()
        first = scorer.score(requirement, decision)
        second = scorer.score(requirement, decision)
        assert first.model_dump() == second.model_dump()


class TestClassification:
    """Threshold boundaries for alignment type and validation status."""

    @pytest.mark.parametrize("score,expected", [
        (1.0, AlignmentType.FULLY_ALIGNED),
        (0.9, AlignmentType.FULLY_ALIGNED),
        (0.8999, AlignmentType.PARTIALLY_ALIGNED),
        (0.7, AlignmentType.PARTIALLY_ALIGNED),
        (0.5, AlignmentType.PARTIALLY_ALIGNED),
        (0.3, AlignmentType.PARTIALLY_ALIGNED),
        (0.2999, AlignmentType.MISALIGNED),
        (0.0, AlignmentType.MISALIGNED),
    ])
    def test_classify(self, scorer, score, expected):
        assert scorer.classify(score) == expected

    def test_validation_status_boundary(self, scorer):
        assert scorer.validation_status(0.3) == ValidationStatus.VALIDATED
        assert scorer.validation_status(0.2999) == ValidationStatus.NEEDS_REVIEW

    def test_custom_thresholds(self):
        config = EngineConfig(thresholds=AlignmentThresholdsConfig(minimum=0.5, good=0.6, excellent=0.8))
        scorer = AlignmentScorer(config)
        assert scorer.classify(0.8) == AlignmentType.FULLY_ALIGNED
        assert scorer.classify(0.45) == AlignmentType.MISALIGNED


class TestAggregation:
    """The aggregate is the weighted mean of rule sub-scores."""

    def test_weighted_mean(self):
        scores = [
            RuleScore(name="Performance Alignment", weight=0.8, score=0.2),
            RuleScore(name="Scalability Alignment", weight=0.7, score=1.0),
        ]
        assert AlignmentScorer.aggregate(scores) == pytest.approx((0.8 * 0.2 + 0.7 * 1.0) / 1.5)

    def test_no_rules_scores_zero(self):
        assert AlignmentScorer.aggregate([]) == 0.0

    def test_type_without_rules(self, scorer):
        requirement = make_requirement(type=RequirementType.USER_STORY)
        result = scorer.score(requirement, make_decision())
        assert result.alignment_score == 0.0
        assert result.alignment_type == AlignmentType.MISALIGNED
        assert result.rule_scores == []
        assert result.gaps == []

    def test_rule_scores_follow_configured_order(self, scorer):
        result = scorer.score(make_requirement(), make_decision())
        assert [r.name for r in result.rule_scores] == ["Performance Alignment", "Scalability Alignment"]
        assert [r.weight for r in result.rule_scores] == [0.8, 0.7]


class TestRules:
    """Evidence-based rule sub-scores."""

    def test_concern_not_raised_is_neutral(self, config):
        settings = config.validation_rules
        assert evidence_score("store invoices", "anything", ["latency"], ["cache"], settings) == settings.neutral_score

    def test_concern_without_support(self, config):
        settings = config.validation_rules
        assert evidence_score("low latency", "plain design", ["latency"], ["cache"], settings) == settings.unsupported_score

    def test_support_raises_score(self, config):
        settings = config.validation_rules
        one = evidence_score("low latency", "a cache", ["latency"], ["cache", "cdn"], settings)
        two = evidence_score("low latency", "a cache and a cdn", ["latency"], ["cache", "cdn"], settings)
        assert one == pytest.approx(0.65)
        assert two == pytest.approx(0.8)

    def test_feature_support_addressed_bonus(self, config):
        feature = resolve_rule("Feature Support")
        requirement = make_requirement(type=RequirementType.FUNCTIONAL, description="export invoices as PDF")
        plain = feature(requirement, make_decision(), config.validation_rules)
        addressed = feature(requirement, make_decision(requirement_ids=["R1"]), config.validation_rules)
        assert addressed == pytest.approx(min(1.0, plain + 0.3))

    def test_compliance_rules(self, scorer):
        requirement = make_requirement(
            type=RequirementType.COMPLIANCE,
            description="Personal data must be encrypted and handled according to GDPR with full audit trails",
        )
        decision = make_decision(description=(
            "Encrypt personal data with TLS and OAuth-based RBAC, keep an immutable audit log "
            "with GDPR retention and consent records"
        ))
        result = scorer.score(requirement, decision)
        assert result.alignment_type == AlignmentType.FULLY_ALIGNED


class TestRuleRegistry:
    """Rules are resolved by name from the registry."""

    def test_unknown_rule_rejected(self):
        config = EngineConfig(validation_rules=ValidationRulesConfig(rules={
            RequirementType.FUNCTIONAL: [RuleWeightConfig(name="No Such Rule", weight=1.0)],
        }))
        with pytest.raises(ValueError, match="No Such Rule"):
            AlignmentScorer(config)

    def test_custom_rule(self, monkeypatch):
        monkeypatch.setitem(RULE_REGISTRY, "Always Half", lambda requirement, decision, settings: 0.5)
        config = EngineConfig(validation_rules=ValidationRulesConfig(rules={
            RequirementType.BUSINESS: [RuleWeightConfig(name="Always Half", weight=2.0)],
        }))
        scorer = AlignmentScorer(config)
        result = scorer.score(make_requirement(type=RequirementType.BUSINESS), make_decision())
        assert result.alignment_score == pytest.approx(0.5)
        assert result.gaps == []
        assert scorer.rules_for(RequirementType.BUSINESS)[0].name == "Always Half"
