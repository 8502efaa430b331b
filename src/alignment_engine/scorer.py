"""Alignment Scorer.

Computes a weighted alignment score between one requirement and one
architecture decision using the rule set registered for the requirement's
type, then classifies the score against the configured thresholds.
"""

from typing import Optional

from requirements_graph.schema import (
    AlignmentType,
    ArchitectureDecision,
    Requirement,
    RequirementType,
    ValidationStatus,
)

from .config import EngineConfig, RuleWeightConfig, get_config
from .rules import RuleFunction, resolve_rule
from .schema import AlignmentResult, RuleScore


class AlignmentScorer:
    """Scores requirement/decision pairs.

    Scoring principles:
    - Each requirement type has its own weighted rule set
    - The aggregate is the weighted mean of rule sub-scores
    - Every weak rule yields exactly one gap and one recommendation
    - No hidden state: same inputs, same result
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """Resolve the configured rule names once.

        Raises:
            ValueError: If the configuration names an unregistered rule
        """
        self.config = config or get_config()
        self.thresholds = self.config.thresholds
        self._rules: dict[RequirementType, list[tuple[RuleWeightConfig, RuleFunction]]] = {
            requirement_type: [(rule, resolve_rule(rule.name)) for rule in rules]
            for requirement_type, rules in self.config.validation_rules.rules.items()
        }

    def rules_for(self, requirement_type: RequirementType) -> list[RuleWeightConfig]:
        return [rule for rule, _ in self._rules.get(requirement_type, [])]

    def score(self, requirement: Requirement, decision: ArchitectureDecision) -> AlignmentResult:
        """Score how well ``decision`` satisfies ``requirement``.

        Args:
            requirement: The requirement being satisfied
            decision: The candidate architecture decision

        Returns:
            AlignmentResult with score, classification, gaps and recommendations
        """
        settings = self.config.validation_rules
        rule_scores = []
        gaps = []
        recommendations = []

        for rule, func in self._rules.get(requirement.type, []):
            sub_score = func(requirement, decision, settings)
            rule_scores.append(RuleScore(name=rule.name, weight=rule.weight, score=sub_score))
            if sub_score < self.thresholds.gap_threshold:
                gaps.append(f"{rule.name} alignment is below acceptable threshold")
                recommendations.append(
                    f"Improve {rule.name.lower()} between requirement and architecture"
                )

        alignment_score = self.aggregate(rule_scores)
        return AlignmentResult(
            requirement_id=requirement.id,
            target_id=decision.id,
            alignment_score=alignment_score,
            alignment_type=self.classify(alignment_score),
            gaps=gaps,
            recommendations=recommendations,
            validation_status=self.validation_status(alignment_score),
            rule_scores=rule_scores,
        )

    @staticmethod
    def aggregate(rule_scores: list[RuleScore]) -> float:
        """Weighted mean of sub-scores; 0.0 when there are no rules."""
        total_weight = sum(r.weight for r in rule_scores)
        if total_weight <= 0:
            return 0.0
        return sum(r.score * r.weight for r in rule_scores) / total_weight

    def classify(self, score: float) -> AlignmentType:
        """Map a score to an alignment type.

        The good and minimum bands both map to PARTIALLY_ALIGNED.
        """
        if score >= self.thresholds.excellent:
            return AlignmentType.FULLY_ALIGNED
        if score >= self.thresholds.good:
            return AlignmentType.PARTIALLY_ALIGNED
        if score >= self.thresholds.minimum:
            return AlignmentType.PARTIALLY_ALIGNED
        return AlignmentType.MISALIGNED

    def validation_status(self, score: float) -> ValidationStatus:
        if score >= self.thresholds.minimum:
            return ValidationStatus.VALIDATED
        return ValidationStatus.NEEDS_REVIEW
