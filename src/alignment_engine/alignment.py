"""Alignment validation service.

Loads requirement/decision pairs from the store, scores them with the
AlignmentScorer and persists the result as an alignment record.
"""

import logging
from typing import Iterable, Optional

from requirements_graph.schema import (
    AlignmentType,
    ArchitectureRequirementAlignment,
    ValidationStatus,
    utc_now,
)
from requirements_graph.store import GraphStore

from .config import EngineConfig, get_config
from .recommender import RecommendationEngine
from .schema import AlignmentResult
from .scorer import AlignmentScorer

logger = logging.getLogger(__name__)

FAILED_VALIDATION_GAP = "Validation failed due to error"
FAILED_VALIDATION_RECOMMENDATION = "Review requirement and architecture decision for completeness"


class AlignmentValidator:
    """Validates and persists requirement/architecture alignments.

    Single-pair validation propagates errors; batch validation isolates
    each pair so one failure never affects the others.
    """

    def __init__(
        self,
        store: GraphStore,
        scorer: Optional[AlignmentScorer] = None,
        recommender: Optional[RecommendationEngine] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.scorer = scorer or AlignmentScorer(self.config)
        self.recommender = recommender or RecommendationEngine(store, self.config)

    def validate_requirement_architecture_alignment(
        self,
        requirement_id: str,
        architecture_decision_id: str,
        assessed_by: str = "system",
    ) -> ArchitectureRequirementAlignment:
        """Score a requirement against a decision and upsert the alignment.

        Args:
            requirement_id: Requirement to validate
            architecture_decision_id: Decision expected to satisfy it
            assessed_by: Recorded as the assessor

        Returns:
            The stored alignment record

        Raises:
            NotFoundError: If either entity does not exist
        """
        requirement = self.store.require_requirement(requirement_id)
        decision = self.store.require_decision(architecture_decision_id)

        result = self.scorer.score(requirement, decision)
        alignment = ArchitectureRequirementAlignment(
            requirement_id=requirement.id,
            architecture_decision_id=decision.id,
            alignment_score=result.alignment_score,
            alignment_type=result.alignment_type,
            gaps=result.gaps,
            recommendations=result.recommendations,
            validation_status=result.validation_status,
            last_assessed=utc_now(),
            assessed_by=assessed_by,
        )
        stored = self.store.upsert_alignment(alignment)
        logger.debug(
            "Alignment %s scored %.3f (%s)",
            stored.id, stored.alignment_score, stored.alignment_type.value,
        )
        return stored

    def batch_validate_alignments(
        self,
        pairs: Iterable[tuple[str, str]],
        assessed_by: str = "system",
    ) -> list[ArchitectureRequirementAlignment]:
        """Validate pairs one by one, in order.

        A pair that fails yields a REJECTED, NOT_APPLICABLE record with score
        0.0 in the returned list; that record is not persisted.
        """
        results = []
        for requirement_id, decision_id in pairs:
            try:
                results.append(
                    self.validate_requirement_architecture_alignment(requirement_id, decision_id, assessed_by)
                )
            except Exception as e:
                logger.warning("Alignment validation failed for %s/%s: %s", requirement_id, decision_id, e)
                results.append(ArchitectureRequirementAlignment(
                    requirement_id=requirement_id,
                    architecture_decision_id=decision_id,
                    alignment_score=0.0,
                    alignment_type=AlignmentType.NOT_APPLICABLE,
                    gaps=[FAILED_VALIDATION_GAP],
                    recommendations=[FAILED_VALIDATION_RECOMMENDATION],
                    validation_status=ValidationStatus.REJECTED,
                    assessed_by=assessed_by,
                ))
        return results

    def validate_requirement_pattern_alignment(self, requirement_id: str, pattern_id: str) -> AlignmentResult:
        """Score a requirement against a pattern using the recommendation heuristics."""
        requirement = self.store.require_requirement(requirement_id)
        pattern = self.store.require_pattern(pattern_id)

        characteristics = self.recommender.characteristics.extract([requirement])
        score = self.recommender.calculate_pattern_score(pattern, [requirement], characteristics)
        gaps = []
        recommendations = []
        if not any(c.lower() in requirement.text for c in pattern.applicability_conditions if c):
            gaps.append(f"Requirement does not match any applicability condition of {pattern.name}")
            recommendations.append("Confirm the pattern applies to this requirement's context")
        recommendations.extend(self.recommender.pattern_risks(pattern))
        return self._result(requirement_id, pattern_id, score, gaps, recommendations)

    def validate_requirement_technology_alignment(self, requirement_id: str, stack_id: str) -> AlignmentResult:
        """Score a requirement against a technology stack using the recommendation heuristics."""
        requirement = self.store.require_requirement(requirement_id)
        stack = self.store.require_technology_stack(stack_id)

        characteristics = self.recommender.characteristics.extract([requirement])
        score = self.recommender.calculate_technology_score(stack, [requirement], [], characteristics)
        risks = self.recommender.technology_risks(stack)
        recommendations = [f"Mitigate: {risk}" for risk in risks]
        return self._result(requirement_id, stack_id, score, list(risks), recommendations)

    def _result(
        self,
        requirement_id: str,
        target_id: str,
        score: float,
        gaps: list[str],
        recommendations: list[str],
    ) -> AlignmentResult:
        return AlignmentResult(
            requirement_id=requirement_id,
            target_id=target_id,
            alignment_score=score,
            alignment_type=self.scorer.classify(score),
            gaps=gaps,
            recommendations=recommendations,
            validation_status=self.scorer.validation_status(score),
        )
