"""Impact Analyzer.

Follows mapping edges one hop from a requirement and estimates the
follow-on work and risk a change to that requirement causes.
"""

import logging
from typing import TYPE_CHECKING, Optional

from requirements_graph.schema import (
    COMMITTED_REQUIREMENT_STATUSES,
    DecisionStatus,
    Priority,
    Requirement,
    RequirementStatus,
    RequirementType,
)
from requirements_graph.store import GraphStore, MappedComponents

from .config import EngineConfig, get_config
from .schema import (
    CascadingChange,
    ChangeTargetType,
    ChangeType,
    ImpactAnalysis,
    Level,
    RequirementChangeEvent,
    RequirementChangeOutcome,
    RiskAssessment,
    RiskCategory,
    RiskFactor,
)

if TYPE_CHECKING:
    from .alignment import AlignmentValidator
    from .recommender import RecommendationEngine

logger = logging.getLogger(__name__)

# Edits to these fields change what the architecture has to satisfy
SIGNIFICANT_FIELDS = {"description", "type", "priority"}

RISK_MITIGATIONS = {
    RiskCategory.TECHNICAL: "Prototype the affected patterns and stacks before rollout",
    RiskCategory.BUSINESS: "Review the change with stakeholders before implementation",
    RiskCategory.COMPLIANCE: "Run a compliance review of the changed requirement",
    RiskCategory.OPERATIONAL: "Schedule the cascading changes in separate releases",
}

CONTINGENCY_PLANS = {
    Level.HIGH: "Keep the current architecture decisions active and roll back the requirement change if validation fails",
    Level.MEDIUM: "Re-validate affected alignments after each change and revert individual updates on failure",
    Level.LOW: "Apply changes directly and monitor alignment scores",
}


class ImpactAnalyzer:
    """Analyzes the cascading impact of requirement changes.

    Analysis rules:
    - Impact reaches one mapping hop: decisions, patterns and stacks
    - More than 5 cascading changes is HIGH complexity, more than 2 MEDIUM
    - Effort is a fixed number of hours per cascading change
    """

    def __init__(
        self,
        store: GraphStore,
        config: Optional[EngineConfig] = None,
        validator: Optional["AlignmentValidator"] = None,
        recommender: Optional["RecommendationEngine"] = None,
    ):
        self.store = store
        self.settings = (config or get_config()).impact
        self.validator = validator
        self.recommender = recommender

    def analyze_requirement_impact(self, requirement_id: str) -> ImpactAnalysis:
        """Analyze what a change to ``requirement_id`` touches.

        Raises:
            NotFoundError: If the requirement does not exist
        """
        requirement = self.store.require_requirement(requirement_id)
        components = self.store.get_mapped_components(requirement_id)

        changes = self.identify_cascading_changes(requirement, components)
        analysis = ImpactAnalysis(
            requirement_id=requirement_id,
            impacted_decisions=[d.id for d in components.decisions],
            impacted_patterns=[p.id for p in components.patterns],
            impacted_technologies=[s.id for s in components.technology_stacks],
            cascading_changes=changes,
            risk_assessment=self.assess_risk(requirement, components, changes),
            change_complexity=self.change_complexity(changes),
            estimated_effort=len(changes) * self.settings.effort_per_change_hours,
        )
        logger.info(
            "Analyzed impact for requirement %s: %d cascading changes (%s)",
            requirement_id, len(changes), analysis.change_complexity.value,
        )
        return analysis

    def identify_cascading_changes(
        self, requirement: Requirement, components: MappedComponents
    ) -> list[CascadingChange]:
        deprecated = requirement.status == RequirementStatus.DEPRECATED
        priority = requirement.priority
        changes = []

        for decision in components.decisions:
            if decision.status in (DecisionStatus.DEPRECATED, DecisionStatus.SUPERSEDED):
                changes.append(CascadingChange(
                    target_type=ChangeTargetType.ARCHITECTURE_DECISION,
                    target_id=decision.id,
                    change_type=ChangeType.UPDATE,
                    reason=f"Requirement is mapped to inactive decision '{decision.title}'",
                    priority=priority,
                ))
            elif deprecated:
                changes.append(CascadingChange(
                    target_type=ChangeTargetType.ARCHITECTURE_DECISION,
                    target_id=decision.id,
                    change_type=ChangeType.DEPRECATE,
                    reason=f"Decision '{decision.title}' addresses a deprecated requirement",
                    priority=Priority.LOW,
                ))
            else:
                changes.append(CascadingChange(
                    target_type=ChangeTargetType.ARCHITECTURE_DECISION,
                    target_id=decision.id,
                    change_type=ChangeType.VALIDATE,
                    reason=f"Re-validate alignment of decision '{decision.title}'",
                    priority=priority,
                ))

        for pattern in components.patterns:
            changes.append(CascadingChange(
                target_type=ChangeTargetType.PATTERN,
                target_id=pattern.id,
                change_type=ChangeType.VALIDATE,
                reason=f"Confirm pattern '{pattern.name}' still applies",
                priority=priority,
            ))

        for stack in components.technology_stacks:
            changes.append(CascadingChange(
                target_type=ChangeTargetType.TECHNOLOGY,
                target_id=stack.id,
                change_type=ChangeType.VALIDATE,
                reason=f"Confirm technology stack '{stack.name}' still fits",
                priority=priority,
            ))

        if components.total == 0 and requirement.status in COMMITTED_REQUIREMENT_STATUSES:
            changes.append(CascadingChange(
                target_type=ChangeTargetType.ARCHITECTURE_DECISION,
                change_type=ChangeType.CREATE,
                reason="Requirement has no architecture coverage",
                priority=priority,
            ))
        return changes

    def change_complexity(self, changes: list[CascadingChange]) -> Level:
        if len(changes) > self.settings.high_complexity_changes:
            return Level.HIGH
        if len(changes) > self.settings.medium_complexity_changes:
            return Level.MEDIUM
        return Level.LOW

    def assess_risk(
        self,
        requirement: Requirement,
        components: MappedComponents,
        changes: list[CascadingChange],
    ) -> RiskAssessment:
        factors = []
        technical = len(components.patterns) + len(components.technology_stacks)
        if technical:
            factors.append(self._factor(
                RiskCategory.TECHNICAL,
                f"{technical} pattern/technology component(s) may need rework",
                min(0.9, 0.3 + 0.1 * technical), 0.6,
            ))
        if requirement.priority in (Priority.CRITICAL, Priority.HIGH):
            factors.append(self._factor(
                RiskCategory.BUSINESS,
                f"Change affects a {requirement.priority.value.lower()} priority requirement",
                0.5, 0.8 if requirement.priority == Priority.CRITICAL else 0.6,
            ))
        if requirement.type == RequirementType.COMPLIANCE:
            factors.append(self._factor(
                RiskCategory.COMPLIANCE,
                "Change affects a compliance requirement",
                0.4, 0.9,
            ))
        if len(changes) > self.settings.high_complexity_changes:
            factors.append(self._factor(
                RiskCategory.OPERATIONAL,
                f"{len(changes)} coordinated changes are required",
                0.6, 0.5,
            ))

        top = max((f.score for f in factors), default=0.0)
        if top >= 0.5:
            overall = Level.HIGH
        elif top >= 0.25:
            overall = Level.MEDIUM
        else:
            overall = Level.LOW

        return RiskAssessment(
            overall_risk=overall,
            risk_factors=factors,
            mitigation_strategies=[RISK_MITIGATIONS[f.category] for f in factors],
            contingency_plan=CONTINGENCY_PLANS[overall],
        )

    @staticmethod
    def _factor(category: RiskCategory, description: str, probability: float, impact: float) -> RiskFactor:
        return RiskFactor(
            category=category,
            description=description,
            probability=probability,
            impact=impact,
            score=probability * impact,
        )

    def handle_requirement_change(self, event: RequirementChangeEvent) -> RequirementChangeOutcome:
        """React to an edited requirement.

        Runs impact analysis, re-validates alignments to the affected
        decisions and regenerates recommendations when a significant field
        changed. Re-validation and recommendation errors are collected in the
        outcome; a missing requirement raises NotFoundError.
        """
        logger.info("Processing change to requirement %s: %s", event.requirement_id, event.changed_fields)
        impact = self.analyze_requirement_impact(event.requirement_id)
        outcome = RequirementChangeOutcome(requirement_id=event.requirement_id, impact=impact)

        if self.validator is not None:
            requirement = self.store.require_requirement(event.requirement_id)
            decision_ids = list(impact.impacted_decisions)
            for alignment in self.store.list_alignments(requirement.project_id):
                if alignment.requirement_id == event.requirement_id \
                        and alignment.architecture_decision_id not in decision_ids:
                    decision_ids.append(alignment.architecture_decision_id)

            for decision_id in decision_ids:
                try:
                    outcome.revalidated_alignments.append(
                        self.validator.validate_requirement_architecture_alignment(
                            event.requirement_id, decision_id, assessed_by=event.changed_by
                        )
                    )
                except Exception as e:
                    logger.warning("Re-validation of %s/%s failed: %s", event.requirement_id, decision_id, e)
                    outcome.errors.append(f"Re-validation against {decision_id} failed: {e}")

        if self.recommender is not None and SIGNIFICANT_FIELDS.intersection(event.changed_fields):
            try:
                requirement = self.store.require_requirement(event.requirement_id)
                outcome.recommendations = self.recommender.recommend([requirement])
            except Exception as e:
                logger.warning("Recommendation refresh for %s failed: %s", event.requirement_id, e)
                outcome.errors.append(f"Recommendation refresh failed: {e}")

        return outcome
