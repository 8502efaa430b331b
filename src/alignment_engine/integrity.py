"""Integrity & Consistency Validator.

Checks single mappings and the whole mapping graph for dangling references,
coverage gaps and stale assessments, and repairs the common problems.
"""

import logging
from datetime import timedelta
from typing import Optional

from requirements_graph.exceptions import IntegrityViolationError
from requirements_graph.schema import (
    COMMITTED_DECISION_STATUSES,
    COMMITTED_REQUIREMENT_STATUSES,
    MappingType,
    utc_now,
)
from requirements_graph.store import GraphStore

from .config import EngineConfig, get_config
from .mappings import MappingManager
from .recommender import RecommendationEngine
from .schema import (
    SEVERITY_RANK,
    AutoCorrectionResult,
    ConsistencyIssue,
    ConsistencyIssueType,
    CorrectionAction,
    CorrectionType,
    HealthStatus,
    IntegrityIssue,
    IntegrityIssueType,
    IntegrityValidationResult,
    MappingConsistencyResult,
    Severity,
)
from .scorer import AlignmentScorer

logger = logging.getLogger(__name__)

INTEGRITY_RECOMMENDATIONS = {
    IntegrityIssueType.ORPHANED_MAPPINGS: "Clean up orphaned mappings by removing invalid references",
    IntegrityIssueType.UNMAPPED_REQUIREMENTS: "Review and create architecture mappings for approved requirements",
    IntegrityIssueType.UNMAPPED_ARCHITECTURE_DECISIONS: "Link architecture decisions to their driving requirements",
    IntegrityIssueType.STALE_ALIGNMENTS: "Refresh validation of older alignments",
}


def overall_severity(severities: list[Severity]) -> Severity:
    """Highest severity present, LOW when there is none."""
    return max(severities, key=SEVERITY_RANK.__getitem__, default=Severity.LOW)


def health_from_issues(issues: list[IntegrityIssue]) -> HealthStatus:
    if not issues:
        return HealthStatus.HEALTHY
    if any(i.severity == Severity.HIGH for i in issues):
        return HealthStatus.CRITICAL
    if any(i.severity == Severity.MEDIUM for i in issues):
        return HealthStatus.WARNING
    return HealthStatus.DEGRADED


class IntegrityValidator:
    """Validates and repairs the requirement/architecture mapping graph.

    Validation principles:
    - Results are return values; unhealthy graphs never raise
    - Each sweep check contributes at most one aggregate issue
    - Dry runs never write
    """

    def __init__(
        self,
        store: GraphStore,
        scorer: Optional[AlignmentScorer] = None,
        recommender: Optional[RecommendationEngine] = None,
        mappings: Optional[MappingManager] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.settings = self.config.integrity
        self.thresholds = self.config.thresholds
        self.scorer = scorer or AlignmentScorer(self.config)
        self.recommender = recommender or RecommendationEngine(store, self.config)
        self.mappings = mappings or MappingManager(store)

    def validate_mapping_consistency(self, mapping_id: str) -> MappingConsistencyResult:
        """Check one mapping's references, alignment and confidence.

        Raises:
            NotFoundError: If the mapping does not exist
        """
        mapping = self.store.require_mapping(mapping_id)
        issues: list[ConsistencyIssue] = []
        recommendations: list[str] = []
        minimum = self.thresholds.minimum

        requirement = self.store.get_requirement(mapping.requirement_id)
        if requirement is None:
            issues.append(ConsistencyIssue(
                type=ConsistencyIssueType.MISSING_REQUIREMENT,
                description="Referenced requirement does not exist",
                severity=Severity.HIGH,
                affected_component="requirement",
            ))

        if mapping.architecture_decision_id:
            decision = self.store.get_decision(mapping.architecture_decision_id)
            if decision is None:
                issues.append(ConsistencyIssue(
                    type=ConsistencyIssueType.MISSING_ARCHITECTURE_DECISION,
                    description="Referenced architecture decision does not exist",
                    severity=Severity.HIGH,
                    affected_component="architectureDecision",
                ))
            elif requirement is not None:
                score = self.scorer.score(requirement, decision).alignment_score
                if score < minimum:
                    issues.append(ConsistencyIssue(
                        type=ConsistencyIssueType.POOR_ALIGNMENT,
                        description=f"Alignment score {score:.2f} below threshold {minimum}",
                        severity=Severity.MEDIUM,
                        affected_component="alignment",
                    ))
                    recommendations.append("Review and improve requirement-architecture alignment")

        if mapping.architecture_pattern_id and self.store.get_pattern(mapping.architecture_pattern_id) is None:
            issues.append(ConsistencyIssue(
                type=ConsistencyIssueType.MISSING_PATTERN,
                description="Referenced architecture pattern does not exist",
                severity=Severity.MEDIUM,
                affected_component="pattern",
            ))

        if mapping.technology_stack_id and self.store.get_technology_stack(mapping.technology_stack_id) is None:
            issues.append(ConsistencyIssue(
                type=ConsistencyIssueType.MISSING_TECHNOLOGY_STACK,
                description="Referenced technology stack does not exist",
                severity=Severity.MEDIUM,
                affected_component="technologyStack",
            ))

        if mapping.confidence < minimum:
            issues.append(ConsistencyIssue(
                type=ConsistencyIssueType.LOW_CONFIDENCE,
                description=f"Mapping confidence {mapping.confidence} below threshold",
                severity=Severity.LOW,
                affected_component="confidence",
            ))
            recommendations.append("Review and validate mapping to improve confidence")

        return MappingConsistencyResult(
            mapping_id=mapping_id,
            is_consistent=not issues,
            overall_severity=overall_severity([i.severity for i in issues]),
            issues=issues,
            recommendations=recommendations,
        )

    def require_consistent(self, mapping_id: str) -> MappingConsistencyResult:
        """Validate a mapping and raise if it has HIGH severity issues.

        Raises:
            NotFoundError: If the mapping does not exist
            IntegrityViolationError: If any HIGH severity issue was found
        """
        result = self.validate_mapping_consistency(mapping_id)
        high = [i for i in result.issues if i.severity == Severity.HIGH]
        if high:
            raise IntegrityViolationError(mapping_id, high)
        return result

    def validate_cross_module_integrity(self, project_id: Optional[str] = None) -> IntegrityValidationResult:
        """Sweep the mapping graph, optionally scoped to one project."""
        logger.info("Starting cross-module integrity validation (project=%s)", project_id or "all")
        issues = []

        orphaned = [m.id for m in self.store.find_orphaned_mappings(project_id)]
        if orphaned:
            issues.append(IntegrityIssue(
                type=IntegrityIssueType.ORPHANED_MAPPINGS,
                count=len(orphaned),
                description=f"{len(orphaned)} mappings reference non-existent components",
                severity=Severity.HIGH,
                affected_items=orphaned,
            ))

        unmapped_requirements = [
            r.id for r in self.store.find_unmapped_requirements(COMMITTED_REQUIREMENT_STATUSES, project_id)
        ]
        if unmapped_requirements:
            issues.append(IntegrityIssue(
                type=IntegrityIssueType.UNMAPPED_REQUIREMENTS,
                count=len(unmapped_requirements),
                description=f"{len(unmapped_requirements)} approved requirements without architecture mappings",
                severity=Severity.MEDIUM,
                affected_items=unmapped_requirements,
            ))

        unmapped_decisions = [
            d.id for d in self.store.find_unmapped_decisions(COMMITTED_DECISION_STATUSES, project_id)
        ]
        if unmapped_decisions:
            issues.append(IntegrityIssue(
                type=IntegrityIssueType.UNMAPPED_ARCHITECTURE_DECISIONS,
                count=len(unmapped_decisions),
                description=f"{len(unmapped_decisions)} architecture decisions without requirement mappings",
                severity=Severity.MEDIUM,
                affected_items=unmapped_decisions,
            ))

        days = self.settings.stale_after_days
        stale = [a.id for a in self.store.find_stale_alignments(utc_now() - timedelta(days=days), project_id)]
        if stale:
            issues.append(IntegrityIssue(
                type=IntegrityIssueType.STALE_ALIGNMENTS,
                count=len(stale),
                description=f"{len(stale)} alignments not validated in the last {days} days",
                severity=Severity.LOW,
                affected_items=stale,
            ))

        result = IntegrityValidationResult(
            project_id=project_id,
            overall_health=health_from_issues(issues),
            total_issues=len(issues),
            issues=issues,
            recommendations=[INTEGRITY_RECOMMENDATIONS[i.type] for i in issues],
            total_mappings=len(self.store.list_mappings(project_id)),
            total_alignments=len(self.store.list_alignments(project_id)),
        )
        logger.info("Integrity validation finished: %s, %d issue(s)", result.overall_health.value, len(issues))
        return result

    def auto_correct_integrity_issues(
        self,
        dry_run: bool = True,
        project_id: Optional[str] = None,
    ) -> AutoCorrectionResult:
        """Delete orphaned mappings and auto-map uncovered approved requirements.

        Args:
            dry_run: Plan corrections without writing anything
            project_id: Restrict to one project

        Returns:
            AutoCorrectionResult listing every planned correction
        """
        corrections: list[CorrectionAction] = []
        errors: list[str] = []

        for mapping in self.store.find_orphaned_mappings(project_id):
            action = CorrectionAction(
                type=CorrectionType.DELETE_ORPHANED_MAPPING,
                description=f"Delete orphaned mapping {mapping.id}",
                severity=Severity.HIGH,
                parameters={"mapping_id": mapping.id},
            )
            if not dry_run:
                try:
                    # Already-deleted mappings count as corrected
                    self.store.delete_mapping(mapping.id)
                    action.applied = True
                except Exception as e:
                    logger.warning("Deleting orphaned mapping %s failed: %s", mapping.id, e)
                    errors.append(f"Mapping {mapping.id}: {e}")
            corrections.append(action)

        threshold = self.settings.auto_mapping_confidence
        for requirement in self.store.find_unmapped_requirements(COMMITTED_REQUIREMENT_STATUSES, project_id):
            try:
                recommendation = self.recommender.recommend([requirement])
            except Exception as e:
                logger.warning("Auto-mapping analysis failed for requirement %s: %s", requirement.id, e)
                errors.append(f"Requirement {requirement.id}: {e}")
                continue

            if not recommendation.patterns:
                continue
            top = recommendation.patterns[0]
            if top.applicability_score < threshold:
                continue

            action = CorrectionAction(
                type=CorrectionType.CREATE_AUTO_MAPPING,
                description=f"Create automatic mapping between {requirement.id} and {top.pattern.id}",
                severity=Severity.MEDIUM,
                parameters={
                    "requirement_id": requirement.id,
                    "architecture_pattern_id": top.pattern.id,
                    "confidence": top.applicability_score,
                },
            )
            if not dry_run and not self.store.list_requirement_mappings(requirement.id):
                try:
                    self.mappings.create_mapping(
                        requirement.id,
                        architecture_pattern_id=top.pattern.id,
                        mapping_type=MappingType.DERIVED,
                        confidence=top.applicability_score,
                        rationale=f"Auto-mapped to top recommended pattern {top.pattern.name}",
                        created_by="auto-correction",
                    )
                    action.applied = True
                except Exception as e:
                    logger.warning("Auto-mapping failed for requirement %s: %s", requirement.id, e)
                    errors.append(f"Requirement {requirement.id}: {e}")
            corrections.append(action)

        applied = sum(1 for c in corrections if c.applied)
        logger.info(
            "Auto-correction %s: %d correction(s), %d applied",
            "dry run" if dry_run else "run", len(corrections), applied,
        )
        return AutoCorrectionResult(
            dry_run=dry_run,
            total_corrections=len(corrections),
            applied_corrections=applied,
            corrections=corrections,
            errors=errors,
        )
