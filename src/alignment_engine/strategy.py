"""Implementation strategy and alternative approaches.

Last two stages of the Recommendation Engine: pick a rollout approach for
the recommended architecture and propose alternatives worth comparing.
"""

import math
from typing import Optional

from requirements_graph.schema import PatternType, Priority, Requirement, RequirementType

from .characteristics import has_high_scalability_signal
from .config import EngineConfig, get_config
from .schema import (
    AlternativeApproach,
    ImplementationPhase,
    ImplementationStrategy,
    Level,
    LearningCurveImpact,
    PatternRecommendation,
    StrategyApproach,
    TechnologyRecommendation,
)

HOURS_PER_WEEK = 40

PATTERN_EFFORT_HOURS = {Level.LOW: 16.0, Level.MEDIUM: 40.0, Level.HIGH: 80.0}

CLOUD_NATIVE_PATTERNS = {PatternType.SERVERLESS, PatternType.EVENT_DRIVEN}

CLOUD_NATIVE = AlternativeApproach(
    name="Cloud-Native Architecture",
    description="Leverage cloud services and serverless patterns for scalability and cost optimization",
    patterns=[PatternType.SERVERLESS, PatternType.EVENT_DRIVEN, PatternType.MICROSERVICES],
    technologies=["AWS Lambda", "Azure Functions", "Google Cloud Run"],
    pros=[
        "Reduced operational overhead",
        "Auto-scaling capabilities",
        "Pay-per-use cost model",
        "High availability",
    ],
    cons=[
        "Vendor lock-in risks",
        "Cold start latency",
        "Complexity in debugging",
        "Learning curve for team",
    ],
    suitability_conditions=[
        "Variable workload patterns",
        "Cost optimization priority",
        "Team comfortable with cloud services",
        "Stateless application design",
    ],
)

MODULAR_MONOLITH = AlternativeApproach(
    name="Modular Monolith",
    description="Single deployable unit with clear module boundaries for simpler operations",
    patterns=[PatternType.LAYERED, PatternType.HEXAGONAL],
    technologies=["Spring Boot", "Django", "Express.js"],
    pros=[
        "Simpler deployment and testing",
        "Better performance for small scale",
        "Easier debugging and monitoring",
        "Lower operational complexity",
    ],
    cons=[
        "Scaling limitations",
        "Technology stack lock-in",
        "Potential for tight coupling",
        "Single point of failure",
    ],
    suitability_conditions=[
        "Small to medium team size",
        "Predictable load patterns",
        "Rapid development requirements",
        "Limited operational expertise",
    ],
)


class StrategyPlanner:
    """Selects an implementation approach and proposes alternatives.

    Approach rules, evaluated in order:
    - Few requirements and low complexity: BIG_BANG
    - High complexity or many requirements: PHASED (with phases)
    - No inter-requirement dependencies: PARALLEL
    - Otherwise: INCREMENTAL
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.settings = (config or get_config()).recommendation

    def plan(
        self,
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
        technologies: list[TechnologyRecommendation],
    ) -> ImplementationStrategy:
        complexity = self.assess_complexity(requirements, patterns, technologies)
        dependencies = self.identify_dependencies(requirements)

        if len(requirements) <= self.settings.big_bang_max_requirements and complexity == Level.LOW:
            approach = StrategyApproach.BIG_BANG
        elif complexity == Level.HIGH or len(requirements) > self.settings.phased_min_requirements:
            approach = StrategyApproach.PHASED
        elif not dependencies:
            approach = StrategyApproach.PARALLEL
        else:
            approach = StrategyApproach.INCREMENTAL

        effort = self.estimate_effort(requirements, patterns, technologies)
        phases = self.generate_phases(requirements, patterns) if approach == StrategyApproach.PHASED else []
        return ImplementationStrategy(
            approach=approach,
            complexity=complexity,
            phases=phases,
            dependencies=dependencies,
            risk_mitigations=self.risk_mitigations(complexity, patterns, technologies),
            estimated_effort_hours=effort,
            timeline=self.timeline(approach, effort, phases),
        )

    def assess_complexity(
        self,
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
        technologies: list[TechnologyRecommendation],
    ) -> Level:
        points = 0
        if patterns and patterns[0].implementation_complexity == Level.HIGH:
            points += 1
        if technologies and technologies[0].learning_curve_impact == LearningCurveImpact.SIGNIFICANT:
            points += 1
        if len(requirements) > self.settings.modular_monolith_max_requirements:
            points += 1
        if any(r.type == RequirementType.COMPLIANCE for r in requirements):
            points += 1

        if points >= 3:
            return Level.HIGH
        if points >= 1:
            return Level.MEDIUM
        return Level.LOW

    def identify_dependencies(self, requirements: list[Requirement]) -> list[str]:
        """Dependencies between requirements of this set, as readable strings."""
        ids = {r.id for r in requirements}
        return [
            f"{requirement.id} depends on {dependency}"
            for requirement in requirements
            for dependency in requirement.dependencies
            if dependency in ids
        ]

    def generate_phases(
        self,
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
    ) -> list[ImplementationPhase]:
        lead_pattern = patterns[0].pattern.name if patterns else "the target architecture"
        urgent = [r for r in requirements if r.priority in (Priority.CRITICAL, Priority.HIGH)]
        urgent_ids = {r.id for r in urgent}
        quality_types = {RequirementType.NON_FUNCTIONAL, RequirementType.COMPLIANCE}
        quality = [r for r in requirements if r.id not in urgent_ids and r.type in quality_types]
        core = [r for r in requirements if r.id not in urgent_ids and r.type not in quality_types]

        candidates = [
            ("Foundation", f"Establish {lead_pattern} foundations and deliver critical requirements",
             urgent, [f"Core infrastructure for {lead_pattern}", "Deployment pipeline", "Critical capabilities"]),
            ("Core Capabilities", "Deliver the remaining functional and business requirements",
             core, ["Functional modules", "Integration points"]),
            ("Quality and Compliance", "Harden non-functional and compliance requirements",
             quality, ["Performance and security hardening", "Compliance evidence"]),
        ]
        phases = []
        for name, description, members, deliverables in candidates:
            if not members:
                continue
            hours = sum(self._requirement_hours(r) for r in members)
            phases.append(ImplementationPhase(
                name=name,
                description=description,
                requirement_ids=[r.id for r in members],
                duration_weeks=max(1, math.ceil(hours / HOURS_PER_WEEK)),
                deliverables=deliverables,
            ))
        return phases

    def risk_mitigations(
        self,
        complexity: Level,
        patterns: list[PatternRecommendation],
        technologies: list[TechnologyRecommendation],
    ) -> list[str]:
        mitigations = ["Establish automated regression testing before rollout"]
        if complexity == Level.HIGH:
            mitigations.append("Run architecture spikes before committing to the full rollout")
        for recommendation in patterns[:1]:
            for risk in recommendation.risks:
                mitigations.append(f"Plan mitigation for: {risk}")
        for recommendation in technologies[:1]:
            if recommendation.learning_curve_impact == LearningCurveImpact.SIGNIFICANT:
                mitigations.append(f"Schedule training for {recommendation.stack.name}")
            for risk in recommendation.risk_factors:
                mitigations.append(f"Address technology risk: {risk}")
        return mitigations

    def _requirement_hours(self, requirement: Requirement) -> float:
        return self.settings.hours_per_priority.get(requirement.priority.value, 16.0)

    def estimate_effort(
        self,
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
        technologies: list[TechnologyRecommendation],
    ) -> float:
        """Hours: per-requirement effort plus adoption of the lead pattern and stack."""
        hours = sum(self._requirement_hours(r) for r in requirements)
        if patterns:
            hours += PATTERN_EFFORT_HOURS[patterns[0].implementation_complexity]
        if technologies:
            hours += technologies[0].implementation_effort
        return hours

    def timeline(self, approach: StrategyApproach, effort: float, phases: list[ImplementationPhase]) -> str:
        if phases:
            weeks = sum(p.duration_weeks for p in phases)
            return f"{len(phases)} phases over approximately {weeks} weeks"
        weeks = max(1, math.ceil(effort / HOURS_PER_WEEK))
        if approach == StrategyApproach.PARALLEL:
            return f"Parallel workstreams over approximately {weeks} weeks of effort"
        if approach == StrategyApproach.BIG_BANG:
            return f"Single release after approximately {weeks} weeks"
        return f"Incremental releases over approximately {weeks} weeks"

    def alternatives(
        self,
        requirements: list[Requirement],
        patterns: list[PatternRecommendation],
    ) -> list[AlternativeApproach]:
        alternatives = []
        if not any(r.pattern.type in CLOUD_NATIVE_PATTERNS for r in patterns):
            alternatives.append(CLOUD_NATIVE.model_copy(deep=True))
        if (len(requirements) <= self.settings.modular_monolith_max_requirements
                and not has_high_scalability_signal(requirements, self.settings)):
            alternatives.append(MODULAR_MONOLITH.model_copy(deep=True))
        return alternatives
