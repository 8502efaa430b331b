"""Constraint extraction and quality-attribute mapping.

Constraint extractors are registered per requirement type; the universal
performance/security scan runs for every requirement regardless of type.
"""

import re
from typing import Callable, Optional

from requirements_graph.schema import Requirement, RequirementType

from .characteristics import mentions
from .config import EngineConfig, RecommendationConfig, get_config
from .schema import ArchitecturalConstraint, ConstraintType, Level, QualityAttributeMapping

ConstraintExtractorFunction = Callable[[Requirement, RecommendationConfig], list[ArchitecturalConstraint]]

CONSTRAINT_EXTRACTORS: dict[RequirementType, ConstraintExtractorFunction] = {}

_LATENCY = re.compile(r"(\d[\d,.]*)\s*ms\b")
_PERCENT = re.compile(r"(\d{1,3}(?:\.\d+)?)\s*%")
_CONCURRENT_USERS = re.compile(r"(\d[\d,.]*k?)\s+(?:concurrent|simultaneous)")
_THROUGHPUT = re.compile(r"(\d[\d,.]*k?)\s*(?:requests|transactions|rps|tps)")


def register_extractor(requirement_type: RequirementType):
    """Register a constraint extractor for a requirement type."""
    def decorator(func: ConstraintExtractorFunction) -> ConstraintExtractorFunction:
        CONSTRAINT_EXTRACTORS[requirement_type] = func
        return func
    return decorator


@register_extractor(RequirementType.NON_FUNCTIONAL)
def extract_non_functional_constraints(requirement: Requirement, settings: RecommendationConfig):
    text = requirement.text
    constraints = []

    latency = _LATENCY.search(text)
    if latency:
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.PERFORMANCE,
            description=f"Response time must not exceed {latency.group(1)}ms",
            impact=Level.HIGH,
            mandatory=True,
            validation_criteria=["Load testing", "Latency percentile monitoring"],
        ))

    availability = _PERCENT.search(text)
    if availability and mentions(text, ["availab", "uptime", "sla"]):
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.OPERATIONAL,
            description=f"Availability of at least {availability.group(1)}%",
            impact=Level.HIGH,
            mandatory=True,
            validation_criteria=["Uptime monitoring", "Failover testing"],
        ))

    users = _CONCURRENT_USERS.search(text)
    if users:
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.SCALABILITY,
            description=f"Support {users.group(1)} concurrent users",
            impact=Level.HIGH,
            mandatory=True,
            validation_criteria=["Load testing", "Capacity planning"],
        ))
    elif mentions(text, settings.scalability_keywords):
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.SCALABILITY,
            description="System must scale with demand",
            impact=Level.MEDIUM,
            mandatory=False,
            validation_criteria=["Load testing"],
        ))
    return constraints


@register_extractor(RequirementType.COMPLIANCE)
def extract_compliance_constraints(requirement: Requirement, settings: RecommendationConfig):
    text = requirement.text
    frameworks = []
    for framework in settings.compliance_frameworks:
        if re.search(rf"\b{re.escape(framework.lower())}\b", text):
            # PCI is covered by PCI-DSS when both match
            if not any(framework in found for found in frameworks):
                frameworks.append(framework)

    if not frameworks:
        return [ArchitecturalConstraint(
            type=ConstraintType.COMPLIANCE,
            description="Regulatory requirements must be satisfied",
            impact=Level.HIGH,
            mandatory=True,
            validation_criteria=["Compliance audit"],
        )]
    return [
        ArchitecturalConstraint(
            type=ConstraintType.COMPLIANCE,
            description=f"Must comply with {framework}",
            impact=Level.HIGH,
            mandatory=True,
            validation_criteria=["Compliance audit", "Control mapping review"],
        )
        for framework in frameworks
    ]


@register_extractor(RequirementType.BUSINESS_RULE)
def extract_business_rule_constraints(requirement: Requirement, settings: RecommendationConfig):
    text = requirement.text
    constraints = []
    if mentions(text, ["budget", "cost", "spend", "licens"]):
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.BUDGET,
            description="Solution must stay within the approved budget",
            impact=Level.MEDIUM,
            mandatory=True,
            validation_criteria=["Cost review"],
        ))
    if mentions(text, settings.integration_keywords):
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.INTEGRATION,
            description="Must integrate with existing systems",
            impact=Level.MEDIUM,
            mandatory=True,
            validation_criteria=["Integration testing", "Contract testing"],
        ))
    if not constraints:
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.OPERATIONAL,
            description="Business rule must be enforced by the architecture",
            impact=Level.MEDIUM,
            mandatory=True,
            validation_criteria=["Rule verification tests"],
        ))
    return constraints


def extract_keyword_constraints(requirement: Requirement) -> list[ArchitecturalConstraint]:
    """Universal scan applied to every requirement."""
    text = requirement.text
    constraints = []
    if mentions(text, ["performance", "latency", "throughput"]):
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.PERFORMANCE,
            description="Performance requirements must be met",
            impact=Level.HIGH,
            mandatory=True,
            validation_criteria=["Load testing", "Performance benchmarking"],
        ))
    if mentions(text, ["security", "authentication", "authorization"]):
        constraints.append(ArchitecturalConstraint(
            type=ConstraintType.SECURITY,
            description="Security requirements must be implemented",
            impact=Level.HIGH,
            mandatory=True,
            validation_criteria=["Security audit", "Penetration testing"],
        ))
    return constraints


class ConstraintExtractor:
    """Runs the registered extractors and merges duplicates."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.settings = (config or get_config()).recommendation

    def extract(self, requirements: list[Requirement]) -> list[ArchitecturalConstraint]:
        """Extract constraints, deduplicated on (type, description).

        Duplicates keep the first occurrence and collect every source requirement.
        """
        merged: dict[tuple[ConstraintType, str], ArchitecturalConstraint] = {}
        for requirement in requirements:
            found = []
            extractor = CONSTRAINT_EXTRACTORS.get(requirement.type)
            if extractor is not None:
                found.extend(extractor(requirement, self.settings))
            found.extend(extract_keyword_constraints(requirement))

            for constraint in found:
                key = (constraint.type, constraint.description)
                if key not in merged:
                    merged[key] = constraint
                if requirement.id not in merged[key].source_requirement_ids:
                    merged[key].source_requirement_ids.append(requirement.id)
        return list(merged.values())


# attribute -> (measurement criteria, architectural implication, verification method)
ATTRIBUTE_PROFILES = {
    "performance": (
        "Response time percentiles and throughput under expected load",
        "Caching, asynchronous processing and horizontal scaling of hot paths",
        "Load and stress testing against the target values",
    ),
    "security": (
        "Vulnerability counts, authentication coverage and encryption in transit/at rest",
        "Defense in depth with centralized identity and secrets management",
        "Security audit and penetration testing",
    ),
    "reliability": (
        "Availability percentage, mean time to recovery and error rate",
        "Redundancy, health checks and automated failover",
        "Chaos and failover testing",
    ),
    "maintainability": (
        "Change lead time, test coverage and module coupling",
        "Clear module boundaries with automated tests and documentation",
        "Code review and static analysis",
    ),
    "usability": (
        "Task completion rate, accessibility conformance and user satisfaction",
        "Consistent UI layer with accessibility and localization support",
        "Usability testing and accessibility audit",
    ),
}


class QualityAttributeMapper:
    """Maps requirements onto the configured quality-attribute dictionary."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.attributes = (config or get_config()).recommendation.quality_attributes

    def identify(self, requirement: Requirement) -> list[str]:
        text = requirement.text
        return [
            attribute for attribute, keywords in self.attributes.items()
            if mentions(text, [attribute] + list(keywords))
        ]

    def map(self, requirements: list[Requirement]) -> list[QualityAttributeMapping]:
        mappings = []
        for requirement in requirements:
            for attribute in self.identify(requirement):
                measurement, implication, verification = ATTRIBUTE_PROFILES.get(attribute, (
                    f"Stakeholder-agreed {attribute} metrics",
                    f"Architecture must explicitly address {attribute}",
                    "Review against acceptance criteria",
                ))
                mappings.append(QualityAttributeMapping(
                    requirement_id=requirement.id,
                    quality_attribute=attribute,
                    target_value=self.extract_target_value(requirement, attribute),
                    measurement_criteria=measurement,
                    architectural_implication=implication,
                    verification_method=verification,
                ))
        return mappings

    def extract_target_value(self, requirement: Requirement, attribute: str) -> str:
        """Pull a measurable target from the text, if the requirement states one."""
        text = requirement.text
        if attribute == "performance":
            targets = []
            latency = _LATENCY.search(text)
            if latency:
                targets.append(f"<= {latency.group(1)}ms")
            users = _CONCURRENT_USERS.search(text)
            if users:
                targets.append(f"{users.group(1)} concurrent users")
            throughput = _THROUGHPUT.search(text)
            if throughput:
                targets.append(f"{throughput.group(1)} requests")
            if targets:
                return ", ".join(targets)
        elif attribute == "reliability":
            percent = _PERCENT.search(text)
            if percent:
                return f">= {percent.group(1)}% availability"
        return "To be defined"
