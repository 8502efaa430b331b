"""Validation rule registry.

Each rule is a pure function ``(requirement, decision, settings) -> float`` in
[0, 1], registered under the name the configuration refers to. A rule first
checks whether the requirement raises its concern at all; if it does, the
score grows with the supporting evidence found in the decision text.
"""

import re
from typing import Callable

from requirements_graph.schema import ArchitectureDecision, Requirement

from .config import ValidationRulesConfig

RuleFunction = Callable[[Requirement, ArchitectureDecision, ValidationRulesConfig], float]

RULE_REGISTRY: dict[str, RuleFunction] = {}


def register_rule(name: str) -> Callable[[RuleFunction], RuleFunction]:
    """Register a rule function under ``name``."""
    def decorator(func: RuleFunction) -> RuleFunction:
        RULE_REGISTRY[name] = func
        return func
    return decorator


def resolve_rule(name: str) -> RuleFunction:
    """Look up a registered rule.

    Raises:
        ValueError: If no rule is registered under ``name``
    """
    try:
        return RULE_REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"Unknown validation rule '{name}'. Registered: {sorted(RULE_REGISTRY)}"
        ) from None


# Keyword families ------------------------------------------------------------

PERFORMANCE_DEMAND = ["performance", "latency", "response time", "throughput", "speed", r"\d+\s*ms\b"]
PERFORMANCE_SUPPORT = [
    "cache", "caching", r"\bcdn\b", "index", "async", "in-memory", "latency", "performance",
    "throughput", "optimiz", "connection pool", "read replica", "load balanc",
]

SCALABILITY_DEMAND = ["scale", "scalab", "concurrent", "users", "load", "traffic", "growth", "elastic"]
SCALABILITY_SUPPORT = [
    "horizontal", "autoscal", "auto-scal", "scale out", "scale-out", "stateless", "shard",
    "partition", "load balanc", "cluster", "replica", "elastic", "queue",
]

INTERFACE_DEMAND = [r"\bapis?\b", "interface", "integrat", "endpoint", "protocol", r"\brest(ful)?\b", "graphql", "grpc", "webhook"]
INTERFACE_SUPPORT = [
    r"\bapis?\b", r"\brest(ful)?\b", "graphql", "grpc", "contract", "openapi", "endpoint", "gateway",
    "adapter", "versioning", "webhook", "schema",
]

REGULATORY_DEMAND = [
    "complian", "regulat", "audit", "retention", "privacy", "gdpr", "hipaa", "pci", "sox", "ccpa",
]
REGULATORY_SUPPORT = [
    "audit", "retention", "consent", "gdpr", "hipaa", "pci", "sox", "data residency",
    "anonymi", "pseudonymi", "complian", "policy", "immutable log",
]

SECURITY_DEMAND = ["secur", "encrypt", "authenticat", "authoriz", "access control", "privacy", "confidential"]
SECURITY_SUPPORT = [
    "encrypt", r"\btls\b", "oauth", "rbac", "authenticat", "authoriz", r"\bmfa\b", "key vault",
    "secret", "firewall", r"\bwaf\b", "zero trust", r"\biam\b", "hash",
]

_TERM = re.compile(r"[a-z][a-z0-9\-]{3,}")
_STOP_TERMS = {
    "must", "shall", "should", "will", "system", "with", "that", "this", "from", "have",
    "support", "able", "when", "into", "each", "their", "there", "which", "where",
}


def _hits(text: str, keywords: list[str]) -> int:
    return sum(1 for keyword in keywords if re.search(keyword, text))


def evidence_score(
    requirement_text: str,
    decision_text: str,
    demand: list[str],
    support: list[str],
    settings: ValidationRulesConfig,
) -> float:
    """Score a concern: neutral if not raised, low without support, rising with evidence."""
    if not _hits(requirement_text, demand):
        return settings.neutral_score
    support_hits = _hits(decision_text, support)
    if not support_hits:
        return settings.unsupported_score
    return min(1.0, settings.evidence_base + settings.evidence_step * support_hits)


def significant_terms(text: str) -> set[str]:
    return {term for term in _TERM.findall(text) if term not in _STOP_TERMS}


# Rules -----------------------------------------------------------------------

@register_rule("Performance Alignment")
def performance_alignment(requirement, decision, settings) -> float:
    return evidence_score(requirement.text, decision.text, PERFORMANCE_DEMAND, PERFORMANCE_SUPPORT, settings)


@register_rule("Scalability Alignment")
def scalability_alignment(requirement, decision, settings) -> float:
    return evidence_score(requirement.text, decision.text, SCALABILITY_DEMAND, SCALABILITY_SUPPORT, settings)


@register_rule("Feature Support")
def feature_support(requirement, decision, settings) -> float:
    """Share of the requirement's terms the decision covers, plus a bonus if it addresses it by id."""
    terms = significant_terms(requirement.text)
    addressed = requirement.id in decision.requirement_ids
    if not terms:
        return 1.0 if addressed else settings.neutral_score
    overlap = len(terms & significant_terms(decision.text)) / len(terms)
    score = settings.unsupported_score + (1.0 - settings.unsupported_score) * overlap
    if addressed:
        score += 0.3
    return min(1.0, score)


@register_rule("Interface Compatibility")
def interface_compatibility(requirement, decision, settings) -> float:
    return evidence_score(requirement.text, decision.text, INTERFACE_DEMAND, INTERFACE_SUPPORT, settings)


@register_rule("Regulatory Compliance")
def regulatory_compliance(requirement, decision, settings) -> float:
    return evidence_score(requirement.text, decision.text, REGULATORY_DEMAND, REGULATORY_SUPPORT, settings)


@register_rule("Security Standards")
def security_standards(requirement, decision, settings) -> float:
    return evidence_score(requirement.text, decision.text, SECURITY_DEMAND, SECURITY_SUPPORT, settings)
