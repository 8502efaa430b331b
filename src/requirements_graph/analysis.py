"""Keyword-based requirement analysis.

Classifies free text into a requirement type and priority, extracts keywords
and entities, and produces a deterministic hashed bag-of-words embedding along
with completeness and quality scores.
"""

import hashlib
import math
import re
from collections import Counter

from pydantic import BaseModel, Field

from .exceptions import InputValidationError
from .schema import Priority, RequirementType

MAX_TEXT_LENGTH = 50_000
EMBEDDING_DIMENSIONS = 64

# Checked in order; first family with a hit wins.
TYPE_KEYWORDS: list[tuple[RequirementType, list[str]]] = [
    (RequirementType.COMPLIANCE, ["gdpr", "hipaa", "pci", "sox", "compliance", "regulation", "regulatory", "audit"]),
    (RequirementType.ACCEPTANCE_CRITERIA, ["given ", "acceptance criteria"]),
    (RequirementType.USER_STORY, ["as a ", "as an ", "so that", "i want"]),
    (RequirementType.NON_FUNCTIONAL, [
        "performance", "latency", "throughput", "scalab", "concurrent", "availability",
        "uptime", "response time", "secure", "security", "reliab", "maintainab",
    ]),
    (RequirementType.BUSINESS_RULE, ["policy", "rule", "only if", "must not", "not allowed"]),
    (RequirementType.BUSINESS, ["revenue", "market", "stakeholder", "business", "profit", "customer retention"]),
]

PRIORITY_KEYWORDS: list[tuple[Priority, list[str]]] = [
    (Priority.CRITICAL, ["critical", "urgent", "mandatory", "immediately"]),
    (Priority.HIGH, ["must", "shall", "required", "important"]),
    (Priority.LOW, ["could", "nice to have", "optional", "eventually"]),
]

AMBIGUOUS_TERMS = ["fast", "easy", "user-friendly", "etc", "some", "several", "appropriate", "flexible"]

STOP_WORDS = {
    "the", "a", "an", "and", "or", "to", "of", "in", "on", "for", "with", "be", "is", "are",
    "must", "shall", "should", "will", "can", "that", "this", "it", "as", "by", "at", "from",
    "all", "any", "so", "we", "i", "want", "system",
}

_WORD = re.compile(r"[a-z][a-z0-9\-]+")
_MEASUREMENT = re.compile(r"\d[\d,.]*\s*(?:ms|s|seconds?|minutes?|%|users|requests|rps|gb|mb|tb)?", re.I)
_PROPER_NOUN = re.compile(r"\b[A-Z][a-zA-Z0-9]+(?:\s+[A-Z][a-zA-Z0-9]+)*")


class RequirementAnalysis(BaseModel):
    """Result of analyzing a requirement's free text."""
    type: RequirementType
    priority: Priority
    suggested_title: str
    entities: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    embedding: list[float] = Field(default_factory=list)
    completeness_score: float = Field(ge=0.0, le=1.0)
    quality_score: float = Field(ge=0.0, le=1.0)
    suggestions: list[str] = Field(default_factory=list)


class KeywordRequirementAnalyzer:
    """Analyzes requirement text with keyword-family tables."""

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS, max_length: int = MAX_TEXT_LENGTH):
        self.dimensions = dimensions
        self.max_length = max_length

    def analyze(self, text: str) -> RequirementAnalysis:
        """Analyze requirement text.

        Raises:
            InputValidationError: If the text is empty or longer than the maximum
        """
        if not text or not text.strip():
            raise InputValidationError("Requirement text cannot be empty")
        if len(text) > self.max_length:
            raise InputValidationError(
                f"Requirement text exceeds {self.max_length} characters ({len(text)})"
            )

        lowered = text.lower()
        completeness, suggestions = self._assess_completeness(lowered)
        return RequirementAnalysis(
            type=self.classify_type(lowered),
            priority=self.classify_priority(lowered),
            suggested_title=self.suggest_title(text),
            entities=self.extract_entities(text),
            keywords=self.extract_keywords(lowered),
            embedding=self.embed(lowered),
            completeness_score=completeness,
            quality_score=self._assess_quality(lowered),
            suggestions=suggestions,
        )

    def classify_type(self, text: str) -> RequirementType:
        for requirement_type, keywords in TYPE_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return requirement_type
        return RequirementType.FUNCTIONAL

    def classify_priority(self, text: str) -> Priority:
        for priority, keywords in PRIORITY_KEYWORDS:
            if any(re.search(rf"\b{re.escape(keyword)}\b", text) for keyword in keywords):
                return priority
        return Priority.MEDIUM

    def suggest_title(self, text: str) -> str:
        first_clause = re.split(r"[.;:\n]", text.strip(), maxsplit=1)[0]
        words = first_clause.split()[:8]
        title = " ".join(words)
        return title[:1].upper() + title[1:]

    def extract_keywords(self, text: str, limit: int = 10) -> list[str]:
        words = [w for w in _WORD.findall(text) if w not in STOP_WORDS]
        return [word for word, _ in Counter(words).most_common(limit)]

    def extract_entities(self, text: str) -> list[str]:
        entities = [m.group(0).strip() for m in _MEASUREMENT.finditer(text)]
        entities.extend(m.group(0) for m in _PROPER_NOUN.finditer(text))
        seen = []
        for entity in entities:
            if entity and entity not in seen:
                seen.append(entity)
        return seen

    def embed(self, text: str) -> list[float]:
        """Hashed bag-of-words vector, L2-normalized."""
        vector = [0.0] * self.dimensions
        for word in _WORD.findall(text):
            if word in STOP_WORDS:
                continue
            digest = hashlib.md5(word.encode("utf-8")).digest()
            index = int.from_bytes(digest[:4], "big") % self.dimensions
            vector[index] += 1.0 if digest[4] % 2 == 0 else -1.0
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector] if norm else vector

    def _assess_completeness(self, text: str) -> tuple[float, list[str]]:
        checks = [
            (bool(re.search(r"\b(user|system|admin|customer|service|application)\b", text)),
             "Identify the actor or component responsible"),
            (bool(re.search(r"\b(must|shall|should|will)\b", text)),
             "State the obligation explicitly (must/shall/should)"),
            (bool(re.search(r"\d", text)),
             "Add a measurable acceptance criterion"),
            (len(text.split()) >= 10,
             "Describe the requirement in more detail"),
        ]
        passed = sum(1 for ok, _ in checks if ok)
        suggestions = [hint for ok, hint in checks if not ok]
        return passed / len(checks), suggestions

    def _assess_quality(self, text: str) -> float:
        ambiguous = sum(1 for term in AMBIGUOUS_TERMS if re.search(rf"\b{re.escape(term)}\b", text))
        return max(0.0, 1.0 - 0.15 * ambiguous)
