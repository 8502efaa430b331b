"""Tests for keyword-based requirement analysis."""

import math

import pytest

from requirements_graph.analysis import EMBEDDING_DIMENSIONS, MAX_TEXT_LENGTH, KeywordRequirementAnalyzer
from requirements_graph.exceptions import InputValidationError
from requirements_graph.schema import Priority, RequirementType


@pytest.fixture
def analyzer():
    return KeywordRequirementAnalyzer()


class TestClassification:
    """Type and priority keyword families."""

    @pytest.mark.parametrize("text,expected", [
        ("As a shopper I want to save my cart so that I can buy later", RequirementType.USER_STORY),
        ("The system must keep latency under 200ms", RequirementType.NON_FUNCTIONAL),
        ("Store card data according to PCI-DSS", RequirementType.COMPLIANCE),
        ("Given a paid order, acceptance criteria: an invoice is emailed", RequirementType.ACCEPTANCE_CRITERIA),
        ("Discounts apply only if the cart exceeds 50 EUR", RequirementType.BUSINESS_RULE),
        ("Export invoices nightly", RequirementType.FUNCTIONAL),
    ])
    def test_type(self, analyzer, text, expected):
        assert analyzer.analyze(text).type == expected

    @pytest.mark.parametrize("text,expected", [
        ("Critical: payments must never be lost", Priority.CRITICAL),
        ("Invoices must be emailed", Priority.HIGH),
        ("Users could export their history", Priority.LOW),
        ("Export invoices nightly", Priority.MEDIUM),
    ])
    def test_priority(self, analyzer, text, expected):
        assert analyzer.analyze(text).priority == expected


class TestScores:
    """Completeness and quality heuristics."""

    def test_complete_requirement(self, analyzer):
        analysis = analyzer.analyze("The system must keep latency under 200ms for 5,000 concurrent users")
        assert analysis.completeness_score == 1.0
        assert analysis.quality_score == 1.0
        assert analysis.suggestions == []

    def test_missing_measurement(self, analyzer):
        analysis = analyzer.analyze("The service must export every report as a PDF file for managers")
        assert analysis.completeness_score == 0.75
        assert analysis.suggestions == ["Add a measurable acceptance criterion"]

    def test_ambiguous_terms_lower_quality(self, analyzer):
        analysis = analyzer.analyze("The application should be fast and user-friendly")
        assert analysis.quality_score == pytest.approx(0.7)


class TestExtraction:
    """Titles, keywords, entities and embeddings."""

    def test_suggested_title(self, analyzer):
        assert analyzer.analyze("export invoices nightly. Then archive them").suggested_title == "Export invoices nightly"

    def test_keywords_skip_stop_words(self, analyzer):
        assert analyzer.extract_keywords("the cart and the cart checkout") == ["cart", "checkout"]

    def test_entities(self, analyzer):
        entities = analyzer.extract_entities("Deploy to Azure with responses within 200ms")
        assert "200ms" in entities
        assert "Azure" in entities

    def test_embedding_is_deterministic_and_normalized(self, analyzer):
        text = "checkout latency must stay low under load"
        first = analyzer.embed(text)
        assert first == KeywordRequirementAnalyzer().embed(text)
        assert len(first) == EMBEDDING_DIMENSIONS
        assert math.sqrt(sum(v * v for v in first)) == pytest.approx(1.0)

    def test_stop_words_only_embedding(self, analyzer):
        assert analyzer.embed("the and or") == [0.0] * EMBEDDING_DIMENSIONS


class TestValidation:
    """Input limits."""

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_text(self, analyzer, text):
        with pytest.raises(InputValidationError):
            analyzer.analyze(text)

    def test_text_too_long(self, analyzer):
        with pytest.raises(InputValidationError, match="exceeds"):
            analyzer.analyze("a" * (MAX_TEXT_LENGTH + 1))
