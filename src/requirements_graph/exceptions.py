"""
Exceptions raised by the requirements graph and the alignment engine.
"""
from typing import Any, Optional


class AlignmentGraphError(Exception):
    """Base exception for the requirements/architecture graph."""
    pass


class NotFoundError(AlignmentGraphError):
    """A referenced entity id does not resolve to a node."""
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        self.message = f"{entity} not found: {entity_id}"
        super().__init__(self.message)


class InputValidationError(AlignmentGraphError):
    """Malformed input such as empty text or an illegal status transition."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class GraphTimeoutError(AlignmentGraphError):
    """A graph query or transaction exceeded its deadline."""
    def __init__(self, message: str, timeout: Optional[float] = None):
        self.message = message
        self.timeout = timeout
        super().__init__(self.message)


class PartialFailureError(AlignmentGraphError):
    """Some items of a batch operation failed while others succeeded."""
    def __init__(self, message: str, failures: Optional[list[Any]] = None):
        self.message = message
        self.failures = failures or []
        super().__init__(self.message)


class IntegrityViolationError(AlignmentGraphError):
    """A graph consistency check failed for a mapping."""
    def __init__(self, mapping_id: str, issues: Optional[list[Any]] = None):
        self.mapping_id = mapping_id
        self.issues = issues or []
        self.message = f"Mapping {mapping_id} failed consistency checks ({len(self.issues)} issue(s))"
        super().__init__(self.message)


class RecommendationFailedError(AlignmentGraphError):
    """Recommendation generation failed; no partial result is available."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)
