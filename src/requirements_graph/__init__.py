"""Requirement and architecture graph: domain models, exceptions and stores."""

from .exceptions import (
    AlignmentGraphError,
    GraphTimeoutError,
    InputValidationError,
    IntegrityViolationError,
    NotFoundError,
    PartialFailureError,
    RecommendationFailedError,
)
from .memory_store import InMemoryGraphStore
from .store import GraphStore

__all__ = [
    'AlignmentGraphError',
    'GraphTimeoutError',
    'InputValidationError',
    'IntegrityViolationError',
    'NotFoundError',
    'PartialFailureError',
    'RecommendationFailedError',
    'GraphStore',
    'InMemoryGraphStore',
]
