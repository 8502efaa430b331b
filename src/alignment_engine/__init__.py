"""Requirement/architecture alignment scoring and recommendation engine."""

from .config import EngineConfig, get_config, load_config, reset_config
from .engine import IntegrationEngine
from .recommender import RecommendationEngine
from .scorer import AlignmentScorer

__all__ = [
    'EngineConfig',
    'get_config',
    'load_config',
    'reset_config',
    'IntegrationEngine',
    'RecommendationEngine',
    'AlignmentScorer',
]
