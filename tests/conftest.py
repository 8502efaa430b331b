"""Shared fixtures: an in-memory graph with one project, requirement R1 and decisions."""

import logging

import pytest

from alignment_engine.app_logging import LOGGER_NAMES
from alignment_engine.config import EngineConfig, reset_config
from alignment_engine.engine import IntegrationEngine
from requirements_graph.memory_store import InMemoryGraphStore
from requirements_graph.schema import (
    ArchitectureDecision,
    ArchitecturePattern,
    DecisionStatus,
    PatternType,
    Project,
    QualityAttribute,
    QualityImpact,
    Requirement,
    RequirementStatus,
    RequirementType,
)

PROJECT_ID = "proj_1"

R1_DESCRIPTION = "system must support 10,000 concurrent users with sub-200ms latency"

SCALABLE_DESCRIPTION = (
    "Horizontal autoscaling with stateless services behind a load balancer, "
    "Redis caching and a CDN to keep latency low"
)


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Every test starts from the default configuration and no config file."""
    monkeypatch.delenv("ALIGNMENT_ENGINE_CONFIG", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def restore_loggers():
    """Undo handlers installed by CLI invocations."""
    yield
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if not isinstance(handler, logging.NullHandler):
                logger.removeHandler(handler)
                handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


@pytest.fixture
def config():
    return EngineConfig()


def make_requirement(requirement_id: str = "R1", **overrides) -> Requirement:
    data = {
        "id": requirement_id,
        "project_id": PROJECT_ID,
        "title": "Peak traffic",
        "description": R1_DESCRIPTION,
        "type": RequirementType.NON_FUNCTIONAL,
        "status": RequirementStatus.APPROVED,
    }
    data.update(overrides)
    return Requirement(**data)


def make_decision(decision_id: str = "A1", **overrides) -> ArchitectureDecision:
    data = {
        "id": decision_id,
        "project_id": PROJECT_ID,
        "title": "Relational database",
        "description": "Use PostgreSQL for persistence",
        "status": DecisionStatus.APPROVED,
    }
    data.update(overrides)
    return ArchitectureDecision(**data)


def make_pattern(pattern_id: str, pattern_type: PatternType, **overrides) -> ArchitecturePattern:
    data = {
        "id": pattern_id,
        "name": pattern_id.replace("_", " ").title(),
        "type": pattern_type,
    }
    data.update(overrides)
    return ArchitecturePattern(**data)


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def populated_store(store):
    """Project proj_1 with R1, a poorly supporting decision A1 and a scaling decision A2."""
    store.save_project(Project(id=PROJECT_ID, name="Checkout"))
    store.save_requirement(make_requirement())
    store.save_decision(make_decision())
    store.save_decision(make_decision(
        "A2", title="Scale-out web tier", description=SCALABLE_DESCRIPTION,
    ))
    return store


@pytest.fixture
def engine(populated_store, config):
    engine = IntegrationEngine(populated_store, config=config)
    yield engine
    engine.close()


@pytest.fixture
def strong_microservices_pattern():
    """A pattern whose conditions all appear in R1, scoring above the auto-mapping threshold."""
    return make_pattern(
        "pattern_ms", PatternType.MICROSERVICES,
        name="Microservices",
        applicability_conditions=["concurrent", "latency", "users"],
        quality_attributes=[
            QualityAttribute(name="scalability", impact=QualityImpact.POSITIVE, description="Independent scaling"),
        ],
    )
