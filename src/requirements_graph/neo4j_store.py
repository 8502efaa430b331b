"""Neo4j implementation of the graph repository.

Node properties are camelCase; nested structures (layers, alternatives,
quality attributes...) are stored as JSON strings. Every method issues a
single Cypher statement, so each write is atomic on the server.
"""

import json
import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic.alias_generators import to_camel, to_snake

from .client import GraphClient
from .exceptions import NotFoundError
from .schema import (
    ArchitectureDecision,
    ArchitecturePattern,
    ArchitectureRequirementAlignment,
    DecisionStatus,
    Project,
    Requirement,
    RequirementArchitectureMapping,
    RequirementStatus,
    TechnologyStack,
)
from .store import GraphStore, MappedComponents

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Fields stored as JSON strings because Neo4j properties cannot hold maps.
JSON_FIELDS = {
    "alternatives",
    "tradeoffs",
    "quality_attributes",
    "layers",
    "compatibility",
    "performance_metrics",
    "cost_estimate",
}

_datetime_adapter = TypeAdapter(datetime)


def _iso(value: datetime) -> str:
    return _datetime_adapter.dump_python(value, mode="json")


def to_properties(model: BaseModel) -> dict[str, Any]:
    """Flatten a model into Neo4j-storable camelCase properties."""
    properties = {}
    for key, value in model.model_dump(mode="json").items():
        if key in JSON_FIELDS and value is not None:
            value = json.dumps(value)
        properties[to_camel(key)] = value
    return properties


def from_properties(model_cls: Type[M], properties: dict[str, Any]) -> M:
    """Rebuild a model from node properties written by ``to_properties``."""
    data = {}
    for key, value in properties.items():
        name = to_snake(key)
        if name in JSON_FIELDS and isinstance(value, str):
            value = json.loads(value)
        data[name] = value
    return model_cls.model_validate(data)


# Cypher ---------------------------------------------------------------------

SAVE_PROJECT = """
MERGE (p:Project {id: $id})
SET p += $props
"""

SAVE_REQUIREMENT = """
MERGE (r:Requirement {id: $id})
SET r += $props
WITH r
OPTIONAL MATCH (p:Project {id: $projectId})
FOREACH (_ IN CASE WHEN p IS NULL THEN [] ELSE [1] END | MERGE (p)-[:CONTAINS]->(r))
"""

SAVE_DECISION = """
MERGE (d:ArchitectureDecision {id: $id})
SET d += $props
WITH d
OPTIONAL MATCH (p:Project {id: $projectId})
FOREACH (_ IN CASE WHEN p IS NULL THEN [] ELSE [1] END | MERGE (p)-[:CONTAINS]->(d))
WITH d
CALL {
    WITH d
    UNWIND $requirementIds AS requirementId
    MATCH (r:Requirement {id: requirementId})
    MERGE (d)-[:ADDRESSES]->(r)
}
CALL {
    WITH d
    UNWIND $patternIds AS patternId
    MATCH (pt:ArchitecturePattern {id: patternId})
    MERGE (d)-[:USES_PATTERN]->(pt)
}
"""

DELETE_DECISION = """
MATCH (d:ArchitectureDecision {id: $id})
DETACH DELETE d
RETURN count(*) AS deleted
"""

RECORD_OUTCOME = """
MATCH (n:{label} {{id: $id}})
SET n.successRate = (coalesce(n.successRate, 0.0) * coalesce(n.adoptionCount, 0) + $outcome)
                    / (coalesce(n.adoptionCount, 0) + 1),
    n.adoptionCount = coalesce(n.adoptionCount, 0) + 1
RETURN n {{.*}} AS node
"""

CREATE_MAPPING = """
MATCH (r:Requirement {id: $requirementId})
CREATE (m:RequirementArchitectureMapping)
SET m = $props
CREATE (r)-[:MAPPED_TO]->(m)
WITH m
OPTIONAL MATCH (d:ArchitectureDecision {id: $decisionId})
OPTIONAL MATCH (p:ArchitecturePattern {id: $patternId})
OPTIONAL MATCH (t:TechnologyStack {id: $stackId})
FOREACH (_ IN CASE WHEN d IS NULL THEN [] ELSE [1] END | CREATE (m)-[:MAPS_TO_DECISION]->(d))
FOREACH (_ IN CASE WHEN p IS NULL THEN [] ELSE [1] END | CREATE (m)-[:MAPS_TO_PATTERN]->(p))
FOREACH (_ IN CASE WHEN t IS NULL THEN [] ELSE [1] END | CREATE (m)-[:MAPS_TO_TECHNOLOGY]->(t))
RETURN m {.*} AS node
"""

# Shared WHERE fragment scoping a node that carries requirementId to a project.
IN_PROJECT = """
($projectId IS NULL OR EXISTS {
    MATCH (scope:Requirement {id: n.requirementId}) WHERE scope.projectId = $projectId
})
"""

LIST_MAPPINGS = f"""
MATCH (n:RequirementArchitectureMapping)
WHERE {IN_PROJECT}
RETURN n {{.*}} AS node
ORDER BY n.createdAt, n.id
"""

MARK_MAPPING_VALIDATED = """
MATCH (m:RequirementArchitectureMapping {id: $id})
SET m.validatedAt = $validatedAt, m.validatedBy = $validatedBy
RETURN count(m) AS updated
"""

UPSERT_ALIGNMENT = """
MERGE (a:ArchitectureRequirementAlignment {
    requirementId: $requirementId,
    architectureDecisionId: $architectureDecisionId
})
SET a += $props, a.id = $id
"""

LIST_ALIGNMENTS = f"""
MATCH (n:ArchitectureRequirementAlignment)
WHERE {IN_PROJECT}
RETURN n {{.*}} AS node
ORDER BY n.requirementId, n.architectureDecisionId
"""

FIND_ORPHANED_MAPPINGS = f"""
MATCH (n:RequirementArchitectureMapping)
WHERE (
    NOT EXISTS {{ MATCH (:Requirement {{id: n.requirementId}}) }}
    OR (n.architectureDecisionId IS NOT NULL
        AND NOT EXISTS {{ MATCH (:ArchitectureDecision {{id: n.architectureDecisionId}}) }})
    OR (n.architecturePatternId IS NOT NULL
        AND NOT EXISTS {{ MATCH (:ArchitecturePattern {{id: n.architecturePatternId}}) }})
    OR (n.technologyStackId IS NOT NULL
        AND NOT EXISTS {{ MATCH (:TechnologyStack {{id: n.technologyStackId}}) }})
)
AND {IN_PROJECT}
RETURN n {{.*}} AS node
ORDER BY n.id
"""

FIND_UNMAPPED_REQUIREMENTS = """
MATCH (r:Requirement)
WHERE r.status IN $statuses
  AND ($projectId IS NULL OR r.projectId = $projectId)
  AND NOT EXISTS { (r)-[:MAPPED_TO]->(:RequirementArchitectureMapping) }
RETURN r {.*} AS node
ORDER BY r.id
"""

FIND_UNMAPPED_DECISIONS = """
MATCH (d:ArchitectureDecision)
WHERE d.status IN $statuses
  AND ($projectId IS NULL OR d.projectId = $projectId)
  AND NOT EXISTS {
      MATCH (m:RequirementArchitectureMapping) WHERE m.architectureDecisionId = d.id
  }
RETURN d {.*} AS node
ORDER BY d.id
"""

FIND_STALE_ALIGNMENTS = f"""
MATCH (n:ArchitectureRequirementAlignment)
WHERE datetime(n.lastAssessed) < datetime($before) AND {IN_PROJECT}
RETURN n {{.*}} AS node
ORDER BY datetime(n.lastAssessed)
"""

MAPPED_COMPONENTS = """
MATCH (r:Requirement {id: $id})
OPTIONAL MATCH (r)-[:MAPPED_TO]->(:RequirementArchitectureMapping)-[:MAPS_TO_DECISION]->(d:ArchitectureDecision)
WITH r, collect(DISTINCT d {.*}) AS decisions
OPTIONAL MATCH (r)-[:MAPPED_TO]->(:RequirementArchitectureMapping)-[:MAPS_TO_PATTERN]->(p:ArchitecturePattern)
WITH r, decisions, collect(DISTINCT p {.*}) AS patterns
OPTIONAL MATCH (r)-[:MAPPED_TO]->(:RequirementArchitectureMapping)-[:MAPS_TO_TECHNOLOGY]->(t:TechnologyStack)
RETURN decisions, patterns, collect(DISTINCT t {.*}) AS stacks
"""

DELETE_PROJECT_MAPPINGS = f"""
MATCH (n:RequirementArchitectureMapping)
WHERE {IN_PROJECT}
DETACH DELETE n
RETURN count(*) AS deleted
"""

DELETE_PROJECT_ALIGNMENTS = f"""
MATCH (n:ArchitectureRequirementAlignment)
WHERE {IN_PROJECT}
DETACH DELETE n
RETURN count(*) AS deleted
"""

DELETE_AUTO_COMPONENTS = """
MATCH (n)
WHERE (n:ArchitecturePattern OR n:TechnologyStack)
  AND n.autoGenerated = true
  AND n.generatedForProject = $projectId
DETACH DELETE n
RETURN count(*) AS deleted
"""


class Neo4jGraphStore(GraphStore):
    """Graph repository backed by Neo4j through ``GraphClient``."""

    def __init__(self, client: Optional[GraphClient] = None):
        self.client = client or GraphClient()

    def close(self) -> None:
        self.client.close()

    # --- Generic helpers --------------------------------------------------

    def _get(self, label: str, model_cls: Type[M], entity_id: str) -> Optional[M]:
        records = self.client.execute_query(
            f"MATCH (n:{label} {{id: $id}}) RETURN n {{.*}} AS node", {"id": entity_id}
        )
        return from_properties(model_cls, records[0]["node"]) if records else None

    def _list(self, statement: str, model_cls: Type[M], params: Optional[dict] = None) -> list[M]:
        items = []
        for batch in self.client.execute_streaming_query(statement, params or {}):
            items.extend(from_properties(model_cls, record["node"]) for record in batch)
        return items

    def _count(self, statement: str, params: dict) -> int:
        records = self.client.execute_write(statement, params)
        return records[0]["deleted"] if records else 0

    # --- Projects ---------------------------------------------------------

    def save_project(self, project: Project) -> Project:
        self.client.execute_write(SAVE_PROJECT, {"id": project.id, "props": to_properties(project)})
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._get("Project", Project, project_id)

    def list_projects(self) -> list[Project]:
        return self._list("MATCH (n:Project) RETURN n {.*} AS node ORDER BY n.id", Project)

    # --- Requirements -----------------------------------------------------

    def save_requirement(self, requirement: Requirement) -> Requirement:
        self.client.execute_write(SAVE_REQUIREMENT, {
            "id": requirement.id,
            "projectId": requirement.project_id,
            "props": to_properties(requirement),
        })
        return requirement

    def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        return self._get("Requirement", Requirement, requirement_id)

    def list_requirements(self, project_id: Optional[str] = None) -> list[Requirement]:
        return self._list(
            "MATCH (n:Requirement) WHERE $projectId IS NULL OR n.projectId = $projectId "
            "RETURN n {.*} AS node ORDER BY n.createdAt, n.id",
            Requirement,
            {"projectId": project_id},
        )

    # --- Architecture decisions -------------------------------------------

    def save_decision(self, decision: ArchitectureDecision) -> ArchitectureDecision:
        self.client.execute_write(SAVE_DECISION, {
            "id": decision.id,
            "projectId": decision.project_id,
            "requirementIds": decision.requirement_ids,
            "patternIds": decision.pattern_ids,
            "props": to_properties(decision),
        })
        return decision

    def get_decision(self, decision_id: str) -> Optional[ArchitectureDecision]:
        return self._get("ArchitectureDecision", ArchitectureDecision, decision_id)

    def list_decisions(self, project_id: Optional[str] = None) -> list[ArchitectureDecision]:
        return self._list(
            "MATCH (n:ArchitectureDecision) WHERE $projectId IS NULL OR n.projectId = $projectId "
            "RETURN n {.*} AS node ORDER BY n.createdAt, n.id",
            ArchitectureDecision,
            {"projectId": project_id},
        )

    def delete_decision(self, decision_id: str) -> bool:
        return self._count(DELETE_DECISION, {"id": decision_id}) > 0

    # --- Patterns and stacks ----------------------------------------------

    def save_pattern(self, pattern: ArchitecturePattern) -> ArchitecturePattern:
        self.client.execute_write(
            "MERGE (n:ArchitecturePattern {id: $id}) SET n += $props",
            {"id": pattern.id, "props": to_properties(pattern)},
        )
        return pattern

    def get_pattern(self, pattern_id: str) -> Optional[ArchitecturePattern]:
        return self._get("ArchitecturePattern", ArchitecturePattern, pattern_id)

    def list_patterns(self) -> list[ArchitecturePattern]:
        return self._list(
            "MATCH (n:ArchitecturePattern) RETURN n {.*} AS node ORDER BY n.id", ArchitecturePattern
        )

    def _record_outcome(self, label: str, model_cls: Type[M], entity_id: str, success: bool) -> M:
        records = self.client.execute_write(
            RECORD_OUTCOME.format(label=label),
            {"id": entity_id, "outcome": 1.0 if success else 0.0},
        )
        if not records:
            raise NotFoundError(label, entity_id)
        return from_properties(model_cls, records[0]["node"])

    def record_pattern_outcome(self, pattern_id: str, success: bool) -> ArchitecturePattern:
        return self._record_outcome("ArchitecturePattern", ArchitecturePattern, pattern_id, success)

    def save_technology_stack(self, stack: TechnologyStack) -> TechnologyStack:
        self.client.execute_write(
            "MERGE (n:TechnologyStack {id: $id}) SET n += $props",
            {"id": stack.id, "props": to_properties(stack)},
        )
        return stack

    def get_technology_stack(self, stack_id: str) -> Optional[TechnologyStack]:
        return self._get("TechnologyStack", TechnologyStack, stack_id)

    def list_technology_stacks(self) -> list[TechnologyStack]:
        return self._list(
            "MATCH (n:TechnologyStack) RETURN n {.*} AS node ORDER BY n.id", TechnologyStack
        )

    def record_stack_outcome(self, stack_id: str, success: bool) -> TechnologyStack:
        return self._record_outcome("TechnologyStack", TechnologyStack, stack_id, success)

    # --- Mappings ---------------------------------------------------------

    def create_mapping(self, mapping: RequirementArchitectureMapping) -> RequirementArchitectureMapping:
        records = self.client.execute_write(CREATE_MAPPING, {
            "requirementId": mapping.requirement_id,
            "decisionId": mapping.architecture_decision_id,
            "patternId": mapping.architecture_pattern_id,
            "stackId": mapping.technology_stack_id,
            "props": to_properties(mapping),
        })
        if not records:
            raise NotFoundError("Requirement", mapping.requirement_id)
        return mapping

    def get_mapping(self, mapping_id: str) -> Optional[RequirementArchitectureMapping]:
        return self._get("RequirementArchitectureMapping", RequirementArchitectureMapping, mapping_id)

    def list_mappings(self, project_id: Optional[str] = None) -> list[RequirementArchitectureMapping]:
        return self._list(LIST_MAPPINGS, RequirementArchitectureMapping, {"projectId": project_id})

    def list_requirement_mappings(self, requirement_id: str) -> list[RequirementArchitectureMapping]:
        records = self.client.execute_query(
            "MATCH (n:RequirementArchitectureMapping {requirementId: $id}) "
            "RETURN n {.*} AS node ORDER BY n.createdAt, n.id",
            {"id": requirement_id},
        )
        return [from_properties(RequirementArchitectureMapping, r["node"]) for r in records]

    def delete_mapping(self, mapping_id: str) -> bool:
        return self._count(
            "MATCH (m:RequirementArchitectureMapping {id: $id}) DETACH DELETE m RETURN count(*) AS deleted",
            {"id": mapping_id},
        ) > 0

    def mark_mapping_validated(self, mapping_id: str, validated_at: datetime, validated_by: str) -> bool:
        records = self.client.execute_write(MARK_MAPPING_VALIDATED, {
            "id": mapping_id,
            "validatedAt": _iso(validated_at),
            "validatedBy": validated_by,
        })
        return bool(records and records[0]["updated"])

    # --- Alignments -------------------------------------------------------

    def upsert_alignment(self, alignment: ArchitectureRequirementAlignment) -> ArchitectureRequirementAlignment:
        self.client.execute_write(UPSERT_ALIGNMENT, {
            "id": alignment.id,
            "requirementId": alignment.requirement_id,
            "architectureDecisionId": alignment.architecture_decision_id,
            "props": to_properties(alignment),
        })
        return alignment

    def get_alignment(
        self, requirement_id: str, architecture_decision_id: str
    ) -> Optional[ArchitectureRequirementAlignment]:
        records = self.client.execute_query(
            "MATCH (n:ArchitectureRequirementAlignment "
            "{requirementId: $requirementId, architectureDecisionId: $decisionId}) "
            "RETURN n {.*} AS node",
            {"requirementId": requirement_id, "decisionId": architecture_decision_id},
        )
        if not records:
            return None
        return from_properties(ArchitectureRequirementAlignment, records[0]["node"])

    def list_alignments(self, project_id: Optional[str] = None) -> list[ArchitectureRequirementAlignment]:
        return self._list(LIST_ALIGNMENTS, ArchitectureRequirementAlignment, {"projectId": project_id})

    # --- Integrity queries ------------------------------------------------

    def find_orphaned_mappings(self, project_id: Optional[str] = None) -> list[RequirementArchitectureMapping]:
        records = self.client.execute_query(FIND_ORPHANED_MAPPINGS, {"projectId": project_id})
        return [from_properties(RequirementArchitectureMapping, r["node"]) for r in records]

    def find_unmapped_requirements(
        self,
        statuses: Iterable[RequirementStatus],
        project_id: Optional[str] = None,
    ) -> list[Requirement]:
        records = self.client.execute_query(FIND_UNMAPPED_REQUIREMENTS, {
            "statuses": [s.value for s in statuses],
            "projectId": project_id,
        })
        return [from_properties(Requirement, r["node"]) for r in records]

    def find_unmapped_decisions(
        self,
        statuses: Iterable[DecisionStatus],
        project_id: Optional[str] = None,
    ) -> list[ArchitectureDecision]:
        records = self.client.execute_query(FIND_UNMAPPED_DECISIONS, {
            "statuses": [s.value for s in statuses],
            "projectId": project_id,
        })
        return [from_properties(ArchitectureDecision, r["node"]) for r in records]

    def find_stale_alignments(
        self, assessed_before: datetime, project_id: Optional[str] = None
    ) -> list[ArchitectureRequirementAlignment]:
        records = self.client.execute_query(FIND_STALE_ALIGNMENTS, {
            "before": _iso(assessed_before),
            "projectId": project_id,
        })
        return [from_properties(ArchitectureRequirementAlignment, r["node"]) for r in records]

    def get_mapped_components(self, requirement_id: str) -> MappedComponents:
        records = self.client.execute_query(MAPPED_COMPONENTS, {"id": requirement_id})
        if not records:
            return MappedComponents()
        record = records[0]
        return MappedComponents(
            decisions=[from_properties(ArchitectureDecision, d) for d in record["decisions"]],
            patterns=[from_properties(ArchitecturePattern, p) for p in record["patterns"]],
            technology_stacks=[from_properties(TechnologyStack, t) for t in record["stacks"]],
        )

    # --- Rollback ---------------------------------------------------------

    def delete_project_mappings(self, project_id: str) -> int:
        return self._count(DELETE_PROJECT_MAPPINGS, {"projectId": project_id})

    def delete_project_alignments(self, project_id: str) -> int:
        return self._count(DELETE_PROJECT_ALIGNMENTS, {"projectId": project_id})

    def delete_auto_generated_components(self, project_id: str) -> int:
        return self._count(DELETE_AUTO_COMPONENTS, {"projectId": project_id})
