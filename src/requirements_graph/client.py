"""Graph access layer over the official Neo4j driver.

Wraps a pooled driver with per-call timeouts, transactional writes and
paginated streaming reads. Driver timeouts surface as ``GraphTimeoutError``.
"""

import logging
from typing import Any, Callable, Iterator, Optional, TypeVar

from neo4j import GraphDatabase, Query, unit_of_work
from neo4j.exceptions import DriverError, Neo4jError

from .config import GraphSettings, get_graph_settings
from .exceptions import GraphTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Uniqueness constraints on entity ids plus the composite alignment pair.
SCHEMA_CONSTRAINTS = [
    "CREATE CONSTRAINT requirement_id IF NOT EXISTS FOR (n:Requirement) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT decision_id IF NOT EXISTS FOR (n:ArchitectureDecision) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT pattern_id IF NOT EXISTS FOR (n:ArchitecturePattern) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT stack_id IF NOT EXISTS FOR (n:TechnologyStack) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT project_id IF NOT EXISTS FOR (n:Project) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT mapping_id IF NOT EXISTS FOR (n:RequirementArchitectureMapping) REQUIRE n.id IS UNIQUE",
    (
        "CREATE CONSTRAINT alignment_pair IF NOT EXISTS FOR (n:ArchitectureRequirementAlignment) "
        "REQUIRE (n.requirementId, n.architectureDecisionId) IS UNIQUE"
    ),
]

SCHEMA_INDEXES = [
    "CREATE INDEX requirement_status IF NOT EXISTS FOR (n:Requirement) ON (n.status)",
    "CREATE INDEX requirement_type IF NOT EXISTS FOR (n:Requirement) ON (n.type)",
    "CREATE INDEX requirement_priority IF NOT EXISTS FOR (n:Requirement) ON (n.priority)",
    "CREATE INDEX requirement_project IF NOT EXISTS FOR (n:Requirement) ON (n.projectId)",
    "CREATE INDEX requirement_created IF NOT EXISTS FOR (n:Requirement) ON (n.createdAt)",
    "CREATE INDEX decision_status IF NOT EXISTS FOR (n:ArchitectureDecision) ON (n.status)",
    "CREATE INDEX decision_project IF NOT EXISTS FOR (n:ArchitectureDecision) ON (n.projectId)",
    "CREATE INDEX decision_created IF NOT EXISTS FOR (n:ArchitectureDecision) ON (n.createdAt)",
    "CREATE INDEX pattern_type IF NOT EXISTS FOR (n:ArchitecturePattern) ON (n.type)",
    "CREATE INDEX mapping_type IF NOT EXISTS FOR (n:RequirementArchitectureMapping) ON (n.mappingType)",
    "CREATE INDEX mapping_created IF NOT EXISTS FOR (n:RequirementArchitectureMapping) ON (n.createdAt)",
    "CREATE INDEX alignment_assessed IF NOT EXISTS FOR (n:ArchitectureRequirementAlignment) ON (n.lastAssessed)",
    (
        "CREATE FULLTEXT INDEX requirement_text IF NOT EXISTS "
        "FOR (n:Requirement) ON EACH [n.title, n.description]"
    ),
    (
        "CREATE FULLTEXT INDEX decision_text IF NOT EXISTS "
        "FOR (n:ArchitectureDecision) ON EACH [n.title, n.description, n.rationale]"
    ),
]


def _is_timeout(error: Exception) -> bool:
    code = getattr(error, "code", None) or ""
    if "TransactionTimedOut" in code:
        return True
    message = str(error).lower()
    return "timed out" in message or "timeout" in message


class GraphClient:
    """Executes parameterized Cypher against a pooled Neo4j driver."""

    def __init__(self, settings: Optional[GraphSettings] = None, driver: Any = None):
        """Create a client.

        Args:
            settings: Connection settings (defaults to environment settings)
            driver: Pre-built driver, mainly for tests
        """
        self.settings = settings or get_graph_settings()
        self._driver = driver

    @property
    def driver(self):
        """Lazy Neo4j driver with the configured pool bounds."""
        if self._driver is None:
            self._driver = GraphDatabase.driver(
                self.settings.uri,
                auth=self.settings.auth,
                max_connection_pool_size=self.settings.max_connection_pool_size,
                connection_acquisition_timeout=self.settings.connection_acquisition_timeout,
                max_connection_lifetime=self.settings.max_connection_lifetime,
            )
            logger.info("Connected Neo4j driver to %s", self.settings.uri)
        return self._driver

    def close(self) -> None:
        """Close the driver and its pool."""
        if self._driver is not None:
            self._driver.close()
            self._driver = None

    def __enter__(self) -> "GraphClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def verify_connectivity(self) -> None:
        """Fail fast when the server is unreachable."""
        self.driver.verify_connectivity()

    def _session(self, database: Optional[str]):
        return self.driver.session(database=database or self.settings.database)

    def execute_query(
        self,
        statement: str,
        params: Optional[dict[str, Any]] = None,
        database: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[dict[str, Any]]:
        """Run one auto-commit statement and return its records as dicts.

        Args:
            statement: Cypher text
            params: Query parameters
            database: Target database (defaults to settings)
            timeout: Seconds before the server aborts (defaults to the read timeout)

        Returns:
            Records in server order
        """
        timeout = timeout if timeout is not None else self.settings.read_timeout
        try:
            with self._session(database) as session:
                result = session.run(Query(statement, timeout=timeout), params or {})
                return [record.data() for record in result]
        except (Neo4jError, DriverError) as e:
            if _is_timeout(e):
                raise GraphTimeoutError(f"Query exceeded {timeout}s: {e}", timeout) from e
            raise

    def execute_write(
        self,
        statement: str,
        params: Optional[dict[str, Any]] = None,
        database: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Run one statement in a write transaction with the write timeout."""

        def work(tx):
            return [record.data() for record in tx.run(statement, params or {})]

        return self.execute_transaction(work, database=database)

    def execute_transaction(
        self,
        work: Callable[[Any], T],
        database: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> T:
        """Run ``work(tx)`` inside a managed write transaction.

        The driver retries transient failures; the transaction is aborted
        server-side once ``timeout`` (default: write timeout) elapses.
        """
        timeout = timeout if timeout is not None else self.settings.write_timeout
        bounded_work = unit_of_work(timeout=timeout)(work)
        try:
            with self._session(database) as session:
                return session.execute_write(bounded_work)
        except (Neo4jError, DriverError) as e:
            if _is_timeout(e):
                raise GraphTimeoutError(f"Transaction exceeded {timeout}s: {e}", timeout) from e
            raise

    def execute_streaming_query(
        self,
        statement: str,
        params: Optional[dict[str, Any]] = None,
        batch_size: Optional[int] = None,
        database: Optional[str] = None,
    ) -> Iterator[list[dict[str, Any]]]:
        """Yield record batches using SKIP/LIMIT pagination.

        Each page is a separate query, so iteration survives reconnects.
        The statement must have a stable ORDER BY and no SKIP/LIMIT of its own.
        """
        batch_size = batch_size or self.settings.stream_batch_size
        skip = 0
        while True:
            page = self.execute_query(
                f"{statement} SKIP $__skip LIMIT $__limit",
                {**(params or {}), "__skip": skip, "__limit": batch_size},
                database=database,
            )
            if not page:
                return
            yield page
            if len(page) < batch_size:
                return
            skip += batch_size

    def initialize_schema(self) -> int:
        """Create constraints and indexes. Returns the number of statements run."""
        count = 0
        for statement in SCHEMA_CONSTRAINTS + SCHEMA_INDEXES:
            try:
                self.execute_query(statement, timeout=self.settings.write_timeout)
                count += 1
            except Neo4jError as e:
                if "already exists" not in str(e).lower():
                    raise
                logger.debug("Schema item already present: %s", statement)
        logger.info("Initialized graph schema (%d statements)", count)
        return count
