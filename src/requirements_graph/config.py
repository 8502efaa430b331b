"""
Neo4j connection settings loaded from environment variables.

Every field can be overridden with a ``NEO4J_``-prefixed variable
(``NEO4J_URI``, ``NEO4J_USER``, ``NEO4J_READ_TIMEOUT``...) or a ``.env`` file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphSettings(BaseSettings):
    """Connection, pool and timeout settings for the graph store."""

    # ── Connection ───────────────────────────────────────
    uri: str = "bolt://localhost:7687"
    user: str = ""  # Empty for auth=none
    password: str = ""
    database: Optional[str] = None  # None uses the server default

    # ── Pool ─────────────────────────────────────────────
    max_connection_pool_size: int = Field(default=50, ge=1)
    connection_acquisition_timeout: float = Field(default=60.0, gt=0)
    max_connection_lifetime: float = Field(
        default=3600.0, gt=0,
        description="Seconds a pooled connection may be reused before eviction"
    )

    # ── Per-call timeouts (seconds) ──────────────────────
    read_timeout: float = Field(default=30.0, gt=0)
    write_timeout: float = Field(default=60.0, gt=0)

    # ── Streaming ────────────────────────────────────────
    stream_batch_size: int = Field(default=500, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="NEO4J_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def auth(self) -> Optional[tuple[str, str]]:
        """Driver auth tuple, or None when the server runs with auth disabled."""
        if self.user and self.password:
            return (self.user, self.password)
        return None


@lru_cache()
def get_graph_settings() -> GraphSettings:
    """Cached settings instance."""
    return GraphSettings()
