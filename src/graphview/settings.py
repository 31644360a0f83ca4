from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphViewSettings(BaseSettings):
    """Process-level configuration.

    Environment variables are prefixed with GRAPHVIEW_.
    """

    model_config = SettingsConfigDict(env_prefix="GRAPHVIEW_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    # --- Graph DB (Neo4j) ---
    neo4j_uri: str = Field(default="bolt://localhost:7687")
    neo4j_user: str = "neo4j"
    neo4j_password: str | None = None
    neo4j_database: str = "neo4j"

    # --- Rendering ---
    query_limit: int = Field(default=30, description="Bound to $limit in the primary query")


settings = GraphViewSettings()
