from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncGenerator

from ..settings import GraphViewSettings


@dataclass(slots=True)
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = "neo4j"

    @classmethod
    def from_settings(cls, settings: GraphViewSettings) -> "Neo4jConfig":
        if not settings.neo4j_password:
            raise RuntimeError("Neo4j not configured. Set GRAPHVIEW_NEO4J_URI/USER/PASSWORD.")
        return cls(
            uri=settings.neo4j_uri,
            user=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
        )


class Neo4jQueryRunner:
    """Neo4j-backed query runner.

    One session per query; records are yielded as the driver hydrates them,
    so the engine sees neo4j.graph.Node/Relationship/Path values directly.

    Dependency: neo4j>=5 (async API).
    """

    def __init__(self, cfg: Neo4jConfig):
        self.cfg = cfg
        from neo4j import AsyncGraphDatabase

        # Driver is safe to share; sessions are lightweight.
        self._driver = AsyncGraphDatabase.driver(cfg.uri, auth=(cfg.user, cfg.password))

    async def close(self) -> None:
        await self._driver.close()

    async def stream(self, query: str, parameters: dict[str, Any] | None = None) -> AsyncGenerator[Any, None]:
        async with self._driver.session(database=self.cfg.database) as s:
            result = await s.run(query, parameters or {})
            async for record in result:
                yield record

    async def fetch(self, query: str, parameters: dict[str, Any] | None = None) -> list[Any]:
        async with self._driver.session(database=self.cfg.database) as s:
            result = await s.run(query, parameters or {})
            return [record async for record in result]
