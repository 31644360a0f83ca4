"""
Render-cycle engine.

Drives one dataset through successive render cycles: runs the primary query,
walks each record into the dataset, fans out size queries and reports
completion on the event bus.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import aclosing
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError, IngestionError
from .events import EventBus, EventKind, Handler
from .ingest.completion import CompletionTracker
from .ingest.config import merge_entity_config
from .ingest.dataset import Dataset, DatasetBuilder
from .ingest.enrichment import EnrichmentCoordinator
from .ingest.neo4j_runner import Neo4jConfig, Neo4jQueryRunner
from .ingest.store import QueryRunner
from .ingest.walker import RecordWalker
from .settings import GraphViewSettings, settings as default_settings

logger = logging.getLogger(__name__)


class GraphViewConfig(BaseModel):
    """Render configuration.

    `labels` and `relationships` map a type name to an option bag; the
    reserved "default" entry is merged under every other entry.
    """

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    initial_cypher: str | None = None
    labels: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] = Field(default_factory=dict)
    arrows: bool = False
    label_policy: str | Callable[..., Any] = "first"
    parameters: dict[str, Any] | None = None
    console_debug: bool = False


class GraphView:
    """Builds and keeps one graph dataset in sync with query results.

    Example:
        view = GraphView({"initial_cypher": "MATCH p=()-->() RETURN p LIMIT $limit",
                          "labels": {"Person": {"caption": "name"}}})
        view.register_on_event(EventKind.COMPLETED, lambda _: print("done"))
        dataset = await view.render()
    """

    def __init__(
        self,
        config: GraphViewConfig | Mapping[str, Any] | None = None,
        runner: QueryRunner | None = None,
        *,
        settings: GraphViewSettings | None = None,
    ):
        try:
            cfg = config if isinstance(config, GraphViewConfig) else GraphViewConfig.model_validate(dict(config or {}))
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self.config = cfg
        self.settings = settings or default_settings
        if cfg.console_debug:
            logging.getLogger("graphview").setLevel(logging.DEBUG)

        self.labels = merge_entity_config(cfg.labels, section="labels")
        self.relationships = merge_entity_config(cfg.relationships, section="relationships")

        self.bus = EventBus()
        self.tracker = CompletionTracker(self.bus)
        self.walker = RecordWalker()
        self.builder = DatasetBuilder(
            self.labels,
            self.relationships,
            label_policy=cfg.label_policy,
            arrows=cfg.arrows,
        )
        self._runner = runner
        self._owns_runner = False
        self.enrichment = EnrichmentCoordinator(runner, self.builder, self.bus, self.tracker)

        self._last_query: str | None = None
        self._last_params: dict[str, Any] | None = None

    @property
    def dataset(self) -> Dataset:
        return self.builder.dataset

    def register_on_event(self, kind: EventKind | str, handler: Handler) -> None:
        self.bus.on(kind, handler)

    async def render(self, query: str | None = None, parameters: dict[str, Any] | None = None) -> Dataset:
        """Run a fresh cycle from an empty dataset."""
        return await self._run_cycle(query, parameters, clear=True)

    async def render_with_cypher(self, query: str, parameters: dict[str, Any] | None = None) -> Dataset:
        self.config.initial_cypher = query
        return await self.render(query, parameters)

    async def update_with_cypher(self, query: str, parameters: dict[str, Any] | None = None) -> Dataset:
        """Run a cycle that adds to the current dataset instead of replacing it."""
        return await self._run_cycle(query, parameters, clear=False)

    async def reload(self) -> Dataset:
        return await self.render(self._last_query, self._last_params)

    def abort(self) -> None:
        self.tracker.abort()
        self.enrichment.lapse()

    def clear(self) -> None:
        self.abort()
        self.enrichment.reset()
        self.dataset.clear()

    async def close(self) -> None:
        if self._owns_runner and self._runner is not None:
            await self._runner.close()  # type: ignore[attr-defined]
            self._runner = None

    def _ensure_runner(self) -> QueryRunner:
        if self._runner is None:
            self._runner = Neo4jQueryRunner(Neo4jConfig.from_settings(self.settings))
            self._owns_runner = True
        self.enrichment.runner = self._runner
        return self._runner

    def _parameters(self, parameters: dict[str, Any] | None) -> dict[str, Any]:
        if parameters is not None:
            return parameters
        if self.config.parameters is not None:
            return dict(self.config.parameters)
        return {"limit": self.settings.query_limit}

    async def _run_cycle(self, query: str | None, parameters: dict[str, Any] | None, *, clear: bool) -> Dataset:
        query = query or self.config.initial_cypher
        if not query:
            raise ConfigurationError("Nothing to render: no query given and initial_cypher is unset")
        params = self._parameters(parameters)
        runner = self._ensure_runner()

        if clear:
            self.clear()
        generation = self.tracker.reset()
        self.enrichment.reset()
        self._last_query, self._last_params = query, params
        logger.info("Render cycle %d: %s", generation, query)

        records = 0
        try:
            async with aclosing(runner.stream(query, params)) as stream:
                async for record in stream:
                    if not self.tracker.is_current(generation):
                        logger.info("Render cycle %d aborted after %d record(s)", generation, records)
                        return self.dataset
                    records += 1
                    self._ingest(record, generation)
        except Exception as e:
            err = IngestionError(f"primary query failed: {e}")
            err.__cause__ = e
            logger.error("Render cycle %d failed after %d record(s): %s", generation, records, e)
            if self.tracker.is_current(generation):
                self.tracker.abort()
            self.bus.emit(EventKind.ERROR, err)
            return self.dataset

        logger.debug(
            "Render cycle %d: %d record(s), %d node(s), %d edge(s)",
            generation, records, len(self.dataset.nodes), len(self.dataset.edges),
        )
        self.tracker.finish_primary(generation)
        await self.enrichment.join(generation)
        return self.dataset

    def _ingest(self, record: Any, generation: int) -> None:
        for event in self.builder.apply_all(self.walker.walk(record)):
            self.bus.publish(event)
            if event.kind in (EventKind.NODE_ADDED, EventKind.NODE_UPDATED):
                self.enrichment.notify(event.payload, generation)
