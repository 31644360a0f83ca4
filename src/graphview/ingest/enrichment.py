from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from numbers import Number
from typing import Any

from ..errors import EnrichmentError
from ..events import EventBus, EventKind
from .completion import CompletionTracker
from .dataset import DatasetBuilder
from .models import EnrichmentTask, GraphNode, TaskState
from .store import QueryRunner

logger = logging.getLogger(__name__)


def _first_value(row: Any) -> Any:
    if isinstance(row, Mapping):
        values = list(row.values())
    else:
        values = list(row)
    if not values:
        raise IndexError("empty row")
    return values[0]


class EnrichmentCoordinator:
    """Runs the per-node `size_cypher` queries of a render cycle.

    At most one query per node per cycle. Each query runs as its own asyncio
    task; results are applied by local id, in whatever order they arrive.
    A failed or empty result never blocks completion.
    """

    def __init__(
        self,
        runner: QueryRunner | None,
        builder: DatasetBuilder,
        bus: EventBus,
        tracker: CompletionTracker,
    ):
        self.runner = runner
        self._builder = builder
        self._bus = bus
        self._tracker = tracker
        self.tasks: dict[int, EnrichmentTask] = {}
        self._inflight: dict[asyncio.Task[None], int] = {}
        self._waiters: set[asyncio.Future[None]] = set()

    def reset(self) -> None:
        # In-flight tasks of the previous cycle lapse; their generation is stale.
        self.tasks = {}
        self.lapse()

    def lapse(self) -> None:
        """Release every `join` waiting on a cycle that is no longer current."""
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(None)

    @property
    def outstanding(self) -> int:
        return sum(1 for t in self.tasks.values() if not t.settled)

    def notify(self, node: GraphNode, generation: int) -> EnrichmentTask | None:
        _label, options = self._builder.node_options(node)
        query = options.get("size_cypher")
        if not query or node.local_id in self.tasks:
            return None

        task = EnrichmentTask(local_id=node.local_id, query=query, generation=generation)
        self.tasks[node.local_id] = task
        self._tracker.task_started(generation)
        job = asyncio.get_running_loop().create_task(self._run(task, node.identity))
        self._inflight[job] = generation
        job.add_done_callback(lambda done: self._inflight.pop(done, None))
        return task

    async def join(self, generation: int | None = None) -> None:
        """Wait for the size queries of `generation` (default: the latest cycle).

        Returns early once that cycle is aborted or superseded; its remaining
        queries lapse in the background.
        """
        if generation is None:
            generation = self._tracker.generation
        while self._tracker.is_current(generation):
            pending = {job for job, gen in self._inflight.items() if gen == generation and not job.done()}
            if not pending:
                return
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.add(waiter)
            try:
                await asyncio.wait(pending | {waiter}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                self._waiters.discard(waiter)

    async def _run(self, task: EnrichmentTask, identity: Any) -> None:
        value: Any = None
        try:
            rows = await self.runner.fetch(task.query, {"id": identity})
            value = self._extract(task.local_id, rows)
        except EnrichmentError as e:
            logger.warning("Size query skipped: %s", e)
        except Exception as e:
            logger.warning("Size query failed for node %s: %s", task.local_id, e)

        if not self._tracker.is_current(task.generation):
            logger.debug("Ignoring late size result for node %s (cycle %d)", task.local_id, task.generation)
            return

        node = self._builder.dataset.nodes.get(task.local_id)
        if value is None or node is None:
            task.state = TaskState.FAILED
        else:
            node.enrichment = value
            node.value = value
            task.state = TaskState.RESOLVED
            self._bus.emit(EventKind.NODE_UPDATED, node)
        self._tracker.task_settled(task.generation)

    @staticmethod
    def _extract(local_id: int, rows: list[Any]) -> Any:
        if not rows:
            raise EnrichmentError(local_id, "size query returned no rows")
        try:
            value = _first_value(rows[0])
        except (IndexError, TypeError) as e:
            raise EnrichmentError(local_id, f"unexpected row shape: {e}") from e
        if isinstance(value, bool) or not isinstance(value, Number):
            raise EnrichmentError(local_id, f"non-numeric size value {value!r}")
        return value
