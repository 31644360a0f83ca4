from __future__ import annotations

import logging
from enum import Enum

from ..events import EventBus, EventKind

logger = logging.getLogger(__name__)


class CycleState(Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    ABORTED = "aborted"


class CompletionTracker:
    """Fires COMPLETED once per render cycle.

    A cycle completes when the primary stream is exhausted and no enrichment
    is outstanding, whichever happens last. Every cycle carries a generation
    stamp; work belonging to an older generation is ignored.
    """

    def __init__(self, bus: EventBus):
        self._bus = bus
        self.generation = 0
        self.state = CycleState.COMPLETE
        self.primary_done = False
        self.outstanding = 0

    def reset(self) -> int:
        if self.state is CycleState.RUNNING:
            logger.debug("Superseding running cycle %d", self.generation)
        self.generation += 1
        self.state = CycleState.RUNNING
        self.primary_done = False
        self.outstanding = 0
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation and self.state is not CycleState.ABORTED

    def task_started(self, generation: int) -> None:
        if self.is_current(generation):
            self.outstanding += 1

    def task_settled(self, generation: int) -> None:
        if not self.is_current(generation):
            return
        self.outstanding = max(0, self.outstanding - 1)
        self._maybe_complete()

    def finish_primary(self, generation: int) -> None:
        if not self.is_current(generation):
            return
        self.primary_done = True
        self._maybe_complete()

    def abort(self) -> None:
        if self.state is CycleState.RUNNING:
            logger.info("Aborting render cycle %d with %d enrichment(s) outstanding", self.generation, self.outstanding)
            self.state = CycleState.ABORTED

    @property
    def complete(self) -> bool:
        return self.state is CycleState.COMPLETE

    def _maybe_complete(self) -> None:
        if self.state is not CycleState.RUNNING:
            return
        if self.primary_done and self.outstanding == 0:
            self.state = CycleState.COMPLETE
            logger.debug("Render cycle %d complete", self.generation)
            self._bus.emit(EventKind.COMPLETED, {"generation": self.generation})
