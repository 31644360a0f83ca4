from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Notifications published while a dataset is being assembled."""
    NODE_ADDED = "node_added"
    NODE_UPDATED = "node_updated"
    EDGE_ADDED = "edge_added"
    EDGE_UPDATED = "edge_updated"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Event:
    kind: EventKind
    payload: Any = None


Handler = Callable[[Any], None]


class EventBus:
    """Synchronous publish/subscribe.

    Handlers run inline on the caller's thread of control, in registration
    order, so a handler always sees the dataset exactly as it was when the
    event was emitted.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[Handler]] = defaultdict(list)

    def on(self, kind: EventKind | str, handler: Handler) -> None:
        self._handlers[EventKind(kind)].append(handler)

    def off(self, kind: EventKind | str, handler: Handler) -> None:
        handlers = self._handlers.get(EventKind(kind), [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, kind: EventKind, payload: Any = None) -> None:
        for handler in list(self._handlers.get(kind, ())):
            try:
                handler(payload)
            except Exception:
                # A broken subscriber must not corrupt ingestion.
                logger.exception("Handler %r failed for %s", handler, kind.value)

    def publish(self, event: Event) -> None:
        self.emit(event.kind, event.payload)
