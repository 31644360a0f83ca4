from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, Union

Identity = Hashable


@dataclass(frozen=True, slots=True)
class NodeObservation:
    """One sighting of a node inside a record."""

    identity: Identity
    labels: tuple[str, ...] = ()
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EdgeObservation:
    """One sighting of a relationship; endpoints are node identities."""

    identity: Identity
    start: Identity
    end: Identity
    type: str
    properties: dict[str, Any] = field(default_factory=dict)


Observation = Union[NodeObservation, EdgeObservation]


@dataclass(slots=True)
class GraphNode:
    local_id: int
    identity: Identity
    labels: list[str] = field(default_factory=list)
    caption: str | None = None
    value: float | None = 1.0
    group: Any = None
    title: str | None = None
    style: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)
    # Set by the size query; wins over the derived `value` once present.
    enrichment: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.local_id,
            "identity": self.identity,
            "labels": list(self.labels),
            "label": self.caption,
            "value": self.value,
            "title": self.title,
            "properties": dict(self.properties),
        }
        if self.group is not None:
            out["group"] = self.group
        out.update(self.style)
        return out


@dataclass(slots=True)
class GraphEdge:
    local_id: int
    identity: Identity
    source: int
    target: int
    type: str
    caption: str | None = None
    value: float | None = 1.0
    title: str | None = None
    arrows: str | None = None
    style: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.local_id,
            "identity": self.identity if not isinstance(self.identity, tuple) else list(self.identity),
            "from": self.source,
            "to": self.target,
            "type": self.type,
            "label": self.caption,
            "value": self.value,
            "title": self.title,
            "properties": dict(self.properties),
        }
        if self.arrows:
            out["arrows"] = self.arrows
        out.update(self.style)
        return out


class TaskState(Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(slots=True)
class EnrichmentTask:
    local_id: int
    query: str
    generation: int
    state: TaskState = TaskState.PENDING

    @property
    def settled(self) -> bool:
        return self.state is not TaskState.PENDING
