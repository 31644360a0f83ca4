from __future__ import annotations

import logging
import operator
import warnings
from collections.abc import Mapping
from typing import Any, Iterable, Iterator, Protocol, Sequence, runtime_checkable

from .models import EdgeObservation, Identity, NodeObservation, Observation

logger = logging.getLogger(__name__)


# Structural views over driver values. neo4j.graph.Path/Relationship/Node all
# satisfy these, and so do light test doubles. Order of checks matters: a
# Path also exposes start_node/end_node, a Relationship also exposes nodes.
@runtime_checkable
class PathLike(Protocol):
    nodes: Sequence[Any]
    relationships: Sequence[Any]


@runtime_checkable
class RelationshipLike(Protocol):
    type: str
    start_node: Any
    end_node: Any


@runtime_checkable
class NodeLike(Protocol):
    labels: Iterable[str]


def normalize_identity(value: Any) -> Identity:
    """Integer-like identities compare by numeric value; everything else as-is."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    if hasattr(value, "__index__"):
        return operator.index(value)
    return value


def identity_of(entity: Any) -> Identity | None:
    # Size queries match on the integer id (`id(n) = $id`); the opaque
    # element_id only stands in when an entity carries no integer id.
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        value = getattr(entity, "id", None)
    if value is None:
        value = getattr(entity, "element_id", None)
    if value is None:
        return None
    return normalize_identity(value)


def _labels(node: Any) -> tuple[str, ...]:
    raw = getattr(node, "labels", None) or ()
    if isinstance(raw, (set, frozenset)):
        # The driver hands labels over as a frozenset; give them a stable order.
        return tuple(sorted(raw))
    return tuple(dict.fromkeys(str(label) for label in raw))


def _properties(entity: Any) -> dict[str, Any]:
    items = getattr(entity, "items", None)
    if callable(items):
        return dict(items())
    props = getattr(entity, "properties", None)
    return dict(props or {})


def _values(record: Any) -> Iterable[Any]:
    if isinstance(record, Mapping):
        return record.values()
    return record


def _flatten(values: Iterable[Any]) -> Iterator[Any]:
    for value in values:
        if isinstance(value, (list, tuple)) and not isinstance(value, (PathLike, NodeLike)):
            yield from _flatten(value)
        else:
            yield value


class RecordWalker:
    """Normalizes one record into node and edge observations.

    Node observations always come before edge observations, and every
    relationship endpoint missing from the record is backfilled from the
    relationship itself, so edges never reference an unseen node.
    """

    def walk(self, record: Any) -> list[Observation]:
        nodes: list[NodeObservation] = []
        edges: list[EdgeObservation] = []
        seen: set[Identity] = set()
        endpoints: list[Any] = []

        def add_node(node: Any) -> None:
            identity = identity_of(node)
            if identity is None:
                logger.warning("Skipping node without identity: %r", node)
                return
            seen.add(identity)
            nodes.append(NodeObservation(identity=identity, labels=_labels(node), properties=_properties(node)))

        def add_edge(rel: Any) -> None:
            start, end = rel.start_node, rel.end_node
            if start is None or end is None:
                logger.warning("Skipping relationship without endpoints: %r", rel)
                return
            start_id, end_id = identity_of(start), identity_of(end)
            if start_id is None or end_id is None:
                logger.warning("Skipping relationship with anonymous endpoints: %r", rel)
                return
            identity = identity_of(rel)
            if identity is None:
                identity = (start_id, str(rel.type), end_id)
            edges.append(
                EdgeObservation(
                    identity=identity,
                    start=start_id,
                    end=end_id,
                    type=str(rel.type),
                    properties=_properties(rel),
                )
            )
            endpoints.extend((start, end))

        for value in _flatten(_values(record)):
            if isinstance(value, PathLike):
                for node in value.nodes:
                    add_node(node)
                for rel in value.relationships:
                    add_edge(rel)
            elif isinstance(value, RelationshipLike):
                add_edge(value)
            elif isinstance(value, NodeLike):
                add_node(value)
            else:
                logger.debug("Ignoring scalar value %r", value)

        for endpoint in endpoints:
            if identity_of(endpoint) not in seen:
                add_node(endpoint)

        return [*nodes, *edges]
