from __future__ import annotations

import logging
from dataclasses import dataclass, field
from numbers import Number
from typing import Any, Callable, Generic, Iterator, Sequence, TypeVar

from ..errors import ConfigurationError, IdentityError
from ..events import Event, EventKind
from .config import EffectiveConfig, OptionBag
from .models import EdgeObservation, GraphEdge, GraphNode, NodeObservation, Observation
from .registry import IdentityRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T", GraphNode, GraphEdge)

# Options consumed by the builder itself; anything else lands in `style`.
NODE_OPTIONS = frozenset({"caption", "size", "community", "title_properties", "size_cypher"})
EDGE_OPTIONS = frozenset({"caption", "thickness", "title_properties"})


class EntityCollection(Generic[T]):
    """Insertion-ordered entities, indexable by local id."""

    def __init__(self) -> None:
        self._items: dict[int, T] = {}

    def get(self, local_id: int) -> T | None:
        return self._items.get(local_id)

    def add(self, item: T) -> None:
        self._items[item.local_id] = item

    def ids(self) -> list[int]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, local_id: object) -> bool:
        return local_id in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


@dataclass(slots=True)
class Dataset:
    nodes: EntityCollection[GraphNode] = field(default_factory=EntityCollection)
    edges: EntityCollection[GraphEdge] = field(default_factory=EntityCollection)
    node_ids: IdentityRegistry = field(default_factory=IdentityRegistry)
    edge_ids: IdentityRegistry = field(default_factory=IdentityRegistry)

    def clear(self) -> None:
        self.nodes.clear()
        self.edges.clear()
        self.node_ids = IdentityRegistry()
        self.edge_ids = IdentityRegistry()

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


# --- label policy ---

LabelPolicy = Callable[[Sequence[str], EffectiveConfig], str | None]


def first_label(labels: Sequence[str], config: EffectiveConfig) -> str | None:
    return labels[0] if labels else None


def first_configured_label(labels: Sequence[str], config: EffectiveConfig) -> str | None:
    for label in labels:
        if config.declares(label):
            return label
    return first_label(labels, config)


LABEL_POLICIES: dict[str, LabelPolicy] = {
    "first": first_label,
    "first_configured": first_configured_label,
}


def resolve_label_policy(policy: str | LabelPolicy) -> LabelPolicy:
    if callable(policy):
        return policy
    try:
        return LABEL_POLICIES[policy]
    except KeyError:
        raise ConfigurationError(
            f"unknown label policy {policy!r}; expected one of {sorted(LABEL_POLICIES)}"
        ) from None


# --- attribute derivation ---

def _blank(value: Any) -> bool:
    return value is None or value == ""


def _number(value: Any, fallback: float = 1.0) -> float:
    if isinstance(value, Number) and not isinstance(value, bool):
        return float(value)  # type: ignore[arg-type]
    return fallback


def _title(props: dict[str, Any], keys: Sequence[str] | None) -> str:
    wanted = keys if keys is not None else list(props)
    return "\n".join(f"{k}: {props[k]}" for k in wanted if k in props)


def _style(options: OptionBag, consumed: frozenset[str]) -> dict[str, Any]:
    return {k: v for k, v in options.items() if k not in consumed}


def _node_caption(node: GraphNode, option: Any, label: str | None) -> str | None:
    if callable(option):
        return option(node)
    if isinstance(option, str):
        value = node.properties.get(option)
        if not _blank(value):
            return str(value)
    return label


def _edge_caption(edge: GraphEdge, option: Any) -> str | None:
    if option is None or option is True:
        return edge.type
    if option is False:
        return None
    if callable(option):
        return option(edge)
    value = edge.properties.get(option)
    return None if _blank(value) else str(value)


def _merge_properties(existing: dict[str, Any], incoming: dict[str, Any]) -> bool:
    changed = False
    for key, value in incoming.items():
        if _blank(value):
            continue
        if existing.get(key) != value:
            existing[key] = value
            changed = True
    return changed


class DatasetBuilder:
    """Folds observations into a Dataset.

    Returns the events each observation produced instead of publishing them,
    so the caller decides the dispatch order.
    """

    def __init__(
        self,
        labels: EffectiveConfig,
        relationships: EffectiveConfig,
        *,
        label_policy: str | LabelPolicy = "first",
        arrows: bool = False,
        dataset: Dataset | None = None,
    ):
        self.labels = labels
        self.relationships = relationships
        self.label_policy = resolve_label_policy(label_policy)
        self.arrows = arrows
        self.dataset = dataset if dataset is not None else Dataset()

    def node_options(self, node: GraphNode) -> tuple[str | None, OptionBag]:
        label = self.label_policy(node.labels, self.labels)
        return label, self.labels.for_type(label)

    def apply(self, observation: Observation) -> list[Event]:
        if isinstance(observation, NodeObservation):
            return self._apply_node(observation)
        return self._apply_edge(observation)

    def apply_all(self, observations: Sequence[Observation]) -> list[Event]:
        events: list[Event] = []
        for obs in observations:
            try:
                events.extend(self.apply(obs))
            except IdentityError as e:
                logger.warning("Dropping edge: %s", e)
        return events

    def _derive_node(self, node: GraphNode) -> None:
        label, options = self.node_options(node)
        node.caption = _node_caption(node, options.get("caption"), label)
        size = options.get("size")
        node.value = _number(node.properties.get(size)) if size else 1.0
        if node.enrichment is not None:
            node.value = node.enrichment
        community = options.get("community")
        node.group = node.properties.get(community) if community else None
        node.title = _title(node.properties, options.get("title_properties"))
        node.style = _style(options, NODE_OPTIONS)

    def _derive_edge(self, edge: GraphEdge) -> None:
        options = self.relationships.for_type(edge.type)
        edge.caption = _edge_caption(edge, options.get("caption"))
        thickness = options.get("thickness")
        edge.value = _number(edge.properties.get(thickness)) if thickness else 1.0
        edge.title = _title(edge.properties, options.get("title_properties"))
        edge.arrows = "to" if self.arrows else None
        edge.style = _style(options, EDGE_OPTIONS)

    def _apply_node(self, obs: NodeObservation) -> list[Event]:
        ds = self.dataset
        local_id = ds.node_ids.local_id_for(obs.identity)
        node = ds.nodes.get(local_id)
        if node is None:
            node = GraphNode(
                local_id=local_id,
                identity=obs.identity,
                labels=list(obs.labels),
                properties=dict(obs.properties),
            )
            self._derive_node(node)
            ds.nodes.add(node)
            return [Event(EventKind.NODE_ADDED, node)]

        before = (node.caption, node.value, node.group, node.title, dict(node.style))
        changed = _merge_properties(node.properties, obs.properties)
        for label in obs.labels:
            if label not in node.labels:
                node.labels.append(label)
                changed = True
        self._derive_node(node)
        after = (node.caption, node.value, node.group, node.title, node.style)
        if changed or before != after:
            return [Event(EventKind.NODE_UPDATED, node)]
        return []

    def _apply_edge(self, obs: EdgeObservation) -> list[Event]:
        ds = self.dataset
        source = ds.node_ids.lookup(obs.start)
        target = ds.node_ids.lookup(obs.end)
        if source is None or target is None:
            missing = obs.start if source is None else obs.end
            raise IdentityError(f"relationship {obs.identity!r} references unseen node {missing!r}")

        local_id = ds.edge_ids.local_id_for(obs.identity)
        edge = ds.edges.get(local_id)
        if edge is None:
            edge = GraphEdge(
                local_id=local_id,
                identity=obs.identity,
                source=source,
                target=target,
                type=obs.type,
                properties=dict(obs.properties),
            )
            self._derive_edge(edge)
            ds.edges.add(edge)
            return [Event(EventKind.EDGE_ADDED, edge)]

        before = (edge.caption, edge.value, edge.title)
        changed = _merge_properties(edge.properties, obs.properties)
        self._derive_edge(edge)
        if changed or before != (edge.caption, edge.value, edge.title):
            return [Event(EventKind.EDGE_UPDATED, edge)]
        return []
