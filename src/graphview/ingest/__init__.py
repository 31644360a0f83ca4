"""Record ingestion and dataset assembly.

This package provides:
- Per-type option merging over a reserved default bucket
- A record walker that normalizes nodes, relationships and paths
- An identity-deduplicating dataset builder
- Per-node size enrichment and once-per-cycle completion tracking

The neo4j driver is imported only when a Neo4jQueryRunner is built; nothing
else here needs a live database.
"""

from .completion import CompletionTracker, CycleState
from .config import DEFAULT_CONFIG, EffectiveConfig, merge_entity_config
from .dataset import Dataset, DatasetBuilder, EntityCollection
from .enrichment import EnrichmentCoordinator
from .models import EdgeObservation, EnrichmentTask, GraphEdge, GraphNode, NodeObservation, TaskState
from .registry import IdentityRegistry
from .store import QueryRunner
from .walker import RecordWalker

__all__ = [
    "DEFAULT_CONFIG",
    "CompletionTracker",
    "CycleState",
    "Dataset",
    "DatasetBuilder",
    "EdgeObservation",
    "EffectiveConfig",
    "EnrichmentCoordinator",
    "EnrichmentTask",
    "EntityCollection",
    "GraphEdge",
    "GraphNode",
    "IdentityRegistry",
    "NodeObservation",
    "QueryRunner",
    "RecordWalker",
    "TaskState",
    "merge_entity_config",
]
