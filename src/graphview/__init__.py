"""graphview - turn graph query results into a deduplicated, renderer-agnostic dataset."""

from .engine import GraphView, GraphViewConfig
from .events import EventKind
from .ingest.config import DEFAULT_CONFIG

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "EventKind",
    "GraphView",
    "GraphViewConfig",
]
