from __future__ import annotations


class GraphViewError(Exception):
    """Base class for graphview errors."""


class ConfigurationError(GraphViewError):
    """Malformed render configuration. Raised at construction time."""


class IngestionError(GraphViewError):
    """The primary query stream failed. Stops the current render cycle."""


class EnrichmentError(GraphViewError):
    """A size query failed or returned an unexpected shape.

    Never fatal: the node just keeps its derived value.
    """

    def __init__(self, local_id: int, message: str):
        super().__init__(f"node {local_id}: {message}")
        self.local_id = local_id


class IdentityError(GraphViewError):
    """An edge referenced an endpoint that was never observed."""
