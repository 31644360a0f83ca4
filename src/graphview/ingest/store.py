from __future__ import annotations

from typing import Any, AsyncGenerator, Protocol


class QueryRunner(Protocol):
    """Abstraction for the query layer feeding the engine."""

    def stream(self, query: str, parameters: dict[str, Any] | None = None) -> AsyncGenerator[Any, None]: ...

    async def fetch(self, query: str, parameters: dict[str, Any] | None = None) -> list[Any]: ...
