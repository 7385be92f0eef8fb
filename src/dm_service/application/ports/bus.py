from __future__ import annotations

from typing import Any, Protocol


class EventPublisher(Protocol):
    """Fan-out to other service instances; delivery is not acknowledged."""

    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...
