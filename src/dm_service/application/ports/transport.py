from __future__ import annotations

from typing import Any, Protocol


class LiveTransport(Protocol):
    """Server-initiated push over an open live connection."""

    async def send(self, handle: Any, event: str, data: dict[str, Any]) -> None:
        """Send one event. Raises if the connection is gone."""
        ...
