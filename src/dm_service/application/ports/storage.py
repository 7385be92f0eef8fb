from __future__ import annotations

from typing import Protocol


class ImageStorage(Protocol):
    async def upload(self, data: str) -> str:
        """Store an inbound image payload and return a stable reference URL."""
        ...
