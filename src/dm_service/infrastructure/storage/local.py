"""Filesystem-backed image storage served under a static URL prefix."""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import uuid
from pathlib import Path

from dm_service.application.exceptions import ValidationError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:image/(?P<subtype>[a-zA-Z0-9.+-]+);base64,(?P<data>.+)$", re.DOTALL)

_EXTENSIONS = {
    "jpeg": "jpg",
    "jpg": "jpg",
    "png": "png",
    "gif": "gif",
    "webp": "webp",
}


class LocalImageStorage:
    """Implements application.ports.storage.ImageStorage.

    Accepts base64 data URLs (``data:image/png;base64,...``) and returns
    ``<base_url>/<uuid>.<ext>``.
    """

    def __init__(self, root: str | Path, base_url: str, *, max_bytes: int) -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")
        self._max_bytes = max_bytes

    async def upload(self, data: str) -> str:
        match = _DATA_URL_RE.match(data.strip())
        if match is None:
            raise ValidationError("Image must be a base64 data URL")

        ext = _EXTENSIONS.get(match["subtype"].lower())
        if ext is None:
            raise ValidationError(f"Unsupported image type: {match['subtype']}")

        try:
            raw = base64.b64decode(match["data"], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Image is not valid base64") from exc

        if len(raw) > self._max_bytes:
            raise ValidationError("Image is too large")

        name = f"{uuid.uuid4().hex}.{ext}"
        await asyncio.to_thread(self._write, name, raw)
        logger.debug("Stored image %s (%d bytes)", name, len(raw))
        return f"{self._base_url}/{name}"

    def _write(self, name: str, raw: bytes) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        (self._root / name).write_bytes(raw)
