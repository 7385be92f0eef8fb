"""JSON envelope for events crossing process boundaries: {"event": ..., "data": ...}."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID


def _default(o: object) -> Any:
    if isinstance(o, UUID):
        return str(o)
    if isinstance(o, datetime):
        return o.isoformat()
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    return json.dumps({"event": event_type, "data": payload}, default=_default)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    envelope = json.loads(raw)
    return envelope["event"], envelope["data"]
