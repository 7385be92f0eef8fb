"""In-memory presence registry: which users hold a live connection right now."""
from __future__ import annotations

import logging
from typing import Generic, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)

H = TypeVar("H")


class PresenceRegistry(Generic[H]):
    """Maps a user id to at most one live-connection handle.

    The newest connection wins. Nothing is persisted: after a restart every
    user is offline until they reconnect. Mutations never await, so a lookup
    running on the same event loop always sees a consistent map.
    """

    def __init__(self) -> None:
        self._handles: dict[UUID, H] = {}

    def register(self, user_id: UUID, handle: H) -> H | None:
        """Bind ``handle`` to ``user_id``; returns the handle it replaced, if any."""
        previous = self._handles.get(user_id)
        self._handles[user_id] = handle
        if previous is not None and previous is not handle:
            logger.debug("Presence replaced for %s", user_id)
            return previous
        return None

    def unregister(self, user_id: UUID, handle: H | None = None) -> bool:
        """Remove the entry for ``user_id``.

        With ``handle`` given, the entry is only removed while it still points
        at that handle, so a replaced connection closing late cannot evict
        its successor.
        """
        current = self._handles.get(user_id)
        if current is None:
            return False
        if handle is not None and current is not handle:
            return False
        del self._handles[user_id]
        return True

    def lookup(self, user_id: UUID) -> H | None:
        return self._handles.get(user_id)

    def online_user_ids(self) -> list[UUID]:
        return list(self._handles)

    def handles(self) -> list[H]:
        return list(self._handles.values())

    def clear(self) -> None:
        self._handles.clear()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)
