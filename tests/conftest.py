"""Shared test fixtures."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Any
from uuid import UUID

import pytest

from dm_service.application.dto.principal import Principal
from dm_service.domain.entities.message import Message
from dm_service.domain.entities.user import User
from dm_service.realtime.presence import PresenceRegistry
from dm_service.realtime.router import DeliveryRouter

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_user(*, user_id: UUID | None = None, full_name: str = "Alice") -> User:
    uid = user_id or uuid.uuid4()
    return User(
        id=uid,
        full_name=full_name,
        email=f"{full_name.lower().replace(' ', '.')}@example.com",
        profile_pic=None,
        created_at=T0,
    )


def make_message(
    *,
    sender_id: UUID,
    receiver_id: UUID,
    text: str | None = "hello",
    image: str | None = None,
    is_read: bool = False,
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        text=text,
        image=image,
        is_read=is_read,
        created_at=created_at or T0,
    )


@dataclass
class FixedClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        for m in self._messages:
            if m.id == message_id:
                return m
        return None

    async def list_between(self, user_a: UUID, user_b: UUID) -> list[Message]:
        # sorted() is stable, so insertion order breaks timestamp ties
        return sorted(
            (m for m in self._messages if m.involves(user_a, user_b)),
            key=lambda m: m.created_at,
        )

    async def unread_counts(self, receiver_id: UUID) -> dict[UUID, int]:
        counts: dict[UUID, int] = {}
        for m in self._messages:
            if m.receiver_id == receiver_id and not m.is_read:
                counts[m.sender_id] = counts.get(m.sender_id, 0) + 1
        return counts


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create(self, message: Message) -> Message:
        self._reader._messages.append(message)
        return message

    async def mark_read(self, sender_id: UUID, receiver_id: UUID) -> int:
        updated = 0
        for i, m in enumerate(self._reader._messages):
            if m.sender_id == sender_id and m.receiver_id == receiver_id and not m.is_read:
                self._reader._messages[i] = replace(m, is_read=True)
                updated += 1
        return updated

    async def delete(self, message_id: UUID) -> bool:
        before = len(self._reader._messages)
        self._reader._messages = [m for m in self._reader._messages if m.id != message_id]
        return len(self._reader._messages) < before


@dataclass
class FakeUserReader:
    _users: list[User] = field(default_factory=list)

    async def get_by_id(self, user_id: UUID) -> User | None:
        for u in self._users:
            if u.id == user_id:
                return u
        return None

    async def list_except(self, user_id: UUID) -> list[User]:
        return sorted((u for u in self._users if u.id != user_id), key=lambda u: u.full_name)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    users: FakeUserReader = field(default_factory=FakeUserReader)
    commits: int = 0
    _committed: bool = False

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        pass


class FakeConnection:
    """Stand-in for a live socket."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"FakeConnection({self.name!r})"


@dataclass
class FakeTransport:
    sent: list[tuple[Any, str, dict[str, Any]]] = field(default_factory=list)
    dead: set[int] = field(default_factory=set)

    def kill(self, handle: Any) -> None:
        self.dead.add(id(handle))

    async def send(self, handle: Any, event: str, data: dict[str, Any]) -> None:
        if id(handle) in self.dead:
            raise ConnectionError("socket closed")
        self.sent.append((handle, event, data))

    def events_for(self, handle: Any) -> list[tuple[str, dict[str, Any]]]:
        return [(event, data) for h, event, data in self.sent if h is handle]


@dataclass
class FakePublisher:
    published: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    fail: bool = False

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("redis down")
        self.published.append((channel, payload))


@pytest.fixture
def alice() -> User:
    return make_user(full_name="Alice")


@pytest.fixture
def bob() -> User:
    return make_user(full_name="Bob")


@pytest.fixture
def alice_principal(alice: User) -> Principal:
    return Principal(user_id=alice.id)


@pytest.fixture
def uow(alice: User, bob: User) -> FakeUoW:
    uow = FakeUoW()
    uow.users._users.extend([alice, bob])
    return uow


@pytest.fixture
def presence() -> PresenceRegistry[Any]:
    return PresenceRegistry()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def router(presence: PresenceRegistry[Any], transport: FakeTransport) -> DeliveryRouter:
    return DeliveryRouter(presence, transport)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
