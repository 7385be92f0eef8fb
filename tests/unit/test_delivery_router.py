from __future__ import annotations

import uuid

import pytest

from dm_service.realtime.events import message_payload
from dm_service.realtime.router import RELAY_EVENT_TYPE, DeliveryRouter
from tests.conftest import FakeConnection, FakePublisher, make_message


@pytest.mark.asyncio
async def test_deliver_pushes_full_message_to_live_receiver(router, presence, transport, alice, bob):
    conn = FakeConnection("bob")
    presence.register(bob.id, conn)
    msg = make_message(sender_id=alice.id, receiver_id=bob.id, text="hi")

    delivered = await router.deliver(msg)

    assert delivered is True
    assert transport.events_for(conn) == [("newMessage", message_payload(msg))]


@pytest.mark.asyncio
async def test_deliver_to_offline_receiver_does_nothing(router, transport, alice, bob):
    msg = make_message(sender_id=alice.id, receiver_id=bob.id)

    delivered = await router.deliver(msg)

    assert delivered is False
    assert transport.sent == []


@pytest.mark.asyncio
async def test_deliver_never_reaches_sender(router, presence, transport, alice, bob):
    alice_conn = FakeConnection("alice")
    presence.register(alice.id, alice_conn)

    await router.deliver(make_message(sender_id=alice.id, receiver_id=bob.id))

    assert transport.events_for(alice_conn) == []


@pytest.mark.asyncio
async def test_vanished_target_is_silent_and_unregistered(router, presence, transport, alice, bob):
    conn = FakeConnection("bob")
    presence.register(bob.id, conn)
    transport.kill(conn)

    delivered = await router.deliver(make_message(sender_id=alice.id, receiver_id=bob.id))

    assert delivered is False
    assert presence.lookup(bob.id) is None


@pytest.mark.asyncio
async def test_push_uses_current_handle_after_reconnect(router, presence, transport, bob):
    old, new = FakeConnection("old"), FakeConnection("new")
    presence.register(bob.id, old)
    presence.register(bob.id, new)

    await router.push(bob.id, "messageDeleted", {"message_id": "x"})

    assert transport.events_for(old) == []
    assert transport.events_for(new) == [("messageDeleted", {"message_id": "x"})]


@pytest.mark.asyncio
async def test_offline_push_is_relayed_when_relay_configured(presence, transport, bob):
    publisher = FakePublisher()
    router = DeliveryRouter(presence, transport, relay=publisher, relay_channel="dm.test", instance_id="node-1")

    delivered = await router.push(bob.id, "newMessage", {"id": "1"})

    assert delivered is False
    assert publisher.published == [
        (
            "dm.test",
            {
                "event_type": RELAY_EVENT_TYPE,
                "user_id": str(bob.id),
                "event": "newMessage",
                "data": {"id": "1"},
                "origin": "node-1",
            },
        )
    ]


@pytest.mark.asyncio
async def test_local_hit_is_not_relayed(presence, transport, bob):
    publisher = FakePublisher()
    router = DeliveryRouter(presence, transport, relay=publisher)
    presence.register(bob.id, FakeConnection("bob"))

    await router.push(bob.id, "newMessage", {})

    assert publisher.published == []


@pytest.mark.asyncio
async def test_relay_publish_failure_is_swallowed(presence, transport, bob):
    router = DeliveryRouter(presence, transport, relay=FakePublisher(fail=True))

    assert await router.push(bob.id, "newMessage", {}) is False


@pytest.mark.asyncio
async def test_handle_relay_delivers_to_local_connection(presence, transport, bob):
    router = DeliveryRouter(presence, transport, instance_id="node-2")
    conn = FakeConnection("bob")
    presence.register(bob.id, conn)

    delivered = await router.handle_relay(
        {"user_id": str(bob.id), "event": "messagesRead", "data": {"a": 1}, "origin": "node-1"}
    )

    assert delivered is True
    assert transport.events_for(conn) == [("messagesRead", {"a": 1})]


@pytest.mark.asyncio
async def test_handle_relay_ignores_own_events(presence, transport, bob):
    router = DeliveryRouter(presence, transport, instance_id="node-1")
    presence.register(bob.id, FakeConnection("bob"))

    delivered = await router.handle_relay(
        {"user_id": str(bob.id), "event": "newMessage", "data": {}, "origin": "node-1"}
    )

    assert delivered is False
    assert transport.sent == []


@pytest.mark.asyncio
async def test_handle_relay_drops_malformed_events(router):
    assert await router.handle_relay({"user_id": "not-a-uuid", "event": "x"}) is False
    assert await router.handle_relay({"event": "x", "origin": uuid.uuid4().hex}) is False


@pytest.mark.asyncio
async def test_evicting_dead_handle_triggers_presence_rebroadcast(presence, transport, alice, bob):
    rebroadcasts: list[int] = []

    async def _rebroadcast() -> None:
        rebroadcasts.append(len(presence))

    router = DeliveryRouter(presence, transport, on_evict=_rebroadcast)
    conn = FakeConnection("bob")
    presence.register(bob.id, conn)
    presence.register(alice.id, FakeConnection("alice"))
    transport.kill(conn)

    await router.deliver(make_message(sender_id=alice.id, receiver_id=bob.id))

    assert rebroadcasts == [1]
    assert bob.id not in presence


@pytest.mark.asyncio
async def test_failed_rebroadcast_is_swallowed(presence, transport, alice, bob):
    async def _broken() -> None:
        raise ConnectionError("socket closed")

    router = DeliveryRouter(presence, transport, on_evict=_broken)
    conn = FakeConnection("bob")
    presence.register(bob.id, conn)
    transport.kill(conn)

    assert await router.deliver(make_message(sender_id=alice.id, receiver_id=bob.id)) is False
