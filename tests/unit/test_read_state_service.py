from __future__ import annotations

import pytest

from dm_service.services import message_service, read_state_service
from tests.conftest import FakeConnection, make_message, make_user


@pytest.mark.asyncio
async def test_unread_counts_grouped_by_sender(uow, alice, bob):
    carol = make_user(full_name="Carol")
    uow.messages._messages.extend([
        make_message(sender_id=alice.id, receiver_id=bob.id),
        make_message(sender_id=alice.id, receiver_id=bob.id),
        make_message(sender_id=carol.id, receiver_id=bob.id),
        make_message(sender_id=carol.id, receiver_id=bob.id, is_read=True),
        make_message(sender_id=bob.id, receiver_id=alice.id),
    ])

    counts = await read_state_service.unread_counts(bob.id, uow)

    assert counts == {alice.id: 2, carol.id: 1}


@pytest.mark.asyncio
async def test_unread_counts_empty(uow, alice):
    assert await read_state_service.unread_counts(alice.id, uow) == {}


@pytest.mark.asyncio
async def test_mark_read_clears_only_that_sender(uow, router, alice, bob):
    carol = make_user(full_name="Carol")
    uow.messages._messages.extend([
        make_message(sender_id=alice.id, receiver_id=bob.id),
        make_message(sender_id=carol.id, receiver_id=bob.id),
        make_message(sender_id=bob.id, receiver_id=alice.id),
    ])

    updated = await read_state_service.mark_conversation_read(bob.id, alice.id, uow, router)

    assert updated == 1
    assert uow._committed is True
    assert await read_state_service.unread_counts(bob.id, uow) == {carol.id: 1}
    # Bob's own message to Alice is untouched
    assert await read_state_service.unread_counts(alice.id, uow) == {bob.id: 1}


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(uow, router, alice, bob):
    uow.messages._messages.extend([
        make_message(sender_id=alice.id, receiver_id=bob.id),
        make_message(sender_id=alice.id, receiver_id=bob.id),
    ])

    first = await read_state_service.mark_conversation_read(bob.id, alice.id, uow, router)
    snapshot = list(uow.messages._messages)
    second = await read_state_service.mark_conversation_read(bob.id, alice.id, uow, router)

    assert first == 2
    assert second == 0
    assert uow.messages._messages == snapshot


@pytest.mark.asyncio
async def test_receipt_goes_to_original_sender(uow, router, presence, transport, alice, bob):
    alice_conn, bob_conn = FakeConnection("alice"), FakeConnection("bob")
    presence.register(alice.id, alice_conn)
    presence.register(bob.id, bob_conn)
    uow.messages._messages.append(make_message(sender_id=alice.id, receiver_id=bob.id))

    await read_state_service.mark_conversation_read(bob.id, alice.id, uow, router)

    assert transport.events_for(alice_conn) == [
        ("messagesRead", {"sender_id": str(alice.id), "receiver_id": str(bob.id)})
    ]
    assert transport.events_for(bob_conn) == []


@pytest.mark.asyncio
async def test_receipt_skipped_when_sender_offline(uow, router, transport, alice, bob):
    uow.messages._messages.append(make_message(sender_id=alice.id, receiver_id=bob.id))

    updated = await read_state_service.mark_conversation_read(bob.id, alice.id, uow, router)

    assert updated == 1
    assert transport.sent == []


@pytest.mark.asyncio
async def test_offline_then_read_scenario(uow, router, presence, transport, alice, bob):
    alice_conn = FakeConnection("alice")
    presence.register(alice.id, alice_conn)

    await message_service.send_message(alice.id, bob.id, "hi", None, uow, router)
    assert await read_state_service.unread_counts(bob.id, uow) == {alice.id: 1}

    presence.register(bob.id, FakeConnection("bob"))
    await read_state_service.mark_conversation_read(bob.id, alice.id, uow, router)

    assert await read_state_service.unread_counts(bob.id, uow) == {}
    assert ("messagesRead", {"sender_id": str(alice.id), "receiver_id": str(bob.id)}) in (
        transport.events_for(alice_conn)
    )
