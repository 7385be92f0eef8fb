from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from dm_service.api.deps import UoWFactoryDep, WsRouterDep, get_verifier
from dm_service.application.dto.principal import Principal
from dm_service.application.exceptions import AppError
from dm_service.application.uow import UoWFactory
from dm_service.config import settings
from dm_service.domain.value_objects.enums import EventName
from dm_service.infrastructure.ws.manager import ConnectionManager
from dm_service.infrastructure.ws.protocol import WsInbound
from dm_service.realtime.events import message_payload, unread_counts_payload
from dm_service.realtime.router import DeliveryRouter
from dm_service.services import message_service, read_state_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


def get_manager(ws: WebSocket) -> ConnectionManager:
    return ws.app.state.connection_manager


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    uow_factory: UoWFactoryDep,
    delivery: WsRouterDep,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    manager = get_manager(websocket)
    user_id = principal.user_id
    await manager.connect(websocket, user_id)

    heartbeat_task = asyncio.create_task(
        _heartbeat(manager, websocket), name=f"ws-heartbeat-{user_id}",
    )
    try:
        # Live events may have been missed while offline: resync from the store.
        await _send_unread_counts(manager, websocket, user_id, uow_factory)
        await _read_loop(manager, websocket, principal, uow_factory, delivery)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", user_id)
    finally:
        heartbeat_task.cancel()
        await manager.disconnect(websocket, user_id)


async def _heartbeat(manager: ConnectionManager, ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await manager.send(ws, EventName.PONG, {})
    except asyncio.CancelledError:
        pass
    except Exception:
        pass


async def _read_loop(
    manager: ConnectionManager,
    ws: WebSocket,
    principal: Principal,
    uow_factory: UoWFactory,
    delivery: DeliveryRouter,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except Exception:
            await manager.send(ws, EventName.ERROR, {"code": "invalid_payload"})
            continue

        if msg.type == "ping":
            await manager.send(ws, EventName.PONG, {})

        elif msg.type == "sync":
            try:
                await _send_unread_counts(manager, ws, principal.user_id, uow_factory)
            except Exception:
                logger.exception("sync failed for %s", principal.user_id)
                await manager.send(ws, EventName.ERROR, {"code": "sync_failed"})

        elif msg.type == "mark_read":
            await _handle_mark_read(manager, ws, principal, msg.data, uow_factory, delivery)

        elif msg.type == "message.send":
            await _handle_send(manager, ws, principal, msg.data, uow_factory, delivery)

        else:
            await manager.send(ws, EventName.ERROR, {"code": "unknown_type", "type": msg.type})


async def _send_unread_counts(
    manager: ConnectionManager,
    ws: WebSocket,
    user_id: UUID,
    uow_factory: UoWFactory,
) -> None:
    async with uow_factory() as uow:
        counts = await read_state_service.unread_counts(user_id, uow)
    await manager.send(ws, EventName.UNREAD_COUNTS, unread_counts_payload(counts))


async def _handle_mark_read(
    manager: ConnectionManager,
    ws: WebSocket,
    principal: Principal,
    data: dict[str, Any],
    uow_factory: UoWFactory,
    delivery: DeliveryRouter,
) -> None:
    try:
        sender_id = UUID(data["sender_id"])
    except (KeyError, ValueError, TypeError):
        await manager.send(ws, EventName.ERROR, {"code": "invalid_data"})
        return

    try:
        async with uow_factory() as uow:
            await read_state_service.mark_conversation_read(
                principal.user_id, sender_id, uow, delivery,
            )
    except Exception:
        logger.exception("mark_read failed for %s", principal.user_id)
        await manager.send(ws, EventName.ERROR, {"code": "mark_read_failed"})


async def _handle_send(
    manager: ConnectionManager,
    ws: WebSocket,
    principal: Principal,
    data: dict[str, Any],
    uow_factory: UoWFactory,
    delivery: DeliveryRouter,
) -> None:
    try:
        receiver_id = UUID(data["receiver_id"])
        text = data.get("text")
    except (KeyError, ValueError, TypeError) as exc:
        await manager.send(ws, EventName.ERROR, {"code": "invalid_data", "detail": str(exc)})
        return

    try:
        async with uow_factory() as uow:
            msg = await message_service.send_message(
                principal.user_id, receiver_id, text, None, uow, delivery,
            )
    except AppError as exc:
        await manager.send(ws, EventName.ERROR, {"code": "send_failed", "detail": exc.detail})
        return
    except Exception:
        logger.exception("message.send failed for %s", principal.user_id)
        await manager.send(ws, EventName.ERROR, {"code": "send_failed", "detail": "Internal error"})
        return

    await manager.send(ws, EventName.MESSAGE_SENT, message_payload(msg))
