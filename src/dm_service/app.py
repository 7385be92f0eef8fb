from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from dm_service.api.middleware.correlation_id import CorrelationIdMiddleware
from dm_service.api.middleware.metrics import RequestTimingMiddleware
from dm_service.api.v1.routers import (
    health,
    messages,
    presence,
    ws,
)
from dm_service.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from dm_service.config import settings
from dm_service.infrastructure.bus.redis_pubsub import (
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from dm_service.infrastructure.ws.manager import ConnectionManager
from dm_service.realtime.router import RELAY_EVENT_TYPE, DeliveryRouter

logger = logging.getLogger(__name__)


def _relay_callback(delivery: DeliveryRouter):
    async def _on_relay_event(event_type: str, data: dict[str, Any]) -> None:
        """Deliver an event another instance could not push locally."""
        if event_type != RELAY_EVENT_TYPE:
            return
        await delivery.handle_relay(data)

    return _on_relay_event


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    manager = ConnectionManager()
    app.state.connection_manager = manager
    app.state.redis = None

    subscriber: RedisPubSubSubscriber | None = None
    if settings.REALTIME_RELAY_ENABLED:
        app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        logger.info("Redis connection pool created")
        delivery = DeliveryRouter(
            manager.presence,
            manager,
            relay=RedisPubSubPublisher(app.state.redis),
            relay_channel=settings.REDIS_PUBSUB_CHANNEL,
            on_evict=manager.broadcast_online_users,
        )
        subscriber = RedisPubSubSubscriber(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            _relay_callback(delivery),
        )
        await subscriber.start()
    else:
        delivery = DeliveryRouter(
            manager.presence, manager, on_evict=manager.broadcast_online_users,
        )
    app.state.delivery_router = delivery
    logger.info("Delivery router ready (instance=%s)", delivery.instance_id)

    yield

    await manager.close_all()
    if subscriber is not None:
        await subscriber.stop()
    if app.state.redis is not None:
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Direct Messaging Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messages.router)
    app.include_router(presence.router)
    app.include_router(ws.router)

    app.mount(
        settings.MEDIA_BASE_URL,
        StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
        name="media",
    )

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
