"""FastAPI dependency injection helpers."""
from __future__ import annotations

from datetime import timedelta
from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dm_service.application.dto.principal import Principal
from dm_service.application.ports.auth import TokenVerifier
from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.ports.storage import ImageStorage
from dm_service.application.uow import UoWFactory
from dm_service.config import settings
from dm_service.infrastructure.auth.hs256_verifier import HS256Verifier
from dm_service.infrastructure.auth.jwks_verifier import JWKSVerifier
from dm_service.infrastructure.db.session import AsyncSessionLocal
from dm_service.infrastructure.db.uow import SqlAlchemyUoW, open_uow
from dm_service.infrastructure.storage.local import LocalImageStorage
from dm_service.realtime.router import DeliveryRouter

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def get_uow_factory() -> UoWFactory:
    """Per-message units of work for long-lived WebSocket handlers."""
    return open_uow


UoWFactoryDep = Annotated[UoWFactory, Depends(get_uow_factory)]


def get_delivery_router(request: Request) -> DeliveryRouter:
    return request.app.state.delivery_router


def get_ws_delivery_router(websocket: WebSocket) -> DeliveryRouter:
    return websocket.app.state.delivery_router


RouterDep = Annotated[DeliveryRouter, Depends(get_delivery_router)]
WsRouterDep = Annotated[DeliveryRouter, Depends(get_ws_delivery_router)]


_clock = SystemClock()


def get_clock() -> Clock:
    return _clock


ClockDep = Annotated[Clock, Depends(get_clock)]


def get_retention() -> timedelta:
    return timedelta(seconds=settings.MESSAGE_RETENTION_SECONDS)


RetentionDep = Annotated[timedelta, Depends(get_retention)]


def get_image_storage() -> ImageStorage:
    return LocalImageStorage(
        settings.MEDIA_ROOT,
        settings.MEDIA_BASE_URL,
        max_bytes=settings.MAX_IMAGE_BYTES,
    )


ImageStorageDep = Annotated[ImageStorage, Depends(get_image_storage)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
