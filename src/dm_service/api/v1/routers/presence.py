from __future__ import annotations

from fastapi import APIRouter

from dm_service.api.deps import CurrentPrincipal, RouterDep
from dm_service.api.v1.schemas.user import OnlineUsersResponse

router = APIRouter(prefix="/api/v1/presence", tags=["presence"])


@router.get("/online", response_model=OnlineUsersResponse)
async def online_users(
    _principal: CurrentPrincipal,
    delivery: RouterDep,
) -> OnlineUsersResponse:
    return OnlineUsersResponse(user_ids=delivery.presence.online_user_ids())
