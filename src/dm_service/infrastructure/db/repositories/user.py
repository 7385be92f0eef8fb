from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dm_service.domain.entities.user import User
from dm_service.infrastructure.db.mappers import user as mapper
from dm_service.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        result = await self._session.get(UserModel, user_id)
        return mapper.model_to_entity(result) if result else None

    async def list_except(self, user_id: UUID) -> list[User]:
        stmt = (
            select(UserModel)
            .where(UserModel.id != user_id)
            .order_by(UserModel.full_name.asc(), UserModel.id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]
