from typing import List

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.download.policy import now_ms
from app.api.download.service import (
    ANONYMOUS_EMAIL,
    format_preset_name,
    normalize_category,
)
from app.database import db_session
from app.models import UserFavorite
from app.schemas import CreateFavoritePreset, CurrentUser


def build_favorite_id(user_id: str, preset_id: str) -> str:
    return f"{user_id}#{preset_id}"


class FavoriteService:
    def __init__(
        self,
        session: AsyncSession = Depends(db_session),
    ) -> None:
        self.session = session

    async def get_all_user_favorites(self, user_id: str) -> List[UserFavorite]:
        favorite_records = await self.session.execute(
            select(UserFavorite)
            .where(UserFavorite.user_id == user_id)
            .order_by(UserFavorite.favorite_time.desc())
        )
        return list(favorite_records.scalars().all())

    async def get_is_preset_favorite_by_user(self, user_id: str, preset_id: str) -> bool:
        favorite = await self.session.get(
            UserFavorite, build_favorite_id(user_id, preset_id)
        )
        return favorite is not None

    async def create_favorite_preset(
        self, data: CreateFavoritePreset, user: CurrentUser
    ) -> UserFavorite:
        category = normalize_category(data.category)
        preset_id = f"{category}_{data.preset_key}"
        favorite_id = build_favorite_id(user.uid, preset_id)

        # the composite key allows a single favorite per (user, preset)
        favorite = await self.session.get(UserFavorite, favorite_id)
        if favorite:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Preset already in favorite list",
            )

        favorite = UserFavorite(
            id=favorite_id,
            user_id=user.uid,
            user_email=user.email or ANONYMOUS_EMAIL,
            preset_id=preset_id,
            preset_name=data.preset_name or format_preset_name(data.preset_key),
            category=category,
            favorite_time=now_ms(),
        )
        self.session.add(favorite)
        await self.session.commit()
        return favorite

    async def delete_favorite_preset(self, user_id: str, preset_id: str) -> bool:
        favorite = await self.session.get(
            UserFavorite, build_favorite_id(user_id, preset_id)
        )

        if not favorite:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Favorite preset not found",
            )

        await self.session.delete(favorite)
        await self.session.commit()
        return True
