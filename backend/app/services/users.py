"""
User account service.

Every write here drops the user's cached profile.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.charging.pricing import PricingResolver, require_positive
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.services.user_cache import UserCache

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIX = "User"


class UserService:

    @staticmethod
    async def get_user(db: AsyncSession, user_id: int) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    @staticmethod
    async def get_or_create_by_openid(db: AsyncSession, openid: str) -> tuple[User, bool]:
        """
        Returns:
            (user, created)
        """
        result = await db.execute(select(User).where(User.openid == openid))
        user = result.scalar_one_or_none()
        if user is not None:
            return user, False

        user = User(
            openid=openid,
            name=f"{DEFAULT_NAME_PREFIX}{openid[-6:]}",
            role=UserRole.USER,
            unit_price=settings.default_unit_price,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # Two first logins raced; the other one created the row
            await db.rollback()
            result = await db.execute(select(User).where(User.openid == openid))
            return result.scalar_one(), False

        await db.refresh(user)
        logger.info("User created: user_id=%s", user.id)
        return user, True

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user_id: int,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        user = await UserService.get_user(db, user_id)
        if name is not None:
            user.name = name
        if avatar is not None:
            user.avatar = avatar
        if phone is not None:
            user.phone = phone
        await db.commit()
        await db.refresh(user)
        await UserCache.invalidate(user_id)
        return user

    @staticmethod
    def effective_unit_price(unit_price: Optional[float]) -> float:
        return PricingResolver.resolve_unit_price(unit_price)

    @staticmethod
    async def list_users(db: AsyncSession) -> list[User]:
        result = await db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    @staticmethod
    async def set_can_reserve(db: AsyncSession, user_id: int, can_reserve: bool) -> User:
        user = await UserService.get_user(db, user_id)
        user.can_reserve = can_reserve
        await db.commit()
        await db.refresh(user)
        await UserCache.invalidate(user_id)
        logger.info("can_reserve changed: user_id=%s can_reserve=%s", user_id, can_reserve)
        return user

    @staticmethod
    async def set_unit_price(db: AsyncSession, user_id: int, unit_price: float) -> User:
        """New price applies to future records only; existing records keep their snapshot."""
        require_positive("unit_price", unit_price, "Unit price")
        user = await UserService.get_user(db, user_id)
        user.unit_price = unit_price
        await db.commit()
        await db.refresh(user)
        await UserCache.invalidate(user_id)
        logger.info("Unit price changed: user_id=%s unit_price=%s", user_id, unit_price)
        return user
