"""
User profile cache.

Every authenticated request needs the caller's role, price and status. The
profile is cached in Redis as JSON under user:profile:{id} with a TTL, and
dropped on every user write. Redis trouble degrades to a database read.
"""

import json
import logging
from typing import Any, Dict, Optional

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.redis_client import get_redis
from backend.app.models.user import User

logger = logging.getLogger(__name__)

KEY_PREFIX = "user:profile:"


def cache_key(user_id: int) -> str:
    return f"{KEY_PREFIX}{user_id}"


def user_to_profile(user: User) -> Dict[str, Any]:
    return {
        "user_id": user.id,
        "openid": user.openid,
        "name": user.name,
        "phone": user.phone,
        "avatar": user.avatar,
        "role": user.role.value,
        "unit_price": user.unit_price,
        "can_reserve": user.can_reserve,
        "is_active": user.is_active,
    }


class UserCache:

    @staticmethod
    async def get_profile(db: AsyncSession, user_id: int) -> Optional[Dict[str, Any]]:
        """
        Return the user's profile dict, or None if the user does not exist.
        """
        redis = await get_redis()
        key = cache_key(user_id)

        try:
            cached = await redis.get(key)
        except RedisError as exc:
            logger.warning("User cache read failed, using database: user_id=%s error=%s", user_id, exc)
            cached = None

        if cached:
            return json.loads(cached)

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            return None

        profile = user_to_profile(user)
        try:
            await redis.set(key, json.dumps(profile), ex=settings.user_cache_ttl_seconds)
        except RedisError as exc:
            logger.warning("User cache write failed: user_id=%s error=%s", user_id, exc)
        return profile

    @staticmethod
    async def invalidate(user_id: int) -> None:
        redis = await get_redis()
        try:
            await redis.delete(cache_key(user_id))
        except RedisError as exc:
            # Entry will age out after the TTL
            logger.warning("User cache invalidation failed: user_id=%s error=%s", user_id, exc)
