"""
Per-user write serialization.

Reservation and settlement guards are check-then-act sequences. Each one
starts by locking the acting user's row, so two requests from the same user
run their guards one after the other on PostgreSQL.

Unique indexes back up only the duplicate-slot guard and the one-record-per-
reservation rule. The outstanding-reservation guard (two pending future
reservations on different dates) is serialized by the row lock alone, so it
is not race-safe on SQLite, where FOR UPDATE is a no-op.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.models.user import User


async def lock_user_row(db: AsyncSession, user_id: int) -> User:
    """
    Lock the user's row for the rest of the current transaction.

    Raises:
        ResourceNotFoundError: If the user does not exist
    """
    result = await db.execute(
        select(User).where(User.id == user_id).with_for_update()
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    return user
