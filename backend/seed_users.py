"""
Database seeding script for the group admin.

Members sign up by logging in through the mini-program. The admin is whoever
owns the given openid: promoted if they already logged in, created otherwise.

Usage:
    python backend/seed_users.py <openid> [name]
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.config import settings
from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.models.audit_log import AuditLog
from backend.app.models.license_plate import LicensePlate
from backend.app.models.reservation import Reservation
from backend.app.models.record import Record
from sqlalchemy import select


async def seed_admin(openid: str, name: str = "Admin"):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Seeding admin user...")

        result = await db.execute(select(User).where(User.openid == openid))
        user = result.scalar_one_or_none()

        if user is not None and user.role == UserRole.ADMIN:
            print(f"User {user.id} is already an admin, skipping")
            return

        if user is None:
            user = User(
                openid=openid,
                name=name,
                role=UserRole.ADMIN,
                unit_price=settings.default_unit_price,
            )
            db.add(user)
            print(f"Created ADMIN user (openid: {openid})")
        else:
            user.role = UserRole.ADMIN
            print(f"Promoted user {user.id} to ADMIN")

        await db.commit()
        print("Seeding completed. The user's next token carries the admin role.")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(seed_admin(*sys.argv[1:3]))
