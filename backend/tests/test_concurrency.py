"""
Concurrency Tests.

Two sessions race the same user's guard-then-insert sequences against a
file-backed SQLite database. SQLite has no row locks, so the unique indexes
are what decide the race here. That covers the same slot and the same
reservation only; two different-date reservations racing the outstanding
guard are serialized by the PostgreSQL row lock and are not exercised here.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from backend.app.core.exceptions import ConflictError
from backend.app.db.session import Base
from backend.app.domain.charging.record_settlement import RecordSettlement
from backend.app.domain.charging.reservation_scheduler import ReservationScheduler
from backend.app.models.enums import ReservationStatus, Timeslot, UserRole
from backend.app.models.record import Record
from backend.app.models.reservation import Reservation
from backend.app.models.user import User


@pytest.fixture
async def file_sessions(tmp_path):
    file_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)

    await file_engine.dispose()


async def seed_user(factory) -> int:
    async with factory() as db:
        user = User(openid="openid-race", name="racer", role=UserRole.USER, unit_price=0.7)
        db.add(user)
        await db.commit()
        return user.id


async def outcome(coro):
    try:
        return await coro
    except ConflictError as exc:
        return exc


# Scenario E
@pytest.mark.asyncio
async def test_same_slot_race_has_one_winner(file_sessions, clock):
    user_id = await seed_user(file_sessions)

    async def attempt():
        async with file_sessions() as db:
            return await outcome(
                ReservationScheduler.create_reservation(db, user_id, "2025-07-11", "day", clock=clock)
            )

    results = await asyncio.gather(attempt(), attempt())

    winners = [r for r in results if isinstance(r, Reservation)]
    losers = [r for r in results if isinstance(r, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 1

    async with file_sessions() as db:
        count = (await db.execute(
            select(func.count(Reservation.id)).where(
                Reservation.user_id == user_id,
                Reservation.status != ReservationStatus.CANCELLED
            )
        )).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_double_settlement_race_has_one_winner(file_sessions):
    user_id = await seed_user(file_sessions)
    async with file_sessions() as db:
        reservation = Reservation(user_id=user_id, date=date(2025, 7, 10), timeslot=Timeslot.NIGHT)
        db.add(reservation)
        await db.commit()
        reservation_id = reservation.id

    async def attempt():
        async with file_sessions() as db:
            return await outcome(
                RecordSettlement.create_record(
                    db, user_id, "2025-07-10", kwh=6, reservation_id=reservation_id, unit_price=0.7
                )
            )

    results = await asyncio.gather(attempt(), attempt())

    assert len([r for r in results if isinstance(r, Record)]) == 1
    assert len([r for r in results if isinstance(r, ConflictError)]) == 1

    async with file_sessions() as db:
        count = (await db.execute(
            select(func.count(Record.id)).where(Record.reservation_id == reservation_id)
        )).scalar()
    assert count == 1
