"""
Reservation Scheduler tests.

Clock is pinned to 2025-07-10 10:00 local (see conftest).
"""

from datetime import date

import pytest
from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from backend.app.core.exceptions import (
    ConflictError,
    DuplicateSlotError,
    InvalidInputError,
    OutstandingReservationError,
    ResourceNotFoundError,
    UnsettledReservationError,
    is_unique_violation,
)
from backend.app.domain.charging.locking import lock_user_row
from backend.app.domain.charging.reservation_scheduler import ReservationScheduler
from backend.app.models.enums import ReservationStatus, Timeslot
from backend.app.models.license_plate import LicensePlate
from backend.app.models.record import Record
from backend.app.models.reservation import Reservation


async def add_reservation(db, user, day, timeslot=Timeslot.DAY, status=ReservationStatus.PENDING):
    reservation = Reservation(user_id=user.id, date=day, timeslot=timeslot, status=status)
    db.add(reservation)
    await db.commit()
    await db.refresh(reservation)
    db.expunge(reservation)
    return reservation


async def add_record(db, user, reservation, kwh=10.0):
    record = Record(
        user_id=user.id,
        reservation_id=reservation.id,
        date=reservation.date,
        timeslot=reservation.timeslot,
        kwh=kwh,
        unit_price=0.7,
        amount=int(round(kwh * 70)),
    )
    db.add(record)
    await db.commit()
    return record


# Scenario A
@pytest.mark.asyncio
async def test_create_reservation_for_tomorrow(db_session, make_user, clock):
    user = await make_user()

    reservation = await ReservationScheduler.create_reservation(
        db_session, user.id, "2025-07-11", "day", remark="after work", clock=clock
    )

    assert reservation.id is not None
    assert reservation.status == ReservationStatus.PENDING
    assert reservation.date == date(2025, 7, 11)
    assert reservation.timeslot == Timeslot.DAY
    assert reservation.remark == "after work"


# Scenario B
@pytest.mark.asyncio
async def test_second_reservation_blocked_by_outstanding(db_session, make_user, clock):
    user = await make_user()
    first = await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)
    first_id = first.id

    with pytest.raises(OutstandingReservationError) as exc_info:
        await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-12", "night", clock=clock)

    assert exc_info.value.details["reservation_id"] == first_id
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_pending_today_counts_as_outstanding(db_session, make_user, clock):
    user = await make_user()
    await add_reservation(db_session, user, date(2025, 7, 10), Timeslot.NIGHT)

    with pytest.raises(OutstandingReservationError):
        await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-12", "day", clock=clock)


@pytest.mark.asyncio
async def test_unsettled_previous_shift_blocks(db_session, make_user, clock):
    user = await make_user()
    yesterday = await add_reservation(db_session, user, date(2025, 7, 9), Timeslot.DAY)

    with pytest.raises(UnsettledReservationError) as exc_info:
        await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)

    assert exc_info.value.details["reservation_id"] == yesterday.id


@pytest.mark.asyncio
async def test_settled_previous_shift_allows_new_reservation(db_session, make_user, clock):
    user = await make_user()
    yesterday = await add_reservation(db_session, user, date(2025, 7, 9), Timeslot.NIGHT, ReservationStatus.COMPLETED)
    await add_record(db_session, user, yesterday)

    reservation = await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)
    assert reservation.status == ReservationStatus.PENDING


@pytest.mark.asyncio
async def test_cancelled_reservations_are_ignored_by_guards(db_session, make_user, clock):
    user = await make_user()
    await add_reservation(db_session, user, date(2025, 7, 9), Timeslot.DAY, ReservationStatus.CANCELLED)
    await add_reservation(db_session, user, date(2025, 7, 11), Timeslot.DAY, ReservationStatus.CANCELLED)

    reservation = await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)
    assert reservation.status == ReservationStatus.PENDING


@pytest.mark.asyncio
async def test_duplicate_slot_rejected(db_session, make_user, clock):
    user = await make_user()
    settled = await add_reservation(db_session, user, date(2025, 7, 11), Timeslot.DAY, ReservationStatus.COMPLETED)
    await add_record(db_session, user, settled)

    with pytest.raises(DuplicateSlotError) as exc_info:
        await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)

    assert exc_info.value.error_code == "ERR_CONFLICT_003"
    assert exc_info.value.details == {"date": "2025-07-11", "timeslot": "day"}


@pytest.mark.asyncio
async def test_guards_are_scoped_per_user(db_session, make_user, clock):
    alice = await make_user("alice")
    bob = await make_user("bob")
    await ReservationScheduler.create_reservation(db_session, alice.id, "2025-07-11", "day", clock=clock)

    # Same slot, different user
    reservation = await ReservationScheduler.create_reservation(db_session, bob.id, "2025-07-11", "day", clock=clock)
    assert reservation.user_id == bob.id


@pytest.mark.asyncio
async def test_at_most_one_upcoming_pending_reservation(db_session, make_user, clock):
    user = await make_user()
    for day in ("2025-07-11", "2025-07-12", "2025-07-13"):
        try:
            await ReservationScheduler.create_reservation(db_session, user.id, day, "night", clock=clock)
        except ConflictError:
            pass

    pending = (await db_session.execute(
        select(func.count(Reservation.id)).where(
            Reservation.user_id == user.id,
            Reservation.status == ReservationStatus.PENDING,
            Reservation.date >= clock.today()
        )
    )).scalar()
    assert pending == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("day, timeslot", [
    ("2025-07-32", "day"),
    ("11/07/2025", "day"),
    ("2025-07-11", "evening"),
    ("2025-07-11", ""),
])
async def test_invalid_input_rejected(db_session, make_user, clock, day, timeslot):
    user = await make_user()
    with pytest.raises(InvalidInputError):
        await ReservationScheduler.create_reservation(db_session, user.id, day, timeslot, clock=clock)


@pytest.mark.asyncio
async def test_foreign_license_plate_rejected(db_session, make_user, clock):
    alice = await make_user("alice")
    bob = await make_user("bob")
    plate = LicensePlate(user_id=bob.id, plate_number="SH-A12345", is_default=True)
    db_session.add(plate)
    await db_session.commit()

    with pytest.raises(ResourceNotFoundError):
        await ReservationScheduler.create_reservation(
            db_session, alice.id, "2025-07-11", "day", clock=clock, license_plate_id=plate.id
        )

    count = (await db_session.execute(select(func.count(Reservation.id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_foreign_key_failure_is_not_reported_as_duplicate_slot(db_session, make_user, clock, mocker):
    user = await make_user()
    mocker.patch(
        "backend.app.domain.charging.reservation_scheduler.ensure_plate_owned",
        return_value=None,
    )

    with pytest.raises(IntegrityError):
        await ReservationScheduler.create_reservation(
            db_session, user.id, "2025-07-11", "day", clock=clock, license_plate_id=9999
        )

    count = (await db_session.execute(select(func.count(Reservation.id)))).scalar()
    assert count == 0


class FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.mark.parametrize("orig, expected", [
    (FakeDriverError("duplicate key value", sqlstate="23505"), True),
    (FakeDriverError("violates foreign key constraint", sqlstate="23503"), False),
    (FakeDriverError("UNIQUE constraint failed: records.reservation_id"), True),
    (FakeDriverError("FOREIGN KEY constraint failed"), False),
    (FakeDriverError("NOT NULL constraint failed: reservations.date"), False),
])
def test_unique_violation_detection(orig, expected):
    assert is_unique_violation(IntegrityError("INSERT", {}, orig)) is expected


@pytest.mark.asyncio
async def test_guards_lock_the_user_row_on_postgresql(mocker):
    db = mocker.AsyncMock()
    db.execute.return_value = mocker.Mock(scalar_one_or_none=mocker.Mock(return_value=object()))

    await lock_user_row(db, 7)

    statement = db.execute.call_args.args[0]
    assert "FOR UPDATE" in str(statement.compile(dialect=postgresql.dialect()))


@pytest.mark.asyncio
async def test_cancel_frees_the_slot(db_session, make_user, clock):
    user = await make_user()
    reservation = await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)

    cancelled = await ReservationScheduler.cancel_reservation(db_session, reservation.id, user.id)
    assert cancelled.status == ReservationStatus.CANCELLED

    again = await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)
    assert again.id != reservation.id


@pytest.mark.asyncio
async def test_cancel_is_idempotent(db_session, make_user, clock):
    user = await make_user()
    reservation = await ReservationScheduler.create_reservation(db_session, user.id, "2025-07-11", "day", clock=clock)

    first = await ReservationScheduler.cancel_reservation(db_session, reservation.id, user.id)
    second = await ReservationScheduler.cancel_reservation(db_session, reservation.id, user.id)

    assert first.status == second.status == ReservationStatus.CANCELLED


@pytest.mark.asyncio
async def test_cancel_completed_reservation_is_a_no_op(db_session, make_user):
    user = await make_user()
    completed = await add_reservation(db_session, user, date(2025, 7, 9), Timeslot.DAY, ReservationStatus.COMPLETED)

    result = await ReservationScheduler.cancel_reservation(db_session, completed.id, user.id)
    assert result.status == ReservationStatus.COMPLETED


@pytest.mark.asyncio
async def test_cancel_other_users_reservation_not_found(db_session, make_user, clock):
    alice = await make_user("alice")
    bob = await make_user("bob")
    reservation = await ReservationScheduler.create_reservation(db_session, alice.id, "2025-07-11", "day", clock=clock)

    with pytest.raises(ResourceNotFoundError):
        await ReservationScheduler.cancel_reservation(db_session, reservation.id, bob.id)


@pytest.mark.asyncio
async def test_list_reservations_filters_and_orders(db_session, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    a1 = await add_reservation(db_session, alice, date(2025, 7, 10), Timeslot.DAY, ReservationStatus.COMPLETED)
    b1 = await add_reservation(db_session, bob, date(2025, 7, 10), Timeslot.NIGHT)
    await add_reservation(db_session, bob, date(2025, 7, 10), Timeslot.DAY, ReservationStatus.CANCELLED)
    a2 = await add_reservation(db_session, alice, date(2025, 7, 12), Timeslot.DAY)
    await add_reservation(db_session, alice, date(2025, 8, 1), Timeslot.DAY)

    day = await ReservationScheduler.list_reservations(db_session, "2025-07-10")
    assert {r.id for r in day} == {a1.id, b1.id}

    month = await ReservationScheduler.list_reservations(db_session, "2025-07")
    assert [r.id for r in month][0] == a2.id
    assert len(month) == 3

    with pytest.raises(InvalidInputError):
        await ReservationScheduler.list_reservations(db_session, "July")


@pytest.mark.asyncio
async def test_list_user_reservations_includes_cancelled(db_session, make_user):
    user = await make_user()
    await add_reservation(db_session, user, date(2025, 7, 9), Timeslot.DAY, ReservationStatus.CANCELLED)
    await add_reservation(db_session, user, date(2025, 7, 11), Timeslot.DAY)

    mine = await ReservationScheduler.list_user_reservations(db_session, user.id, "2025-07")
    assert [r.date for r in mine] == [date(2025, 7, 11), date(2025, 7, 9)]


@pytest.mark.asyncio
async def test_current_reservation_is_earliest_upcoming(db_session, make_user, clock):
    user = await make_user()
    await add_reservation(db_session, user, date(2025, 7, 9), Timeslot.DAY, ReservationStatus.COMPLETED)
    later = await add_reservation(db_session, user, date(2025, 7, 14), Timeslot.DAY, ReservationStatus.COMPLETED)
    await add_reservation(db_session, user, date(2025, 7, 12), Timeslot.DAY, ReservationStatus.CANCELLED)

    current = await ReservationScheduler.get_current_reservation(db_session, user.id, clock)
    assert current.id == later.id

    other = await make_user()
    assert await ReservationScheduler.get_current_reservation(db_session, other.id, clock) is None
