"""
Reservation Scheduler (Domain Logic).

Decides whether a reservation may be created, and moves reservations through
PENDING -> CANCELLED. Every guard is scoped to the calling user.
"""

import logging
from datetime import date as date_type
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import Clock, system_clock
from backend.app.core.exceptions import (
    AppException,
    DuplicateSlotError,
    InvalidInputError,
    OutstandingReservationError,
    ResourceNotFoundError,
    UnsettledReservationError,
    is_unique_violation,
)
from backend.app.domain.charging.locking import lock_user_row
from backend.app.domain.charging.shift import has_shift_ended, parse_date, parse_month, parse_timeslot
from backend.app.models.enums import ReservationStatus, Timeslot
from backend.app.models.license_plate import LicensePlate
from backend.app.models.record import Record
from backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)


def apply_date_filter(query, column, value: Optional[str]):
    """Narrow a query to one day (YYYY-MM-DD) or one month (YYYY-MM)."""
    if not value:
        return query
    if len(value) == 10:
        return query.where(column == parse_date(value))
    if len(value) == 7:
        start, end = parse_month(value)
        return query.where(column >= start, column < end)
    raise InvalidInputError(
        f"Invalid date filter '{value}', expected YYYY-MM-DD or YYYY-MM",
        details={"date": value}
    )


class ReservationScheduler:

    @staticmethod
    async def create_reservation(
        db: AsyncSession,
        user_id: int,
        date,
        timeslot,
        remark: str = "",
        clock: Clock = system_clock,
        license_plate_id: Optional[int] = None,
    ) -> Reservation:
        """
        Create a PENDING reservation after the conflict guards pass.

        Flow (first failing guard wins):
        1. Outstanding-reservation guard
        2. Unsettled-debt guard
        3. Duplicate-slot guard
        4. License plate ownership
        5. Insert

        Raises:
            InvalidInputError: Malformed date or timeslot
            ConflictError: A guard failed, or a concurrent request took the slot
            ResourceNotFoundError: Unknown user or foreign license plate
        """
        reservation_date = parse_date(date)
        slot = parse_timeslot(timeslot)
        now = clock.now()

        logger.info(
            "Creating reservation: user_id=%s date=%s timeslot=%s",
            user_id, reservation_date, slot.value
        )

        try:
            await lock_user_row(db, user_id)
            await ReservationScheduler._check_outstanding(db, user_id, now.date())
            await ReservationScheduler._check_unsettled(db, user_id, now)
            await ReservationScheduler._check_duplicate_slot(db, user_id, reservation_date, slot)
            if license_plate_id is not None:
                await ensure_plate_owned(db, user_id, license_plate_id)

            reservation = Reservation(
                user_id=user_id,
                date=reservation_date,
                timeslot=slot,
                status=ReservationStatus.PENDING,
                remark=remark or "",
                license_plate_id=license_plate_id,
            )
            db.add(reservation)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if not is_unique_violation(exc):
                raise
            logger.warning(
                "Concurrent reservation lost the slot: user_id=%s date=%s timeslot=%s",
                user_id, reservation_date, slot.value
            )
            raise DuplicateSlotError(reservation_date.isoformat(), slot.value)
        except AppException:
            await db.rollback()
            raise

        await db.refresh(reservation)
        logger.info("Reservation created: user_id=%s reservation_id=%s", user_id, reservation.id)
        return reservation

    @staticmethod
    async def _check_outstanding(db: AsyncSession, user_id: int, today: date_type) -> None:
        result = await db.execute(
            select(Reservation.id).where(
                Reservation.user_id == user_id,
                Reservation.status == ReservationStatus.PENDING,
                Reservation.date >= today
            ).limit(1)
        )
        outstanding_id = result.scalar_one_or_none()
        if outstanding_id is not None:
            logger.warning("Outstanding reservation blocks new one: user_id=%s reservation_id=%s", user_id, outstanding_id)
            raise OutstandingReservationError(outstanding_id)

    @staticmethod
    async def _check_unsettled(db: AsyncSession, user_id: int, now) -> None:
        result = await db.execute(
            select(Reservation).where(
                Reservation.user_id == user_id,
                Reservation.status != ReservationStatus.CANCELLED
            ).order_by(Reservation.date.desc(), Reservation.id.desc()).limit(1)
        )
        last = result.scalar_one_or_none()
        if last is None or not has_shift_ended(last.date, last.timeslot, now):
            return

        record_count = await count_records_for_reservation(db, last.id)
        if record_count == 0:
            logger.warning("Previous reservation unsettled: user_id=%s reservation_id=%s", user_id, last.id)
            raise UnsettledReservationError(last.id)

    @staticmethod
    async def _check_duplicate_slot(db: AsyncSession, user_id: int, reservation_date: date_type, slot: Timeslot) -> None:
        result = await db.execute(
            select(func.count(Reservation.id)).where(
                Reservation.user_id == user_id,
                Reservation.date == reservation_date,
                Reservation.timeslot == slot,
                Reservation.status != ReservationStatus.CANCELLED
            )
        )
        if result.scalar() > 0:
            logger.warning(
                "Duplicate slot: user_id=%s date=%s timeslot=%s",
                user_id, reservation_date, slot.value
            )
            raise DuplicateSlotError(reservation_date.isoformat(), slot.value)

    @staticmethod
    async def cancel_reservation(db: AsyncSession, reservation_id: int, user_id: int) -> Reservation:
        """
        Cancel the caller's reservation.

        Cancelling is idempotent: a reservation that is already CANCELLED or
        COMPLETED is returned unchanged. There is no guard on the shift having
        started.

        Raises:
            ResourceNotFoundError: Not found or not owned by the caller
        """
        result = await db.execute(
            select(Reservation).where(
                Reservation.id == reservation_id,
                Reservation.user_id == user_id
            )
        )
        reservation = result.scalar_one_or_none()
        if reservation is None:
            raise ResourceNotFoundError("Reservation", reservation_id)

        if reservation.status.is_terminal:
            logger.info(
                "Cancel is a no-op for terminal reservation: reservation_id=%s status=%s",
                reservation_id, reservation.status.value
            )
            return reservation

        reservation.status = ReservationStatus.CANCELLED
        await db.commit()
        await db.refresh(reservation)
        logger.info("Reservation cancelled: user_id=%s reservation_id=%s", user_id, reservation_id)
        return reservation

    @staticmethod
    async def list_reservations(db: AsyncSession, date_filter: Optional[str] = None) -> list[Reservation]:
        """All users' non-cancelled reservations, newest first."""
        query = select(Reservation).where(Reservation.status != ReservationStatus.CANCELLED)
        query = apply_date_filter(query, Reservation.date, date_filter)
        query = query.order_by(Reservation.date.desc(), Reservation.created_at.desc(), Reservation.id.desc())
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def list_user_reservations(db: AsyncSession, user_id: int, date_filter: Optional[str] = None) -> list[Reservation]:
        """The user's reservations in every status, newest first."""
        query = select(Reservation).where(Reservation.user_id == user_id)
        query = apply_date_filter(query, Reservation.date, date_filter)
        query = query.order_by(Reservation.date.desc(), Reservation.created_at.desc(), Reservation.id.desc())
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_current_reservation(db: AsyncSession, user_id: int, clock: Clock = system_clock) -> Optional[Reservation]:
        """The user's earliest non-cancelled reservation dated today or later."""
        result = await db.execute(
            select(Reservation).where(
                Reservation.user_id == user_id,
                Reservation.status != ReservationStatus.CANCELLED,
                Reservation.date >= clock.today()
            ).order_by(Reservation.date.asc(), Reservation.id.asc()).limit(1)
        )
        return result.scalar_one_or_none()


async def count_records_for_reservation(db: AsyncSession, reservation_id: int) -> int:
    result = await db.execute(
        select(func.count(Record.id)).where(Record.reservation_id == reservation_id)
    )
    return result.scalar()


async def ensure_plate_owned(db: AsyncSession, user_id: int, license_plate_id: int) -> LicensePlate:
    """
    Raises:
        ResourceNotFoundError: Plate missing or registered to another user
    """
    result = await db.execute(
        select(LicensePlate).where(
            LicensePlate.id == license_plate_id,
            LicensePlate.user_id == user_id
        )
    )
    plate = result.scalar_one_or_none()
    if plate is None:
        raise ResourceNotFoundError("License plate", license_plate_id)
    return plate
