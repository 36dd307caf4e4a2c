"""
Record Settlement (Domain Logic).

Submitting a usage record against a PENDING reservation settles it:
the record is the user-visible commitment, and flipping the reservation to
COMPLETED is housekeeping that may fail without undoing the record.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    AppException,
    InvalidInputError,
    ReservationAlreadySettledError,
    ReservationNotPendingError,
    ResourceNotFoundError,
    is_unique_violation,
)
from backend.app.domain.charging.locking import lock_user_row
from backend.app.domain.charging.pricing import PricingResolver, require_positive
from backend.app.domain.charging.reservation_scheduler import (
    apply_date_filter,
    count_records_for_reservation,
    ensure_plate_owned,
)
from backend.app.domain.charging.shift import parse_date, parse_month
from backend.app.models.enums import ReservationStatus
from backend.app.models.record import Record
from backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)


def _require_positive_kwh(kwh) -> None:
    require_positive("kwh", kwh, "kWh")


class RecordSettlement:

    @staticmethod
    async def create_record(
        db: AsyncSession,
        user_id: int,
        date,
        kwh: float,
        reservation_id: int,
        unit_price: float,
        image_url: str = "",
        remark: str = "",
        license_plate_id: Optional[int] = None,
    ) -> Record:
        """
        Settle a reservation with a usage record.

        Flow:
        1. Date parses and kWh > 0, before any store access
        2. Reservation exists and belongs to the user
        3. Reservation is PENDING
        4. No record references it yet
        5. Insert record (amount computed, timeslot copied)
        6. Best-effort flip of the reservation to COMPLETED

        Raises:
            InvalidInputError: Malformed date, or kWh not a positive finite number
            ResourceNotFoundError: Reservation or license plate not found
            ConflictError: Reservation not pending or already settled
        """
        record_date = parse_date(date)
        _require_positive_kwh(kwh)
        if not reservation_id:
            raise InvalidInputError("reservation_id is required", details={"reservation_id": reservation_id})

        logger.info(
            "Creating record: user_id=%s date=%s kwh=%s reservation_id=%s",
            user_id, record_date, kwh, reservation_id
        )

        try:
            await lock_user_row(db, user_id)

            result = await db.execute(
                select(Reservation).where(
                    Reservation.id == reservation_id,
                    Reservation.user_id == user_id
                )
            )
            reservation = result.scalar_one_or_none()
            if reservation is None:
                raise ResourceNotFoundError("Reservation", reservation_id)

            if reservation.status != ReservationStatus.PENDING:
                logger.warning(
                    "Reservation not awaiting settlement: reservation_id=%s status=%s",
                    reservation_id, reservation.status.value
                )
                raise ReservationNotPendingError(reservation_id, reservation.status.value)

            if await count_records_for_reservation(db, reservation_id) > 0:
                logger.warning("Reservation already settled: reservation_id=%s", reservation_id)
                raise ReservationAlreadySettledError(reservation_id)

            if license_plate_id is not None:
                await ensure_plate_owned(db, user_id, license_plate_id)

            record = Record(
                user_id=user_id,
                date=record_date,
                kwh=kwh,
                unit_price=unit_price,
                amount=PricingResolver.calculate_amount(kwh, unit_price),
                image_url=image_url or "",
                remark=remark or "",
                reservation_id=reservation_id,
                timeslot=reservation.timeslot,
                license_plate_id=license_plate_id,
            )
            db.add(record)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if not is_unique_violation(exc):
                raise
            logger.warning("Concurrent settlement lost: reservation_id=%s", reservation_id)
            raise ReservationAlreadySettledError(reservation_id)
        except AppException:
            await db.rollback()
            raise

        await db.refresh(record)
        # Detached so a rolled-back flip cannot expire it
        db.expunge(record)
        logger.info("Record created: user_id=%s record_id=%s amount=%s", user_id, record.id, record.amount)

        await RecordSettlement.mark_reservation_completed(db, reservation_id, user_id)
        return record

    @staticmethod
    async def mark_reservation_completed(db: AsyncSession, reservation_id: int, user_id: int) -> bool:
        """
        Flip a settled reservation to COMPLETED.

        Failures are logged as settlement drift and swallowed; the status
        projector treats a pending reservation that already has a record as
        settled.

        Returns:
            True if the reservation was updated
        """
        try:
            await db.execute(
                update(Reservation)
                .where(Reservation.id == reservation_id, Reservation.user_id == user_id)
                .values(status=ReservationStatus.COMPLETED)
            )
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.warning(
                "settlement_drift: record saved but reservation not completed: reservation_id=%s user_id=%s error=%s",
                reservation_id, user_id, exc,
                extra={"event": "settlement_drift", "reservation_id": reservation_id, "user_id": user_id}
            )
            return False

        logger.info("Reservation completed: reservation_id=%s user_id=%s", reservation_id, user_id)
        return True

    @staticmethod
    async def update_record(
        db: AsyncSession,
        user_id: int,
        record_id: int,
        kwh: float,
        remark: str = "",
        image_url: Optional[str] = None,
        license_plate_id: Optional[int] = None,
    ) -> Record:
        """
        Update kWh, remark and optionally image/plate; the amount is recomputed
        from the record's own unit price snapshot.

        Raises:
            InvalidInputError: kWh not a positive finite number
            ResourceNotFoundError: Record or plate not found for this user
        """
        _require_positive_kwh(kwh)

        record = await RecordSettlement.get_record(db, user_id, record_id)
        if license_plate_id is not None:
            await ensure_plate_owned(db, user_id, license_plate_id)
            record.license_plate_id = license_plate_id

        record.kwh = kwh
        record.remark = remark or ""
        if image_url:
            record.image_url = image_url
        record.amount = PricingResolver.calculate_amount(kwh, record.unit_price)

        await db.commit()
        await db.refresh(record)
        logger.info("Record updated: user_id=%s record_id=%s amount=%s", user_id, record_id, record.amount)
        return record

    @staticmethod
    async def get_record(db: AsyncSession, user_id: int, record_id: int) -> Record:
        result = await db.execute(
            select(Record).where(Record.id == record_id, Record.user_id == user_id)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise ResourceNotFoundError("Record", record_id)
        return record

    @staticmethod
    async def get_unsubmitted_records(db: AsyncSession, user_id: int) -> list[Record]:
        """Usage recorded without a reservation link."""
        result = await db.execute(
            select(Record).where(
                Record.user_id == user_id,
                Record.reservation_id.is_(None)
            ).order_by(Record.date.desc(), Record.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_recent_records(db: AsyncSession, user_id: int, limit: int) -> list[Record]:
        if limit <= 0:
            raise InvalidInputError("limit must be positive", details={"limit": limit})
        result = await db.execute(
            select(Record).where(Record.user_id == user_id)
            .order_by(Record.created_at.desc(), Record.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_records_by_month(db: AsyncSession, user_id: int, month: str) -> list[Record]:
        parse_month(month)
        query = select(Record).where(Record.user_id == user_id)
        query = apply_date_filter(query, Record.date, month)
        result = await db.execute(
            query.order_by(Record.date.desc(), Record.created_at.desc(), Record.id.desc())
        )
        return list(result.scalars().all())
