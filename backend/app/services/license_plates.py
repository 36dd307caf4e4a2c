"""
License Plate Registry.

Users register the plates they charge. At most one plate per user is the
default, and the registry keeps it that way with explicit updates.
"""

import logging
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    InvalidInputError, LicensePlateConflictError, ResourceNotFoundError, is_unique_violation
)
from backend.app.models.license_plate import LicensePlate
from backend.app.models.record import Record
from backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)

PLATE_MIN_LENGTH = 6
PLATE_MAX_LENGTH = 10


def validate_plate_number(plate_number: str) -> str:
    plate_number = (plate_number or "").strip()
    if not PLATE_MIN_LENGTH <= len(plate_number) <= PLATE_MAX_LENGTH:
        raise InvalidInputError(
            f"License plate must be {PLATE_MIN_LENGTH}-{PLATE_MAX_LENGTH} characters",
            details={"plate_number": plate_number}
        )
    return plate_number


class LicensePlateRegistry:

    @staticmethod
    async def list_plates(db: AsyncSession, user_id: int) -> list[LicensePlate]:
        """Default plate first, then oldest first."""
        result = await db.execute(
            select(LicensePlate).where(LicensePlate.user_id == user_id)
            .order_by(LicensePlate.is_default.desc(), LicensePlate.created_at.asc(), LicensePlate.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_plate(db: AsyncSession, user_id: int, plate_id: int) -> LicensePlate:
        result = await db.execute(
            select(LicensePlate).where(LicensePlate.id == plate_id, LicensePlate.user_id == user_id)
        )
        plate = result.scalar_one_or_none()
        if plate is None:
            raise ResourceNotFoundError("License plate", plate_id)
        return plate

    @staticmethod
    async def get_default_plate(db: AsyncSession, user_id: int) -> Optional[LicensePlate]:
        result = await db.execute(
            select(LicensePlate).where(
                LicensePlate.user_id == user_id,
                LicensePlate.is_default.is_(True)
            ).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _ensure_unique(db: AsyncSession, user_id: int, plate_number: str, exclude_id: Optional[int] = None) -> None:
        query = select(func.count(LicensePlate.id)).where(
            LicensePlate.user_id == user_id,
            LicensePlate.plate_number == plate_number
        )
        if exclude_id is not None:
            query = query.where(LicensePlate.id != exclude_id)
        if (await db.execute(query)).scalar() > 0:
            raise LicensePlateConflictError(
                "License plate already registered",
                details={"plate_number": plate_number}
            )

    @staticmethod
    async def create_plate(db: AsyncSession, user_id: int, plate_number: str, is_default: bool = False) -> LicensePlate:
        """
        Register a plate. The user's first plate is always the default.

        Raises:
            InvalidInputError: Plate number length out of range
            LicensePlateConflictError: Already registered by this user
        """
        plate_number = validate_plate_number(plate_number)
        await LicensePlateRegistry._ensure_unique(db, user_id, plate_number)

        existing = (await db.execute(
            select(func.count(LicensePlate.id)).where(LicensePlate.user_id == user_id)
        )).scalar()
        if existing == 0:
            is_default = True

        if is_default:
            await db.execute(
                update(LicensePlate).where(LicensePlate.user_id == user_id).values(is_default=False)
            )

        plate = LicensePlate(user_id=user_id, plate_number=plate_number, is_default=is_default)
        db.add(plate)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if not is_unique_violation(exc):
                raise
            raise LicensePlateConflictError(
                "License plate already registered",
                details={"plate_number": plate_number}
            )
        await db.refresh(plate)

        logger.info("License plate created: user_id=%s plate_id=%s default=%s", user_id, plate.id, plate.is_default)
        return plate

    @staticmethod
    async def update_plate(db: AsyncSession, user_id: int, plate_id: int, plate_number: str) -> LicensePlate:
        plate = await LicensePlateRegistry.get_plate(db, user_id, plate_id)
        plate_number = validate_plate_number(plate_number)
        await LicensePlateRegistry._ensure_unique(db, user_id, plate_number, exclude_id=plate_id)

        plate.plate_number = plate_number
        await db.commit()
        await db.refresh(plate)
        return plate

    @staticmethod
    async def delete_plate(db: AsyncSession, user_id: int, plate_id: int) -> None:
        """
        Delete a plate nothing refers to. Deleting the default promotes the
        user's oldest remaining plate.

        Raises:
            LicensePlateConflictError: A reservation or record uses the plate
        """
        plate = await LicensePlateRegistry.get_plate(db, user_id, plate_id)

        reservation_refs = (await db.execute(
            select(func.count(Reservation.id)).where(Reservation.license_plate_id == plate_id)
        )).scalar()
        record_refs = (await db.execute(
            select(func.count(Record.id)).where(Record.license_plate_id == plate_id)
        )).scalar()
        if reservation_refs or record_refs:
            raise LicensePlateConflictError(
                "License plate is referenced by reservations or records",
                details={"plate_id": plate_id, "reservations": reservation_refs, "records": record_refs}
            )

        was_default = plate.is_default
        await db.delete(plate)

        if was_default:
            result = await db.execute(
                select(LicensePlate).where(
                    LicensePlate.user_id == user_id,
                    LicensePlate.id != plate_id
                ).order_by(LicensePlate.created_at.asc(), LicensePlate.id.asc()).limit(1)
            )
            successor = result.scalar_one_or_none()
            if successor is not None:
                successor.is_default = True

        await db.commit()
        logger.info("License plate deleted: user_id=%s plate_id=%s", user_id, plate_id)

    @staticmethod
    async def set_default_plate(db: AsyncSession, user_id: int, plate_id: int) -> LicensePlate:
        """Clear every default for the user, then mark the chosen plate, in one transaction."""
        plate = await LicensePlateRegistry.get_plate(db, user_id, plate_id)

        await db.execute(
            update(LicensePlate).where(LicensePlate.user_id == user_id).values(is_default=False)
        )
        await db.execute(
            update(LicensePlate).where(LicensePlate.id == plate_id).values(is_default=True)
        )
        await db.commit()
        await db.refresh(plate)

        logger.info("Default license plate set: user_id=%s plate_id=%s", user_id, plate_id)
        return plate
