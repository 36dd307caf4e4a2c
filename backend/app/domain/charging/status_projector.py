"""
Status Projector (Domain Logic).

Read-only view of where a user stands: an active reservation, a finished
shift awaiting its usage record, or nothing.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import Clock, system_clock
from backend.app.domain.charging.reservation_scheduler import count_records_for_reservation
from backend.app.domain.charging.shift import has_shift_ended
from backend.app.models.enums import ReservationStatus
from backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)


@dataclass
class CurrentStatus:
    current_reservation: Optional[Reservation] = None
    needs_upload: bool = False
    last_reservation: Optional[Reservation] = None


class StatusProjector:

    @staticmethod
    async def get_current_status(db: AsyncSession, user_id: int, clock: Clock = system_clock) -> CurrentStatus:
        """
        Project the user's latest PENDING reservation onto the clock.

        - No pending reservation: nothing to show
        - Shift not over yet: it is the current reservation
        - Shift over, no record: the user must upload usage for it
        - Shift over, record exists: settlement drift, treated as settled
        """
        result = await db.execute(
            select(Reservation).where(
                Reservation.user_id == user_id,
                Reservation.status == ReservationStatus.PENDING
            ).order_by(Reservation.date.desc(), Reservation.id.desc()).limit(1)
        )
        latest = result.scalar_one_or_none()
        if latest is None:
            return CurrentStatus()

        if not has_shift_ended(latest.date, latest.timeslot, clock.now()):
            return CurrentStatus(current_reservation=latest)

        if await count_records_for_reservation(db, latest.id) == 0:
            return CurrentStatus(needs_upload=True, last_reservation=latest)

        logger.warning(
            "settlement_drift: pending reservation already has a record: reservation_id=%s user_id=%s",
            latest.id, user_id,
            extra={"event": "settlement_drift", "reservation_id": latest.id, "user_id": user_id}
        )
        return CurrentStatus()
