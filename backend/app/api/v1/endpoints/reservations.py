"""
Reservation endpoints.

Members claim a day or night shift, cancel it, and see where they stand.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import Clock, get_clock
from backend.app.core.dependencies import get_current_user
from backend.app.db.session import get_db
from backend.app.domain.charging.reservation_scheduler import ReservationScheduler
from backend.app.domain.charging.status_projector import StatusProjector
from backend.app.schemas.reservation import CurrentStatusResponse, ReservationCreate, ReservationResponse
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.get("", response_model=List[ReservationResponse])
async def list_reservations(
    date: Optional[str] = Query(None, description="YYYY-MM-DD or YYYY-MM, defaults to today"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Everyone's active reservations, so members can see who holds which shift."""
    reservations = await ReservationScheduler.list_reservations(db, date or clock.today().isoformat())
    return [ReservationResponse.model_validate(r) for r in reservations]


@router.get("/mine", response_model=List[ReservationResponse])
async def list_my_reservations(
    date: Optional[str] = Query(None, description="YYYY-MM-DD or YYYY-MM"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    reservations = await ReservationScheduler.list_user_reservations(db, current_user["user_id"], date)
    return [ReservationResponse.model_validate(r) for r in reservations]


@router.get("/current", response_model=Optional[ReservationResponse])
async def get_current_reservation(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    reservation = await ReservationScheduler.get_current_reservation(db, current_user["user_id"], clock)
    if reservation is None:
        return None
    return ReservationResponse.model_validate(reservation)


@router.get("/current-status", response_model=CurrentStatusResponse)
async def get_current_status(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    current = await StatusProjector.get_current_status(db, current_user["user_id"], clock)
    return CurrentStatusResponse.model_validate(current)


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation_data: ReservationCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Reserve a shift.

    Rejected (400, ERR_CONFLICT_00x) when the member already has an upcoming
    pending reservation, has not uploaded usage for a finished shift, or
    already holds the slot.
    """
    reservation = await ReservationScheduler.create_reservation(
        db,
        user_id=current_user["user_id"],
        date=reservation_data.date,
        timeslot=reservation_data.timeslot,
        remark=reservation_data.remark,
        clock=clock,
        license_plate_id=reservation_data.license_plate_id
    )
    response = ReservationResponse.model_validate(reservation)

    await log_event(
        db=db,
        action=AuditAction.RESERVATION_CREATED,
        actor_id=current_user["user_id"],
        actor_name=current_user.get("name"),
        metadata={"reservation_id": response.id, "date": response.date.isoformat(), "timeslot": response.timeslot.value}
    )
    return response


@router.delete("/{reservation_id}", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Cancel a reservation. Repeating the call is harmless."""
    reservation = await ReservationScheduler.cancel_reservation(db, reservation_id, current_user["user_id"])
    response = ReservationResponse.model_validate(reservation)

    await log_event(
        db=db,
        action=AuditAction.RESERVATION_CANCELLED,
        actor_id=current_user["user_id"],
        actor_name=current_user.get("name"),
        metadata={"reservation_id": reservation_id, "status": response.status.value}
    )
    return response
