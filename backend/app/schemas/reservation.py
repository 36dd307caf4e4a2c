"""
Reservation schemas.

Dates travel as YYYY-MM-DD strings; timeslots as "day" / "night".
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional
from backend.app.models.enums import ReservationStatus, Timeslot


class ReservationCreate(BaseModel):
    """
    Schema for POST /reservations.

    date and timeslot are validated by the scheduler so malformed values
    surface as ERR_INVALID_INPUT.
    """
    date: str = Field(..., description="Reservation date, YYYY-MM-DD")
    timeslot: str = Field(..., description="day or night")
    remark: str = Field(default="", max_length=255)
    license_plate_id: Optional[int] = None


class ReservationResponse(BaseModel):
    id: int
    user_id: int
    license_plate_id: Optional[int] = None
    date: date
    timeslot: Timeslot
    timeslot_text: str
    status: ReservationStatus
    remark: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CurrentStatusResponse(BaseModel):
    """
    current_reservation: a pending reservation whose shift has not ended
    needs_upload: a finished shift still has no usage record
    last_reservation: that finished reservation, when needs_upload is True
    """
    current_reservation: Optional[ReservationResponse] = None
    needs_upload: bool = False
    last_reservation: Optional[ReservationResponse] = None

    class Config:
        from_attributes = True
