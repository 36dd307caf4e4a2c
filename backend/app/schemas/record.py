"""
Charging record schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional
from backend.app.models.enums import Timeslot


class RecordCreate(BaseModel):
    """
    Schema for POST /records.

    kWh is checked by the settlement service (ERR_INVALID_INPUT unless positive and finite).
    """
    date: str = Field(..., description="Charging date, YYYY-MM-DD")
    kwh: float = Field(..., description="Energy used")
    reservation_id: int = Field(..., description="Reservation being settled")
    image_url: str = Field(default="", max_length=255)
    remark: str = Field(default="", max_length=255)
    license_plate_id: Optional[int] = None


class RecordUpdate(BaseModel):
    kwh: float
    remark: str = Field(default="", max_length=255)
    image_url: Optional[str] = Field(None, max_length=255)
    license_plate_id: Optional[int] = None


class RecordResponse(BaseModel):
    """amount is in fen; unit_price is the snapshot taken at creation."""
    id: int
    user_id: int
    reservation_id: Optional[int] = None
    license_plate_id: Optional[int] = None
    date: date
    timeslot: Optional[Timeslot] = None
    kwh: float
    unit_price: float
    amount: int
    image_url: str
    remark: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
