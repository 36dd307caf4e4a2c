"""
License plate schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime


class LicensePlateCreate(BaseModel):
    plate_number: str = Field(..., description="6-10 characters")
    is_default: bool = False


class LicensePlateUpdate(BaseModel):
    plate_number: str


class LicensePlateResponse(BaseModel):
    id: int
    plate_number: str
    is_default: bool
    created_at: datetime

    class Config:
        from_attributes = True
