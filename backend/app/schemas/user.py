"""
User profile schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from backend.app.models.enums import UserRole


class UserProfile(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole
    can_reserve: bool
    unit_price: Optional[float] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserProfileUpdate(BaseModel):
    """Fields left out are not changed."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    avatar: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)


class UnitPriceResponse(BaseModel):
    unit_price: float
