"""
Admin API Schema Definitions.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from backend.app.models.enums import UserRole


class UserListItem(BaseModel):
    """Schema for user in list response."""
    id: int
    name: str
    avatar: Optional[str] = None
    role: UserRole
    is_active: bool
    can_reserve: bool
    unit_price: Optional[float] = None

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserListItem]
    total: int


class CanReserveRequest(BaseModel):
    user_id: int
    can_reserve: bool


class UnitPriceRequest(BaseModel):
    """unit_price is validated by the user service (ERR_INVALID_INPUT unless positive and finite)."""
    user_id: int
    unit_price: float


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    user: UserListItem
    audit_log_id: int


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_name: Optional[str] = None
    action: str
    target_user_id: Optional[int] = None
    meta_data: Optional[dict] = Field(default=None)

    class Config:
        from_attributes = True
