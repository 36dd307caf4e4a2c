"""
Admin API Endpoints.

Group membership, per-user pricing and the monthly reconciliation, with
audit logging.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import Clock, get_clock
from backend.app.core.guards import require_admin
from backend.app.db.session import get_db
from backend.app.schemas.admin import (
    AdminActionResponse, AuditLogResponse, CanReserveRequest, UnitPriceRequest, UserListItem, UserListResponse
)
from backend.app.schemas.analytics import MonthlyReport
from backend.app.services.analytics import AnalyticsService
from backend.app.services.audit import log_admin_action, AuditAction, get_audit_trail
from backend.app.services.users import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=UserListResponse)
async def list_users(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    users = await UserService.list_users(db)
    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=len(users)
    )


@router.post("/users/can-reserve", response_model=AdminActionResponse)
async def update_can_reserve(
    request: CanReserveRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Include or exclude a member from the group (and its monthly report)."""
    user = await UserService.set_can_reserve(db, request.user_id, request.can_reserve)
    item = UserListItem.model_validate(user)

    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.CAN_RESERVE_CHANGED,
        target_user_id=user.id,
        metadata={"can_reserve": request.can_reserve}
    )
    return AdminActionResponse(
        success=True,
        message=f"can_reserve set to {request.can_reserve}",
        user=item,
        audit_log_id=audit_log.id
    )


@router.post("/users/unit-price", response_model=AdminActionResponse)
async def update_unit_price(
    request: UnitPriceRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Change a member's price per kWh. Existing records keep their snapshot."""
    user = await UserService.set_unit_price(db, request.user_id, request.unit_price)
    item = UserListItem.model_validate(user)

    audit_log = await log_admin_action(
        db=db,
        admin=admin,
        action=AuditAction.UNIT_PRICE_CHANGED,
        target_user_id=user.id,
        metadata={"unit_price": request.unit_price}
    )
    return AdminActionResponse(
        success=True,
        message=f"unit_price set to {request.unit_price}",
        user=item,
        audit_log_id=audit_log.id
    )


@router.get("/reports/monthly", response_model=MonthlyReport)
async def get_monthly_report(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    return await AnalyticsService.get_monthly_report(db, month or clock.today().strftime("%Y-%m"))


@router.get("/audit-logs", response_model=List[AuditLogResponse])
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Entries where this user is actor or target"),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    logs = await get_audit_trail(db, target_user_id=user_id, action=action, limit=limit)
    return [AuditLogResponse.model_validate(log) for log in logs]
