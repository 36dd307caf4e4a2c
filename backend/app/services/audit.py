"""
Audit logging service for reservation, settlement and admin actions.

Gives the group admin a trail to reconcile disputed bills against.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    USER_CREATED = "USER_CREATED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    PROFILE_UPDATED = "PROFILE_UPDATED"

    RESERVATION_CREATED = "RESERVATION_CREATED"
    RESERVATION_CANCELLED = "RESERVATION_CANCELLED"

    RECORD_CREATED = "RECORD_CREATED"
    RECORD_UPDATED = "RECORD_UPDATED"

    LICENSE_PLATE_DEFAULT_CHANGED = "LICENSE_PLATE_DEFAULT_CHANGED"

    CAN_RESERVE_CHANGED = "CAN_RESERVE_CHANGED"
    UNIT_PRICE_CHANGED = "UNIT_PRICE_CHANGED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_name: Optional[str] = None,
    target_user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Write one audit entry and commit it.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_name: Display name of actor
        target_user_id: ID of user being acted upon (admin actions)
        metadata: Additional context as JSON
        ip_address: IP address of the request
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_name=actor_name,
        action=action,
        target_user_id=target_user_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_admin_action(
    db: AsyncSession,
    admin: dict,
    action: str,
    target_user_id: int,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Log an admin change to another user's account."""
    return await log_event(
        db=db,
        action=action,
        actor_id=admin["user_id"],
        actor_name=admin.get("name"),
        target_user_id=target_user_id,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_user_id:
        query = query.where(
            (AuditLog.actor_id == target_user_id) | (AuditLog.target_user_id == target_user_id)
        )

    if action:
        query = query.where(AuditLog.action == action)

    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())
