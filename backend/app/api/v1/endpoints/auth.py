"""
Authentication API endpoints.

WeChat mini-program login and token refresh.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.schemas.auth import WeChatLogin, TokenResponse
from backend.app.core.jwt import create_user_token
from backend.app.core.dependencies import get_current_user
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.users import UserService
from backend.app.services.wechat import code_to_openid

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: WeChatLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange a wx.login() code for a JWT.

    First-time users are created with the default unit price.
    """
    openid = await code_to_openid(credentials.code)
    user, created = await UserService.get_or_create_by_openid(db, openid)

    await log_event(
        db=db,
        action=AuditAction.USER_CREATED if created else AuditAction.LOGIN_SUCCESS,
        actor_id=user.id,
        actor_name=user.name,
        ip_address=request.client.host if request.client else None
    )

    return TokenResponse(
        access_token=create_user_token(user),
        user_id=user.id,
        name=user.name,
        role=user.role,
        is_new_user=created
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Issue a fresh token for a still-valid session."""
    user = await UserService.get_user(db, current_user["user_id"])
    return TokenResponse(
        access_token=create_user_token(user),
        user_id=user.id,
        name=user.name,
        role=user.role
    )
