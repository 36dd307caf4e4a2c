"""
User profile endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.schemas.user import UserProfile, UserProfileUpdate, UnitPriceResponse
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await UserService.get_user(db, current_user["user_id"])
    return UserProfile.model_validate(user)


@router.post("/profile", response_model=UserProfile)
async def update_profile(
    profile: UserProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await UserService.update_profile(
        db,
        current_user["user_id"],
        name=profile.name,
        avatar=profile.avatar,
        phone=profile.phone
    )
    await log_event(
        db=db,
        action=AuditAction.PROFILE_UPDATED,
        actor_id=user.id,
        actor_name=user.name,
        metadata=profile.model_dump(exclude_none=True)
    )
    return UserProfile.model_validate(user)


@router.get("/price", response_model=UnitPriceResponse)
async def get_unit_price(current_user: dict = Depends(get_current_user)):
    """The price per kWh new records will be charged at."""
    return UnitPriceResponse(unit_price=UserService.effective_unit_price(current_user["unit_price"]))
