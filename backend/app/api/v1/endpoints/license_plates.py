"""
License plate endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import get_current_user
from backend.app.db.session import get_db
from backend.app.schemas.license_plate import LicensePlateCreate, LicensePlateResponse, LicensePlateUpdate
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.license_plates import LicensePlateRegistry

router = APIRouter(prefix="/license-plates", tags=["License Plates"])


@router.get("", response_model=List[LicensePlateResponse])
async def list_license_plates(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plates = await LicensePlateRegistry.list_plates(db, current_user["user_id"])
    return [LicensePlateResponse.model_validate(p) for p in plates]


@router.get("/default", response_model=Optional[LicensePlateResponse])
async def get_default_license_plate(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plate = await LicensePlateRegistry.get_default_plate(db, current_user["user_id"])
    if plate is None:
        return None
    return LicensePlateResponse.model_validate(plate)


@router.post("", response_model=LicensePlateResponse, status_code=status.HTTP_201_CREATED)
async def create_license_plate(
    plate_data: LicensePlateCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plate = await LicensePlateRegistry.create_plate(
        db, current_user["user_id"], plate_data.plate_number, plate_data.is_default
    )
    return LicensePlateResponse.model_validate(plate)


@router.put("/{plate_id}", response_model=LicensePlateResponse)
async def update_license_plate(
    plate_id: int,
    plate_data: LicensePlateUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plate = await LicensePlateRegistry.update_plate(db, current_user["user_id"], plate_id, plate_data.plate_number)
    return LicensePlateResponse.model_validate(plate)


@router.delete("/{plate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_license_plate(
    plate_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await LicensePlateRegistry.delete_plate(db, current_user["user_id"], plate_id)


@router.post("/{plate_id}/default", response_model=LicensePlateResponse)
async def set_default_license_plate(
    plate_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plate = await LicensePlateRegistry.set_default_plate(db, current_user["user_id"], plate_id)
    response = LicensePlateResponse.model_validate(plate)

    await log_event(
        db=db,
        action=AuditAction.LICENSE_PLATE_DEFAULT_CHANGED,
        actor_id=current_user["user_id"],
        actor_name=current_user.get("name"),
        metadata={"plate_id": plate_id}
    )
    return response
