"""
Charging record endpoints.

Members upload the kWh they used for a reserved shift; the upload settles
the reservation.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.dependencies import get_current_user
from backend.app.db.session import get_db
from backend.app.domain.charging.pricing import PricingResolver
from backend.app.domain.charging.record_settlement import RecordSettlement
from backend.app.schemas.record import RecordCreate, RecordResponse, RecordUpdate
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/records", tags=["Records"])


@router.get("", response_model=List[RecordResponse])
async def list_records(
    month: Optional[str] = Query(None, description="YYYY-MM; omit for the most recent records"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if month:
        records = await RecordSettlement.list_records_by_month(db, current_user["user_id"], month)
    else:
        records = await RecordSettlement.list_recent_records(
            db, current_user["user_id"], settings.recent_records_limit
        )
    return [RecordResponse.model_validate(r) for r in records]


@router.get("/unsubmitted", response_model=List[RecordResponse])
async def list_unsubmitted_records(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    records = await RecordSettlement.get_unsubmitted_records(db, current_user["user_id"])
    return [RecordResponse.model_validate(r) for r in records]


@router.post("", response_model=RecordResponse, status_code=status.HTTP_201_CREATED)
async def create_record(
    record_data: RecordCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Upload usage for a pending reservation.

    The member's current unit price is snapshotted onto the record.
    """
    record = await RecordSettlement.create_record(
        db,
        user_id=current_user["user_id"],
        date=record_data.date,
        kwh=record_data.kwh,
        reservation_id=record_data.reservation_id,
        unit_price=PricingResolver.resolve_unit_price(current_user["unit_price"]),
        image_url=record_data.image_url,
        remark=record_data.remark,
        license_plate_id=record_data.license_plate_id
    )
    response = RecordResponse.model_validate(record)

    await log_event(
        db=db,
        action=AuditAction.RECORD_CREATED,
        actor_id=current_user["user_id"],
        actor_name=current_user.get("name"),
        metadata={"record_id": response.id, "reservation_id": response.reservation_id, "amount": response.amount}
    )
    return response


@router.get("/{record_id}", response_model=RecordResponse)
async def get_record(
    record_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    record = await RecordSettlement.get_record(db, current_user["user_id"], record_id)
    return RecordResponse.model_validate(record)


@router.put("/{record_id}", response_model=RecordResponse)
async def update_record(
    record_id: int,
    record_data: RecordUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    record = await RecordSettlement.update_record(
        db,
        user_id=current_user["user_id"],
        record_id=record_id,
        kwh=record_data.kwh,
        remark=record_data.remark,
        image_url=record_data.image_url,
        license_plate_id=record_data.license_plate_id
    )
    response = RecordResponse.model_validate(record)

    await log_event(
        db=db,
        action=AuditAction.RECORD_UPDATED,
        actor_id=current_user["user_id"],
        actor_name=current_user.get("name"),
        metadata={"record_id": record_id, "kwh": response.kwh, "amount": response.amount}
    )
    return response
