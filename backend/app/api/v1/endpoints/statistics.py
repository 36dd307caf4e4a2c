"""
Charging statistics endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import Clock, get_clock
from backend.app.core.dependencies import get_current_user
from backend.app.db.session import get_db
from backend.app.schemas.analytics import DailyShiftStats, MonthlyShiftStats, MonthlyStats
from backend.app.services.analytics import AnalyticsService

router = APIRouter(prefix="/statistics", tags=["Statistics"])

MONTH_QUERY = Query(None, description="YYYY-MM, defaults to the current month")


@router.get("/monthly", response_model=MonthlyStats)
async def get_monthly_statistics(
    month: Optional[str] = MONTH_QUERY,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    return await AnalyticsService.get_monthly_stats(db, current_user["user_id"], month or clock.today().strftime("%Y-%m"))


@router.get("/daily", response_model=List[DailyShiftStats])
async def get_daily_statistics(
    month: Optional[str] = MONTH_QUERY,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    return await AnalyticsService.get_daily_shift_stats(db, current_user["user_id"], month or clock.today().strftime("%Y-%m"))


@router.get("/monthly-shift", response_model=MonthlyShiftStats)
async def get_monthly_shift_statistics(
    month: Optional[str] = MONTH_QUERY,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    return await AnalyticsService.get_monthly_shift_stats(db, current_user["user_id"], month or clock.today().strftime("%Y-%m"))
