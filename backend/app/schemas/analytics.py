"""
Charging statistics schemas.

kWh values are floats; amounts are fen except in the admin report, which
shows yuan.
"""

from pydantic import BaseModel
from datetime import date
from typing import List, Optional


class MonthlyStats(BaseModel):
    month: str
    total_kwh: float
    total_amount: int


class DailyShiftStats(BaseModel):
    date: date
    day_kwh: float
    night_kwh: float
    total_kwh: float


class MonthlyShiftStats(BaseModel):
    month: str
    day_kwh: float
    night_kwh: float
    total_kwh: float


class MonthlyReportItem(BaseModel):
    id: int
    user_name: str
    avatar: Optional[str] = None
    total_amount: float
    has_uploaded: bool


class MonthlyReport(BaseModel):
    month: str
    users: List[MonthlyReportItem]
