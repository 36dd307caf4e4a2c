"""
Charging Statistics Service.

Read-only aggregation of records for the member dashboard and the admin's
monthly reconciliation.
"""

from decimal import Decimal
from typing import List

from sqlalchemy import select, func, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.domain.charging.shift import parse_month
from backend.app.models.enums import ReservationStatus, Timeslot
from backend.app.models.record import Record
from backend.app.models.reservation import Reservation
from backend.app.models.user import User
from backend.app.schemas.analytics import (
    DailyShiftStats, MonthlyReport, MonthlyReportItem, MonthlyShiftStats, MonthlyStats
)


def _month_records(user_id: int, month: str):
    start, end = parse_month(month)
    return (
        Record.user_id == user_id,
        Record.date >= start,
        Record.date < end,
    )


class AnalyticsService:

    @staticmethod
    async def get_monthly_stats(db: AsyncSession, user_id: int, month: str) -> MonthlyStats:
        result = await db.execute(
            select(
                func.coalesce(func.sum(Record.kwh), 0.0),
                func.coalesce(func.sum(Record.amount), 0),
            ).where(*_month_records(user_id, month))
        )
        total_kwh, total_amount = result.one()
        return MonthlyStats(month=month, total_kwh=float(total_kwh), total_amount=int(total_amount))

    @staticmethod
    async def get_daily_shift_stats(db: AsyncSession, user_id: int, month: str) -> List[DailyShiftStats]:
        """Per-date day/night kWh, newest date first."""
        result = await db.execute(
            select(Record.date, Record.timeslot, func.coalesce(func.sum(Record.kwh), 0.0))
            .where(*_month_records(user_id, month))
            .group_by(Record.date, Record.timeslot)
        )

        days = {}
        for day, slot, kwh in result.all():
            stats = days.setdefault(day, {Timeslot.DAY: 0.0, Timeslot.NIGHT: 0.0})
            if slot in stats:
                stats[slot] = float(kwh)

        return [
            DailyShiftStats(
                date=day,
                day_kwh=stats[Timeslot.DAY],
                night_kwh=stats[Timeslot.NIGHT],
                total_kwh=stats[Timeslot.DAY] + stats[Timeslot.NIGHT],
            )
            for day, stats in sorted(days.items(), reverse=True)
        ]

    @staticmethod
    async def get_monthly_shift_stats(db: AsyncSession, user_id: int, month: str) -> MonthlyShiftStats:
        result = await db.execute(
            select(Record.timeslot, func.coalesce(func.sum(Record.kwh), 0.0))
            .where(*_month_records(user_id, month))
            .group_by(Record.timeslot)
        )
        totals = {slot: float(kwh) for slot, kwh in result.all()}
        day_kwh = totals.get(Timeslot.DAY, 0.0)
        night_kwh = totals.get(Timeslot.NIGHT, 0.0)
        return MonthlyShiftStats(
            month=month, day_kwh=day_kwh, night_kwh=night_kwh, total_kwh=day_kwh + night_kwh
        )

    @staticmethod
    async def get_monthly_report(db: AsyncSession, month: str) -> MonthlyReport:
        """
        Reconciliation for every member allowed to reserve.

        has_uploaded is False when any non-cancelled reservation of the month
        still lacks a record.
        """
        start, end = parse_month(month)

        users = (await db.execute(
            select(User).where(User.can_reserve.is_(True)).order_by(User.id)
        )).scalars().all()

        in_month = (
            Reservation.date >= start,
            Reservation.date < end,
            Reservation.status != ReservationStatus.CANCELLED,
        )
        totals = dict((await db.execute(
            select(Reservation.user_id, func.count(Reservation.id))
            .where(*in_month).group_by(Reservation.user_id)
        )).all())
        uploaded = dict((await db.execute(
            select(Reservation.user_id, func.count(distinct(Reservation.id)))
            .join(Record, Record.reservation_id == Reservation.id)
            .where(*in_month).group_by(Reservation.user_id)
        )).all())
        amounts = dict((await db.execute(
            select(Record.user_id, func.coalesce(func.sum(Record.amount), 0))
            .where(Record.date >= start, Record.date < end)
            .group_by(Record.user_id)
        )).all())

        items = []
        for user in users:
            items.append(MonthlyReportItem(
                id=user.id,
                user_name=user.name,
                avatar=user.avatar,
                total_amount=float(Decimal(int(amounts.get(user.id, 0))) / 100),
                has_uploaded=uploaded.get(user.id, 0) >= totals.get(user.id, 0),
            ))
        return MonthlyReport(month=month, users=items)
