"""
Charging record database model.

One usage submission (kWh) and its computed cost.
"""

from sqlalchemy import Column, Integer, BigInteger, Float, String, ForeignKey, Date, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import Timeslot, enum_values


class Record(Base):
    """
    Record model.

    amount is in minor currency units (fen). reservation_id is unique so a
    reservation can be settled at most once; rows without a reservation are
    unsubmitted usage.
    """
    __tablename__ = "records"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    reservation_id = Column(Integer, ForeignKey('reservations.id'), nullable=True, unique=True)
    license_plate_id = Column(Integer, ForeignKey('license_plates.id'), nullable=True, index=True)

    date = Column(Date, nullable=False, index=True)
    timeslot = Column(Enum(Timeslot, values_callable=enum_values), nullable=True)

    # Financials
    kwh = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    amount = Column(BigInteger, nullable=False)

    image_url = Column(String(255), nullable=False, default="")
    remark = Column(String(255), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Record(id={self.id}, reservation_id={self.reservation_id}, kwh={self.kwh}, amount={self.amount})>"
