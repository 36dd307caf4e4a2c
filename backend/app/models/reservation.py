"""
Reservation database model.

A user's claim on one shift of one calendar day.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Enum, Index, text
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import Timeslot, ReservationStatus, enum_values

TIMESLOT_TEXT = {
    Timeslot.DAY: "Day shift (08:00-20:00)",
    Timeslot.NIGHT: "Night shift (20:00-08:00)",
}


class Reservation(Base):
    """
    Reservation model.

    Lifecycle: PENDING -> COMPLETED (settled by a record) or PENDING -> CANCELLED.
    The partial unique index backs the duplicate-slot guard so two racing
    requests from the same user cannot both insert the same shift.
    """
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    license_plate_id = Column(Integer, ForeignKey('license_plates.id'), nullable=True, index=True)

    date = Column(Date, nullable=False, index=True)
    timeslot = Column(Enum(Timeslot, values_callable=enum_values), nullable=False)
    status = Column(
        Enum(ReservationStatus, values_callable=enum_values),
        default=ReservationStatus.PENDING,
        nullable=False,
        index=True
    )
    remark = Column(String(255), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index(
            'uq_reservations_user_slot_active', 'user_id', 'date', 'timeslot',
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    @property
    def timeslot_text(self) -> str:
        return TIMESLOT_TEXT.get(self.timeslot, str(self.timeslot))

    def __repr__(self):
        return f"<Reservation(id={self.id}, user_id={self.user_id}, date={self.date}, timeslot='{self.timeslot.value}', status='{self.status.value}')>"
