"""
License plate database model.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from backend.app.db.session import Base


class LicensePlate(Base):
    """
    A vehicle plate registered by a user.

    At most one plate per user is the default; LicensePlateRegistry keeps it
    that way when plates are created, deleted or promoted.
    """
    __tablename__ = "license_plates"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    plate_number = Column(String(20), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'plate_number', name='uq_license_plates_user_plate'),
    )

    def __repr__(self):
        return f"<LicensePlate(id={self.id}, plate_number='{self.plate_number}', default={self.is_default})>"
