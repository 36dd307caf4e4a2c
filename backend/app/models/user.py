"""
User database model.

Members of the charging group, identified by their WeChat openid.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Float
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import UserRole, enum_values


class User(Base):
    """
    User model.

    unit_price is the member's current price per kWh; records snapshot it at
    creation so later price changes never touch settled amounts.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    openid = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=True)
    avatar = Column(String(255), nullable=True)

    role = Column(Enum(UserRole, values_callable=enum_values), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    can_reserve = Column(Boolean, default=True, nullable=False)
    unit_price = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role='{self.role.value}')>"
