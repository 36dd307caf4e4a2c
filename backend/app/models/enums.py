"""
Enumerations for the shared charging domain.

Values are the lowercase tokens used on the wire and stored in the database.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages prices, membership and the monthly reconciliation
        USER: Member of the sharing group (default role)
    """
    ADMIN = "admin"
    USER = "user"


class Timeslot(str, enum.Enum):
    """Daily charging shift."""
    DAY = "day"  # 08:00-20:00 of the reservation date
    NIGHT = "night"  # 20:00 to 08:00 of the next date


class ReservationStatus(str, enum.Enum):
    """Reservation lifecycle. CANCELLED and COMPLETED are terminal."""
    PENDING = "pending"  # Created, awaiting a usage record
    CANCELLED = "cancelled"  # Cancelled by its owner
    COMPLETED = "completed"  # Settled by a usage record

    @property
    def is_terminal(self) -> bool:
        return self is not ReservationStatus.PENDING


def enum_values(enum_cls) -> list[str]:
    """values_callable for SQLAlchemy Enum columns: persist .value, not .name."""
    return [member.value for member in enum_cls]
