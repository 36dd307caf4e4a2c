"""
Pricing for charging records.

Determines the unit price snapshot for a new record and the amount owed.
Follows priority:
1. The user's own unit price
2. The configured default price
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from backend.app.core.config import settings
from backend.app.core.exceptions import InvalidInputError


def require_positive(field: str, value, label: str) -> None:
    """
    Reject missing, non-positive, NaN and infinite quantities.

    Non-finite values are echoed back as strings; JSON has no NaN.
    """
    if value is None or not math.isfinite(value) or value <= 0:
        shown = value if value is None or math.isfinite(value) else str(value)
        raise InvalidInputError(f"{label} must be a finite number greater than 0", details={field: shown})


class PricingResolver:

    @staticmethod
    def resolve_unit_price(user_unit_price: Optional[float]) -> float:
        if user_unit_price is not None and math.isfinite(user_unit_price) and user_unit_price > 0:
            return user_unit_price
        return settings.default_unit_price

    @staticmethod
    def calculate_amount(kwh: float, unit_price: float) -> int:
        """
        amount = round(kwh * unit_price * 100) in minor units.

        Computed on the decimal forms of the inputs and rounded half away from
        zero, so 1.5 kWh at 0.7 is exactly 105.
        """
        require_positive("kwh", kwh, "kWh")
        require_positive("unit_price", unit_price, "Unit price")
        exact = Decimal(str(kwh)) * Decimal(str(unit_price)) * 100
        return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
