"""
Column Types
Exact kilogram quantities on every backend
"""
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import BigInteger, TypeDecorator

from shisha.core.config import settings


class Kilograms(TypeDecorator):
    """
    Kilogram quantity stored as an integer count of the smallest unit

    With the default precision of 3 places the stored integer is grams.
    Python sees Decimal; the database sees integers, so conditional
    comparisons and in-place increments are exact even on SQLite.
    """

    impl = BigInteger
    cache_ok = True

    def __init__(self, places: int = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.places = settings.QUANTITY_DECIMAL_PLACES if places is None else places

    @property
    def scale(self) -> Decimal:
        return Decimal(10) ** self.places

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        units = (Decimal(str(value)) * self.scale).to_integral_value(rounding=ROUND_HALF_UP)
        return int(units)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return Decimal(int(value)).scaleb(-self.places)

    def coerce_compared_value(self, op, value):
        # Literals in `total_stock >= :q` and `total_stock - :q` bind through this type
        return self
