"""
Serialization helpers for API payloads.
Money and quantities leave the service as JSON numbers, timestamps as ISO 8601.
"""
from decimal import Decimal
from datetime import date, datetime
from typing import Union, Optional

from floowly.services.quote_calculator import round2


def money_json(value: Union[int, float, Decimal, None]) -> Optional[float]:
    """
    Convert a monetary value to a JSON number with two decimals.

    Examples:
        money_json(Decimal('31250')) -> 31250.0
        money_json(Decimal('100.005')) -> 100.01
        money_json(None) -> None
    """
    if value is None:
        return None
    return float(round2(value))


def number_json(value: Union[int, float, Decimal, None]) -> Optional[float]:
    """Convert a quantity, rate or percentage to a JSON number."""
    if value is None:
        return None
    return float(Decimal(str(value)).normalize())


def isoformat(value: Union[date, datetime, None]) -> Optional[str]:
    """ISO 8601 string for a date/datetime, None passthrough."""
    if value is None:
        return None
    return value.isoformat()
