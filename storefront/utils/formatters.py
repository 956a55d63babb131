"""
JSON serialisation helpers for API responses.

Money is kept as Decimal end to end and rendered as a two-decimal string so
no float rounding creeps into totals.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

CENT = Decimal('0.01')


def to_money(value: Union[int, float, Decimal, str, None]) -> Decimal:
    """
    Coerce a value to a two-decimal Decimal.

    Floats go through ``str`` first so 99.99 stays 99.99.

    Raises:
        ValueError: if the value is not a number
    """
    if value is None or value == '':
        raise ValueError('Amount is required')
    if isinstance(value, bool):
        raise ValueError(f'Invalid amount: {value!r}')
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f'Invalid amount: {value!r}')


def money_str(value: Union[Decimal, int, None]) -> Optional[str]:
    """Decimal -> '299.97'."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def iso(value: Union[date, datetime, None]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()
