"""
Formatting helpers for payment references and API output.
Amounts are Tunisian dinars, dates follow the French day/month/year order.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional


def plain_amount(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format an amount without trailing zeros or thousands separators.

    Examples:
        plain_amount(Decimal('450.00')) -> "450"
        plain_amount(Decimal('150.50')) -> "150.5"
        plain_amount(None) -> "0"
    """
    if value is None or value == "":
        return "0"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return str(value)

    if num == num.to_integral_value():
        return str(num.quantize(Decimal('1')))
    return format(num.normalize(), 'f')


def money_dt(value: Union[int, float, Decimal, str, None], currency: str = 'DT') -> str:
    """Format an amount followed by its currency label, e.g. "450 DT"."""
    return f"{plain_amount(value)} {currency}"


def date_fr(value: Union[date, datetime, str, None]) -> str:
    """
    Format a date as dd/mm/yyyy.

    Strings are parsed as ISO dates; unparseable strings are returned unchanged.
    """
    if value is None or value == "":
        return ""

    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value

    return value.strftime('%d/%m/%Y')


def datetime_iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string for JSON payloads."""
    if value is None:
        return None
    return value.isoformat()
