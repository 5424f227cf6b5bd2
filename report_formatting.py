"""
Type-aware display formatting for report values
"""

import math
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

import pandas as pd

from report_models import FieldType

DEFAULT_CURRENCY_CODE = 'PKR'

_BOOLEAN_LABELS = ('Yes', 'No')


def to_text(value: Any) -> str:
    """String coercion matching how values are written in exports and group keys"""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_number(value: Any) -> Optional[float]:
    """
    Numeric conversion of a raw value

    Returns:
        The number, or None when the value does not convert
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        if not value.strip():
            return None
        number = pd.to_numeric(value.strip(), errors='coerce')
    else:
        return None
    try:
        number = float(number)
    except OverflowError:
        # integers beyond float range
        return math.inf if number > 0 else -math.inf
    if math.isnan(number):
        return None
    return number


def to_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """Parse a date-like value; numbers are epoch milliseconds"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        ts = pd.to_datetime(value, unit='ms', errors='coerce')
    elif isinstance(value, (str, date, datetime, pd.Timestamp)):
        ts = pd.to_datetime(value, errors='coerce')
    else:
        return None
    if pd.isna(ts):
        return None
    return ts


class FieldFormatter:
    """Formats raw field values for display according to their FieldType"""

    def __init__(self, currency_code: str = DEFAULT_CURRENCY_CODE):
        self.currency_code = currency_code
        self._formatters: Dict[FieldType, Callable[[Any], str]] = {
            FieldType.TEXT: self.format_text,
            FieldType.NUMBER: self.format_number,
            FieldType.CURRENCY: self.format_currency,
            FieldType.PERCENTAGE: self.format_percentage,
            FieldType.DATE: self.format_date,
            FieldType.BOOLEAN: self.format_boolean,
        }
        missing = set(FieldType) - set(self._formatters)
        if missing:
            raise NotImplementedError(f"No formatter for field types: {sorted(t.value for t in missing)}")

    def format(self, value: Any, field_type: FieldType) -> str:
        """
        Format a value for display

        None becomes an empty string for every type, and values a numeric
        or date formatter cannot interpret are passed through as text, so
        formatting never raises and re-formatting output is a no-op.
        """
        if value is None:
            return ''
        try:
            return self._formatters[field_type](value)
        except (ValueError, TypeError, OverflowError):
            return to_text(value)

    def format_text(self, value: Any) -> str:
        return to_text(value)

    def format_number(self, value: Any) -> str:
        """Grouped thousands, up to three fraction digits"""
        number = to_number(value)
        if number is None or isinstance(value, bool):
            return to_text(value)
        if number.is_integer():
            return f"{int(number):,}"
        return f"{number:,.3f}".rstrip('0').rstrip('.')

    def format_currency(self, value: Any) -> str:
        """Format amount as currency"""
        number = to_number(value)
        if number is None or isinstance(value, bool):
            return to_text(value)
        amount = f"{abs(number):,.0f}"
        sign = '-' if number < 0 and amount != '0' else ''
        return f"{sign}{self.currency_code} {amount}"

    def format_percentage(self, value: Any) -> str:
        number = to_number(value)
        if number is None or isinstance(value, bool):
            return to_text(value)
        return f"{number:.1f}%"

    def format_date(self, value: Any) -> str:
        """Short date, e.g. 'Jan 5, 2024'"""
        ts = to_timestamp(value)
        if ts is None:
            return to_text(value)
        return f"{ts:%b} {ts.day}, {ts.year}"

    def format_boolean(self, value: Any) -> str:
        if isinstance(value, str) and value in _BOOLEAN_LABELS:
            return value
        return 'Yes' if value else 'No'
