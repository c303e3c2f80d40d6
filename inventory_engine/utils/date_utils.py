from datetime import date, datetime, timedelta
from typing import Optional, Union


def add_days(start_date: date, days: int) -> date:
    """Add days to a date.

    Args:
        start_date: Start date
        days: Number of days to add

    Returns:
        New date
    """
    return start_date + timedelta(days=days)


def convert_to_date(value: Union[str, date, datetime, None], format_string: str = "%Y-%m-%d") -> Optional[date]:
    """Convert a string, datetime or date to a date.

    Args:
        value: Date string, datetime, date or None
        format_string: Format used to parse strings

    Returns:
        Date object, or None when value is None or empty

    Raises:
        ValueError: If a string does not match the format
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, format_string).date()


def month_prefix(target_date: date) -> str:
    """Year and month as YYYYMM, used for purchase order numbering."""
    return f"{target_date.year}{target_date.month:02d}"
