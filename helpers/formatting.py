"""
Formatting and parsing helpers shared by the services and the API.
"""
from datetime import date, datetime
from typing import Optional, Union

from loguru import logger


def ensure_date(value) -> Optional[date]:
    """Convert a date, datetime or date string to a date object"""
    if not value:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        value = value.strip()
        formats_to_try = [
            '%Y-%m-%d',
            '%m/%d/%Y',
            '%Y-%m-%d %H:%M:%S',
        ]
        for date_format in formats_to_try:
            try:
                return datetime.strptime(value, date_format).date()
            except ValueError:
                continue
        logger.warning(f"Could not parse date string '{value}'")

    raise ValueError(f"Invalid date: {value!r}")


def seconds_to_time(seconds: int) -> str:
    """Format seconds as HH:MM:SS"""
    seconds = int(seconds or 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def time_to_seconds(value: Union[str, int, None]) -> int:
    """
    Convert HH:MM:SS, MM:SS or a plain number of seconds to seconds.

    Empty input yields 0.
    """
    if value is None:
        return 0
    if isinstance(value, int):
        return value

    value = value.strip()
    if not value:
        return 0
    if value.isdigit():
        return int(value)

    parts = value.split(':')
    if len(parts) > 3 or not all(p.strip().isdigit() for p in parts):
        raise ValueError(f"Invalid time value: {value!r}")

    total = 0
    for part in parts:
        total = total * 60 + int(part)
    return total


def format_list_with_and(items) -> str:
    """Join names as 'A', 'A and B' or 'A, B, and C'"""
    items = [str(item) for item in items if item]
    if not items:
        return ''
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"
