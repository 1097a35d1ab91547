# backend/price_history/utils/date_utils.py
"""
Date utility functions for price history handling.

This module provides shared date manipulation functions used across
multiple services. Centralizing these prevents code duplication and
ensures consistent behavior.

Usage:
    from price_history.utils.date_utils import get_business_days, parse_date

    days = get_business_days(start_date, end_date)
"""

from datetime import date, datetime, time, timedelta, timezone

from price_history.services.exceptions import ParseError

# Formats accepted for dates arriving from files and transaction exports
DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y")


def get_business_days(start_date: date, end_date: date) -> list[date]:
    """
    Get list of business days (weekdays) in a date range.

    Business days are Monday through Friday (weekday() < 5).
    This is a simplified check that doesn't account for market holidays.

    Args:
        start_date: First date in range (inclusive)
        end_date: Last date in range (inclusive)

    Returns:
        List of dates that are weekdays, sorted chronologically

    Example:
        >>> get_business_days(date(2024, 1, 1), date(2024, 1, 7))
        [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3),
         date(2024, 1, 4), date(2024, 1, 5)]  # Mon-Fri
    """
    days = []
    current = start_date

    while current <= end_date:
        if current.weekday() < 5:  # Monday = 0, Friday = 4
            days.append(current)
        current += timedelta(days=1)

    return days


def is_business_day(d: date) -> bool:
    """
    Check if a date is a business day (weekday).

    Args:
        d: Date to check

    Returns:
        True if Monday-Friday, False if Saturday-Sunday
    """
    return d.weekday() < 5


def subtract_years(d: date, years: int) -> date:
    """
    Move a date back by a number of calendar years.

    February 29th maps to February 28th when the target year is not a leap year.
    """
    try:
        return d.replace(year=d.year - years)
    except ValueError:
        return d.replace(year=d.year - years, day=28)


def parse_date(value: str | date | datetime | None, source: str | None = None) -> date:
    """
    Parse a calendar date from a string.

    Accepts ISO dates (optionally followed by a time component), slash
    separated year-first dates and US month/day/year dates.

    Args:
        value: Raw value to parse
        source: Where the value came from, used in the error message

    Returns:
        The parsed date

    Raises:
        ParseError: If the value is empty or matches no accepted format
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = (value or "").strip()
    if not text:
        raise ParseError("Empty date value", value=value, source=source)

    # "2024-01-15T00:00:00Z" / "2024-01-15 00:00:00"
    candidate = text[:10] if len(text) > 10 and text[10] in "T " else text

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue

    raise ParseError(f"Unrecognized date '{text}'", value=text, source=source)


def day_bounds_timestamps(start_date: date, end_date: date) -> tuple[int, int]:
    """
    Convert an inclusive date range to inclusive Unix-timestamp bounds.

    The start maps to 00:00:00 UTC of start_date and the end to 23:59:59 UTC
    of end_date. The end is clamped to at least one second after the start.

    Returns:
        (period_start, period_end) as integer seconds since the epoch
    """
    period_start = int(datetime.combine(start_date, time.min, tzinfo=timezone.utc).timestamp())
    period_end = int(
        datetime.combine(end_date, time(23, 59, 59), tzinfo=timezone.utc).timestamp()
    )
    return period_start, max(period_end, period_start + 1)


def timestamp_to_date(timestamp: int | float, gmtoffset: int = 0) -> date:
    """
    Convert a Unix timestamp to a calendar date.

    Args:
        timestamp: Seconds since the epoch
        gmtoffset: Exchange offset from UTC in seconds (0 for UTC dates)
    """
    return datetime.fromtimestamp(timestamp + gmtoffset, tz=timezone.utc).date()


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (seconds precision)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()
