"""Date parsing utilities."""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

PERIODS = ["today", "yesterday", "this-week", "last-week", "this-month", "last-month", "this-year"]


def _start_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a business date.

    Accepts ISO and free-form dates ("2024-01-15", "Jan 15 2024") as well as
    "today", "yesterday", "this week|month|year", "last week|month" and
    "last <weekday>".

    Args:
        date_str: Date string
        today: Reference date for relative expressions (defaults to date.today())

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = today or date.today()

    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)

    qualifier, _, period = text.partition(" ")
    if qualifier == "this":
        if period == "week":
            return _start_of_week(today)
        if period == "month":
            return today.replace(day=1)
        if period == "year":
            return today.replace(month=1, day=1)
    elif qualifier == "last":
        if period == "week":
            return _start_of_week(today) - timedelta(days=7)
        if period == "month":
            return today.replace(day=1) - relativedelta(months=1)
        if period in WEEKDAYS:
            days_ago = (today.weekday() - WEEKDAYS.index(period)) % 7 or 7
            return today - timedelta(days=days_ago)

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_datetime(value: str, on_date: Optional[date] = None) -> datetime:
    """Parse a payment timestamp.

    A bare time ("14:30") is placed on ``on_date``. A bare date gets midnight.

    Raises:
        ValueError: If the value cannot be parsed
    """
    default = datetime.combine(on_date or date.today(), time.min)
    try:
        parsed = date_parser.parse(value.strip(), default=default)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date/time '{value}': {e}")
    # Ledger timestamps are naive local time
    return parsed.replace(tzinfo=None)


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a named reporting period.

    Args:
        period: One of PERIODS
        today: Reference date (defaults to date.today())

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()

    if period == "today":
        return today, today
    if period == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if period == "this-week":
        return _start_of_week(today), today
    if period == "last-week":
        start = _start_of_week(today) - timedelta(days=7)
        return start, start + timedelta(days=6)
    if period == "this-month":
        return today.replace(day=1), today
    if period == "last-month":
        end = today.replace(day=1) - timedelta(days=1)
        return end.replace(day=1), end
    if period == "this-year":
        return today.replace(month=1, day=1), today

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")


def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar date from start_date to end_date inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)
