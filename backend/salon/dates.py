from datetime import date, datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


def parse_day(value) -> date:
    """Reduce a date, datetime or ISO string to a calendar day in the local time zone."""
    if isinstance(value, datetime):
        return timezone.localdate(value) if timezone.is_aware(value) else value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        parsed = parse_datetime(text)
        if parsed is not None:
            return timezone.localdate(parsed) if timezone.is_aware(parsed) else parsed.date()
        day = parse_date(text)
    except ValueError:
        day = None
    if day is None:
        raise ValueError(f"Invalid date: {value}")
    return day


def start_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.min))


def end_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.max))

