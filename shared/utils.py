"""Date and schedule helpers shared by the backend and the client."""
from datetime import datetime, date, time, timedelta
from typing import Optional, Iterable, Tuple
from shared.models import naive_now


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Return the naive [start, end) datetimes of a calendar day in application time."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD string; returns None for empty or malformed input."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def month_bounds(month: str) -> Tuple[date, date]:
    """Return the first day of a YYYY-MM month and the first day of the next one.

    Raises ValueError for malformed input.
    """
    year_str, month_str = month.split('-', 1)
    first = date(int(year_str), int(month_str), 1)
    if first.month == 12:
        following = date(first.year + 1, 1, 1)
    else:
        following = date(first.year, first.month + 1, 1)
    return first, following


def week_day_index(day: date) -> int:
    """Day-of-week index with Sunday as 0, matching MedicationSchedule.days_of_week."""
    return (day.weekday() + 1) % 7


def is_scheduled_on(schedule, day: date) -> bool:
    """True when an active schedule applies to the given day."""
    if not getattr(schedule, 'active', True):
        return False
    days = schedule.days_of_week or []
    return week_day_index(day) in days


def format_sleep_duration(start_time: datetime, end_time: Optional[datetime]) -> str:
    """Format a sleep period as "7h 30m" or "45m", marked "(ongoing)" when unfinished.

    An ongoing record with no end time is measured up to now.
    """
    reference = end_time if end_time is not None else naive_now()
    minutes = max(0, int((reference - start_time).total_seconds() // 60))
    hours, minutes = divmod(minutes, 60)
    text = f"{hours}h {minutes}m" if hours else f"{minutes}m"
    if end_time is None:
        text += " (ongoing)"
    return text


def format_time_ago(moment: datetime, reference: datetime) -> str:
    """Human readable distance such as "3 hours ago"."""
    seconds = max(0, int((reference - moment).total_seconds()))
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        unit, amount = "minute", minutes
    elif minutes < 60 * 24:
        unit, amount = "hour", minutes // 60
    else:
        unit, amount = "day", minutes // (60 * 24)
    suffix = "" if amount == 1 else "s"
    return f"{amount} {unit}{suffix} ago"


def parse_dose_quantity(quantity) -> float:
    """Doses are stored as text ("1", "0.5", "2 tablets"); take the leading number."""
    if quantity is None:
        return 1.0
    token = str(quantity).strip().split(' ', 1)[0]
    try:
        return float(token)
    except ValueError:
        return 1.0


def estimate_daily_usage(schedules: Iterable) -> float:
    """Average doses per day across active, regular schedules.

    As-needed schedules are excluded; each schedule contributes its dose quantity
    times the fraction of the week it runs.
    """
    total = 0.0
    for schedule in schedules:
        if not getattr(schedule, 'active', True) or schedule.as_needed:
            continue
        days = schedule.days_of_week or []
        if not days:
            continue
        total += parse_dose_quantity(schedule.quantity) * len(days) / 7
    return total
