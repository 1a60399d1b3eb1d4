"""
Next-occurrence resolution for recurring bill schedules.

Schedule parameters:
- day_of_month: 1-31, clamped to the length of the target month
- day_of_week: 0=Sunday .. 6=Saturday
- week_of_month: 1-4 for the nth weekday of the month, 5 for the last one

Which parameters apply depends on the frequency:
- daily: none
- weekly / biweekly: day_of_week (optional)
- monthly / quarterly: week_of_month + day_of_week, or day_of_month
- yearly: day_of_month (month taken from the anchor)

Parameters that do not apply to a frequency are ignored. Every resolved
date is strictly after the anchor.
"""

import calendar
from datetime import date, timedelta

from ledger_reconcile.errors import ScheduleError
from ledger_reconcile.models import FREQUENCIES, FREQUENCY_ALIASES

LAST_WEEK = 5

_MONTH_STEPS = {'monthly': 1, 'quarterly': 3}

def normalize_frequency(frequency):
    """Return the canonical frequency name.

    Raises:
        ScheduleError: If the frequency is unknown
    """
    if not isinstance(frequency, str):
        raise ScheduleError(f"Frequency must be a string, got {type(frequency)}")
    name = frequency.strip().lower()
    name = FREQUENCY_ALIASES.get(name, name)
    if name not in FREQUENCIES:
        raise ScheduleError(f"Unknown frequency: {frequency}. Expected one of: {list(FREQUENCIES)}")
    return name

def validate_schedule(frequency, day_of_month=None, day_of_week=None, week_of_month=None):
    """Check a frequency/parameter combination.

    Returns:
        str: The canonical frequency name

    Raises:
        ScheduleError: If a parameter is out of range or incomplete
    """
    name = normalize_frequency(frequency)
    if day_of_month is not None and not 1 <= day_of_month <= 31:
        raise ScheduleError(f"Invalid day of month: {day_of_month}")
    if day_of_week is not None and not 0 <= day_of_week <= 6:
        raise ScheduleError(f"Invalid day of week: {day_of_week}")
    if week_of_month is not None:
        if not 1 <= week_of_month <= LAST_WEEK:
            raise ScheduleError(f"Invalid week of month: {week_of_month}")
        if name in _MONTH_STEPS and day_of_week is None:
            raise ScheduleError("Week of month requires a day of week")
    return name

def clamp_day_to_month(year, month, day):
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)

def add_months(d, n):
    """Add n months to date d, clamping day to month end."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, d.day)
    return d.replace(year=year, month=month, day=day)

def sunday_weekday(d):
    """Weekday of d with 0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7

def nth_weekday_of_month(year, month, day_of_week, week_of_month):
    """Return the nth given weekday of a month (week_of_month=5 is the last one).

    A 4th-week request always exists; there is no overflow into the next month.
    """
    if week_of_month == LAST_WEEK:
        last = date(year, month, calendar.monthrange(year, month)[1])
        return last - timedelta(days=(sunday_weekday(last) - day_of_week) % 7)
    first = date(year, month, 1)
    offset = (day_of_week - sunday_weekday(first)) % 7
    return first + timedelta(days=offset + 7 * (week_of_month - 1))

def _next_weekday_after(d, day_of_week):
    days_ahead = (day_of_week - sunday_weekday(d)) % 7
    return d + timedelta(days=days_ahead or 7)

def _date_in_month(year, month, day_of_month, day_of_week, week_of_month):
    if week_of_month is not None and day_of_week is not None:
        return nth_weekday_of_month(year, month, day_of_week, week_of_month)
    return date(year, month, clamp_day_to_month(year, month, day_of_month))

def next_occurrence(anchor, frequency, day_of_month=None, day_of_week=None, week_of_month=None):
    """Return the first date strictly after ``anchor`` that satisfies the schedule.

    Args:
        anchor (date): Date to resolve from (usually the current due date)
        frequency (str): daily, weekly, biweekly, monthly, quarterly or yearly
        day_of_month (int, optional): Day of month for monthly/quarterly/yearly
        day_of_week (int, optional): 0=Sunday .. 6=Saturday
        week_of_month (int, optional): 1-4, or 5 for the last week

    Returns:
        date: The next occurrence, always later than ``anchor``

    Raises:
        ScheduleError: If the schedule is invalid
    """
    if not isinstance(anchor, date):
        raise ScheduleError(f"Anchor must be a date, got {type(anchor)}")
    name = validate_schedule(frequency, day_of_month, day_of_week, week_of_month)

    if name == 'daily':
        return anchor + timedelta(days=1)

    if name in ('weekly', 'biweekly'):
        interval = 7 if name == 'weekly' else 14
        if day_of_week is None:
            return anchor + timedelta(days=interval)
        return _next_weekday_after(anchor + timedelta(days=interval - 7), day_of_week)

    if name in _MONTH_STEPS:
        target_day = day_of_month or anchor.day
        candidate = _date_in_month(anchor.year, anchor.month, target_day, day_of_week, week_of_month)
        if candidate > anchor:
            return candidate
        following = add_months(anchor.replace(day=1), _MONTH_STEPS[name])
        return _date_in_month(following.year, following.month, target_day, day_of_week, week_of_month)

    # yearly
    target_day = day_of_month or anchor.day
    candidate = date(anchor.year, anchor.month, clamp_day_to_month(anchor.year, anchor.month, target_day))
    if candidate > anchor:
        return candidate
    year = anchor.year + 1
    return date(year, anchor.month, clamp_day_to_month(year, anchor.month, target_day))

def occurrences_between(start, end, frequency, day_of_month=None, day_of_week=None, week_of_month=None):
    """List ``start`` and each following occurrence up to and including ``end``."""
    # Pin the day so a clamped month-end does not carry into later months
    if day_of_month is None and isinstance(start, date):
        day_of_month = start.day
    result = []
    current = start
    while current <= end:
        result.append(current)
        current = next_occurrence(current, frequency, day_of_month, day_of_week, week_of_month)
    return result

def bill_day_of_month(bill, anchor=None):
    """Day of month a bill falls on: its own setting, else its next due date's day."""
    if bill.day_of_month is not None:
        return bill.day_of_month
    reference = bill.next_due_date or anchor
    return reference.day if reference is not None else None

def bill_next_occurrence(bill, anchor=None):
    """Resolve the occurrence after ``anchor`` (default: the bill's next due date)."""
    anchor = anchor or bill.next_due_date
    if anchor is None:
        raise ScheduleError(f"Bill {bill.id} has no next due date")
    return next_occurrence(anchor, bill.frequency, bill_day_of_month(bill, anchor),
                           bill.day_of_week, bill.week_of_month)
