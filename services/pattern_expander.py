# services/pattern_expander.py

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
import calendar


def sunday_weekday(day):
    """Weekday tag with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def add_months(day, months):
    """Same day-of-month N months later, clamped to the month's last day."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


@dataclass(frozen=True)
class Pattern:
    """Recurrence rule for one court and time slot."""
    court_id: int
    timeslot_id: int
    duration: Decimal
    days_of_week: tuple
    start_date: date
    end_date: date

    def to_dict(self):
        return {
            'court_id': self.court_id,
            'timeslot_id': self.timeslot_id,
            'duration': float(self.duration),
            'days_of_week': list(self.days_of_week),
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
        }


def _parse_date(value, field, errors):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        errors.append(f"{field} must be a date in YYYY-MM-DD format")
        return None


def _parse_int(value, field, errors):
    if isinstance(value, bool):
        errors.append(f"{field} is invalid")
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        errors.append(f"{field} is invalid")
        return None


def build_pattern(data, today, max_months=3, duration_step=0.5, max_duration=8):
    """
    Validate a raw pattern payload and return (pattern, errors).
    Nothing is expanded unless errors is empty.
    """
    errors = []

    court_id = _parse_int(data.get('court_id'), 'court_id', errors)
    timeslot_id = _parse_int(data.get('timeslot_id'), 'timeslot_id', errors)

    days = data.get('days_of_week')
    days_of_week = []
    if not isinstance(days, (list, tuple)) or len(days) == 0:
        errors.append('Select at least one day of the week')
    else:
        if any(isinstance(d, bool) or not isinstance(d, int) or d < 0 or d > 6 for d in days):
            errors.append('Days of week must be integers between 0 (Sunday) and 6 (Saturday)')
        elif len(set(days)) != len(days):
            errors.append('Days of week must not contain duplicates')
        else:
            days_of_week = sorted(days)

    duration = None
    try:
        duration = Decimal(str(data.get('duration', 1)))
        step = Decimal(str(duration_step))
        if not duration.is_finite() or duration <= 0 or duration % step != 0:
            errors.append(f"Duration must be a positive multiple of {duration_step} hours")
        elif duration > Decimal(str(max_duration)):
            errors.append(f"Duration cannot exceed {max_duration} hours")
    except (InvalidOperation, TypeError, ValueError):
        errors.append('Duration is invalid')

    start_date = _parse_date(data.get('start_date'), 'start_date', errors)
    end_date = _parse_date(data.get('end_date'), 'end_date', errors)

    if start_date and end_date:
        if start_date < today:
            errors.append('Start date cannot be in the past')
        if end_date < start_date:
            errors.append('End date must be on or after start date')
        elif end_date > add_months(start_date, max_months):
            errors.append(f"Recurring bookings cannot span more than {max_months} months")

    if errors:
        return None, errors

    return Pattern(court_id, timeslot_id, duration, tuple(days_of_week), start_date, end_date), []


def expand_pattern(pattern):
    """
    Every date in [start_date, end_date] whose weekday is in the pattern,
    in calendar order, as [{'date': date, 'weekday': 0-6}].
    """
    wanted = set(pattern.days_of_week)
    occurrences = []
    current = pattern.start_date
    while current <= pattern.end_date:
        weekday = sunday_weekday(current)
        if weekday in wanted:
            occurrences.append({'date': current, 'weekday': weekday})
        current += timedelta(days=1)
    return occurrences
