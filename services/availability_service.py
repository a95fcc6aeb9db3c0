# services/availability_service.py

from collections import defaultdict
from decimal import Decimal
from sqlalchemy import and_
from db.extensions import db
from models.blockedDate import BlockedDate, DEFAULT_BLOCK_REASON
from models.booking import Booking
from .errors import ValidationError

MINUTES_PER_DAY = 24 * 60


def occupied_range(timeslot, duration):
    """[start, end) minutes since midnight for a session starting at the slot."""
    start_minute = timeslot.start_minute
    end_minute = start_minute + int(Decimal(str(duration)) * 60)
    if end_minute > MINUTES_PER_DAY:
        raise ValidationError(
            f"A {duration}h session starting at {timeslot.start_time} runs past midnight"
        )
    return start_minute, end_minute


class AvailabilityService:

    @staticmethod
    def blocked_dates_between(start_date, end_date):
        """{date: reason} for venue closures in the range, one query."""
        rows = BlockedDate.query.filter(
            BlockedDate.blocked_date >= start_date,
            BlockedDate.blocked_date <= end_date
        ).all()
        return {row.blocked_date: row.reason or DEFAULT_BLOCK_REASON for row in rows}

    @staticmethod
    def overlapping_bookings_between(court_id, start_date, end_date, start_minute, end_minute):
        """
        Bookings that hold the court over an overlapping time range, grouped
        by date. Cancelled bookings no longer hold the court.
        """
        rows = db.session.query(
            Booking.booking_date,
            Booking.booking_code
        ).filter(
            Booking.court_id == court_id,
            Booking.booking_date >= start_date,
            Booking.booking_date <= end_date,
            Booking.booking_status != 'cancelled',
            and_(Booking.start_minute < end_minute, Booking.end_minute > start_minute)
        ).order_by(Booking.booking_date, Booking.start_minute).all()

        by_date = defaultdict(list)
        for booking_date, booking_code in rows:
            by_date[booking_date].append(booking_code)
        return by_date

    @staticmethod
    def classify(occurrence, blocked, occupied):
        """
        Bookable or skipped for one occurrence. A venue block wins over an
        existing booking on the same date.
        """
        result = {
            'date': occurrence['date'],
            'weekday': occurrence['weekday'],
            'bookable': True,
            'reason': None,
            'detail': None,
        }
        day = occurrence['date']
        if day in blocked:
            result.update(bookable=False, reason='blocked', detail=blocked[day])
        elif occupied.get(day):
            result.update(
                bookable=False,
                reason='conflict',
                detail=f"Court already booked ({', '.join(occupied[day])})"
            )
        return result

    @staticmethod
    def check_occurrences(occurrences, court_id, timeslot, duration):
        """Classify every expanded occurrence; returns (valid, skipped)."""
        if not occurrences:
            return [], []

        start_minute, end_minute = occupied_range(timeslot, duration)
        first_day = occurrences[0]['date']
        last_day = occurrences[-1]['date']

        blocked = AvailabilityService.blocked_dates_between(first_day, last_day)
        occupied = AvailabilityService.overlapping_bookings_between(
            court_id, first_day, last_day, start_minute, end_minute
        )

        valid, skipped = [], []
        for occurrence in occurrences:
            result = AvailabilityService.classify(occurrence, blocked, occupied)
            (valid if result['bookable'] else skipped).append(result)
        return valid, skipped

    @staticmethod
    def check_date(day, weekday, court_id, timeslot, duration):
        """Single-date convenience wrapper around check_occurrences."""
        valid, skipped = AvailabilityService.check_occurrences(
            [{'date': day, 'weekday': weekday}], court_id, timeslot, duration
        )
        return (valid or skipped)[0]
