# services/clock.py

from datetime import datetime, timezone
from flask import current_app
import pytz


def utcnow():
    """Naive UTC timestamp for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def venue_timezone():
    return pytz.timezone(current_app.config.get('VENUE_TIMEZONE', 'Asia/Bangkok'))


def venue_today():
    """
    Calendar date at the venue. The server runs on UTC, bookings are
    stored as venue-local dates.
    """
    return datetime.now(venue_timezone()).date()
