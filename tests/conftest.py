from decimal import Decimal
from itertools import count

import pytest

from app import create_app
from app.config import TestConfig
from db.extensions import db
from models.blockedDate import BlockedDate
from models.booking import Booking
from models.court import Court
from models.timeSlot import TimeSlot


@pytest.fixture
def app():
    """
    Fresh application per test on an in-memory SQLite database.
    Slot locks use the in-process backend and emails are switched off.
    """
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def court(app):
    court = Court(court_number='C1', name='Court 1', court_type='normal', status='available')
    db.session.add(court)
    db.session.commit()
    return court


@pytest.fixture
def timeslot(app):
    """18:00 weekday slot priced 150 normal / 120 member, off-peak."""
    slot = TimeSlot(
        start_time='18:00',
        end_time='19:00',
        day_type='weekday',
        normal_rate=Decimal('150.00'),
        member_rate=Decimal('120.00'),
        peak_normal_rate=Decimal('200.00'),
        peak_member_rate=Decimal('170.00'),
        peak_hour=False,
        status='active',
    )
    db.session.add(slot)
    db.session.commit()
    return slot


@pytest.fixture
def block_date(app):
    def _block(day, reason='Tournament'):
        row = BlockedDate(blocked_date=day, reason=reason)
        db.session.add(row)
        db.session.commit()
        return row
    return _block


@pytest.fixture
def make_booking(app, court, timeslot):
    """Stand-alone booking on the test court; defaults to 18:00-19:00."""
    numbers = count(9001)

    def _make(day, start_minute=1080, end_minute=1140, status='confirmed', court_id=None):
        booking = Booking(
            booking_code=f"BKTEST{next(numbers)}",
            customer_name='Walk In',
            customer_phone='0800000000',
            court_id=court_id or court.id,
            timeslot_id=timeslot.id,
            booking_date=day,
            start_minute=start_minute,
            end_minute=end_minute,
            duration=Decimal(end_minute - start_minute) / 60,
            price=Decimal('150.00'),
            booking_status=status,
            payment_status='pending',
        )
        db.session.add(booking)
        db.session.commit()
        return booking
    return _make


@pytest.fixture
def payload(court, timeslot):
    """Builds a create/preview request body; keyword arguments override defaults."""
    def _payload(**overrides):
        data = {
            'court_id': court.id,
            'timeslot_id': timeslot.id,
            'duration': 1,
            'days_of_week': [1, 3],
            'start_date': '2024-01-01',
            'end_date': '2024-01-10',
            'is_member': False,
            'payment_mode': 'per_session',
            'customer': {
                'name': 'Somchai Jaidee',
                'nickname': 'Chai',
                'phone': '0812345678',
                'email': 'Somchai@Example.com',
            },
        }
        data.update(overrides)
        return data
    return _payload
