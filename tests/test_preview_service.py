from datetime import date

import pytest

from db.extensions import db
from models.booking import Booking
from models.counter import Counter
from models.recurringBookingGroup import RecurringBookingGroup
from services.errors import ValidationError
from services.preview_service import PreviewService

TODAY = date(2024, 1, 1)


class TestPreview:

    def test_blocked_date_reported_as_skipped(self, payload, block_date):
        block_date(date(2024, 1, 3), 'Tournament')

        preview = PreviewService.preview(payload(), today=TODAY)

        assert preview['summary']['total_dates'] == 4
        assert preview['summary']['valid_dates'] == 3
        assert preview['summary']['skipped_dates'] == 1
        assert [d['date'] for d in preview['dates']] == ['2024-01-01', '2024-01-08', '2024-01-10']
        assert preview['skipped_dates'] == [
            {'date': '2024-01-03', 'weekday': 3, 'reason': 'blocked', 'detail': 'Tournament'}
        ]
        assert preview['pricing']['total_amount'] == 450.0
        assert preview['pricing']['price_per_session'] == 150.0
        assert [b['subtotal'] for b in preview['pricing']['breakdown']] == [150.0, 150.0, 150.0]

    def test_member_pricing(self, payload):
        preview = PreviewService.preview(payload(is_member=True, duration=1.5), today=TODAY)

        assert preview['summary']['is_member'] is True
        assert preview['pricing']['price_per_session'] == 180.0
        assert preview['pricing']['total_amount'] == 720.0

    def test_preview_writes_nothing_and_is_repeatable(self, payload, make_booking):
        make_booking(date(2024, 1, 8))

        first = PreviewService.preview(payload(), today=TODAY)
        second = PreviewService.preview(payload(), today=TODAY)

        assert first == second
        assert first['skipped_dates'][0]['reason'] == 'conflict'
        assert RecurringBookingGroup.query.count() == 0
        assert Booking.query.count() == 1
        assert Counter.query.count() == 0

    def test_no_valid_dates_is_not_an_error_for_preview(self, payload, block_date):
        for day in (1, 3, 8, 10):
            block_date(date(2024, 1, day))

        preview = PreviewService.preview(payload(), today=TODAY)

        assert preview['summary']['valid_dates'] == 0
        assert preview['pricing'] == {'price_per_session': 0.0, 'total_amount': 0.0, 'breakdown': []}

    def test_invalid_pattern_lists_every_error(self, payload):
        with pytest.raises(ValidationError) as exc:
            PreviewService.preview(payload(days_of_week=[], duration=0.3), today=TODAY)

        assert len(exc.value.details['errors']) == 2
        assert exc.value.status_code == 400

    @pytest.mark.parametrize('value', ['false', 'true', 0, 'yes'])
    def test_membership_must_be_a_boolean(self, payload, value):
        with pytest.raises(ValidationError, match='is_member must be true or false'):
            PreviewService.preview(payload(is_member=value), today=TODAY)

    def test_unknown_court(self, payload):
        with pytest.raises(ValidationError, match='Court 999 not found'):
            PreviewService.preview(payload(court_id=999), today=TODAY)

    def test_court_under_maintenance(self, payload, court):
        court.status = 'maintenance'
        db.session.commit()
        with pytest.raises(ValidationError):
            PreviewService.preview(payload(), today=TODAY)

    def test_inactive_timeslot(self, payload, timeslot):
        timeslot.status = 'inactive'
        db.session.commit()
        with pytest.raises(ValidationError, match='Time slot'):
            PreviewService.preview(payload(), today=TODAY)

    def test_session_past_midnight(self, payload, timeslot):
        timeslot.start_time = '23:00'
        timeslot.end_time = '24:00'
        db.session.commit()
        with pytest.raises(ValidationError, match='past midnight'):
            PreviewService.preview(payload(duration=2), today=TODAY)
