from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from models.booking import Booking
from models.bulkPayment import BulkPayment
from models.counter import Counter
from models.recurringBookingGroup import RecurringBookingGroup
from models.skippedDate import SkippedDate
from services.code_generator import generate_booking_code
from services.errors import NoValidDatesError, NotFoundError, TransientStoreError, ValidationError
from services.group_booking_service import GroupBookingService

TODAY = date(2024, 1, 1)


class TestCreateGroup:

    def test_per_session_group(self, payload, block_date):
        block_date(date(2024, 1, 3), 'Tournament')

        result = GroupBookingService.create_group(payload(notes='Friday league'), today=TODAY)

        group = result['group']
        assert group.group_code == 'RG202401010001'
        assert result['bookings_created'] == 3
        assert result['skipped_dates'] == 1
        assert result['total_amount'] == Decimal('450.00')
        assert group.status == 'active'
        assert group.total_bookings == 3
        assert group.days_of_week == [1, 3]
        assert group.customer_email == 'somchai@example.com'
        assert group.customer_nickname == 'Chai'
        assert group.bulk_payment is None

        bookings = GroupBookingService.get_bookings_in_group(group.id)
        assert [b.booking_code for b in bookings] == [
            'BK202401010001', 'BK202401080001', 'BK202401100001'
        ]
        assert [b.recurring_sequence for b in bookings] == [1, 2, 3]
        assert all(b.booking_status == 'confirmed' for b in bookings)
        assert all(b.payment_status == 'pending' for b in bookings)
        assert all((b.start_minute, b.end_minute) == (1080, 1140) for b in bookings)
        assert bookings[0].notes == 'Recurring booking RG202401010001 (1/3)'
        assert bookings[0].price == Decimal('150.00')

        skipped = SkippedDate.query.filter_by(group_id=group.id).all()
        assert [(s.skipped_date, s.reason, s.detail) for s in skipped] == [
            (date(2024, 1, 3), 'blocked', 'Tournament')
        ]

    def test_bulk_group_opens_a_balance(self, payload):
        result = GroupBookingService.create_group(payload(payment_mode='bulk', is_member=True), today=TODAY)

        bulk = BulkPayment.query.filter_by(group_id=result['group'].id).one()
        assert bulk.total_amount == Decimal('480.00')
        assert bulk.paid_amount == Decimal('0.00')
        assert bulk.payment_status == 'pending'

    def test_codes_keep_counting_across_groups(self, payload, court, timeslot):
        first = GroupBookingService.create_group(payload(), today=TODAY)
        second = GroupBookingService.create_group(
            payload(days_of_week=[2], end_date='2024-01-02'), today=TODAY
        )
        assert first['group'].group_code == 'RG202401010001'
        # Second group only covers Tuesday 2024-01-02
        assert second['group'].group_code == 'RG202401010002'
        assert Booking.query.filter_by(booking_date=date(2024, 1, 2)).one().booking_code == 'BK202401020001'

    def test_no_valid_dates_creates_nothing(self, payload, block_date):
        for day in (1, 3, 8, 10):
            block_date(date(2024, 1, day))

        with pytest.raises(NoValidDatesError) as exc:
            GroupBookingService.create_group(payload(), today=TODAY)

        assert exc.value.status_code == 409
        assert len(exc.value.details['skipped_dates']) == 4
        assert RecurringBookingGroup.query.count() == 0
        assert Counter.query.count() == 0

    def test_conflicts_since_preview_are_reported(self, payload, block_date):
        preview_dates = ['2024-01-01', '2024-01-03', '2024-01-08', '2024-01-10']
        block_date(date(2024, 1, 8))

        result = GroupBookingService.create_group(payload(preview_dates=preview_dates), today=TODAY)

        assert result['conflicts_since_preview'] == ['2024-01-08']
        assert result['bookings_created'] == 3

    @pytest.mark.parametrize('overrides, message', [
        ({'payment_mode': 'monthly'}, 'Payment mode'),
        ({'customer': {'name': 'No Phone'}}, 'Customer name and phone are required'),
        ({'customer': None}, 'Customer name and phone are required'),
        ({'preview_dates': ['not-a-date']}, 'Invalid preview date'),
        ({'is_member': 'false'}, 'is_member must be true or false'),
        ({'is_member': 1}, 'is_member must be true or false'),
        ({'end_date': '2023-12-01'}, 'End date must be on or after start date'),
    ])
    def test_rejects_bad_requests(self, payload, overrides, message):
        with pytest.raises(ValidationError, match=message):
            GroupBookingService.create_group(payload(**overrides), today=TODAY)
        assert RecurringBookingGroup.query.count() == 0


class TestCreateGroupAtomicity:

    def test_failure_midway_leaves_no_rows(self, payload):
        calls = []

        def flaky_code(booking_date):
            calls.append(booking_date)
            if len(calls) == 3:
                raise RuntimeError('connection dropped')
            return generate_booking_code(booking_date)

        with patch('services.group_booking_service.generate_booking_code', side_effect=flaky_code):
            with pytest.raises(RuntimeError):
                GroupBookingService.create_group(payload(payment_mode='bulk'), today=TODAY)

        assert RecurringBookingGroup.query.count() == 0
        assert Booking.query.count() == 0
        assert SkippedDate.query.count() == 0
        assert BulkPayment.query.count() == 0
        assert Counter.query.count() == 0

    def test_store_timeout_is_retryable(self, payload):
        timeout = OperationalError('INSERT INTO bookings', {}, Exception('statement timeout'))

        with patch('services.group_booking_service.generate_booking_code', side_effect=timeout):
            with pytest.raises(TransientStoreError) as exc:
                GroupBookingService.create_group(payload(), today=TODAY)

        assert exc.value.retryable is True
        assert exc.value.status_code == 503
        assert RecurringBookingGroup.query.count() == 0

    def test_retry_after_failure_succeeds(self, payload):
        with patch('services.group_booking_service.generate_booking_code', side_effect=RuntimeError('boom')):
            with pytest.raises(RuntimeError):
                GroupBookingService.create_group(payload(), today=TODAY)

        result = GroupBookingService.create_group(payload(), today=TODAY)
        assert result['group'].group_code == 'RG202401010001'
        assert result['bookings_created'] == 4


class TestOverlappingGroups:

    def test_second_group_skips_the_shared_date(self, payload):
        first = GroupBookingService.create_group(
            payload(days_of_week=[1, 3], start_date='2024-02-05', end_date='2024-02-29'),
            today=TODAY
        )
        second = GroupBookingService.create_group(
            payload(days_of_week=[1, 5], start_date='2024-02-05', end_date='2024-02-29',
                    customer={'name': 'Nok', 'phone': '0899999999'}),
            today=TODAY
        )

        shared = Booking.query.filter_by(booking_date=date(2024, 2, 5)).filter(
            Booking.booking_status != 'cancelled'
        ).all()
        assert len(shared) == 1
        assert shared[0].recurring_group_id == first['group'].id

        skipped = SkippedDate.query.filter_by(group_id=second['group'].id).all()
        assert {s.skipped_date for s in skipped} == {
            date(2024, 2, 5), date(2024, 2, 12), date(2024, 2, 19), date(2024, 2, 26)
        }
        assert all(s.reason == 'conflict' for s in skipped)
        assert second['bookings_created'] == 3


class TestQueries:

    def test_get_group_not_found(self, app):
        with pytest.raises(NotFoundError):
            GroupBookingService.get_group(42)

    def test_list_groups_filters_and_paginates(self, payload):
        GroupBookingService.create_group(payload(), today=TODAY)
        GroupBookingService.create_group(
            payload(days_of_week=[5], customer={'name': 'Nok', 'nickname': 'Noky', 'phone': '0899999999'}),
            today=TODAY
        )

        result = GroupBookingService.list_groups(search='noky')
        assert [g.customer_name for g in result['groups']] == ['Nok']

        result = GroupBookingService.list_groups(search='RG20240101', limit=1, page=2)
        assert len(result['groups']) == 1
        assert result['pagination'] == {'page': 2, 'limit': 1, 'total': 2, 'pages': 2}

        assert GroupBookingService.list_groups(status='cancelled')['groups'] == []

    def test_search_wildcards_match_literally(self, payload):
        GroupBookingService.create_group(payload(), today=TODAY)

        assert GroupBookingService.list_groups(search='%')['groups'] == []
        assert GroupBookingService.list_groups(search='_')['groups'] == []
        assert GroupBookingService.list_groups(search='Somchai_Jaidee')['groups'] == []
        assert len(GroupBookingService.list_groups(search='Somchai Jaidee')['groups']) == 1

    def test_list_groups_rejects_unknown_status(self, app):
        with pytest.raises(ValidationError):
            GroupBookingService.list_groups(status='archived')
