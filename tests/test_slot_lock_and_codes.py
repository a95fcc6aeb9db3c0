from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import redis

from models.booking import Booking
from models.counter import Counter
from models.recurringBookingGroup import RecurringBookingGroup
from services.code_generator import generate_booking_code, generate_group_code, next_sequence
from services.errors import TransientStoreError
from services.group_booking_service import GroupBookingService
from services.slot_lock import SlotLockManager, _local_locks, lock_keys


class TestLockKeys:

    def test_one_sorted_key_per_court_day(self):
        keys = lock_keys(3, [date(2024, 2, 7), date(2024, 2, 5), date(2024, 2, 5)])
        assert keys == [
            'slot-lock:court:3:2024-02-05',
            'slot-lock:court:3:2024-02-07',
        ]


class TestSlotLockManager:

    def test_same_court_day_cannot_be_held_twice(self, app):
        app.config['SLOT_LOCK_WAIT_SECONDS'] = 0.05

        with SlotLockManager.hold(1, [date(2024, 2, 5), date(2024, 2, 7)]) as locks:
            assert len(locks.keys) == 2
            with pytest.raises(TransientStoreError) as exc:
                with SlotLockManager.hold(1, [date(2024, 2, 5), date(2024, 2, 9)]):
                    pass
            assert exc.value.details == {'lock': 'slot-lock:court:1:2024-02-05'}

        # Released on exit, including the partial acquisition above
        with SlotLockManager.hold(1, [date(2024, 2, 5), date(2024, 2, 9)]):
            pass

    def test_other_courts_and_days_are_independent(self, app):
        app.config['SLOT_LOCK_WAIT_SECONDS'] = 0.05

        with SlotLockManager.hold(1, [date(2024, 2, 5)]):
            with SlotLockManager.hold(2, [date(2024, 2, 5)]):
                pass
            with SlotLockManager.hold(1, [date(2024, 2, 6)]):
                pass

    def test_local_lock_table_is_emptied(self, app):
        app.config['SLOT_LOCK_WAIT_SECONDS'] = 0.05

        with SlotLockManager.hold(1, [date(2024, 2, 5), date(2024, 2, 7)]):
            assert len(_local_locks) == 2
            with pytest.raises(TransientStoreError):
                with SlotLockManager.hold(1, [date(2024, 2, 7), date(2024, 2, 8)]):
                    pass
            assert set(_local_locks) == {
                'slot-lock:court:1:2024-02-05',
                'slot-lock:court:1:2024-02-07',
            }

        assert _local_locks == {}

    def test_unknown_backend(self, app):
        app.config['SLOT_LOCK_BACKEND'] = 'zookeeper'
        with pytest.raises(RuntimeError):
            with SlotLockManager.hold(1, [date(2024, 2, 5)]):
                pass


def _redis_with_lock(reacquire_effect=None):
    lock = MagicMock()
    lock.name = 'slot-lock:court:1:2024-01-01'
    lock.acquire.return_value = True
    lock.reacquire.side_effect = reacquire_effect
    client = MagicMock()
    client.lock.return_value = lock
    return client, lock


class TestRedisLockRenewal:

    def test_refresh_renews_every_lock(self, app):
        app.config['SLOT_LOCK_BACKEND'] = 'redis'
        app.config['SLOT_LOCK_TTL_SECONDS'] = 60
        client, lock = _redis_with_lock()

        with patch('services.slot_lock.get_redis', return_value=client):
            with SlotLockManager.hold(1, [date(2024, 2, 5), date(2024, 2, 7)]) as locks:
                locks.refresh()

        assert lock.reacquire.call_count == 2
        assert lock.release.call_count == 2
        client.lock.assert_any_call('slot-lock:court:1:2024-02-05', timeout=60.0, blocking_timeout=2.0)

    def test_expired_lock_is_retryable(self, app):
        app.config['SLOT_LOCK_BACKEND'] = 'redis'
        client, lock = _redis_with_lock(redis.exceptions.LockNotOwnedError('expired'))

        with patch('services.slot_lock.get_redis', return_value=client):
            with pytest.raises(TransientStoreError) as exc:
                with SlotLockManager.hold(1, [date(2024, 2, 5)]) as locks:
                    locks.refresh()

        assert exc.value.details == {'lock': 'slot-lock:court:1:2024-01-01'}
        lock.release.assert_called_once()

    def test_lock_lost_before_commit_writes_nothing(self, app, payload):
        # Four dates: the first renewal passes, the one before commit fails
        effects = [None] * 4 + [redis.exceptions.LockNotOwnedError('expired')]
        client, lock = _redis_with_lock(effects)
        data = payload()
        app.config['SLOT_LOCK_BACKEND'] = 'redis'

        with patch('services.slot_lock.get_redis', return_value=client):
            with pytest.raises(TransientStoreError):
                GroupBookingService.create_group(data, today=date(2024, 1, 1))

        assert RecurringBookingGroup.query.count() == 0
        assert Booking.query.count() == 0
        assert lock.release.call_count == 4



class TestCodes:

    def test_counters_are_per_day(self, app):
        assert generate_group_code(date(2024, 1, 1)) == 'RG202401010001'
        assert generate_group_code(date(2024, 1, 1)) == 'RG202401010002'
        assert generate_group_code(date(2024, 1, 2)) == 'RG202401020001'
        assert generate_booking_code(date(2024, 1, 1)) == 'BK202401010001'

    def test_next_sequence_persists_in_counter_table(self, app):
        next_sequence('RG20240101')
        next_sequence('RG20240101')
        assert Counter.query.filter_by(name='RG20240101').one().sequence == 2
