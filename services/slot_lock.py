# services/slot_lock.py

import logging
import threading
import time
from contextlib import contextmanager
from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
import redis
from db.extensions import db, get_redis
from .errors import TransientStoreError

logger = logging.getLogger(__name__)

# Per-key [lock, users] for the 'local' backend; only valid inside a single process.
# An entry is dropped once its last user lets go.
_local_locks = {}
_local_locks_guard = threading.Lock()


def lock_keys(court_id, dates):
    """
    One key per (court, date), sorted so every writer acquires in the same
    order. A multi-hour session can overlap a neighbouring slot, so the whole
    court-day is locked rather than a single slot.
    """
    return sorted({f"slot-lock:court:{court_id}:{day.isoformat()}" for day in dates})


class HeldSlotLocks:
    """Locks held by one writer. `refresh()` renews expiring locks and fails if any was lost."""

    def __init__(self, keys, redis_locks=None):
        self.keys = keys
        self._redis_locks = redis_locks or []

    def refresh(self):
        for lock in self._redis_locks:
            try:
                lock.reacquire()
            except redis.exceptions.LockError as e:
                logger.error(f"❌ Slot lock {lock.name} lost before commit: {e}")
                raise TransientStoreError(
                    'The court lock expired before the booking was saved, please retry',
                    details={'lock': lock.name}
                )
            except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
                logger.error(f"❌ Redis unavailable while renewing slot locks: {e}")
                raise TransientStoreError('Lock service unavailable, please retry')


class SlotLockManager:

    @staticmethod
    @contextmanager
    def hold(court_id, dates):
        backend = current_app.config.get('SLOT_LOCK_BACKEND', 'redis')
        wait = float(current_app.config.get('SLOT_LOCK_WAIT_SECONDS', 10))
        ttl = float(current_app.config.get('SLOT_LOCK_TTL_SECONDS', 60))
        keys = lock_keys(court_id, dates)

        if backend == 'redis':
            holder = SlotLockManager._hold_redis(keys, wait, ttl)
        elif backend == 'postgres':
            holder = SlotLockManager._hold_postgres(keys, court_id, dates, wait)
        elif backend == 'local':
            holder = SlotLockManager._hold_local(keys, wait)
        else:
            raise RuntimeError(f"Unknown SLOT_LOCK_BACKEND '{backend}'")

        started = time.monotonic()
        with holder as held:
            logger.debug(f"🔒 Holding {len(keys)} slot lock(s) via {backend} for court {court_id}")
            yield held
        logger.debug(f"🔓 Released slot locks for court {court_id} after {(time.monotonic() - started) * 1000:.1f}ms")

    @staticmethod
    @contextmanager
    def _hold_redis(keys, wait, ttl):
        client = get_redis()
        acquired = []
        try:
            for key in keys:
                lock = client.lock(key, timeout=ttl, blocking_timeout=wait)
                if not lock.acquire():
                    raise TransientStoreError(
                        'The court is being booked by another request, please retry',
                        details={'lock': key}
                    )
                acquired.append(lock)
            yield HeldSlotLocks(keys, acquired)
        except redis.exceptions.LockError as e:
            raise TransientStoreError(f"Slot lock error: {e}")
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            logger.error(f"❌ Redis unavailable while locking slots: {e}")
            raise TransientStoreError('Lock service unavailable, please retry')
        finally:
            for lock in reversed(acquired):
                try:
                    lock.release()
                except redis.exceptions.LockError as e:
                    logger.warning(f"⚠️  Slot lock {lock.name} expired before release: {e}")
                except redis.exceptions.RedisError as e:
                    logger.warning(f"⚠️  Could not release slot lock {lock.name}: {e}")

    @staticmethod
    @contextmanager
    def _hold_postgres(keys, court_id, dates, wait):
        # Transaction-scoped: released by the surrounding commit or rollback
        try:
            db.session.execute(text(f"SET LOCAL lock_timeout = '{int(wait * 1000)}ms'"))
            for ordinal in sorted({day.toordinal() for day in dates}):
                db.session.execute(
                    text("SELECT pg_advisory_xact_lock(:court_id, :day)"),
                    {'court_id': int(court_id), 'day': ordinal}
                )
        except OperationalError as e:
            db.session.rollback()
            raise TransientStoreError(
                'The court is being booked by another request, please retry',
                details={'error': str(e.orig) if e.orig else str(e)}
            )
        yield HeldSlotLocks(keys)

    @staticmethod
    def _checkout_local(key):
        with _local_locks_guard:
            entry = _local_locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    @staticmethod
    def _return_local(key):
        with _local_locks_guard:
            entry = _local_locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del _local_locks[key]

    @staticmethod
    @contextmanager
    def _hold_local(keys, wait):
        acquired = []
        try:
            for key in keys:
                lock = SlotLockManager._checkout_local(key)
                if not lock.acquire(timeout=wait):
                    SlotLockManager._return_local(key)
                    raise TransientStoreError(
                        'The court is being booked by another request, please retry',
                        details={'lock': key}
                    )
                acquired.append((key, lock))
            yield HeldSlotLocks(keys)
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                SlotLockManager._return_local(key)
