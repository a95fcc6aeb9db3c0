# services/transaction.py

from contextlib import contextmanager
from flask import current_app
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from db.extensions import db
from .errors import BookingError, TransientStoreError


@contextmanager
def write_transaction(action):
    """
    Commit everything written inside the block, or nothing. Store failures
    (timeouts, dropped connections, lost unique races) become
    TransientStoreError so callers know a retry is safe.
    """
    try:
        yield db.session
        db.session.commit()
    except BookingError:
        db.session.rollback()
        raise
    except (OperationalError, IntegrityError) as e:
        db.session.rollback()
        current_app.logger.error(f"❌ {action} failed on the data store: {e}")
        raise TransientStoreError(f"{action} failed, please retry")
    except DBAPIError as e:
        db.session.rollback()
        current_app.logger.error(f"❌ {action} failed on the data store: {e}")
        if e.connection_invalidated:
            raise TransientStoreError(f"{action} failed, please retry")
        raise
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"❌ {action} failed: {e}", exc_info=True)
        raise
