# services/cancellation_service.py

from flask import current_app
from sqlalchemy import update
from db.extensions import db
from models.booking import Booking, ACTIVE_BOOKING_STATUSES
from .clock import venue_today
from .errors import ValidationError
from .group_booking_service import GroupBookingService
from .transaction import write_transaction


class CancellationService:

    @staticmethod
    def cancel_group(group_id, today=None):
        """
        Cancel a recurring group and every session from today onwards that
        has not been played. Past and completed sessions keep their status.
        Calling it again on a cancelled group changes nothing.
        """
        today = today or venue_today()
        group = GroupBookingService.get_group(group_id)

        if group.status == 'cancelled':
            current_app.logger.info(f"Group {group.group_code} already cancelled, nothing to do")
            return {'cancelled_now': 0, **group.counts(), 'status': group.status}
        if group.status == 'completed':
            raise ValidationError(f"Group {group.group_code} is already completed")

        with write_transaction('Cancel recurring booking'):
            result = db.session.execute(
                update(Booking).where(
                    Booking.recurring_group_id == group.id,
                    Booking.booking_date >= today,
                    Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES)
                ).values(booking_status='cancelled').execution_options(synchronize_session=False)
            )
            cancelled_now = result.rowcount
            group.status = 'cancelled'
            db.session.flush()
            GroupBookingService.refresh_counts(group)

        current_app.logger.info(
            f"✅ Recurring group {group.group_code} cancelled ({cancelled_now} future session(s))"
        )
        return {'cancelled_now': cancelled_now, **group.counts(), 'status': group.status}
