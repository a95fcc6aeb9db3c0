# services/instance_status_service.py

from flask import current_app
from db.extensions import db
from models.booking import Booking, BOOKING_STATUSES, PAYMENT_STATUSES, PAYMENT_METHODS
from .errors import ValidationError, NotFoundError
from .group_booking_service import GroupBookingService
from .transaction import write_transaction

VALID_TRANSITIONS = {
    'confirmed': ('checked-in', 'cancelled'),
    'checked-in': ('completed',),
    'completed': (),
    'cancelled': (),
}


class InstanceStatusService:
    """Entry point for the front desk / POS to move a single session along."""

    @staticmethod
    def get_booking(booking_id):
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    @staticmethod
    def change_status(booking_id, new_status):
        if new_status not in BOOKING_STATUSES:
            raise ValidationError(f"Booking status must be one of {', '.join(BOOKING_STATUSES)}")
        booking = InstanceStatusService.get_booking(booking_id)
        allowed = VALID_TRANSITIONS.get(booking.booking_status, ())
        if new_status not in allowed:
            raise ValidationError(
                f"Invalid status transition from '{booking.booking_status}' to '{new_status}'"
            )

        with write_transaction('Update booking status'):
            booking.booking_status = new_status
            db.session.flush()
            if booking.recurring_group is not None:
                GroupBookingService.refresh_counts(booking.recurring_group)

        current_app.logger.info(f"Booking {booking.booking_code} -> {new_status}")
        return booking

    @staticmethod
    def check_in(booking_id):
        return InstanceStatusService.change_status(booking_id, 'checked-in')

    @staticmethod
    def check_out(booking_id):
        return InstanceStatusService.change_status(booking_id, 'completed')

    @staticmethod
    def set_payment_status(booking_id, payment_status, method=None):
        """Per-session payments only; bulk groups are paid through PaymentLedger."""
        if payment_status not in PAYMENT_STATUSES:
            raise ValidationError(f"Payment status must be one of {', '.join(PAYMENT_STATUSES)}")
        if method is not None and method not in PAYMENT_METHODS:
            raise ValidationError(f"Payment method must be one of {', '.join(PAYMENT_METHODS)}")

        booking = InstanceStatusService.get_booking(booking_id)
        if booking.booking_status == 'cancelled':
            raise ValidationError('Cannot update payment for a cancelled booking')
        group = booking.recurring_group
        if group is not None and group.payment_mode == 'bulk':
            raise ValidationError(
                f"Booking {booking.booking_code} is paid through bulk payment on {group.group_code}"
            )

        with write_transaction('Update booking payment'):
            booking.payment_status = payment_status
            if method:
                booking.payment_method = method

        return booking
