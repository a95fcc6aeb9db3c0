# services/payment_ledger.py

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from flask import current_app
from sqlalchemy import case, func, select, update
from db.extensions import db
from models.booking import Booking, PAYMENT_METHODS
from models.bulkPayment import BulkPayment, BulkPaymentEntry
from .errors import ValidationError
from .group_booking_service import GroupBookingService
from .transaction import write_transaction


def parse_amount(value):
    if isinstance(value, bool) or value is None:
        raise ValidationError('A valid payment amount is required')
    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError('A valid payment amount is required')
    if not amount.is_finite() or amount <= 0:
        raise ValidationError('Payment amount must be greater than zero')
    return amount


class PaymentLedger:
    """
    Bulk-mode running balance for a recurring group. Per-session groups are
    paid booking by booking through InstanceStatusService instead.
    """

    @staticmethod
    def record_payment(group_id, amount, method=None, idempotency_key=None):
        amount = parse_amount(amount)
        if method is not None and method not in PAYMENT_METHODS:
            raise ValidationError(f"Payment method must be one of {', '.join(PAYMENT_METHODS)}")

        group = GroupBookingService.get_group(group_id)
        if group.payment_mode != 'bulk' or group.bulk_payment is None:
            raise ValidationError(f"Group {group.group_code} is not set up for bulk payment")
        bulk_id = group.bulk_payment.id

        with write_transaction('Record bulk payment'):
            if idempotency_key:
                seen = BulkPaymentEntry.query.filter_by(idempotency_key=idempotency_key).first()
                if seen:
                    if seen.bulk_payment_id != bulk_id:
                        raise ValidationError('Idempotency key was already used for another group')
                    current_app.logger.info(
                        f"Duplicate payment {idempotency_key} for {group.group_code} ignored"
                    )
                    return PaymentLedger._snapshot(bulk_id)

            # Increment and status in one statement: concurrent payments never
            # overwrite each other's paid_amount
            new_paid = BulkPayment.paid_amount + amount
            values = {
                'paid_amount': new_paid,
                'payment_status': case(
                    (new_paid <= 0, 'pending'),
                    (new_paid < BulkPayment.total_amount, 'partial'),
                    else_='paid'
                ),
            }
            if method:
                values['payment_method'] = method
            db.session.execute(
                update(BulkPayment).where(BulkPayment.id == bulk_id).values(**values)
                .execution_options(synchronize_session=False)
            )
            db.session.add(BulkPaymentEntry(
                bulk_payment_id=bulk_id,
                amount=amount,
                payment_method=method,
                idempotency_key=idempotency_key,
            ))

            paid, total, status = db.session.execute(
                select(BulkPayment.paid_amount, BulkPayment.total_amount, BulkPayment.payment_status)
                .where(BulkPayment.id == bulk_id)
            ).one()

            # Sessions of a bulk group carry the group's balance status
            mirror = {'payment_status': status}
            if method and status == 'paid':
                mirror['payment_method'] = method
            db.session.execute(
                update(Booking).where(
                    Booking.recurring_group_id == group.id,
                    Booking.booking_status != 'cancelled'
                ).values(**mirror).execution_options(synchronize_session=False)
            )

        if paid > total:
            current_app.logger.warning(
                f"⚠️  Overpayment on {group.group_code}: paid {paid} against total {total}"
            )
        current_app.logger.info(
            f"✅ Payment {amount} recorded for {group.group_code} ({status}, {paid}/{total})"
        )
        return PaymentLedger._snapshot(bulk_id)

    @staticmethod
    def _snapshot(bulk_id):
        bulk = db.session.get(BulkPayment, bulk_id, populate_existing=True)
        data = bulk.to_dict()
        data['payments'] = db.session.query(func.count(BulkPaymentEntry.id)).filter(
            BulkPaymentEntry.bulk_payment_id == bulk_id
        ).scalar()
        return data
