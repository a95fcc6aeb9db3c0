# services/group_notification.py

from threading import Thread
from flask import current_app
from flask_mail import Message
from db.extensions import db, mail
from models.booking import Booking
from models.recurringBookingGroup import RecurringBookingGroup


def send_async_email(app, msg):
    """Send email in a background thread so the booking response is not held up"""
    with app.app_context():
        try:
            mail.send(msg)
            app.logger.info(f"✅ Confirmation email sent to {', '.join(msg.recipients)}")
        except Exception as e:
            app.logger.error(f"❌ Failed to send confirmation email: {str(e)}")


class GroupNotifier:

    @staticmethod
    def build_confirmation(group, bookings):
        venue = current_app.config.get('VENUE_NAME', 'Badminton Club')
        slot = group.timeslot
        court = group.court

        rows = "".join(
            f"""
                <tr>
                    <td style="border:1px solid #ddd; padding:8px;">{b.booking_date.strftime('%a %d %b %Y')}</td>
                    <td style="border:1px solid #ddd; padding:8px;">{b.booking_code}</td>
                    <td style="border:1px solid #ddd; padding:8px; text-align:right;">฿{float(b.price):.2f}</td>
                </tr>"""
            for b in bookings
        )
        skipped = "".join(
            f"<li>{s.skipped_date.strftime('%a %d %b %Y')} ({s.reason})</li>"
            for s in group.skipped_dates
        )
        total = sum(float(b.price) for b in bookings)
        skipped_block = f"<p>These dates could not be booked:</p><ul>{skipped}</ul>" if skipped else ""

        html_body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #222;">
<div style="max-width: 600px; margin: auto; padding: 20px; border: 1px solid #eee;">
    <h1 style="font-size: 20px;">Recurring Booking Confirmed</h1>
    <p>Dear {group.customer_nickname or group.customer_name},</p>
    <p>Your recurring booking <b>{group.group_code}</b> at {venue} is confirmed.</p>
    <table style="width:100%; border-collapse:collapse; margin-bottom:15px;">
        <tr><th style="text-align:left;">Court</th><td>{court.name if court else group.court_id}</td></tr>
        <tr><th style="text-align:left;">Time</th><td>{slot.start_time if slot else ''} ({float(group.duration):g}h)</td></tr>
        <tr><th style="text-align:left;">Days</th><td>{group.days_of_week_display}</td></tr>
        <tr><th style="text-align:left;">Payment</th><td>{group.payment_mode.replace('_', ' ')}</td></tr>
    </table>
    <table style="width:100%; border-collapse:collapse; margin-bottom:15px;">
        <tr>
            <th style="border:1px solid #ddd; padding:8px; background:#f3f3f3;">Date</th>
            <th style="border:1px solid #ddd; padding:8px; background:#f3f3f3;">Booking</th>
            <th style="border:1px solid #ddd; padding:8px; background:#f3f3f3;">Price</th>
        </tr>{rows}
    </table>
    <p><b>Total:</b> ฿{total:.2f}</p>
    {skipped_block}
    <p style="color: #888; font-size: 11px;">This is an automated message.</p>
</div>
</body>
</html>
"""
        text_body = (
            f"Recurring booking {group.group_code} confirmed: {len(bookings)} sessions, "
            f"total {total:.2f} THB.\n"
            + "\n".join(f"{b.booking_date.isoformat()} {b.booking_code} {float(b.price):.2f}" for b in bookings)
        )

        msg = Message(
            subject=f"Booking Confirmation - {group.group_code}",
            recipients=[group.customer_email],
            sender=current_app.config['MAIL_DEFAULT_SENDER']
        )
        msg.body = text_body
        msg.html = html_body
        return msg

    @staticmethod
    def send_group_confirmation(group_id):
        """Email the customer snapshot; never fails the booking that triggered it."""
        if not current_app.config.get('BOOKING_CONFIRMATION_EMAILS', False):
            return False

        group = db.session.get(RecurringBookingGroup, group_id)
        if not group or not group.customer_email:
            current_app.logger.debug(f"No confirmation email for group {group_id}")
            return False

        try:
            bookings = Booking.query.filter_by(recurring_group_id=group.id).order_by(Booking.booking_date).all()
            msg = GroupNotifier.build_confirmation(group, bookings)
        except Exception as e:
            current_app.logger.error(f"❌ Could not build confirmation for {group.group_code}: {str(e)}")
            return False

        app = current_app._get_current_object()
        Thread(target=send_async_email, args=(app, msg), daemon=True).start()
        return True
