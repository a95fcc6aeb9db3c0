# services/group_booking_service.py

from datetime import date
from flask import current_app
from sqlalchemy import func, or_
from db.extensions import db
from models.booking import Booking, ACTIVE_BOOKING_STATUSES
from models.bulkPayment import BulkPayment
from models.recurringBookingGroup import RecurringBookingGroup, PAYMENT_MODES, GROUP_STATUSES
from models.skippedDate import SkippedDate
from .availability_service import occupied_range
from .clock import venue_today
from .code_generator import generate_group_code, generate_booking_code
from .errors import ValidationError, NotFoundError, NoValidDatesError
from .group_notification import GroupNotifier
from .pattern_expander import expand_pattern
from .preview_service import PreviewService, parse_membership
from .slot_lock import SlotLockManager
from .transaction import write_transaction


def parse_customer(customer):
    customer = customer or {}
    name = (customer.get('name') or '').strip()
    phone = (customer.get('phone') or '').strip()
    if not name or not phone:
        raise ValidationError('Customer name and phone are required')
    email = (customer.get('email') or '').strip().lower() or None
    nickname = (customer.get('nickname') or '').strip() or None
    return {'name': name, 'nickname': nickname, 'phone': phone, 'email': email}


def escape_like(term):
    """Search text matches literally; % and _ are not wildcards."""
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _parse_preview_dates(values):
    parsed = set()
    for value in values or []:
        try:
            parsed.add(date.fromisoformat(str(value)[:10]))
        except ValueError:
            raise ValidationError(f"Invalid preview date '{value}'")
    return parsed


class GroupBookingService:

    @staticmethod
    def create_group(data, today=None):
        """
        Commit a recurring pattern: one group row plus one booking per date
        that is still free. Availability is re-checked under the slot locks
        in the same transaction that writes the rows.
        """
        data = data or {}
        today = today or venue_today()

        pattern = PreviewService.parse_pattern(data, today)
        payment_mode = data.get('payment_mode', 'per_session')
        if payment_mode not in PAYMENT_MODES:
            raise ValidationError(f"Payment mode must be one of {', '.join(PAYMENT_MODES)}")
        customer = parse_customer(data.get('customer'))
        is_member = parse_membership(data)
        preview_dates = _parse_preview_dates(data.get('preview_dates'))

        court, timeslot = PreviewService.load_court_and_slot(pattern)
        start_minute, end_minute = occupied_range(timeslot, pattern.duration)
        candidate_dates = [o['date'] for o in expand_pattern(pattern)]

        with SlotLockManager.hold(pattern.court_id, candidate_dates) as locks:
            with write_transaction('Create recurring booking'):
                plan = PreviewService.plan(pattern, timeslot, is_member)
                locks.refresh()
                if not plan['valid']:
                    raise NoValidDatesError(
                        'None of the selected dates can be booked, please preview again',
                        details={'skipped_dates': [
                            {'date': s['date'].isoformat(), 'reason': s['reason'], 'detail': s['detail']}
                            for s in plan['skipped']
                        ]}
                    )

                group = RecurringBookingGroup(
                    group_code=generate_group_code(today),
                    customer_name=customer['name'],
                    customer_nickname=customer['nickname'],
                    customer_phone=customer['phone'],
                    customer_email=customer['email'],
                    is_member=is_member,
                    court_id=pattern.court_id,
                    timeslot_id=pattern.timeslot_id,
                    duration=pattern.duration,
                    days_of_week=list(pattern.days_of_week),
                    start_date=pattern.start_date,
                    end_date=pattern.end_date,
                    status='active',
                    payment_mode=payment_mode,
                    total_bookings=len(plan['valid']),
                    notes=data.get('notes'),
                )
                db.session.add(group)
                db.session.flush()

                total = len(plan['quotes'])
                bookings = []
                for sequence, quote in enumerate(plan['quotes'], start=1):
                    bookings.append(Booking(
                        booking_code=generate_booking_code(quote['date']),
                        recurring_group_id=group.id,
                        recurring_sequence=sequence,
                        customer_name=customer['name'],
                        customer_phone=customer['phone'],
                        customer_email=customer['email'],
                        court_id=pattern.court_id,
                        timeslot_id=pattern.timeslot_id,
                        booking_date=quote['date'],
                        start_minute=start_minute,
                        end_minute=end_minute,
                        duration=pattern.duration,
                        price=quote['price'],
                        booking_status='confirmed',
                        payment_status='pending',
                        notes=f"Recurring booking {group.group_code} ({sequence}/{total})",
                    ))
                db.session.add_all(bookings)

                for skip in plan['skipped']:
                    db.session.add(SkippedDate(
                        group_id=group.id,
                        skipped_date=skip['date'],
                        weekday=skip['weekday'],
                        reason=skip['reason'],
                        detail=skip['detail'],
                    ))

                if payment_mode == 'bulk':
                    db.session.add(BulkPayment(
                        group_id=group.id,
                        total_amount=plan['total_amount'],
                        paid_amount=0,
                        payment_status='pending',
                    ))

                db.session.flush()
                # Renew before commit; a lock lost to expiry aborts the write
                locks.refresh()

        lost_since_preview = sorted(
            s['date'] for s in plan['skipped'] if s['date'] in preview_dates
        )
        if lost_since_preview:
            current_app.logger.warning(
                f"⚠️  {group.group_code}: {len(lost_since_preview)} date(s) became unavailable since preview"
            )
        current_app.logger.info(
            f"✅ Recurring group {group.group_code} created: {len(bookings)} bookings, "
            f"{len(plan['skipped'])} skipped, mode={payment_mode}, total={plan['total_amount']}"
        )

        GroupNotifier.send_group_confirmation(group.id)

        return {
            'group': group,
            'bookings_created': len(bookings),
            'skipped_dates': len(plan['skipped']),
            'conflicts_since_preview': [d.isoformat() for d in lost_since_preview],
            'total_amount': plan['total_amount'],
        }

    @staticmethod
    def get_group(group_id):
        group = db.session.get(RecurringBookingGroup, group_id)
        if not group:
            raise NotFoundError(f"Recurring booking group {group_id} not found")
        return group

    @staticmethod
    def get_bookings_in_group(group_id):
        GroupBookingService.get_group(group_id)
        return Booking.query.filter_by(recurring_group_id=group_id).order_by(
            Booking.booking_date, Booking.recurring_sequence
        ).all()

    @staticmethod
    def list_groups(status=None, search=None, page=1, limit=20):
        if status and status not in GROUP_STATUSES:
            raise ValidationError(f"Status must be one of {', '.join(GROUP_STATUSES)}")
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 20), 1), 100)

        query = RecurringBookingGroup.query
        if status:
            query = query.filter(RecurringBookingGroup.status == status)
        if search:
            pattern = f"%{escape_like(search.strip())}%"
            query = query.filter(or_(
                RecurringBookingGroup.customer_name.ilike(pattern, escape='\\'),
                RecurringBookingGroup.customer_nickname.ilike(pattern, escape='\\'),
                RecurringBookingGroup.customer_phone.ilike(pattern, escape='\\'),
                RecurringBookingGroup.group_code.ilike(pattern, escape='\\'),
            ))

        total = query.count()
        groups = query.order_by(
            RecurringBookingGroup.created_at.desc(), RecurringBookingGroup.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        return {
            'groups': groups,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'pages': (total + limit - 1) // limit,
            },
        }

    @staticmethod
    def refresh_counts(group):
        """
        Re-derive completed/cancelled counts from the booking rows and close
        the group once nothing is left to play: completed if any session was
        played, cancelled if every session was cancelled. Caller commits.
        """
        rows = db.session.query(
            Booking.booking_status, func.count(Booking.id)
        ).filter(
            Booking.recurring_group_id == group.id
        ).group_by(Booking.booking_status).all()
        counts = {status: count for status, count in rows}

        group.completed_bookings = counts.get('completed', 0)
        group.cancelled_bookings = counts.get('cancelled', 0)

        outstanding = sum(counts.get(s, 0) for s in ACTIVE_BOOKING_STATUSES)
        if group.status == 'active' and outstanding == 0:
            group.status = 'completed' if group.completed_bookings else 'cancelled'
            current_app.logger.info(f"✅ Recurring group {group.group_code} {group.status}")
        return counts
