# services/preview_service.py

from decimal import Decimal
from flask import current_app
from db.extensions import db
from models.court import Court
from models.timeSlot import TimeSlot
from .availability_service import AvailabilityService, occupied_range
from .clock import venue_today
from .errors import ValidationError
from .pattern_expander import build_pattern, expand_pattern
from .pricing_service import quote_occurrence


def _money(value):
    return float(value)


def parse_membership(data):
    """is_member must be a JSON boolean; strings such as "false" are rejected."""
    value = (data or {}).get('is_member', False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValidationError('is_member must be true or false')
    return value


class PreviewService:

    @staticmethod
    def parse_pattern(data, today=None):
        """Raw request payload -> Pattern, or ValidationError listing every problem."""
        config = current_app.config
        pattern, errors = build_pattern(
            data or {},
            today or venue_today(),
            max_months=config.get('RECURRING_MAX_MONTHS', 3),
            duration_step=config.get('DURATION_STEP_HOURS', 0.5),
            max_duration=config.get('MAX_DURATION_HOURS', 8),
        )
        if errors:
            raise ValidationError(', '.join(errors), details={'errors': errors})
        return pattern

    @staticmethod
    def load_court_and_slot(pattern):
        court = db.session.get(Court, pattern.court_id)
        if not court or not court.is_bookable:
            raise ValidationError(f"Court {pattern.court_id} not found or not available")

        timeslot = db.session.get(TimeSlot, pattern.timeslot_id)
        if not timeslot or not timeslot.is_bookable:
            raise ValidationError(f"Time slot {pattern.timeslot_id} not found or inactive")

        # Rejects sessions that would run past midnight before any expansion
        occupied_range(timeslot, pattern.duration)
        return court, timeslot

    @staticmethod
    def plan(pattern, timeslot, is_member):
        """
        Expand, check and price a pattern against the current data. Read only;
        the same call runs again at commit time under the slot locks.
        """
        occurrences = expand_pattern(pattern)
        valid, skipped = AvailabilityService.check_occurrences(
            occurrences, pattern.court_id, timeslot, pattern.duration
        )
        quotes = [quote_occurrence(timeslot, pattern.duration, v, is_member) for v in valid]
        total = sum((q['price'] for q in quotes), Decimal('0.00'))
        return {
            'occurrences': occurrences,
            'valid': valid,
            'skipped': skipped,
            'quotes': quotes,
            'total_amount': total,
        }

    @staticmethod
    def preview(data, today=None):
        pattern = PreviewService.parse_pattern(data, today)
        court, timeslot = PreviewService.load_court_and_slot(pattern)
        is_member = parse_membership(data)

        plan = PreviewService.plan(pattern, timeslot, is_member)
        valid_count = len(plan['valid'])
        price_per_session = (
            plan['total_amount'] / valid_count if valid_count else Decimal('0.00')
        ).quantize(Decimal('0.01'))

        current_app.logger.debug(
            f"Preview court={court.id} slot={timeslot.id}: "
            f"{valid_count} valid, {len(plan['skipped'])} skipped, total={plan['total_amount']}"
        )

        return {
            'summary': {
                'total_dates': len(plan['occurrences']),
                'valid_dates': valid_count,
                'skipped_dates': len(plan['skipped']),
                'days_of_week': list(pattern.days_of_week),
                'court': court.to_dict(),
                'timeslot': timeslot.to_dict(),
                'duration': float(pattern.duration),
                'start_date': pattern.start_date.isoformat(),
                'end_date': pattern.end_date.isoformat(),
                'is_member': is_member,
            },
            'dates': [
                {'date': v['date'].isoformat(), 'weekday': v['weekday']}
                for v in plan['valid']
            ],
            'skipped_dates': [
                {
                    'date': s['date'].isoformat(),
                    'weekday': s['weekday'],
                    'reason': s['reason'],
                    'detail': s['detail'],
                }
                for s in plan['skipped']
            ],
            'pricing': {
                'price_per_session': _money(price_per_session),
                'total_amount': _money(plan['total_amount']),
                'breakdown': [
                    {
                        'date': q['date'].isoformat(),
                        'weekday': q['weekday'],
                        'day_type': q['day_type'],
                        'is_peak_hour': q['is_peak_hour'],
                        'rate_per_hour': _money(q['rate_per_hour']),
                        'duration': float(q['duration']),
                        'subtotal': _money(q['price']),
                    }
                    for q in plan['quotes']
                ],
            },
        }
