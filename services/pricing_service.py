# services/pricing_service.py

from decimal import Decimal, ROUND_HALF_UP

MINOR_UNIT = Decimal('0.01')


def day_type_for(weekday):
    """weekday uses 0 = Sunday; Saturday and Sunday are weekend days."""
    return 'weekend' if weekday in (0, 6) else 'weekday'


def resolve_rate(timeslot, is_peak, is_member):
    if is_peak:
        rate = timeslot.peak_member_rate if is_member else timeslot.peak_normal_rate
    else:
        rate = timeslot.member_rate if is_member else timeslot.normal_rate
    return Decimal(str(rate or 0))


def resolve_price(timeslot, duration, day_type, is_peak, is_member):
    """
    Price of a single session: hourly rate for (peak, membership) times the
    duration in hours, rounded to the satang.

    Returns a quote dict; 'price' is a Decimal.
    """
    rate = resolve_rate(timeslot, is_peak, is_member)
    price = (rate * Decimal(str(duration))).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
    return {
        'price': price,
        'rate_per_hour': rate,
        'duration': Decimal(str(duration)),
        'day_type': day_type,
        'is_peak_hour': bool(is_peak),
        'is_member': bool(is_member),
    }


def quote_occurrence(timeslot, duration, occurrence, is_member):
    """Price quote for one expanded {date, weekday} occurrence."""
    quote = resolve_price(
        timeslot,
        duration,
        day_type_for(occurrence['weekday']),
        timeslot.peak_hour,
        is_member
    )
    quote['date'] = occurrence['date']
    quote['weekday'] = occurrence['weekday']
    return quote
