# models/timeSlot.py
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, CheckConstraint
from db.extensions import db
from services.clock import utcnow


def parse_hhmm(value):
    """'HH:MM' -> minutes since midnight. '24:00' is allowed as an end of day."""
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def format_minutes(total):
    return f"{total // 60:02d}:{total % 60:02d}"


class TimeSlot(db.Model):
    """
    Bookable start time with its rate table. Rates are per hour and already
    specific to the slot's day type.
    """
    __tablename__ = 'time_slots'

    id = Column(Integer, primary_key=True)
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)    # "HH:MM" or "24:00"
    day_type = Column(String(10), nullable=False)   # weekday, weekend

    normal_rate = Column(Numeric(10, 2), nullable=False, default=150)
    member_rate = Column(Numeric(10, 2), nullable=False, default=120)
    peak_normal_rate = Column(Numeric(10, 2), nullable=False, default=200)
    peak_member_rate = Column(Numeric(10, 2), nullable=False, default=170)
    peak_hour = Column(Boolean, default=False, nullable=False)

    status = Column(String(10), default='active', nullable=False)  # active, inactive
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint('normal_rate >= 0 AND member_rate >= 0', name='check_rates_non_negative'),
        CheckConstraint('peak_normal_rate >= 0 AND peak_member_rate >= 0', name='check_peak_rates_non_negative'),
    )

    @property
    def is_bookable(self):
        return self.deleted_at is None and self.status == 'active'

    @property
    def start_minute(self):
        return parse_hhmm(self.start_time)

    def __repr__(self):
        return f"<TimeSlot {self.start_time}-{self.end_time} {self.day_type} peak={self.peak_hour}>"

    def to_dict(self):
        return {
            'id': self.id,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'day_type': self.day_type,
            'peak_hour': self.peak_hour,
        }
