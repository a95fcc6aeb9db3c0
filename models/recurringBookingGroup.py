# models/recurringBookingGroup.py
from sqlalchemy import Column, Integer, String, Text, Date, Boolean, Numeric, DateTime, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from db.extensions import db
from services.clock import utcnow

GROUP_STATUSES = ('active', 'completed', 'cancelled')
PAYMENT_MODES = ('per_session', 'bulk')

DAY_SHORT_NAMES = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']


class RecurringBookingGroup(db.Model):
    __tablename__ = 'recurring_booking_groups'

    id = Column(Integer, primary_key=True)
    group_code = Column(String(20), unique=True, nullable=False)

    # Customer snapshot, copied at creation
    customer_name = Column(String(255), nullable=False)
    customer_nickname = Column(String(100), nullable=True)
    customer_phone = Column(String(32), nullable=False, index=True)
    customer_email = Column(String(255), nullable=True)
    is_member = Column(Boolean, default=False, nullable=False)

    # Pattern
    court_id = Column(Integer, ForeignKey('courts.id'), nullable=False)
    timeslot_id = Column(Integer, ForeignKey('time_slots.id'), nullable=False)
    duration = Column(Numeric(3, 1), nullable=False)
    days_of_week = Column(JSON, nullable=False)  # [0-6], 0 = Sunday
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    status = Column(String(20), default='active', nullable=False, index=True)
    payment_mode = Column(String(20), default='per_session', nullable=False)

    total_bookings = Column(Integer, default=0, nullable=False)
    completed_bookings = Column(Integer, default=0, nullable=False)
    cancelled_bookings = Column(Integer, default=0, nullable=False)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    court = relationship('Court')
    timeslot = relationship('TimeSlot')
    skipped_dates = relationship(
        'SkippedDate',
        back_populates='group',
        cascade='all, delete-orphan',
        order_by='SkippedDate.skipped_date'
    )
    bulk_payment = relationship(
        'BulkPayment',
        back_populates='group',
        uselist=False,
        cascade='all, delete-orphan'
    )

    __table_args__ = (
        CheckConstraint('end_date >= start_date', name='check_group_end_date_gte_start'),
    )

    @property
    def days_of_week_display(self):
        return ', '.join(DAY_SHORT_NAMES[day] for day in self.days_of_week)

    def __repr__(self):
        return f"<RecurringBookingGroup {self.group_code} status={self.status} mode={self.payment_mode}>"

    def counts(self):
        return {
            'total_bookings': self.total_bookings,
            'completed_bookings': self.completed_bookings,
            'cancelled_bookings': self.cancelled_bookings,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'group_code': self.group_code,
            'customer': {
                'name': self.customer_name,
                'nickname': self.customer_nickname,
                'phone': self.customer_phone,
                'email': self.customer_email,
            },
            'is_member': self.is_member,
            'pattern': {
                'court': self.court.to_dict() if self.court else {'id': self.court_id},
                'timeslot': self.timeslot.to_dict() if self.timeslot else {'id': self.timeslot_id},
                'duration': float(self.duration),
                'days_of_week': list(self.days_of_week),
                'days_of_week_display': self.days_of_week_display,
                'start_date': self.start_date.isoformat(),
                'end_date': self.end_date.isoformat(),
            },
            'status': self.status,
            'payment_mode': self.payment_mode,
            **self.counts(),
            'skipped_dates': [s.to_dict() for s in self.skipped_dates],
            'bulk_payment': self.bulk_payment.to_dict() if self.bulk_payment else None,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
