# models/booking.py
from sqlalchemy import Column, Integer, String, Text, Date, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from db.extensions import db
from services.clock import utcnow
from models.timeSlot import format_minutes

BOOKING_STATUSES = ('confirmed', 'checked-in', 'completed', 'cancelled')
PAYMENT_STATUSES = ('pending', 'partial', 'paid')
PAYMENT_METHODS = ('cash', 'bank_transfer', 'promptpay', 'transfer', 'qr', 'card')

# Statuses that still hold the court
ACTIVE_BOOKING_STATUSES = ('confirmed', 'checked-in')


class Booking(db.Model):
    """
    One dated court reservation. Rows created by a recurring group carry the
    group's id; stand-alone bookings leave it empty.
    """
    __tablename__ = 'bookings'

    id = Column(Integer, primary_key=True)
    booking_code = Column(String(20), unique=True, nullable=False)

    recurring_group_id = Column(Integer, ForeignKey('recurring_booking_groups.id'), nullable=True, index=True)
    recurring_sequence = Column(Integer, nullable=True)

    # Customer snapshot
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    customer_email = Column(String(255), nullable=True)

    court_id = Column(Integer, ForeignKey('courts.id'), nullable=False)
    timeslot_id = Column(Integer, ForeignKey('time_slots.id'), nullable=False)
    booking_date = Column(Date, nullable=False)
    # Occupied range, minutes since midnight, end exclusive
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    duration = Column(Numeric(3, 1), nullable=False, default=1)

    price = Column(Numeric(10, 2), nullable=False)
    booking_status = Column(String(20), default='confirmed', nullable=False)
    payment_status = Column(String(20), default='pending', nullable=False)
    payment_method = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    recurring_group = relationship('RecurringBookingGroup')
    court = relationship('Court')
    timeslot = relationship('TimeSlot')

    __table_args__ = (
        Index('ix_bookings_court_date', 'court_id', 'booking_date'),
    )

    @property
    def is_recurring(self):
        return self.recurring_group_id is not None

    def __repr__(self):
        return f"<Booking {self.booking_code} {self.booking_date} court={self.court_id} status={self.booking_status}>"

    def to_summary(self):
        return {
            'id': self.id,
            'booking_code': self.booking_code,
            'date': self.booking_date.isoformat(),
            'weekday': (self.booking_date.weekday() + 1) % 7,
            'sequence': self.recurring_sequence,
            'price': float(self.price),
            'booking_status': self.booking_status,
            'payment_status': self.payment_status,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'is_recurring': self.is_recurring,
            'recurring_group_id': self.recurring_group_id,
            'customer': {
                'name': self.customer_name,
                'phone': self.customer_phone,
                'email': self.customer_email,
            },
            'court': self.court.to_dict() if self.court else None,
            'timeslot': self.timeslot.to_dict() if self.timeslot else None,
            'start_time': format_minutes(self.start_minute),
            'end_time': format_minutes(self.end_minute),
            'duration': float(self.duration),
            'payment_method': self.payment_method,
            'notes': self.notes,
        })
        return data
