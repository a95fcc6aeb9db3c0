# models/bulkPayment.py
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from db.extensions import db
from services.clock import utcnow


class BulkPayment(db.Model):
    """Single running balance covering every session of a bulk-mode group."""
    __tablename__ = 'recurring_bulk_payments'

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey('recurring_booking_groups.id', ondelete='CASCADE'), unique=True, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default='pending')
    payment_method = Column(String(20), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    group = relationship('RecurringBookingGroup', back_populates='bulk_payment')
    entries = relationship(
        'BulkPaymentEntry',
        back_populates='bulk_payment',
        cascade='all, delete-orphan',
        order_by='BulkPaymentEntry.id'
    )

    __table_args__ = (
        CheckConstraint('paid_amount >= 0', name='check_bulk_paid_non_negative'),
        CheckConstraint('total_amount >= 0', name='check_bulk_total_non_negative'),
    )

    @property
    def remaining_amount(self):
        remaining = self.total_amount - self.paid_amount
        return remaining if remaining > 0 else 0

    def __repr__(self):
        return f"<BulkPayment group={self.group_id} {self.paid_amount}/{self.total_amount} {self.payment_status}>"

    def to_dict(self):
        return {
            'total_amount': float(self.total_amount),
            'paid_amount': float(self.paid_amount),
            'remaining_amount': float(self.remaining_amount),
            'payment_status': self.payment_status,
            'payment_method': self.payment_method,
        }


class BulkPaymentEntry(db.Model):
    __tablename__ = 'recurring_bulk_payment_entries'

    id = Column(Integer, primary_key=True)
    bulk_payment_id = Column(Integer, ForeignKey('recurring_bulk_payments.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(20), nullable=True)
    idempotency_key = Column(String(128), unique=True, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    bulk_payment = relationship('BulkPayment', back_populates='entries')

    def __repr__(self):
        return f"<BulkPaymentEntry {self.amount} via {self.payment_method}>"
