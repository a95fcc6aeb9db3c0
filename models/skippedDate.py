# models/skippedDate.py
from sqlalchemy import Column, Integer, String, Date, ForeignKey
from sqlalchemy.orm import relationship
from db.extensions import db


class SkippedDate(db.Model):
    __tablename__ = 'recurring_skipped_dates'

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey('recurring_booking_groups.id', ondelete='CASCADE'), nullable=False, index=True)
    skipped_date = Column(Date, nullable=False)
    weekday = Column(Integer, nullable=False)
    reason = Column(String(20), nullable=False)  # blocked, conflict
    detail = Column(String(255), nullable=True)

    group = relationship('RecurringBookingGroup', back_populates='skipped_dates')

    def __repr__(self):
        return f"<SkippedDate {self.skipped_date} reason={self.reason}>"

    def to_dict(self):
        return {
            'date': self.skipped_date.isoformat(),
            'weekday': self.weekday,
            'reason': self.reason,
            'detail': self.detail,
        }
