# models/blockedDate.py
from sqlalchemy import Column, Integer, String, Date, DateTime
from db.extensions import db
from services.clock import utcnow

DEFAULT_BLOCK_REASON = 'Venue closed'


class BlockedDate(db.Model):
    __tablename__ = 'blocked_dates'

    id = Column(Integer, primary_key=True)
    blocked_date = Column(Date, unique=True, nullable=False, index=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<BlockedDate {self.blocked_date} reason={self.reason!r}>"
