# models/counter.py
from sqlalchemy import Column, Integer, String, DateTime
from db.extensions import db
from services.clock import utcnow


class Counter(db.Model):
    """Named sequence, e.g. 'RG20240101'. Incremented in SQL, never in Python."""
    __tablename__ = 'counters'

    name = Column(String(64), primary_key=True)
    sequence = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Counter {self.name}={self.sequence}>"
