# models/court.py
from sqlalchemy import Column, Integer, String, DateTime
from db.extensions import db
from services.clock import utcnow


class Court(db.Model):
    __tablename__ = 'courts'

    id = Column(Integer, primary_key=True)
    court_number = Column(String(20), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    court_type = Column(String(20), default='normal')  # normal, premium, vip
    status = Column(String(20), default='available', nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_bookable(self):
        return self.deleted_at is None and self.status == 'available'

    def __repr__(self):
        return f"<Court {self.court_number} status={self.status}>"

    def to_dict(self):
        return {
            'id': self.id,
            'court_number': self.court_number,
            'name': self.name,
        }
