# services/code_generator.py

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from db.extensions import db
from models.counter import Counter
from .clock import utcnow

GROUP_CODE_PREFIX = 'RG'
BOOKING_CODE_PREFIX = 'BK'


def next_sequence(name):
    """
    Atomically bump the named counter and return the new value. Runs inside
    the caller's transaction, so a rolled back booking gives its number back.
    """
    dialect = db.session.get_bind().dialect.name

    if dialect in ('postgresql', 'sqlite'):
        insert = pg_insert if dialect == 'postgresql' else sqlite_insert
        stmt = insert(Counter).values(name=name, sequence=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Counter.name],
            set_={'sequence': Counter.sequence + 1, 'updated_at': utcnow()}
        ).returning(Counter.sequence)
        return db.session.execute(stmt).scalar_one()

    result = db.session.execute(
        update(Counter).where(Counter.name == name).values(sequence=Counter.sequence + 1, updated_at=utcnow())
    )
    if result.rowcount == 0:
        db.session.add(Counter(name=name, sequence=1))
        db.session.flush()
        return 1
    return db.session.execute(select(Counter.sequence).where(Counter.name == name)).scalar_one()


def _dated_code(prefix, day):
    date_str = day.strftime('%Y%m%d')
    running_number = next_sequence(f"{prefix}{date_str}")
    return f"{prefix}{date_str}{running_number:04d}"


def generate_group_code(created_on):
    """RG{YYYYMMDD}{0001}, numbered per creation day."""
    return _dated_code(GROUP_CODE_PREFIX, created_on)


def generate_booking_code(booking_date):
    """BK{YYYYMMDD}{0001}, numbered per booking date."""
    return _dated_code(BOOKING_CODE_PREFIX, booking_date)
