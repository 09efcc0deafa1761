from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String

from app.core.database import Base
from app.core.utils import current_time


class VolunteerHours(Base):
    """One immutable ledger entry per closed check-in session."""

    __tablename__ = 'volunteer_hours'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    user_id = Column(Integer, index=True, nullable=False)
    event_id = Column(Integer, ForeignKey('events.id'), index=True, nullable=False)
    organization_id = Column(
        Integer, ForeignKey('organizations.id'), index=True, nullable=False
    )
    session_id = Column(
        Integer, ForeignKey('check_in_sessions.id'), unique=True, nullable=True
    )
    date = Column(Date, nullable=False)
    hours = Column(Numeric(12, 6), nullable=False)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime, default=current_time)
