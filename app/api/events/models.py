from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, relationship

from app.api.events.schemas import EventStatus
from app.core.database import Base
from app.core.utils import current_time

if TYPE_CHECKING:
    from app.api.organizations.models import Organization


class Event(Base):
    __tablename__ = 'events'
    __table_args__ = (
        CheckConstraint('max_attendees > 0', name='ck_events_max_attendees'),
        CheckConstraint(
            'signup_count >= 0 AND signup_count <= max_attendees',
            name='ck_events_signup_count',
        ),
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    organization_id = Column(
        Integer, ForeignKey('organizations.id'), index=True, nullable=False
    )
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    location = Column(String, nullable=True)
    scheduled_start = Column(DateTime, nullable=True)
    max_attendees = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=EventStatus.DRAFT.value)
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    signup_count = Column(Integer, nullable=False, default=0)

    organization: Mapped['Organization'] = relationship(
        'Organization', back_populates='events'
    )

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)
    created_by = Column(Integer)
