from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from app.api.registrations.schemas import RegistrationStatus
from app.core.database import Base
from app.core.utils import current_time


class Registration(Base):
    __tablename__ = 'event_registrations'
    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', name='uix_registration_event_user'),
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    event_id = Column(Integer, ForeignKey('events.id'), index=True, nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    status = Column(
        String, nullable=False, default=RegistrationStatus.CONFIRMED.value
    )
    joined_at = Column(DateTime, nullable=False, default=current_time)

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)
