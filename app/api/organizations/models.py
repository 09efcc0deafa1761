from typing import TYPE_CHECKING, List

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import Mapped, relationship

from app.core.database import Base
from app.core.utils import current_time

if TYPE_CHECKING:
    from app.api.events.models import Event


class Organization(Base):
    __tablename__ = 'organizations'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    name = Column(String, unique=True, index=True, nullable=False)
    description = Column(String, nullable=True)

    events: Mapped[List['Event']] = relationship(
        'Event', back_populates='organization'
    )

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)
