from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    text,
)

from app.core.database import Base
from app.core.utils import current_time


class CheckInSession(Base):
    __tablename__ = 'check_in_sessions'
    __table_args__ = (
        # At most one open session per (event, user)
        Index(
            'uix_check_in_open_session',
            'event_id',
            'user_id',
            unique=True,
            postgresql_where=text('check_out_time IS NULL'),
            sqlite_where=text('check_out_time IS NULL'),
        ),
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
    check_in_time = Column(DateTime, nullable=False)
    check_out_time = Column(DateTime, nullable=True)
    checked_in_by_admin = Column(Boolean, nullable=False, default=False)
    checked_out_by_admin = Column(Boolean, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    created_at = Column(DateTime, default=current_time)
    updated_at = Column(DateTime, default=current_time, onupdate=current_time)

    @property
    def is_active(self) -> bool:
        return self.check_out_time is None
