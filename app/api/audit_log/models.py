from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.core.database import Base
from app.core.utils import current_time


class AdminCheckInAudit(Base):
    __tablename__ = 'admin_check_in_audit'

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        unique=True,
        index=True,
    )
    event_id = Column(Integer, ForeignKey('events.id'), index=True, nullable=False)
    organization_id = Column(
        Integer, ForeignKey('organizations.id'), index=True, nullable=False
    )
    user_id = Column(Integer, index=True, nullable=False)
    admin_id = Column(Integer, index=True, nullable=False)
    action = Column(String, nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime, default=current_time)
