from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class EventStatus(str, Enum):
    DRAFT = 'draft'
    PUBLISHED = 'published'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class EventBase(BaseModel):
    organization_id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    max_attendees: int


class EventCreate(EventBase):
    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError('Title cannot be empty')
        return value.strip()

    @field_validator('max_attendees')
    @classmethod
    def validate_max_attendees(cls, value: int) -> int:
        if value < 1:
            raise ValueError('max_attendees must be at least 1')
        return value


class Event(EventBase):
    id: int
    status: EventStatus
    signup_count: int
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
    )


class EventFilter(BaseModel):
    id: Optional[int] = None
    organization_id: Optional[int] = None
    status: Optional[EventStatus] = None
