from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RegistrationStatus(str, Enum):
    CONFIRMED = 'confirmed'
    WAITLISTED = 'waitlisted'


class RegistrationCreate(BaseModel):
    event_id: int
    user_id: int
    status: RegistrationStatus = RegistrationStatus.CONFIRMED


class Registration(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: RegistrationStatus
    joined_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
    )


class RegistrationResult(BaseModel):
    registration: Registration
    signup_count: int
    max_attendees: int


class UnregisterResult(BaseModel):
    event_id: int
    user_id: int
    signup_count: int


class RegistrationFilter(BaseModel):
    event_id: Optional[int] = None
    user_id: Optional[int] = None
    status: Optional[RegistrationStatus] = None
