from datetime import date as calendar_date
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class VolunteerHoursCreate(BaseModel):
    user_id: int
    event_id: int
    organization_id: int
    session_id: Optional[int] = None
    date: calendar_date
    hours: Decimal
    notes: Optional[str] = None


class VolunteerHours(VolunteerHoursCreate):
    id: int
    created_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
    )


class VolunteerHoursFilter(BaseModel):
    user_id: Optional[int] = None
    event_id: Optional[int] = None
    organization_id: Optional[int] = None


class HoursTotal(BaseModel):
    user_id: int
    organization_id: Optional[int] = None
    event_id: Optional[int] = None
    total_hours: Decimal
