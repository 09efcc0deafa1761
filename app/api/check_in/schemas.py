from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class CheckInRequest(BaseModel):
    user_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @model_validator(mode='after')
    def validate_location(self) -> 'CheckInRequest':
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError('latitude and longitude must be provided together')
        if self.latitude is not None and not -90 <= self.latitude <= 90:
            raise ValueError('latitude must be between -90 and 90')
        if self.longitude is not None and not -180 <= self.longitude <= 180:
            raise ValueError('longitude must be between -180 and 180')
        return self


class CheckOutRequest(BaseModel):
    user_id: Optional[int] = None


class CheckInSession(BaseModel):
    id: int
    event_id: int
    user_id: int
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    checked_in_by_admin: bool
    checked_out_by_admin: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool

    model_config = ConfigDict(
        from_attributes=True,
    )


class CheckOutResponse(BaseModel):
    session: CheckInSession
    hours: Decimal
    hours_recorded: bool
    warnings: List[str] = []


class ActivityItem(BaseModel):
    type: str
    user_id: int
    at: datetime
    by_admin: bool
