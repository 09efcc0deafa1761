from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuditAction(str, Enum):
    CHECKIN = 'checkin'
    CHECKOUT = 'checkout'


class AuditEntry(BaseModel):
    id: int
    event_id: int
    organization_id: int
    user_id: int
    admin_id: int
    action: AuditAction
    timestamp: datetime
    notes: Optional[str] = None

    model_config = ConfigDict(
        from_attributes=True,
    )


class AuditEntryFilter(BaseModel):
    event_id: Optional[int] = None
    user_id: Optional[int] = None
    admin_id: Optional[int] = None
    action: Optional[AuditAction] = None
    from_timestamp: Optional[datetime] = None
    to_timestamp: Optional[datetime] = None
