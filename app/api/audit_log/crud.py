from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.api.audit_log import models, schemas
from app.api.base_crud import CRUDBase, persistence_errors
from app.api.events.models import Event
from app.core.logger import logger
from app.core.notifications import notify_change


class CRUDAdminCheckInAudit(
    CRUDBase[
        models.AdminCheckInAudit,
        schemas.AuditEntry,
        schemas.AuditEntryFilter,
    ]
):
    def append(
        self,
        db: Session,
        event: Event,
        target_user_id: int,
        admin_id: int,
        action: schemas.AuditAction,
        timestamp: datetime,
        notes: Optional[str] = None,
    ) -> Optional[models.AdminCheckInAudit]:
        """
        Append one audit entry. Never raises: a failed write is logged and
        ``None`` returned so the check-in/out it describes still stands.
        """
        try:
            event_id, organization_id = event.id, event.organization_id
            entry = self.model(
                event_id=event_id,
                organization_id=organization_id,
                user_id=target_user_id,
                admin_id=admin_id,
                action=action.value,
                timestamp=timestamp,
                notes=notes,
            )
            db.add(entry)
            notify_change(
                db,
                self.model.__tablename__,
                'insert',
                event_id=event_id,
                organization_id=organization_id,
                user_id=target_user_id,
            )
            db.commit()
            db.refresh(entry)
        except Exception as e:
            db.rollback()
            logger.error(
                'Failed to log admin %s of user %s by admin %s at %s: %s',
                action.value,
                target_user_id,
                admin_id,
                timestamp,
                str(e),
            )
            return None
        return entry

    def find_entries(
        self,
        db: Session,
        organization_id: int,
        filters: schemas.AuditEntryFilter,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[models.AdminCheckInAudit], int]:
        """Filtered audit entries, newest first, with the unpaginated total."""
        query = self._apply_filters(
            db.query(self.model).filter(self.model.organization_id == organization_id),
            filters,
        )
        if filters.from_timestamp:
            query = query.filter(self.model.timestamp >= filters.from_timestamp)
        if filters.to_timestamp:
            query = query.filter(self.model.timestamp <= filters.to_timestamp)

        with persistence_errors(db, 'AdminCheckInAudit'):
            total = query.count()
            items = (
                query.order_by(self.model.timestamp.desc(), self.model.id.desc())
                .offset(skip)
                .limit(limit)
                .all()
            )
        return items, total


admin_check_in_audit = CRUDAdminCheckInAudit(models.AdminCheckInAudit)
