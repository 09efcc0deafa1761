from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.base_crud import CRUDBase, persistence_errors
from app.api.check_in.models import CheckInSession
from app.api.volunteer_hours import models, schemas
from app.core.logger import logger
from app.core.notifications import notify_change
from app.core.utils import HOURS_QUANTUM, session_hours


class CRUDVolunteerHours(
    CRUDBase[
        models.VolunteerHours,
        schemas.VolunteerHoursCreate,
        schemas.VolunteerHoursFilter,
    ]
):
    def record_session(
        self,
        db: Session,
        session: CheckInSession,
        organization_id: int,
        notes: Optional[str] = None,
    ) -> models.VolunteerHours:
        """
        Append the ledger entry for a closed session in its own transaction.

        The entry is dated on the check-in day so sessions crossing midnight
        count toward the day they started. The unique ``session_id`` keeps a
        session from being credited twice.
        """
        if session.check_out_time is None:
            raise ValueError(f'Session {session.id} is still open')

        entry = self.model(
            user_id=session.user_id,
            event_id=session.event_id,
            organization_id=organization_id,
            session_id=session.id,
            date=session.check_in_time.date(),
            hours=session_hours(session.check_in_time, session.check_out_time),
            notes=notes,
        )
        with persistence_errors(db, 'VolunteerHours'):
            db.add(entry)
            notify_change(
                db,
                self.model.__tablename__,
                'insert',
                event_id=session.event_id,
                organization_id=organization_id,
                user_id=session.user_id,
            )
            db.commit()
        db.refresh(entry)
        logger.info(
            'Recorded %s hours for user %s at event %s (session %s)',
            entry.hours,
            entry.user_id,
            entry.event_id,
            session.id,
        )
        return entry

    def total_hours(
        self,
        db: Session,
        user_id: int,
        organization_id: Optional[int] = None,
        event_id: Optional[int] = None,
    ) -> Decimal:
        query = db.query(func.sum(self.model.hours)).filter(
            self.model.user_id == user_id
        )
        if organization_id is not None:
            query = query.filter(self.model.organization_id == organization_id)
        if event_id is not None:
            query = query.filter(self.model.event_id == event_id)

        with persistence_errors(db, 'VolunteerHours'):
            total = query.scalar()
        if total is None:
            return Decimal('0').quantize(HOURS_QUANTUM)
        return Decimal(str(total)).quantize(HOURS_QUANTUM)

    def list_for_user(
        self,
        db: Session,
        user_id: int,
        organization_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[models.VolunteerHours]:
        filters = schemas.VolunteerHoursFilter(
            user_id=user_id, organization_id=organization_id
        )
        return self.find(
            db, skip=skip, limit=limit, filters=filters, sort_by='date'
        )

    def find_unrecorded_sessions(self, db: Session) -> List[CheckInSession]:
        """Closed sessions with no ledger entry, oldest first."""
        with persistence_errors(db, 'VolunteerHours'):
            return (
                db.query(CheckInSession)
                .outerjoin(self.model, self.model.session_id == CheckInSession.id)
                .filter(
                    CheckInSession.check_out_time.isnot(None),
                    self.model.id.is_(None),
                )
                .order_by(CheckInSession.check_out_time.asc())
                .all()
            )


volunteer_hours = CRUDVolunteerHours(models.VolunteerHours)
