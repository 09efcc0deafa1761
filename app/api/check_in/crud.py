from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.audit_log.crud import admin_check_in_audit as audit_crud
from app.api.audit_log.schemas import AuditAction
from app.api.base_crud import CRUDBase, persistence_errors
from app.api.check_in import models, schemas
from app.api.events.crud import event as event_crud
from app.api.events.models import Event
from app.api.volunteer_hours.crud import volunteer_hours as volunteer_hours_crud
from app.core.exceptions.ledger_exceptions import (
    AlreadyCheckedIn,
    NoActiveSession,
    NotAuthorized,
)
from app.core.logger import logger
from app.core.notifications import notify_change
from app.core.security import TokenData
from app.core.utils import current_time, session_hours

SELF_CHECK_OUT_NOTES = 'Self-tracked check-out'
ADMIN_CHECK_OUT_NOTES = 'Checked out by admin'
HOURS_NOT_RECORDED_WARNING = (
    'Volunteer hours could not be recorded for this session and will be '
    'added by the next reconciliation run'
)


class CRUDCheckIn(
    CRUDBase[models.CheckInSession, schemas.CheckInRequest, schemas.CheckOutRequest]
):
    def _is_admin_action(
        self, event: Event, target_user_id: int, actor: TokenData
    ) -> bool:
        """Acting on someone else requires administering the event's organization."""
        if target_user_id == actor.user_id:
            return False
        if not actor.is_admin_of(event.organization_id):
            logger.warning(
                'User %s tried to act on user %s at event %s without admin rights',
                actor.user_id,
                target_user_id,
                event.id,
            )
            raise NotAuthorized()
        return True

    def _notify(self, db: Session, event: Event, user_id: int, operation: str):
        notify_change(
            db,
            self.model.__tablename__,
            operation,
            event_id=event.id,
            organization_id=event.organization_id,
            user_id=user_id,
        )

    def get_active_session(
        self, db: Session, event_id: int, user_id: int
    ) -> Optional[models.CheckInSession]:
        with persistence_errors(db, 'CheckInSession'):
            return (
                db.query(self.model)
                .filter(
                    self.model.event_id == event_id,
                    self.model.user_id == user_id,
                    self.model.check_out_time.is_(None),
                )
                .order_by(self.model.check_in_time.desc())
                .first()
            )

    def list_active(self, db: Session, event_id: int) -> List[models.CheckInSession]:
        with persistence_errors(db, 'CheckInSession'):
            return (
                db.query(self.model)
                .filter(
                    self.model.event_id == event_id,
                    self.model.check_out_time.is_(None),
                )
                .order_by(self.model.check_in_time.asc())
                .all()
            )

    def count_active(self, db: Session, event_id: int) -> int:
        with persistence_errors(db, 'CheckInSession'):
            return (
                db.query(self.model)
                .filter(
                    self.model.event_id == event_id,
                    self.model.check_out_time.is_(None),
                )
                .count()
            )

    def check_in(
        self,
        db: Session,
        event_id: int,
        target_user_id: int,
        actor: TokenData,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> models.CheckInSession:
        event = event_crud.get(db, event_id)
        by_admin = self._is_admin_action(event, target_user_id, actor)
        event_crud.assert_in_progress(event)

        if self.get_active_session(db, event_id, target_user_id):
            logger.info('User %s is already checked in at event %s', target_user_id, event_id)
            raise AlreadyCheckedIn()

        if by_admin and latitude is not None:
            logger.info('Dropping location sent with admin check-in of user %s', target_user_id)
            latitude = longitude = None

        now = current_time()
        with persistence_errors(db, 'CheckInSession'):
            session = self.model(
                event_id=event_id,
                user_id=target_user_id,
                check_in_time=now,
                checked_in_by_admin=by_admin,
                latitude=latitude,
                longitude=longitude,
            )
            db.add(session)
            try:
                db.flush()
            except IntegrityError:
                # Lost the race against another check-in for the same pair
                logger.info(
                    'Concurrent check-in of user %s at event %s', target_user_id, event_id
                )
                raise AlreadyCheckedIn()

            self._notify(db, event, target_user_id, 'insert')
            db.commit()

        db.refresh(session)
        logger.info(
            'User %s checked in at event %s (session %s, by admin: %s)',
            target_user_id,
            event_id,
            session.id,
            by_admin,
        )

        if by_admin:
            audit_crud.append(
                db, event, target_user_id, actor.user_id, AuditAction.CHECKIN, now
            )
        return session

    def check_out(
        self,
        db: Session,
        event_id: int,
        target_user_id: int,
        actor: TokenData,
    ) -> schemas.CheckOutResponse:
        event = event_crud.get(db, event_id)
        by_admin = self._is_admin_action(event, target_user_id, actor)

        session = self.get_active_session(db, event_id, target_user_id)
        if not session:
            logger.info('No active session for user %s at event %s', target_user_id, event_id)
            raise NoActiveSession()

        now = current_time()
        with persistence_errors(db, 'CheckInSession'):
            affected = self.conditional_update(
                db,
                self.model.id == session.id,
                self.model.check_out_time.is_(None),
                check_out_time=now,
                checked_out_by_admin=by_admin,
                updated_at=now,
            )
            if affected != 1:
                # Closed by a concurrent check-out between the read and the update
                raise NoActiveSession()

            self._notify(db, event, target_user_id, 'update')
            db.commit()

        db.refresh(session)
        hours = session_hours(session.check_in_time, session.check_out_time)
        logger.info(
            'User %s checked out of event %s after %s hours (session %s)',
            target_user_id,
            event_id,
            hours,
            session.id,
        )

        # The closure is committed; ledger and audit failures must not undo it
        warnings = []
        hours_recorded = True
        try:
            volunteer_hours_crud.record_session(
                db,
                session,
                event.organization_id,
                ADMIN_CHECK_OUT_NOTES if by_admin else SELF_CHECK_OUT_NOTES,
            )
        except Exception as e:
            hours_recorded = False
            warnings.append(HOURS_NOT_RECORDED_WARNING)
            logger.error(
                'Failed to record volunteer hours for session %s: %s',
                session.id,
                str(e),
            )

        if by_admin:
            audit_crud.append(
                db,
                event,
                target_user_id,
                actor.user_id,
                AuditAction.CHECKOUT,
                session.check_out_time,
            )

        return schemas.CheckOutResponse(
            session=schemas.CheckInSession.model_validate(session),
            hours=hours,
            hours_recorded=hours_recorded,
            warnings=warnings,
        )

    def get_activity(self, db: Session, event_id: int) -> List[schemas.ActivityItem]:
        """Check-in and check-out moments of an event, newest first."""
        with persistence_errors(db, 'CheckInSession'):
            sessions = db.query(self.model).filter(self.model.event_id == event_id).all()

        items = []
        for session in sessions:
            items.append(
                schemas.ActivityItem(
                    type='checkin',
                    user_id=session.user_id,
                    at=session.check_in_time,
                    by_admin=session.checked_in_by_admin,
                )
            )
            if session.check_out_time:
                items.append(
                    schemas.ActivityItem(
                        type='checkout',
                        user_id=session.user_id,
                        at=session.check_out_time,
                        by_admin=bool(session.checked_out_by_admin),
                    )
                )
        return sorted(items, key=lambda item: item.at, reverse=True)


check_in = CRUDCheckIn(models.CheckInSession)
