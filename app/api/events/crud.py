from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.base_crud import CRUDBase, persistence_errors
from app.api.check_in.models import CheckInSession
from app.api.events import models, schemas
from app.api.events.schemas import EventStatus
from app.core.exceptions.ledger_exceptions import (
    EventNotFound,
    EventNotInProgress,
    InvalidTransition,
    NotAuthorized,
    RegistrationClosed,
)
from app.core.logger import logger
from app.core.notifications import notify_change
from app.core.security import TokenData
from app.core.utils import current_time

# Target status -> statuses it may be entered from
TRANSITIONS = {
    EventStatus.PUBLISHED: (EventStatus.DRAFT,),
    EventStatus.IN_PROGRESS: (EventStatus.PUBLISHED,),
    EventStatus.COMPLETED: (EventStatus.IN_PROGRESS,),
    EventStatus.CANCELLED: (EventStatus.DRAFT, EventStatus.PUBLISHED),
}

REGISTRATION_OPEN = (EventStatus.PUBLISHED, EventStatus.IN_PROGRESS)


class CRUDEvent(CRUDBase[models.Event, schemas.EventCreate, schemas.EventFilter]):
    def get(self, db: Session, id: int) -> models.Event:
        event = super().get(db, id)
        if not event:
            logger.error('Event %s not found', id)
            raise EventNotFound()
        return event

    def get_for_admin(self, db: Session, id: int, user: TokenData) -> models.Event:
        event = self.get(db, id)
        if not user.is_admin_of(event.organization_id):
            logger.warning(
                'User %s is not an admin of organization %s',
                user.user_id,
                event.organization_id,
            )
            raise NotAuthorized()
        return event

    def create(
        self, db: Session, obj: schemas.EventCreate, user: TokenData
    ) -> models.Event:
        if not user.is_admin_of(obj.organization_id):
            raise NotAuthorized()

        logger.info('Creating event %s in organization %s', obj.title, obj.organization_id)
        return super().create(
            db,
            obj,
            status=EventStatus.DRAFT.value,
            signup_count=0,
            created_by=user.user_id,
        )

    def _transition(
        self,
        db: Session,
        event_id: int,
        target: EventStatus,
        user: TokenData,
        **values,
    ) -> models.Event:
        """
        Move the event to ``target`` with a single conditional update keyed on
        the permitted prior statuses. Of two callers racing on the same event
        exactly one sees an affected row; the other gets InvalidTransition.
        """
        event = self.get_for_admin(db, event_id, user)
        expected = [s.value for s in TRANSITIONS[target]]
        current_status = event.status

        with persistence_errors(db, 'Event'):
            affected = self.conditional_update(
                db,
                self.model.id == event_id,
                self.model.status.in_(expected),
                status=target.value,
                updated_at=current_time(),
                **values,
            )
            if affected != 1:
                logger.warning(
                    'Rejected transition of event %s from %s to %s',
                    event_id,
                    current_status,
                    target.value,
                )
                raise InvalidTransition(
                    f'Cannot move event from {current_status} to {target.value}'
                )

            notify_change(
                db,
                self.model.__tablename__,
                'update',
                event_id=event_id,
                organization_id=event.organization_id,
            )
            db.commit()

        db.refresh(event)
        logger.info('Event %s is now %s', event_id, event.status)
        return event

    def publish(self, db: Session, event_id: int, user: TokenData) -> models.Event:
        return self._transition(db, event_id, EventStatus.PUBLISHED, user)

    def start(self, db: Session, event_id: int, user: TokenData) -> models.Event:
        return self._transition(
            db, event_id, EventStatus.IN_PROGRESS, user, started_at=current_time()
        )

    def end(self, db: Session, event_id: int, user: TokenData) -> models.Event:
        event = self._transition(
            db, event_id, EventStatus.COMPLETED, user, ended_at=current_time()
        )
        # Open sessions are left for the caller to close; they stay closable.
        # The transition is committed, so a failed count is only logged.
        try:
            open_sessions = (
                db.query(CheckInSession)
                .filter(
                    CheckInSession.event_id == event_id,
                    CheckInSession.check_out_time.is_(None),
                )
                .count()
            )
        except SQLAlchemyError as e:
            logger.error(
                'Could not count open sessions of ended event %s: %s', event_id, str(e)
            )
            return event
        if open_sessions:
            logger.warning(
                'Event %s ended with %s open check-in sessions',
                event_id,
                open_sessions,
            )
        return event

    def cancel(self, db: Session, event_id: int, user: TokenData) -> models.Event:
        return self._transition(db, event_id, EventStatus.CANCELLED, user)

    def assert_accepting_registrations(self, event: models.Event) -> None:
        if event.status not in REGISTRATION_OPEN:
            logger.warning(
                'Event %s is %s and not accepting registrations',
                event.id,
                event.status,
            )
            raise RegistrationClosed()

    def assert_in_progress(self, event: models.Event) -> None:
        if event.status != EventStatus.IN_PROGRESS:
            logger.warning('Event %s is %s, check-in refused', event.id, event.status)
            raise EventNotInProgress()


event = CRUDEvent(models.Event)
