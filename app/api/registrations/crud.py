from typing import List, Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.base_crud import CRUDBase, persistence_errors
from app.api.events.crud import event as event_crud
from app.api.events.models import Event
from app.api.registrations import models, schemas
from app.core.exceptions.ledger_exceptions import (
    DuplicateRegistration,
    EventFull,
    NotRegistered,
)
from app.core.logger import logger
from app.core.notifications import notify_change
from app.core.security import TokenData
from app.core.utils import current_time


class CRUDRegistration(
    CRUDBase[
        models.Registration,
        schemas.RegistrationCreate,
        schemas.RegistrationFilter,
    ]
):
    def get_registration(
        self, db: Session, event_id: int, user_id: int
    ) -> Optional[models.Registration]:
        with persistence_errors(db, 'Registration'):
            return (
                db.query(self.model)
                .filter(self.model.event_id == event_id, self.model.user_id == user_id)
                .first()
            )

    def list_for_event(self, db: Session, event_id: int) -> List[models.Registration]:
        with persistence_errors(db, 'Registration'):
            return (
                db.query(self.model)
                .filter(self.model.event_id == event_id)
                .order_by(self.model.joined_at.asc(), self.model.id.asc())
                .all()
            )

    def count_for_event(self, db: Session, event_id: int) -> int:
        return self.count(db, schemas.RegistrationFilter(event_id=event_id))

    def _notify(self, db: Session, event: Event, user_id: int, operation: str):
        notify_change(
            db,
            self.model.__tablename__,
            operation,
            event_id=event.id,
            organization_id=event.organization_id,
            user_id=user_id,
        )
        notify_change(
            db,
            Event.__tablename__,
            'update',
            event_id=event.id,
            organization_id=event.organization_id,
        )

    def register(
        self, db: Session, event_id: int, user: TokenData
    ) -> schemas.RegistrationResult:
        """
        Insert the registration and take one capacity slot in one transaction.

        The slot is taken with ``signup_count = signup_count + 1`` guarded by
        ``signup_count < max_attendees`` in the same statement, so two callers
        competing for the last slot cannot both pass.
        """
        event = event_crud.get(db, event_id)
        event_crud.assert_accepting_registrations(event)

        if self.get_registration(db, event_id, user.user_id):
            logger.info('User %s is already registered for event %s', user.user_id, event_id)
            raise DuplicateRegistration()

        with persistence_errors(db, 'Registration'):
            registration = self.model(
                event_id=event_id,
                user_id=user.user_id,
                status=schemas.RegistrationStatus.CONFIRMED.value,
                joined_at=current_time(),
            )
            db.add(registration)
            try:
                db.flush()
            except IntegrityError:
                logger.info(
                    'Concurrent registration of user %s for event %s', user.user_id, event_id
                )
                raise DuplicateRegistration()

            affected = event_crud.conditional_update(
                db,
                Event.id == event_id,
                Event.signup_count < Event.max_attendees,
                signup_count=Event.signup_count + 1,
            )
            if affected != 1:
                logger.warning('Event %s is full, rejecting user %s', event_id, user.user_id)
                raise EventFull()

            self._notify(db, event, user.user_id, 'insert')
            db.commit()

        db.refresh(registration)
        db.refresh(event)
        logger.info(
            'User %s registered for event %s (%s/%s)',
            user.user_id,
            event_id,
            event.signup_count,
            event.max_attendees,
        )
        return schemas.RegistrationResult(
            registration=schemas.Registration.model_validate(registration),
            signup_count=event.signup_count,
            max_attendees=event.max_attendees,
        )

    def unregister(
        self, db: Session, event_id: int, user: TokenData
    ) -> schemas.UnregisterResult:
        event = event_crud.get(db, event_id)

        with persistence_errors(db, 'Registration'):
            deleted = (
                db.query(self.model)
                .filter(
                    self.model.event_id == event_id,
                    self.model.user_id == user.user_id,
                )
                .delete(synchronize_session=False)
            )
            if not deleted:
                logger.warning('User %s is not registered for event %s', user.user_id, event_id)
                raise NotRegistered()

            event_crud.conditional_update(
                db,
                Event.id == event_id,
                signup_count=case(
                    (Event.signup_count > 0, Event.signup_count - 1),
                    else_=0,
                ),
            )
            self._notify(db, event, user.user_id, 'delete')
            db.commit()

        db.refresh(event)
        logger.info('User %s unregistered from event %s', user.user_id, event_id)
        return schemas.UnregisterResult(
            event_id=event_id,
            user_id=user.user_id,
            signup_count=event.signup_count,
        )


registration = CRUDRegistration(models.Registration)
