import time

from sqlalchemy.orm import Session

from app.api.events.models import Event
from app.api.volunteer_hours.crud import volunteer_hours as volunteer_hours_crud
from app.core.database import SessionLocal
from app.core.logger import logger

RECONCILIATION_NOTES = 'Recovered by reconciliation'


def reconcile(db: Session) -> int:
    """Record the ledger entry of every closed session that is missing one."""
    sessions = volunteer_hours_crud.find_unrecorded_sessions(db)
    logger.info('Found %s closed sessions without volunteer hours', len(sessions))

    recorded = 0
    for session in sessions:
        event = db.get(Event, session.event_id)
        try:
            volunteer_hours_crud.record_session(
                db, session, event.organization_id, RECONCILIATION_NOTES
            )
            recorded += 1
        except Exception as e:
            logger.error(
                'Error recording hours for session %s: %s', session.id, str(e)
            )
    return recorded


def main():
    with SessionLocal() as db:
        recorded = reconcile(db)
        logger.info('Recorded hours for %s sessions', recorded)


if __name__ == '__main__':
    logger.info('Starting volunteer hours reconciliation...')
    main()
    logger.info('Reconciliation completed. Sleeping for 60 seconds...')
    time.sleep(60)
