"""
Post-commit change relay.

CRUD operations queue ``Change`` records on the SQLAlchemy session that made
them. Once that session commits, the queued changes are handed to every
subscription whose scope matches; a rollback drops them. Delivery is advisory
only: dashboards use it to know when to refresh, nothing reads it to decide
correctness.
"""

from dataclasses import dataclass, field
from itertools import count
from threading import Lock
from typing import Callable, Dict, List

from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.logger import logger

PENDING_CHANGES_KEY = 'pending_changes'


@dataclass(frozen=True)
class Change:
    table: str
    operation: str
    keys: Dict[str, int] = field(default_factory=dict)

    def matches(self, scope: Dict[str, int]) -> bool:
        return all(self.keys.get(k) == v for k, v in scope.items())

    def to_dict(self) -> dict:
        return {'table': self.table, 'operation': self.operation, **self.keys}


@dataclass
class Subscription:
    id: int
    table: str
    callback: Callable[[Change], None]
    scope: Dict[str, int]


class ChangeRelay:
    def __init__(self):
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = count(1)
        self._lock = Lock()

    def subscribe(
        self, table: str, callback: Callable[[Change], None], **scope: int
    ) -> Subscription:
        with self._lock:
            subscription = Subscription(next(self._ids), table, callback, scope)
            self._subscriptions[subscription.id] = subscription
        logger.debug('Subscribed %s to %s with scope %s', subscription.id, table, scope)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(subscription.id, None)

    def publish(self, changes: List[Change]) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        for change in changes:
            for subscription in subscriptions:
                if subscription.table != change.table:
                    continue
                if not change.matches(subscription.scope):
                    continue
                try:
                    subscription.callback(change)
                except Exception as e:
                    logger.error(
                        'Change callback %s failed for %s: %s',
                        subscription.id,
                        change,
                        str(e),
                    )


relay = ChangeRelay()


def notify_change(db: Session, table: str, operation: str, **keys: int) -> None:
    """Queue a change to be published once ``db`` commits."""
    db.info.setdefault(PENDING_CHANGES_KEY, []).append(
        Change(table=table, operation=operation, keys=keys)
    )


@event.listens_for(Session, 'after_commit')
def _publish_committed_changes(session: Session) -> None:
    changes = session.info.pop(PENDING_CHANGES_KEY, None)
    if changes:
        relay.publish(changes)


@event.listens_for(Session, 'after_soft_rollback')
def _discard_rolled_back_changes(session: Session, previous_transaction) -> None:
    session.info.pop(PENDING_CHANGES_KEY, None)
