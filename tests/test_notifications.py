import asyncio
import json
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import sessionmaker

from app.api.events.models import Event
from app.api.events.routes import event_change_stream, get_watched_event_id
from app.api.registrations.crud import registration as registration_crud
from app.api.registrations.models import Registration
from app.core.config import settings
from app.core.exceptions.ledger_exceptions import EventFull
from app.core.notifications import Change, ChangeRelay, notify_change, relay
from app.core.security import TokenData


def test_change_matches_scope():
    change = Change('check_in_sessions', 'insert', {'event_id': 1, 'user_id': 2})
    assert change.matches({})
    assert change.matches({'event_id': 1})
    assert change.matches({'event_id': 1, 'user_id': 2})
    assert not change.matches({'event_id': 2})
    assert not change.matches({'organization_id': 1})


def test_publish_only_to_matching_subscriptions():
    local_relay = ChangeRelay()
    watching_event = MagicMock()
    watching_other_event = MagicMock()
    watching_other_table = MagicMock()
    local_relay.subscribe('events', watching_event, event_id=1)
    local_relay.subscribe('events', watching_other_event, event_id=2)
    local_relay.subscribe('volunteer_hours', watching_other_table)

    change = Change('events', 'update', {'event_id': 1})
    local_relay.publish([change])

    watching_event.assert_called_once_with(change)
    watching_other_event.assert_not_called()
    watching_other_table.assert_not_called()


def test_unsubscribe_stops_delivery():
    local_relay = ChangeRelay()
    callback = MagicMock()
    subscription = local_relay.subscribe('events', callback)
    local_relay.unsubscribe(subscription)

    local_relay.publish([Change('events', 'update', {'event_id': 1})])
    callback.assert_not_called()


def test_failing_callback_does_not_stop_others():
    local_relay = ChangeRelay()
    failing = MagicMock(side_effect=RuntimeError('dashboard gone'))
    healthy = MagicMock()
    local_relay.subscribe('events', failing)
    local_relay.subscribe('events', healthy)

    local_relay.publish([Change('events', 'update', {'event_id': 1})])
    failing.assert_called_once()
    healthy.assert_called_once()


def test_changes_are_published_after_commit(db_session, test_event):
    callback = MagicMock()
    relay.subscribe(Event.__tablename__, callback, event_id=test_event.id)

    notify_change(db_session, Event.__tablename__, 'update', event_id=test_event.id)
    callback.assert_not_called()

    db_session.commit()
    callback.assert_called_once_with(
        Change(Event.__tablename__, 'update', {'event_id': test_event.id})
    )


def test_changes_are_dropped_on_rollback(db_session, test_event):
    callback = MagicMock()
    relay.subscribe(Event.__tablename__, callback)

    db_session.query(Event).count()
    notify_change(db_session, Event.__tablename__, 'update', event_id=test_event.id)
    db_session.rollback()
    db_session.commit()

    callback.assert_not_called()


def test_registration_publishes_changes(db_session, test_event):
    registrations = MagicMock()
    events = MagicMock()
    relay.subscribe(Registration.__tablename__, registrations, event_id=test_event.id)
    relay.subscribe(Event.__tablename__, events, event_id=test_event.id)

    user = TokenData(user_id=1, email='user1@example.com')
    registration_crud.register(db_session, test_event.id, user)

    registrations.assert_called_once()
    assert registrations.call_args.args[0].operation == 'insert'
    assert registrations.call_args.args[0].keys['user_id'] == 1
    events.assert_called_once()


def test_rejected_registration_publishes_nothing(db_session, create_test_event):
    event = create_test_event(max_attendees=1, signup_count=1)
    callback = MagicMock()
    relay.subscribe(Registration.__tablename__, callback)

    with pytest.raises(EventFull):
        registration_crud.register(
            db_session, event.id, TokenData(user_id=1, email='user1@example.com')
        )
    callback.assert_not_called()


def test_change_stream_requires_existing_event(client, member_headers):
    response = client.get('/events/999/changes', headers=member_headers)
    assert response.status_code == 404
    assert response.json()['detail']['code'] == 'event_not_found'


def test_watching_an_event_releases_the_connection(test_db_engine, test_event):
    session = sessionmaker(bind=test_db_engine)()
    user = TokenData(user_id=1, email='user1@example.com')

    assert get_watched_event_id(test_event.id, user, session) == test_event.id
    assert not session.in_transaction()


def _read_stream(event_id, action):
    async def still_connected():
        return False

    async def run():
        stream = event_change_stream(event_id, still_connected)
        try:
            assert await stream.__anext__() == ': connected\n\n'
            action()
            return await asyncio.wait_for(stream.__anext__(), timeout=5)
        finally:
            await stream.aclose()

    return asyncio.run(run())


def test_change_stream_sends_registration(db_session, test_event):
    event_id = test_event.id
    user = TokenData(user_id=1, email='user1@example.com')

    frame = _read_stream(
        event_id, lambda: registration_crud.register(db_session, event_id, user)
    )

    kind, data = frame.strip().split('\n')
    assert kind == 'event: change'
    change = json.loads(data[len('data: '):])
    assert change['table'] == Registration.__tablename__
    assert change['operation'] == 'insert'
    assert change['event_id'] == event_id
    assert change['user_id'] == 1
    # The stream unsubscribed when it was closed
    assert relay._subscriptions == {}


def test_change_stream_ignores_other_events(db_session, create_test_event):
    watched = create_test_event()
    other = create_test_event()
    watched_id, other_id = watched.id, other.id

    def publish():
        relay.publish([Change(Event.__tablename__, 'update', {'event_id': other_id})])
        relay.publish([Change(Event.__tablename__, 'update', {'event_id': watched_id})])

    frame = _read_stream(watched_id, publish)
    assert json.loads(frame.split('data: ')[1])['event_id'] == watched_id


def test_slow_stream_collapses_backlog(monkeypatch, test_event):
    monkeypatch.setattr(settings, 'CHANGE_STREAM_QUEUE_SIZE', 2)
    event_id = test_event.id

    def flood():
        relay.publish(
            [
                Change(Registration.__tablename__, 'insert', {'event_id': event_id})
                for _ in range(5)
            ]
        )

    frame = _read_stream(event_id, flood)
    change = json.loads(frame.split('data: ')[1])
    assert change == {'table': Event.__tablename__, 'operation': 'refresh', 'event_id': event_id}
