from unittest.mock import patch

from fastapi import status
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Query

from app.api.audit_log.crud import admin_check_in_audit as audit_crud
from app.api.audit_log.models import AdminCheckInAudit
from app.api.audit_log.schemas import AuditAction
from app.api.events.crud import event as event_crud
from app.api.events.schemas import EventStatus
from app.api.registrations.models import Registration
from tests.conftest import ADMIN_ID, MEMBER_ID


def connection_lost():
    return OperationalError(
        'SELECT 1', {}, Exception('server closed the connection unexpectedly')
    )


def assert_unavailable(response):
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()['detail']['code'] == 'persistence_unavailable'


def test_read_failure_on_active_sessions(client, admin_headers, running_event):
    with patch.object(Query, 'all', side_effect=connection_lost()):
        response = client.get(
            f'/check-in/{running_event.id}/active', headers=admin_headers
        )
    assert_unavailable(response)


def test_read_failure_on_registration_check(client, member_headers, test_event):
    with patch.object(Query, 'first', side_effect=connection_lost()):
        response = client.post(f'/registrations/{test_event.id}', headers=member_headers)
    assert_unavailable(response)


def test_read_failure_on_activity(client, admin_headers, running_event):
    with patch.object(Query, 'all', side_effect=connection_lost()):
        response = client.get(
            f'/check-in/{running_event.id}/activity', headers=admin_headers
        )
    assert_unavailable(response)


def test_write_failure_rolls_back_registration(
    client, member_headers, test_event, db_session
):
    event_id = test_event.id
    with patch.object(db_session, 'commit', side_effect=connection_lost()):
        response = client.post(f'/registrations/{event_id}', headers=member_headers)
    assert_unavailable(response)

    assert db_session.query(Registration).filter_by(event_id=event_id).count() == 0
    db_session.refresh(test_event)
    assert test_event.signup_count == 0


def test_pool_timeout(client, member_headers, test_event, db_session):
    event_id = test_event.id
    with patch.object(
        db_session, 'get', side_effect=PoolTimeoutError('QueuePool limit reached')
    ):
        response = client.get(f'/events/{event_id}', headers=member_headers)
    assert_unavailable(response)


def test_end_survives_failed_session_count(db_session, running_event, admin_user):
    with patch.object(Query, 'count', side_effect=connection_lost()):
        event = event_crud.end(db_session, running_event.id, admin_user)

    assert event.status == EventStatus.COMPLETED
    db_session.refresh(running_event)
    assert running_event.status == EventStatus.COMPLETED


def test_audit_refresh_failure_is_swallowed(db_session, running_event):
    with patch.object(db_session, 'refresh', side_effect=connection_lost()):
        entry = audit_crud.append(
            db_session,
            running_event,
            MEMBER_ID,
            ADMIN_ID,
            AuditAction.CHECKOUT,
            running_event.created_at,
        )
    assert entry is None
    # The write itself was committed before the refresh failed
    assert db_session.query(AdminCheckInAudit).count() == 1
