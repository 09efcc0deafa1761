from datetime import datetime, timedelta

from fastapi import status

from app.api.audit_log.crud import admin_check_in_audit as audit_crud
from app.api.audit_log.models import AdminCheckInAudit
from app.api.audit_log.schemas import AuditAction, AuditEntryFilter
from tests.conftest import ADMIN_ID, MEMBER_ID, add_event, add_organization

BASE_TIME = datetime(2024, 5, 4, 9, 0, 0)


def _seed(db, event, count=3):
    for i in range(count):
        audit_crud.append(
            db,
            event,
            target_user_id=MEMBER_ID + i,
            admin_id=ADMIN_ID,
            action=AuditAction.CHECKIN if i % 2 == 0 else AuditAction.CHECKOUT,
            timestamp=BASE_TIME + timedelta(minutes=i),
        )


def test_append(db_session, running_event):
    entry = audit_crud.append(
        db_session,
        running_event,
        MEMBER_ID,
        ADMIN_ID,
        AuditAction.CHECKIN,
        BASE_TIME,
        notes='Arrived without phone',
    )
    assert entry.id is not None
    assert entry.organization_id == running_event.organization_id
    assert entry.action == 'checkin'
    assert entry.notes == 'Arrived without phone'


def test_append_failure_returns_none(db_session, running_event):
    # A missing timestamp violates NOT NULL; the caller must not see an error
    entry = audit_crud.append(
        db_session, running_event, MEMBER_ID, ADMIN_ID, AuditAction.CHECKIN, None
    )
    assert entry is None
    assert db_session.query(AdminCheckInAudit).count() == 0


def test_find_entries_newest_first(db_session, running_event):
    _seed(db_session, running_event)

    items, total = audit_crud.find_entries(
        db_session, running_event.organization_id, AuditEntryFilter()
    )
    assert total == 3
    assert [item.user_id for item in items] == [MEMBER_ID + 2, MEMBER_ID + 1, MEMBER_ID]


def test_find_entries_filters(db_session, running_event):
    _seed(db_session, running_event, count=4)
    organization_id = running_event.organization_id

    items, total = audit_crud.find_entries(
        db_session, organization_id, AuditEntryFilter(action=AuditAction.CHECKOUT)
    )
    assert total == 2
    assert all(item.action == 'checkout' for item in items)

    items, total = audit_crud.find_entries(
        db_session, organization_id, AuditEntryFilter(user_id=MEMBER_ID + 1)
    )
    assert total == 1

    items, total = audit_crud.find_entries(
        db_session,
        organization_id,
        AuditEntryFilter(
            from_timestamp=BASE_TIME + timedelta(minutes=1),
            to_timestamp=BASE_TIME + timedelta(minutes=2),
        ),
    )
    assert [item.user_id for item in items] == [MEMBER_ID + 2, MEMBER_ID + 1]


def test_find_entries_is_scoped_to_organization(db_session, running_event):
    other_organization = add_organization(db_session, 'Food Bank')
    other_event = add_event(db_session, other_organization.id)
    _seed(db_session, running_event, count=2)
    _seed(db_session, other_event, count=1)

    _, total = audit_crud.find_entries(
        db_session, running_event.organization_id, AuditEntryFilter()
    )
    assert total == 2

    _, total = audit_crud.find_entries(
        db_session,
        running_event.organization_id,
        AuditEntryFilter(event_id=other_event.id),
    )
    assert total == 0


def test_audit_log_endpoint_paginates(client, admin_headers, running_event, db_session):
    _seed(db_session, running_event, count=5)

    response = client.get(
        '/audit-log/',
        headers=admin_headers,
        params={
            'organization_id': running_event.organization_id,
            'skip': 0,
            'limit': 2,
        },
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data['items']) == 2
    assert data['pagination'] == {'skip': 0, 'limit': 2, 'total': 5, 'has_more': True}

    response = client.get(
        '/audit-log/',
        headers=admin_headers,
        params={
            'organization_id': running_event.organization_id,
            'skip': 4,
            'limit': 2,
            'action': 'checkin',
        },
    )
    data = response.json()
    assert data['pagination']['total'] == 3
    assert data['pagination']['has_more'] is False
    assert data['items'] == []


def test_audit_log_requires_admin(client, member_headers, auth_headers_for, running_event):
    params = {'organization_id': running_event.organization_id}

    response = client.get('/audit-log/', headers=member_headers, params=params)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()['detail']['code'] == 'not_authorized'

    headers = auth_headers_for(ADMIN_ID, [running_event.organization_id + 1])
    response = client.get('/audit-log/', headers=headers, params=params)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_audit_log_requires_organization(client, admin_headers):
    response = client.get('/audit-log/', headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
