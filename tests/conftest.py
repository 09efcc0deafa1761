from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from app.api.events.models import Event
from app.api.events.schemas import EventStatus
from app.api.organizations.models import Organization
from app.core.config import Environment, settings
from app.core.database import Base, get_db
from app.core.notifications import relay
from app.core.security import TokenData, create_access_token
from main import app

ADMIN_ID = 100
MEMBER_ID = 1


@pytest.fixture(scope='session', autouse=True)
def check_test_environment():
    if settings.ENVIRONMENT != Environment.TEST:
        raise RuntimeError(
            f'Tests can only be executed in test environment. Current environment: {settings.ENVIRONMENT}'
        )


@pytest.fixture(scope='session', autouse=True)
def setup_test_secret_key():
    original_secret_key = settings.SECRET_KEY
    settings.SECRET_KEY = 'test_secret_key'
    yield
    settings.SECRET_KEY = original_secret_key


@pytest.fixture(autouse=True)
def clear_relay_subscriptions():
    yield
    for subscription in list(relay._subscriptions.values()):
        relay.unsubscribe(subscription)


@pytest.fixture(scope='session')
def test_db_engine():
    engine = create_engine(
        settings.SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope='function')
def db_session(test_db_engine):
    """Create a fresh database session for each test"""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_db_engine
    )

    Base.metadata.drop_all(bind=test_db_engine)
    Base.metadata.create_all(bind=test_db_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope='function')
def file_sessions(tmp_path):
    """
    Session factory over a file-backed database, so two sessions hold
    separate connections and can interleave like concurrent requests.
    """
    engine = create_engine(
        f'sqlite:///{tmp_path / "ledger.db"}',
        connect_args={'check_same_thread': False},
        poolclass=NullPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture(scope='function')
def client(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def get_auth_headers(user_id: int, admin_organizations: Optional[List[int]] = None):
    access_token = create_access_token(
        data={
            'user_id': user_id,
            'email': f'user{user_id}@example.com',
            'admin_organizations': admin_organizations or [],
        }
    )
    return {'Authorization': f'Bearer {access_token}'}


@pytest.fixture
def auth_headers_for():
    return get_auth_headers


def add_organization(db, name: str = 'Test Organization') -> Organization:
    organization = Organization(name=name)
    db.add(organization)
    db.commit()
    return organization


def add_event(
    db,
    organization_id: int,
    status: EventStatus = EventStatus.PUBLISHED,
    max_attendees: int = 10,
    signup_count: int = 0,
) -> Event:
    event = Event(
        organization_id=organization_id,
        title='Beach Cleanup',
        max_attendees=max_attendees,
        status=status.value,
        signup_count=signup_count,
        created_by=ADMIN_ID,
    )
    db.add(event)
    db.commit()
    return event


@pytest.fixture
def test_organization(db_session):
    return add_organization(db_session)


@pytest.fixture
def admin_user(test_organization):
    return TokenData(
        user_id=ADMIN_ID,
        email='admin@example.com',
        admin_organizations=[test_organization.id],
    )


@pytest.fixture
def member_user():
    return TokenData(user_id=MEMBER_ID, email='member@example.com')


@pytest.fixture
def admin_headers(test_organization):
    return get_auth_headers(ADMIN_ID, [test_organization.id])


@pytest.fixture
def member_headers():
    return get_auth_headers(MEMBER_ID)


@pytest.fixture
def create_test_event(db_session, test_organization):
    """Factory fixture to create events directly in a given status"""

    def _create_event(
        status: EventStatus = EventStatus.PUBLISHED,
        max_attendees: int = 10,
        signup_count: int = 0,
    ) -> Event:
        return add_event(
            db_session,
            test_organization.id,
            status=status,
            max_attendees=max_attendees,
            signup_count=signup_count,
        )

    yield _create_event


@pytest.fixture
def test_event(create_test_event):
    return create_test_event()


@pytest.fixture
def running_event(create_test_event):
    return create_test_event(status=EventStatus.IN_PROGRESS)
