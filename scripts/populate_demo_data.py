import csv
import json
import os
from datetime import datetime

from sqlalchemy.orm import Session

from app.api.events import schemas as event_schemas
from app.api.events.crud import event as event_crud
from app.api.events.models import Event
from app.api.organizations.crud import organization as organization_crud
from app.api.organizations.models import Organization
from app.api.registrations.crud import registration as registration_crud
from app.core.config import settings
from app.core.database import SessionLocal, create_db
from app.core.exceptions.ledger_exceptions import LedgerError
from app.core.security import SYSTEM_TOKEN, TokenData


def load_demo_events_json(json_path: str):
    with open(json_path, 'r') as f:
        data = json.load(f)
    for organization in data['organizations']:
        for event in organization['events']:
            event['scheduled_start'] = datetime.fromisoformat(event['scheduled_start'])
    return data


def create_event(db: Session, organization: Organization, event_data: dict) -> Event:
    existing = (
        db.query(Event)
        .filter_by(organization_id=organization.id, title=event_data['title'])
        .first()
    )
    if existing:
        print(f'Event already exists: {existing.id} - {existing.title}')
        return existing

    publish = event_data.pop('publish', False)
    event_schema = event_schemas.EventCreate(
        organization_id=organization.id, **event_data
    )
    event = event_crud.create(db, event_schema, SYSTEM_TOKEN)
    if publish:
        event = event_crud.publish(db, event.id, SYSTEM_TOKEN)
    print(f'Event created: {event.id} - {event.title} ({event.status})')
    return event


def create_organizations_and_events(db: Session, data: dict):
    print('Creating organizations and events...')
    for organization_data in data['organizations']:
        organization = organization_crud.get_or_create(db, organization_data['name'])
        print(f'Organization: {organization.id} - {organization.name}')
        for event_data in organization_data['events']:
            create_event(db, organization, dict(event_data))


def read_volunteers_csv(csv_path: str):
    """Read volunteer registrations from CSV."""
    with open(csv_path, newline='') as csvfile:
        reader = csv.DictReader(csvfile)
        return list(reader)


def register_volunteers(db: Session, csv_path: str):
    print('Registering volunteers...')
    for row in read_volunteers_csv(csv_path):
        organization = organization_crud.get_by_name(db, row['organization'])
        if not organization:
            print(f'Unknown organization: {row["organization"]}')
            continue
        event = (
            db.query(Event)
            .filter_by(organization_id=organization.id, title=row['event_title'])
            .first()
        )
        if not event:
            print(f'Unknown event: {row["event_title"]}')
            continue

        user = TokenData(user_id=int(row['user_id']), email=row['email'])
        try:
            result = registration_crud.register(db, event.id, user)
        except LedgerError as e:
            print(f'Skipped {user.email} for {event.title}: {e.detail["message"]}')
            continue
        print(
            f'Registered {user.email} for {event.title} '
            f'({result.signup_count}/{result.max_attendees})'
        )


def main():
    create_db()
    db = SessionLocal()
    try:
        print('\nDatabase Connection Information:')
        print('Database Type: PostgreSQL')
        print(f'Host: {settings.DB_HOST}')
        print(f'Port: {settings.DB_PORT}')
        print(f'Database Name: {settings.DB_NAME}')
        print(f'Username: {settings.DB_USERNAME}')

        print('\nThis script will create demo data in the database:')
        print('1. Organizations and events from demo_events.json')
        print('2. Registrations from demo_volunteers.csv')

        confirm = input('Do you want to proceed? (y/N): ')
        if confirm.lower() != 'y':
            print('Operation cancelled')
            return

        json_path = os.path.join(os.path.dirname(__file__), 'demo_events.json')
        create_organizations_and_events(db, load_demo_events_json(json_path))
        csv_path = os.path.join(os.path.dirname(__file__), 'demo_volunteers.csv')
        register_volunteers(db, csv_path)
    finally:
        db.close()


if __name__ == '__main__':
    main()
