import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.audit_log.models import AdminCheckInAudit
from app.api.check_in.models import CheckInSession
from app.api.events import schemas
from app.api.events.crud import event as event_crud
from app.api.events.models import Event
from app.api.registrations.models import Registration
from app.core.config import settings
from app.core.database import get_db
from app.core.logger import logger
from app.core.notifications import Change, relay
from app.core.security import TokenData, get_current_user

router = APIRouter()

WATCHED_TABLES = (
    Event.__tablename__,
    Registration.__tablename__,
    CheckInSession.__tablename__,
    AdminCheckInAudit.__tablename__,
)


@router.post('/', response_model=schemas.Event)
def create_event(
    event: schemas.EventCreate,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_crud.create(db=db, obj=event, user=current_user)


@router.get('/{event_id}', response_model=schemas.Event)
def get_event(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_crud.get(db=db, id=event_id)


@router.post('/{event_id}/publish', response_model=schemas.Event)
def publish_event(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_crud.publish(db=db, event_id=event_id, user=current_user)


@router.post('/{event_id}/start', response_model=schemas.Event)
def start_event(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_crud.start(db=db, event_id=event_id, user=current_user)


@router.post('/{event_id}/end', response_model=schemas.Event)
def end_event(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_crud.end(db=db, event_id=event_id, user=current_user)


@router.post('/{event_id}/cancel', response_model=schemas.Event)
def cancel_event(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_crud.cancel(db=db, event_id=event_id, user=current_user)


def get_watched_event_id(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> int:
    event_crud.get(db=db, id=event_id)
    # The stream may stay open for hours; it must not hold a pooled connection
    db.close()
    return event_id


async def event_change_stream(
    event_id: int, is_disconnected: Callable[[], Awaitable[bool]]
) -> AsyncIterator[str]:
    """
    Server-sent event frames for changes to one event's data.

    A client that falls ``CHANGE_STREAM_QUEUE_SIZE`` changes behind gets its
    backlog replaced by a single ``refresh`` change.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=settings.CHANGE_STREAM_QUEUE_SIZE)

    def offer(change: Change) -> None:
        try:
            queue.put_nowait(change)
        except asyncio.QueueFull:
            logger.warning('Change stream of event %s overflowed', event_id)
            while not queue.empty():
                queue.get_nowait()
            queue.put_nowait(
                Change(Event.__tablename__, 'refresh', {'event_id': event_id})
            )

    def enqueue(change: Change) -> None:
        # Called from whichever thread committed the change
        loop.call_soon_threadsafe(offer, change)

    subscriptions = [
        relay.subscribe(table, enqueue, event_id=event_id) for table in WATCHED_TABLES
    ]
    try:
        yield ': connected\n\n'
        while not await is_disconnected():
            try:
                change = await asyncio.wait_for(
                    queue.get(), timeout=settings.CHANGE_STREAM_PING_SECONDS
                )
            except asyncio.TimeoutError:
                yield ': ping\n\n'
                continue
            yield f'event: change\ndata: {json.dumps(change.to_dict())}\n\n'
    finally:
        for subscription in subscriptions:
            relay.unsubscribe(subscription)


@router.get('/{event_id}/changes')
async def stream_event_changes(
    request: Request,
    watched_event_id: int = Depends(get_watched_event_id),
    current_user: TokenData = Depends(get_current_user),
):
    """Server-sent events telling dashboards that the event's data changed."""
    logger.info(
        'User %s watching changes of event %s', current_user.user_id, watched_event_id
    )
    return StreamingResponse(
        event_change_stream(watched_event_id, request.is_disconnected),
        media_type='text/event-stream',
    )
