from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.events.crud import event as event_crud
from app.api.registrations import schemas
from app.api.registrations.crud import registration as registration_crud
from app.core.database import get_db
from app.core.security import TokenData, get_current_user

router = APIRouter()


@router.post('/{event_id}', response_model=schemas.RegistrationResult)
def register_for_event(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return registration_crud.register(db=db, event_id=event_id, user=current_user)


@router.delete('/{event_id}', response_model=schemas.UnregisterResult)
def unregister_from_event(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return registration_crud.unregister(db=db, event_id=event_id, user=current_user)


@router.get('/{event_id}', response_model=list[schemas.Registration])
def get_event_registrations(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event_crud.get(db, event_id)
    return registration_crud.list_for_event(db=db, event_id=event_id)
