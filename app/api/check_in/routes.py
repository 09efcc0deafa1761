from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.check_in import schemas
from app.api.check_in.crud import check_in as check_in_crud
from app.api.events.crud import event as event_crud
from app.core.database import get_db
from app.core.security import TokenData, get_current_user

router = APIRouter()


@router.post('/{event_id}', response_model=schemas.CheckInSession)
def check_in(
    event_id: int,
    obj: schemas.CheckInRequest,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target_user_id = obj.user_id if obj.user_id is not None else current_user.user_id
    return check_in_crud.check_in(
        db=db,
        event_id=event_id,
        target_user_id=target_user_id,
        actor=current_user,
        latitude=obj.latitude,
        longitude=obj.longitude,
    )


@router.post('/{event_id}/check-out', response_model=schemas.CheckOutResponse)
def check_out(
    event_id: int,
    obj: Optional[schemas.CheckOutRequest] = None,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target_user_id = current_user.user_id
    if obj and obj.user_id is not None:
        target_user_id = obj.user_id
    return check_in_crud.check_out(
        db=db,
        event_id=event_id,
        target_user_id=target_user_id,
        actor=current_user,
    )


@router.get('/{event_id}/active', response_model=list[schemas.CheckInSession])
def get_active_sessions(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event_crud.get_for_admin(db, event_id, current_user)
    return check_in_crud.list_active(db=db, event_id=event_id)


@router.get(
    '/{event_id}/active/{user_id}', response_model=Optional[schemas.CheckInSession]
)
def get_active_session(
    event_id: int,
    user_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user_id != current_user.user_id:
        event_crud.get_for_admin(db, event_id, current_user)
    else:
        event_crud.get(db, event_id)
    return check_in_crud.get_active_session(db=db, event_id=event_id, user_id=user_id)


@router.get('/{event_id}/activity', response_model=list[schemas.ActivityItem])
def get_event_activity(
    event_id: int,
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event_crud.get_for_admin(db, event_id, current_user)
    return check_in_crud.get_activity(db=db, event_id=event_id)
