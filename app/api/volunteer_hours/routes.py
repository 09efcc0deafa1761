from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.events.crud import event as event_crud
from app.api.volunteer_hours import schemas
from app.api.volunteer_hours.crud import volunteer_hours as volunteer_hours_crud
from app.core.database import get_db
from app.core.exceptions.ledger_exceptions import NotAuthorized
from app.core.security import TokenData, get_current_user

router = APIRouter()


def _authorize_hours_access(
    db: Session,
    current_user: TokenData,
    user_id: int,
    organization_id: Optional[int],
    event_id: Optional[int],
) -> None:
    if user_id == current_user.user_id:
        return
    if event_id is not None:
        event_crud.get_for_admin(db, event_id, current_user)
        return
    if organization_id is None or not current_user.is_admin_of(organization_id):
        raise NotAuthorized()


@router.get('/total', response_model=schemas.HoursTotal)
def get_total_hours(
    user_id: Optional[int] = Query(default=None),
    organization_id: Optional[int] = Query(default=None),
    event_id: Optional[int] = Query(default=None),
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_id = current_user.user_id if user_id is None else user_id
    _authorize_hours_access(db, current_user, user_id, organization_id, event_id)

    total = volunteer_hours_crud.total_hours(
        db,
        user_id=user_id,
        organization_id=organization_id,
        event_id=event_id,
    )
    return schemas.HoursTotal(
        user_id=user_id,
        organization_id=organization_id,
        event_id=event_id,
        total_hours=total,
    )


@router.get('/', response_model=list[schemas.VolunteerHours])
def get_hours_entries(
    user_id: Optional[int] = Query(default=None),
    organization_id: Optional[int] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=100),
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_id = current_user.user_id if user_id is None else user_id
    _authorize_hours_access(db, current_user, user_id, organization_id, None)

    return volunteer_hours_crud.list_for_user(
        db,
        user_id=user_id,
        organization_id=organization_id,
        skip=skip,
        limit=limit,
    )
