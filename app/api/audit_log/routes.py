from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.audit_log import schemas
from app.api.audit_log.crud import admin_check_in_audit as audit_crud
from app.api.common.schemas import PaginatedResponse
from app.core.database import get_db
from app.core.exceptions.ledger_exceptions import NotAuthorized
from app.core.logger import logger
from app.core.security import TokenData, get_current_user

router = APIRouter()


@router.get('/', response_model=PaginatedResponse[schemas.AuditEntry])
def get_audit_log(
    organization_id: int = Query(),
    filters: schemas.AuditEntryFilter = Depends(),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
    current_user: TokenData = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not current_user.is_admin_of(organization_id):
        logger.warning(
            'User %s tried to read the audit log of organization %s',
            current_user.user_id,
            organization_id,
        )
        raise NotAuthorized()

    items, total = audit_crud.find_entries(
        db, organization_id, filters, skip=skip, limit=limit
    )
    return PaginatedResponse[schemas.AuditEntry].build(
        [schemas.AuditEntry.model_validate(item) for item in items],
        skip=skip,
        limit=limit,
        total=total,
    )
