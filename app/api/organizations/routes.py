from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.organizations import schemas
from app.api.organizations.crud import organization as organization_crud
from app.core.database import get_db
from app.core.security import TokenData, get_current_user

router = APIRouter()


@router.get('/', response_model=list[schemas.Organization])
def get_organizations(
    current_user: TokenData = Depends(get_current_user),
    filters: schemas.OrganizationFilter = Depends(),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return organization_crud.find(
        db=db,
        skip=skip,
        limit=limit,
        filters=filters,
        sort_by='name',
        sort_order='asc',
    )
