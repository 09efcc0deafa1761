from contextlib import contextmanager
from enum import Enum
from typing import Generic, List, Optional, Type, TypeVar

from fastapi import HTTPException, status
from psycopg2 import errors as pg_errors
from pydantic import BaseModel
from sqlalchemy import func, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.declarative import DeclarativeMeta
from sqlalchemy.orm import Query, Session

from app.core.exceptions.ledger_exceptions import (
    ConstraintViolation,
    PersistenceUnavailable,
)
from app.core.logger import logger

ModelType = TypeVar('ModelType', bound=DeclarativeMeta)
CreateSchemaType = TypeVar('CreateSchemaType', bound=BaseModel)
FilterSchemaType = TypeVar('FilterSchemaType', bound=BaseModel)


def integrity_detail(model_name: str, e: IntegrityError) -> str:
    orig = str(e.orig)
    detail = 'Integrity error'
    if isinstance(e.orig, pg_errors.UniqueViolation) and 'DETAIL' in orig:
        error_detail = orig.split('DETAIL: ')[1].split('\n')[0].strip()
        if '(' in error_detail and ')' in error_detail:
            keys = error_detail.split('(')[1].split(')')[0]
            detail = f'It already exists a {model_name} with this {keys}'
    return detail


@contextmanager
def persistence_errors(db: Session, operation: str):
    """
    Roll back and translate driver failures raised inside the block.

    Integrity errors become ``ConstraintViolation``; lost connections and
    timeouts become ``PersistenceUnavailable``. Business errors pass through
    after the rollback.
    """
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        logger.error('Integrity error in %s: %s', operation, str(e))
        raise ConstraintViolation(integrity_detail(operation, e))
    except (OperationalError, DBAPIError, PoolTimeoutError) as e:
        db.rollback()
        logger.error('Database unavailable in %s: %s', operation, str(e))
        raise PersistenceUnavailable()
    except Exception:
        db.rollback()
        raise


class CRUDBase(Generic[ModelType, CreateSchemaType, FilterSchemaType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    def _apply_filters(
        self, query: Query, filters: Optional[FilterSchemaType] = None
    ) -> Query:
        if not filters:
            return query

        for field, value in filters.model_dump(exclude_none=True).items():
            op = 'eq'
            if isinstance(value, Enum):
                value = value.value
            if field.endswith('_in') and isinstance(value, list):
                field = field[:-3]
                op = 'in_'
            if hasattr(self.model, field) and value is not None:
                if op == 'in_':
                    query = query.filter(getattr(self.model, field).in_(value))
                else:
                    query = query.filter(getattr(self.model, field) == value)
        return query

    def create(self, db: Session, obj: CreateSchemaType, **extra) -> ModelType:
        """Insert a new row built from the schema's column fields."""
        obj_data = {**obj.model_dump(), **extra}
        model_columns = self.model.__table__.columns.keys()
        filtered_data = {k: v for k, v in obj_data.items() if k in model_columns}

        with persistence_errors(db, self.model.__name__):
            db_obj = self.model(**filtered_data)
            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
        return db_obj

    def get(self, db: Session, id: int) -> Optional[ModelType]:
        with persistence_errors(db, self.model.__name__):
            return db.get(self.model, id)

    def find(
        self,
        db: Session,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[FilterSchemaType] = None,
        sort_by: str = 'created_at',
        sort_order: str = 'desc',
    ) -> List[ModelType]:
        """Filtered read with pagination and sorting."""
        query = self._apply_filters(db.query(self.model), filters)

        if not hasattr(self.model, sort_by):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Invalid sort field: {sort_by}',
            )

        order_by = getattr(self.model, sort_by)
        if sort_order == 'desc':
            order_by = order_by.desc()

        with persistence_errors(db, self.model.__name__):
            return query.order_by(order_by).offset(skip).limit(limit).all()

    def count(self, db: Session, filters: Optional[FilterSchemaType] = None) -> int:
        query = self._apply_filters(db.query(func.count(self.model.id)), filters)
        with persistence_errors(db, self.model.__name__):
            return query.scalar() or 0

    def conditional_update(self, db: Session, *criteria, **values) -> int:
        """
        Issue ``UPDATE ... WHERE <criteria>`` inside the caller's transaction.

        Returns the number of affected rows; the caller decides whether zero
        means a lost race. Nothing is committed here.
        """
        statement = (
            update(self.model)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return db.execute(statement).rowcount
