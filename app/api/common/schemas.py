"""Schemas shared by list endpoints."""

from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar('T')


class PaginationMetadata(BaseModel):
    """
    Attributes:
        skip: Number of items skipped
        limit: Page size requested
        total: Number of items matching the filters across all pages
        has_more: Whether another page follows this one
    """

    skip: int
    limit: int
    total: int
    has_more: bool = False


class PaginatedResponse(BaseModel, Generic[T]):
    items: List[T]
    pagination: PaginationMetadata

    @classmethod
    def build(cls, items: List[T], skip: int, limit: int, total: int):
        return cls(
            items=items,
            pagination=PaginationMetadata(
                skip=skip,
                limit=limit,
                total=total,
                has_more=skip + len(items) < total,
            ),
        )
