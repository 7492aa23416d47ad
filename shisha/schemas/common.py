"""
Shisha Common Schemas
Shared Pydantic models for common API structures
"""
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel
from typing import Annotated, Generic, List, Optional, TypeVar
from decimal import Decimal

# Generic type for paginated responses
T = TypeVar('T')

# Kilogram quantities are Decimal in Python and plain JSON numbers on the wire
Quantity = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """
    Base for API models: snake_case attributes, camelCase JSON

    Input is accepted under either name.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginatedResponse(CamelModel, Generic[T]):
    """
    Generic paginated response model

    Used for all list endpoints that support pagination
    """
    items: List[T] = Field(..., description="List of items for current page")
    total: int = Field(..., description="Total number of items across all pages")
    page: int = Field(..., description="Current page number (1-based)")
    page_size: int = Field(..., description="Number of items per page")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_previous: bool = Field(..., description="Whether there is a previous page")

    @classmethod
    def build(cls, items: list, total: int, page: int, page_size: int):
        total_pages = (total + page_size - 1) // page_size if page_size else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class ErrorResponse(BaseModel):
    """
    Standard error response model

    Used for all API error responses
    """
    detail: str = Field(..., description="Human-readable error message")
    error: str = Field(..., description="Error kind, e.g. out_of_stock")
    errors: Optional[list] = Field(None, description="Field-level validation errors")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "detail": "Not enough stock available.",
            "error": "out_of_stock",
        }
    })


class MessageResponse(BaseModel):
    """Operations that return no entity"""
    message: str
