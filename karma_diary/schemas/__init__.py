"""
Pydantic Schemas
================

Request/response schemas for API validation.
"""

from karma_diary.schemas.common import (
    BaseResponse,
    DataResponse,
    ErrorResponse,
    PaginatedResponse,
    PaginationMeta,
)

__all__ = [
    "BaseResponse",
    "DataResponse",
    "ErrorResponse",
    "PaginatedResponse",
    "PaginationMeta",
]
