"""
Common schema types used across the API.
"""

from typing import Any, Optional
from pydantic import BaseModel


def enum_val(e):
    """Plain value of an enum member; stored columns already come back as str."""
    return e.value if hasattr(e, "value") else e


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str


class SuccessResponse(BaseModel):
    """Standard success response."""

    message: str
    data: Optional[Any] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    database: str = "connected"
