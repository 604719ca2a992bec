"""
Group schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class GroupCreate(BaseModel):
    """Group creation request."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)


class GroupMemberAdd(BaseModel):
    user_id: uuid.UUID


class GroupMemberResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    full_name: str
    added_by: uuid.UUID
    added_at: datetime


class GroupResponse(BaseModel):
    """Group response."""

    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    description: Optional[str]
    color: str
    created_by: uuid.UUID
    member_count: Optional[int] = None
    members: Optional[List[GroupMemberResponse]] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
