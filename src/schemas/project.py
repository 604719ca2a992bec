"""
Project and membership schemas.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from src.kernel.models.project import ProjectRole, ProjectStatus
from src.schemas.common import enum_val


class ProjectCreate(BaseModel):
    """Project creation request."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: ProjectStatus = ProjectStatus.PLANNING
    auto_schedule: bool = False


class ProjectUpdate(BaseModel):
    """Project update request. Only fields that are sent are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ProjectStatus] = None
    auto_schedule: Optional[bool] = None


class ProjectResponse(BaseModel):
    """Project response, with the caller's role when known."""

    id: uuid.UUID
    name: str
    description: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    status: str
    auto_schedule: bool
    created_by: uuid.UUID
    role: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def build(cls, project, role=None) -> "ProjectResponse":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            start_date=project.start_date,
            end_date=project.end_date,
            status=enum_val(project.status),
            auto_schedule=project.auto_schedule,
            created_by=project.created_by,
            role=enum_val(role) if role is not None else None,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class MemberAddRequest(BaseModel):
    """Invite an existing user by email."""

    email: EmailStr
    role: ProjectRole = ProjectRole.MEMBER


class MemberRoleUpdate(BaseModel):
    role: ProjectRole


class MemberResponse(BaseModel):
    """Project member with user details."""

    user_id: uuid.UUID
    email: str
    full_name: str
    role: str
    invited_by: Optional[uuid.UUID] = None
    joined_at: datetime

    @classmethod
    def build(cls, membership, user) -> "MemberResponse":
        return cls(
            user_id=membership.user_id,
            email=user.email,
            full_name=user.full_name,
            role=enum_val(membership.role),
            invited_by=membership.invited_by,
            joined_at=membership.joined_at,
        )
