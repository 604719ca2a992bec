"""
Project and membership endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Query, status

from src.api.deps import CurrentUser, Projects
from src.kernel.models.project import ProjectRole, ProjectStatus
from src.schemas.common import SuccessResponse
from src.schemas.project import (
    MemberAddRequest,
    MemberResponse,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)

router = APIRouter()


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(data: ProjectCreate, user: CurrentUser, projects: Projects):
    """Create a project. The caller becomes its owner."""
    project = await projects.create_project(user.id, **data.model_dump())
    return ProjectResponse.build(project, ProjectRole.OWNER)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    user: CurrentUser,
    projects: Projects,
    status_filter: Optional[ProjectStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, max_length=255, description="Match name or description"),
):
    """List projects the caller belongs to."""
    items = await projects.list_projects(user.id, status=status_filter, search=search)
    return [ProjectResponse.build(item.project, item.role) for item in items]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: uuid.UUID, user: CurrentUser, projects: Projects):
    access = await projects.get_project(project_id, user.id)
    return ProjectResponse.build(access.project, access.role)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: uuid.UUID,
    data: ProjectUpdate,
    user: CurrentUser,
    projects: Projects,
):
    """Update project settings (owner or admin)."""
    project = await projects.update_project(project_id, user.id, data.model_dump(exclude_unset=True))
    return ProjectResponse.build(project)


@router.delete("/{project_id}", response_model=SuccessResponse)
async def delete_project(project_id: uuid.UUID, user: CurrentUser, projects: Projects):
    """Delete a project (owner only)."""
    await projects.delete_project(project_id, user.id)
    return SuccessResponse(message="Project deleted")


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get("/{project_id}/members", response_model=List[MemberResponse])
async def list_members(project_id: uuid.UUID, user: CurrentUser, projects: Projects):
    members = await projects.list_members(project_id, user.id)
    return [MemberResponse.build(m.membership, m.user) for m in members]


@router.post(
    "/{project_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    project_id: uuid.UUID,
    data: MemberAddRequest,
    user: CurrentUser,
    projects: Projects,
):
    """Invite an existing user by email (owner or admin)."""
    member = await projects.add_member(project_id, user.id, data.email, data.role)
    return MemberResponse.build(member.membership, member.user)


@router.patch("/{project_id}/members/{member_user_id}", response_model=MemberResponse)
async def update_member_role(
    project_id: uuid.UUID,
    member_user_id: uuid.UUID,
    data: MemberRoleUpdate,
    user: CurrentUser,
    projects: Projects,
):
    member = await projects.update_member_role(project_id, user.id, member_user_id, data.role)
    return MemberResponse.build(member.membership, member.user)


@router.delete("/{project_id}/members/{member_user_id}", response_model=SuccessResponse)
async def remove_member(
    project_id: uuid.UUID,
    member_user_id: uuid.UUID,
    user: CurrentUser,
    projects: Projects,
):
    await projects.remove_member(project_id, user.id, member_user_id)
    return SuccessResponse(message="Member removed")
