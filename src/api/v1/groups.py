"""
Group endpoints.
"""

import uuid
from typing import List

from fastapi import APIRouter, status

from src.api.deps import CurrentUser, Groups
from src.schemas.common import SuccessResponse
from src.schemas.group import (
    GroupCreate,
    GroupMemberAdd,
    GroupMemberResponse,
    GroupResponse,
    GroupUpdate,
)

router = APIRouter()


def _group_response(group, **extra) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        project_id=group.project_id,
        name=group.name,
        description=group.description,
        color=group.color,
        created_by=group.created_by,
        created_at=group.created_at,
        updated_at=group.updated_at,
        **extra,
    )


@router.post(
    "/projects/{project_id}/groups",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_group(
    project_id: uuid.UUID,
    data: GroupCreate,
    user: CurrentUser,
    groups: Groups,
):
    group = await groups.create_group(project_id, user.id, **data.model_dump())
    return _group_response(group, member_count=0)


@router.get("/projects/{project_id}/groups", response_model=List[GroupResponse])
async def list_groups(project_id: uuid.UUID, user: CurrentUser, groups: Groups):
    summaries = await groups.list_groups(project_id, user.id)
    return [_group_response(s.group, member_count=s.member_count) for s in summaries]


@router.get("/groups/{group_id}", response_model=GroupResponse)
async def get_group(group_id: uuid.UUID, user: CurrentUser, groups: Groups):
    """Group with its members."""
    detail = await groups.get_group(group_id, user.id)
    members = [
        GroupMemberResponse(
            user_id=m.membership.user_id,
            email=m.user.email,
            full_name=m.user.full_name,
            added_by=m.membership.added_by,
            added_at=m.membership.added_at,
        )
        for m in detail.members
    ]
    return _group_response(detail.group, member_count=len(members), members=members)


@router.patch("/groups/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: uuid.UUID,
    data: GroupUpdate,
    user: CurrentUser,
    groups: Groups,
):
    group = await groups.update_group(group_id, user.id, data.model_dump(exclude_unset=True))
    return _group_response(group)


@router.delete("/groups/{group_id}", response_model=SuccessResponse)
async def delete_group(group_id: uuid.UUID, user: CurrentUser, groups: Groups):
    await groups.delete_group(group_id, user.id)
    return SuccessResponse(message="Group deleted")


@router.post(
    "/groups/{group_id}/members",
    response_model=SuccessResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_group_member(
    group_id: uuid.UUID,
    data: GroupMemberAdd,
    user: CurrentUser,
    groups: Groups,
):
    await groups.add_group_member(group_id, user.id, data.user_id)
    return SuccessResponse(message="Member added to group")


@router.delete("/groups/{group_id}/members/{member_user_id}", response_model=SuccessResponse)
async def remove_group_member(
    group_id: uuid.UUID,
    member_user_id: uuid.UUID,
    user: CurrentUser,
    groups: Groups,
):
    await groups.remove_group_member(group_id, user.id, member_user_id)
    return SuccessResponse(message="Member removed from group")
