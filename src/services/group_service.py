"""
Group service: project sub-groups and their members.

Belonging to a group grants nothing; every check is made against the
caller's project role.
"""

import re
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from sqlalchemy import and_, func, select, update

from src.config import get_settings
from src.kernel.errors import ConflictError, NotFoundError, ValidationError
from src.kernel.events.changes import (
    Created,
    Deleted,
    MemberAdded,
    MemberRemoved,
    Updated,
    diff,
    snapshot,
)
from src.kernel.models.activity_log import ActivityAction, EntityType
from src.kernel.models.group import Group, GroupMembership
from src.kernel.models.task import Task
from src.kernel.models.user import User
from src.kernel.permissions.guard import UNKNOWN_RESOURCE
from src.kernel.permissions.policy import PolicyAction, ResourceKind
from src.services.base import DomainService, Unit, check_updates, require_text, same_user

GROUP_FIELDS = ("name", "description", "color")

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Recorded as the role of a group member who no longer belongs to the project
NO_PROJECT_ROLE = "none"


def check_color(color: str) -> str:
    if not _COLOR_RE.match(color or ""):
        raise ValidationError("Color must be a hex value like #3B82F6")
    return color


@dataclass
class GroupSummary:
    group: Group
    member_count: int


@dataclass
class GroupMemberInfo:
    membership: GroupMembership
    user: User


@dataclass
class GroupDetail:
    group: Group
    members: List[GroupMemberInfo] = field(default_factory=list)


class GroupService(DomainService):
    """Groups scoped to one project."""

    async def _locate_group(self, u: Unit, group_id: uuid.UUID, user_id: uuid.UUID) -> uuid.UUID:
        return await u.guard.locate(
            u.guard.resolver.group_project_id(group_id), user_id, ResourceKind.GROUP, group_id
        )

    async def _lock_group(self, u: Unit, group_id: uuid.UUID, user_id: uuid.UUID) -> Group:
        query = select(Group).where(
            and_(
                Group.id == group_id,
                Group.deleted_at.is_(None),
            )
        ).with_for_update()
        group = (await u.session.execute(query)).scalar_one_or_none()
        if group is None:
            raise u.guard.deny(UNKNOWN_RESOURCE, user_id, ResourceKind.GROUP, group_id)
        return group

    async def create_group(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Group:
        """
        Create a group in a project (any role except viewer).

        Raises:
            ForbiddenError: Not a member, or a viewer
            ValidationError: Empty name or malformed color
        """
        name = require_text(name, "Group name", 255)
        color = check_color(color or get_settings().default_group_color)

        async with self.unit() as u:
            await u.guard.require(user_id, project_id, ResourceKind.GROUP, PolicyAction.CREATE)

            group = Group(
                project_id=project_id,
                name=name,
                description=description,
                color=color,
                created_by=user_id,
                created_at=u.now,
                updated_at=u.now,
            )
            u.session.add(group)
            await u.session.flush()

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.GROUP,
                entity_id=group.id,
                action=ActivityAction.CREATED,
                changes=Created(snapshot=snapshot(group, GROUP_FIELDS)),
            )
        return group

    async def list_groups(self, project_id: uuid.UUID, user_id: uuid.UUID) -> List[GroupSummary]:
        member_count = (
            select(func.count(GroupMembership.id))
            .where(GroupMembership.group_id == Group.id)
            .correlate(Group)
            .scalar_subquery()
        )
        query = select(Group, member_count).where(
            and_(
                Group.project_id == project_id,
                Group.deleted_at.is_(None),
            )
        ).order_by(Group.name)

        async with self.unit() as u:
            await u.guard.require_member(user_id, project_id)
            result = await u.session.execute(query)
            return [GroupSummary(group, count) for group, count in result.all()]

    async def get_group(self, group_id: uuid.UUID, user_id: uuid.UUID) -> GroupDetail:
        """Group with its members."""
        async with self.unit() as u:
            project_id = await self._locate_group(u, group_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.GROUP, PolicyAction.READ, resource_id=group_id
            )
            group = await u.session.get(Group, group_id)
            result = await u.session.execute(
                select(GroupMembership, User)
                .join(User, User.id == GroupMembership.user_id)
                .where(GroupMembership.group_id == group_id)
                .order_by(GroupMembership.added_at)
            )
            members = [GroupMemberInfo(m, user) for m, user in result.all()]
        return GroupDetail(group=group, members=members)

    async def update_group(
        self,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
        updates: Mapping[str, Any],
    ) -> Group:
        """Edit name, description or color. Members may edit only groups they created."""
        values = check_updates(updates, GROUP_FIELDS)
        if "name" in values:
            values["name"] = require_text(values["name"], "Group name", 255)
        if "color" in values:
            values["color"] = check_color(values["color"])

        async with self.unit() as u:
            group = await self._lock_group(u, group_id, user_id)
            await u.guard.require(
                user_id, group.project_id, ResourceKind.GROUP, PolicyAction.UPDATE,
                is_owner=same_user(group.created_by, user_id), resource_id=group_id,
            )

            before, after = diff(group, values)
            if not after:
                return group

            for name, value in after.items():
                setattr(group, name, value)
            group.updated_at = u.now

            await u.recorder.record(
                project_id=group.project_id,
                actor_id=user_id,
                entity_type=EntityType.GROUP,
                entity_id=group.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before=before, after=after),
            )
        return group

    async def delete_group(self, group_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Soft-delete a group; its tasks become unassigned from it."""
        async with self.unit() as u:
            group = await self._lock_group(u, group_id, user_id)
            await u.guard.require(
                user_id, group.project_id, ResourceKind.GROUP, PolicyAction.DELETE,
                is_owner=same_user(group.created_by, user_id), resource_id=group_id,
            )

            last = snapshot(group, GROUP_FIELDS)
            group.deleted_at = u.now
            group.updated_at = u.now

            await u.session.execute(
                update(Task)
                .where(Task.assigned_group_id == group_id)
                .values(assigned_group_id=None, updated_at=u.now)
                .execution_options(synchronize_session=False)
            )

            await u.recorder.record(
                project_id=group.project_id,
                actor_id=user_id,
                entity_type=EntityType.GROUP,
                entity_id=group_id,
                action=ActivityAction.DELETED,
                changes=Deleted(snapshot=last),
            )

    async def add_group_member(
        self,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
        member_user_id: uuid.UUID,
    ) -> GroupMembership:
        """
        Add a project member to a group (owner or admin).

        Raises:
            ForbiddenError: Unknown group, or caller may not manage members
            ValidationError: The user is not a member of the group's project
            ConflictError: The user is already in the group
        """
        async with self.unit() as u:
            project_id = await self._locate_group(u, group_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.GROUP, PolicyAction.MANAGE_MEMBERS,
                resource_id=group_id,
            )

            project_membership = await u.guard.resolver.get_membership(project_id, member_user_id)
            if project_membership is None:
                raise ValidationError("User is not a member of this project")

            existing = await u.session.execute(
                select(GroupMembership.id).where(
                    and_(
                        GroupMembership.group_id == group_id,
                        GroupMembership.user_id == member_user_id,
                    )
                )
            )
            if existing.scalar_one_or_none() is not None:
                raise ConflictError("User is already a member of this group")

            membership = GroupMembership(
                group_id=group_id,
                user_id=member_user_id,
                added_by=user_id,
                added_at=u.now,
            )
            u.session.add(membership)

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.GROUP,
                entity_id=group_id,
                action=ActivityAction.MEMBER_ADDED,
                changes=MemberAdded(user_id=member_user_id, role=project_membership.role),
            )
        return membership

    async def remove_group_member(
        self,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
        member_user_id: uuid.UUID,
    ) -> None:
        """
        Remove a user from a group (owner or admin).

        Raises:
            ForbiddenError: Unknown group, or caller may not manage members
            NotFoundError: The user is not in the group
        """
        async with self.unit() as u:
            project_id = await self._locate_group(u, group_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.GROUP, PolicyAction.MANAGE_MEMBERS,
                resource_id=group_id,
            )

            result = await u.session.execute(
                select(GroupMembership).where(
                    and_(
                        GroupMembership.group_id == group_id,
                        GroupMembership.user_id == member_user_id,
                    )
                ).with_for_update()
            )
            membership = result.scalar_one_or_none()
            if membership is None:
                raise NotFoundError("Group member not found")

            project_membership = await u.guard.resolver.get_membership(project_id, member_user_id)
            role = project_membership.role if project_membership else NO_PROJECT_ROLE

            await u.session.delete(membership)

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.GROUP,
                entity_id=group_id,
                action=ActivityAction.MEMBER_REMOVED,
                changes=MemberRemoved(user_id=member_user_id, role=role),
            )
