"""
Project service: projects and their memberships.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import and_, delete, desc, or_, select, update

from src.kernel.errors import ConflictError, NotFoundError, ValidationError
from src.kernel.events.changes import (
    Created,
    Deleted,
    MemberAdded,
    MemberRemoved,
    RoleChanged,
    Updated,
    diff,
    snapshot,
)
from src.kernel.identity.identity_service import IdentityService
from src.kernel.models.activity_log import ActivityAction, EntityType
from src.kernel.models.group import Group, GroupMembership
from src.kernel.models.project import Project, ProjectMembership, ProjectRole, ProjectStatus
from src.kernel.models.user import User
from src.kernel.permissions.guard import POLICY_DENIED, UNKNOWN_RESOURCE
from src.kernel.permissions.policy import PolicyAction, ResourceKind, parse_role
from src.logging_config import get_logger
from src.services.base import (
    DomainService,
    Unit,
    check_date_range,
    check_updates,
    enum_value,
    require_text,
)

logger = get_logger(__name__)

PROJECT_FIELDS = ("name", "description", "start_date", "end_date", "status", "auto_schedule")


@dataclass
class ProjectAccess:
    """A project together with the caller's role in it."""
    project: Project
    role: ProjectRole


@dataclass
class MemberInfo:
    membership: ProjectMembership
    user: User


class ProjectService(DomainService):
    """
    Projects and project memberships.

    Anyone may create a project and becomes its owner. Everything else
    requires a membership; managing members requires owner or admin, and
    only the owner may grant, change or revoke the admin role.
    """

    async def _lock_project(self, u: Unit, project_id: uuid.UUID, user_id: uuid.UUID) -> Project:
        query = select(Project).where(
            and_(
                Project.id == project_id,
                Project.deleted_at.is_(None),
            )
        ).with_for_update()
        project = (await u.session.execute(query)).scalar_one_or_none()
        if project is None:
            raise u.guard.deny(UNKNOWN_RESOURCE, user_id, ResourceKind.PROJECT, project_id)
        return project

    async def create_project(
        self,
        user_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Union[str, ProjectStatus] = ProjectStatus.PLANNING,
        auto_schedule: bool = False,
    ) -> Project:
        """
        Create a project; the creator becomes its owner.

        Raises:
            ValidationError: Empty name, bad status or start date after end date
        """
        name = require_text(name, "Project name", 255)
        status = enum_value(ProjectStatus, status, "status")
        check_date_range(start_date, end_date)

        async with self.unit() as u:
            project = Project(
                name=name,
                description=description,
                start_date=start_date,
                end_date=end_date,
                status=status,
                auto_schedule=auto_schedule,
                created_by=user_id,
                activity_seq=0,
                created_at=u.now,
                updated_at=u.now,
            )
            u.session.add(project)
            await u.session.flush()

            u.session.add(ProjectMembership(
                project_id=project.id,
                user_id=user_id,
                role=ProjectRole.OWNER.value,
                joined_at=u.now,
            ))

            await u.recorder.record(
                project_id=project.id,
                actor_id=user_id,
                entity_type=EntityType.PROJECT,
                entity_id=project.id,
                action=ActivityAction.CREATED,
                changes=Created(snapshot=snapshot(project, PROJECT_FIELDS)),
            )

        logger.info("Project created", extra={"project_id": str(project.id), "user_id": str(user_id)})
        return project

    async def list_projects(
        self,
        user_id: uuid.UUID,
        status: Optional[Union[str, ProjectStatus]] = None,
        search: Optional[str] = None,
    ) -> List[ProjectAccess]:
        """Projects the user belongs to, most recently updated first."""
        query = select(Project, ProjectMembership.role).join(
            ProjectMembership,
            and_(
                ProjectMembership.project_id == Project.id,
                ProjectMembership.user_id == user_id,
            ),
        ).where(Project.deleted_at.is_(None))

        if status is not None:
            query = query.where(Project.status == enum_value(ProjectStatus, status, "status"))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Project.name.ilike(pattern),
                    Project.description.ilike(pattern),
                )
            )
        query = query.order_by(desc(Project.updated_at))

        async with self.unit() as u:
            result = await u.session.execute(query)
            return [ProjectAccess(project, parse_role(role)) for project, role in result.all()]

    async def get_project(self, project_id: uuid.UUID, user_id: uuid.UUID) -> ProjectAccess:
        async with self.unit() as u:
            role = await u.guard.require_member(user_id, project_id)
            project = await u.session.get(Project, project_id)
            return ProjectAccess(project, role)

    async def update_project(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        updates: Mapping[str, Any],
    ) -> Project:
        """
        Update project settings (owner or admin).

        Args:
            project_id: The project
            user_id: The caller
            updates: Field -> new value, for any of name, description,
                start_date, end_date, status, auto_schedule

        Returns:
            The project; unchanged values record nothing

        Raises:
            ForbiddenError: Unknown project, no membership, or role too low
            ValidationError: Empty update, unknown field or invalid value
        """
        values = check_updates(updates, PROJECT_FIELDS)
        if "name" in values:
            values["name"] = require_text(values["name"], "Project name", 255)
        if "status" in values:
            values["status"] = enum_value(ProjectStatus, values["status"], "status")
        if "auto_schedule" in values and values["auto_schedule"] is None:
            raise ValidationError("auto_schedule cannot be null")

        async with self.unit() as u:
            await u.guard.require(user_id, project_id, ResourceKind.PROJECT, PolicyAction.UPDATE)
            project = await self._lock_project(u, project_id, user_id)

            check_date_range(
                values.get("start_date", project.start_date),
                values.get("end_date", project.end_date),
            )

            before, after = diff(project, values)
            if not after:
                return project

            for name, value in after.items():
                setattr(project, name, value)
            project.updated_at = u.now

            await u.recorder.record(
                project_id=project.id,
                actor_id=user_id,
                entity_type=EntityType.PROJECT,
                entity_id=project.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before=before, after=after),
            )
        return project

    async def delete_project(self, project_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Soft-delete a project and its groups (owner only)."""
        async with self.unit() as u:
            await u.guard.require(user_id, project_id, ResourceKind.PROJECT, PolicyAction.DELETE)
            project = await self._lock_project(u, project_id, user_id)

            last = snapshot(project, PROJECT_FIELDS)
            project.deleted_at = u.now
            project.updated_at = u.now

            await u.session.execute(
                update(Group)
                .where(
                    and_(
                        Group.project_id == project_id,
                        Group.deleted_at.is_(None),
                    )
                )
                .values(deleted_at=u.now, updated_at=u.now)
                .execution_options(synchronize_session=False)
            )

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.PROJECT,
                entity_id=project_id,
                action=ActivityAction.DELETED,
                changes=Deleted(snapshot=last),
            )

        logger.info("Project deleted", extra={"project_id": str(project_id), "user_id": str(user_id)})

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    async def list_members(self, project_id: uuid.UUID, user_id: uuid.UUID) -> List[MemberInfo]:
        """Members ordered by role (owner first), then join date."""
        async with self.unit() as u:
            await u.guard.require_member(user_id, project_id)
            result = await u.session.execute(
                select(ProjectMembership, User)
                .join(User, User.id == ProjectMembership.user_id)
                .where(ProjectMembership.project_id == project_id)
                .order_by(ProjectMembership.joined_at)
            )
            members = [MemberInfo(membership, user) for membership, user in result.all()]
        members.sort(key=lambda m: parse_role(m.membership.role), reverse=True)
        return members

    async def add_member(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        email: str,
        role: Union[str, ProjectRole] = ProjectRole.MEMBER,
    ) -> MemberInfo:
        """
        Invite an existing user by email.

        Raises:
            ForbiddenError: Caller may not manage members (or grant admin)
            NotFoundError: No active user with that email
            ConflictError: Role is owner, or the user is already a member
        """
        new_role = parse_role(role)

        async with self.unit() as u:
            caller_role = await u.guard.require(
                user_id, project_id, ResourceKind.MEMBERSHIP, PolicyAction.MANAGE_MEMBERS
            )
            if new_role == ProjectRole.OWNER:
                raise ConflictError("A project has exactly one owner")
            if new_role == ProjectRole.ADMIN and caller_role != ProjectRole.OWNER:
                raise u.guard.deny(
                    POLICY_DENIED, user_id, ResourceKind.MEMBERSHIP, project_id,
                    PolicyAction.MANAGE_MEMBERS, caller_role,
                )

            invitee = await IdentityService(u.session).get_user_by_email(email)
            if invitee is None:
                raise NotFoundError("User not found")

            existing = await u.guard.resolver.get_membership(project_id, invitee.id)
            if existing is not None:
                raise ConflictError("User is already a member of this project")

            membership = ProjectMembership(
                project_id=project_id,
                user_id=invitee.id,
                role=new_role.value,
                invited_by=user_id,
                joined_at=u.now,
            )
            u.session.add(membership)

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.PROJECT,
                entity_id=project_id,
                action=ActivityAction.MEMBER_ADDED,
                changes=MemberAdded(user_id=invitee.id, role=new_role.value),
            )
        return MemberInfo(membership, invitee)

    async def _lock_member(
        self,
        u: Unit,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        member_user_id: uuid.UUID,
        conflict_message: str,
    ) -> tuple[ProjectRole, ProjectMembership]:
        """
        Shared checks for changing or removing a membership.

        The owner's membership is refused before the policy check, so the
        answer is the same whoever asks.
        """
        caller_role = await u.guard.require_member(user_id, project_id)

        membership = await u.guard.resolver.get_membership(project_id, member_user_id, for_update=True)
        if membership is None:
            raise NotFoundError("Member not found")
        if parse_role(membership.role) == ProjectRole.OWNER:
            raise ConflictError(conflict_message)

        await u.guard.require(
            user_id, project_id, ResourceKind.MEMBERSHIP, PolicyAction.MANAGE_MEMBERS
        )
        return caller_role, membership

    async def update_member_role(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        member_user_id: uuid.UUID,
        role: Union[str, ProjectRole],
    ) -> MemberInfo:
        """
        Change a member's role.

        Raises:
            ForbiddenError: Caller may not manage members, or touches the
                admin role without being the owner
            NotFoundError: The user is not a member
            ConflictError: Target is the owner, or new role is owner
        """
        new_role = parse_role(role)

        async with self.unit() as u:
            caller_role, membership = await self._lock_member(
                u, project_id, user_id, member_user_id,
                "The project owner's role cannot be changed",
            )
            if new_role == ProjectRole.OWNER:
                raise ConflictError("A project has exactly one owner")

            old_role = parse_role(membership.role)
            if ProjectRole.ADMIN in (old_role, new_role) and caller_role != ProjectRole.OWNER:
                raise u.guard.deny(
                    POLICY_DENIED, user_id, ResourceKind.MEMBERSHIP, project_id,
                    PolicyAction.MANAGE_MEMBERS, caller_role,
                )
            member = await u.session.get(User, member_user_id)
            if old_role == new_role:
                return MemberInfo(membership, member)

            membership.role = new_role.value

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.PROJECT,
                entity_id=project_id,
                action=ActivityAction.ROLE_CHANGED,
                changes=RoleChanged(
                    user_id=member_user_id,
                    before=old_role.value,
                    after=new_role.value,
                ),
            )
        return MemberInfo(membership, member)

    async def remove_member(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        member_user_id: uuid.UUID,
    ) -> None:
        """
        Remove a member; their group memberships in the project go too.

        Raises:
            ForbiddenError: Caller may not manage members, or removes an
                admin without being the owner
            NotFoundError: The user is not a member
            ConflictError: Target is the owner
        """
        async with self.unit() as u:
            caller_role, membership = await self._lock_member(
                u, project_id, user_id, member_user_id,
                "The project owner cannot be removed",
            )
            old_role = parse_role(membership.role)
            if old_role == ProjectRole.ADMIN and caller_role != ProjectRole.OWNER:
                raise u.guard.deny(
                    POLICY_DENIED, user_id, ResourceKind.MEMBERSHIP, project_id,
                    PolicyAction.MANAGE_MEMBERS, caller_role,
                )

            await u.session.execute(
                delete(GroupMembership)
                .where(
                    and_(
                        GroupMembership.user_id == member_user_id,
                        GroupMembership.group_id.in_(
                            select(Group.id).where(Group.project_id == project_id)
                        ),
                    )
                )
                .execution_options(synchronize_session=False)
            )
            await u.session.delete(membership)

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.PROJECT,
                entity_id=project_id,
                action=ActivityAction.MEMBER_REMOVED,
                changes=MemberRemoved(user_id=member_user_id, role=old_role.value),
            )

        logger.info(
            "Member removed",
            extra={"project_id": str(project_id), "member_id": str(member_user_id)},
        )
