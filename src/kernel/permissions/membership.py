"""
Membership resolution: who holds which role in which project.

Read-only. A missing (or soft-deleted) project or group raises
NotFoundError; an existing project the user does not belong to resolves to
None (no access). Callers surface both the same way but log them apart.
"""

import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.errors import NotFoundError
from src.kernel.models.group import Group
from src.kernel.models.project import Project, ProjectMembership, ProjectRole
from src.kernel.models.task import Task
from src.kernel.permissions.policy import parse_role


class MembershipResolver:
    """Looks up project roles and maps tasks and groups to their project."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_role(
        self,
        user_id: uuid.UUID,
        project_id: uuid.UUID,
    ) -> Optional[ProjectRole]:
        """
        Get the user's role in a project.

        Args:
            user_id: The acting user
            project_id: The project

        Returns:
            The user's ProjectRole, or None if they are not a member

        Raises:
            NotFoundError: If the project does not exist or was deleted
        """
        query = select(Project.id, ProjectMembership.role).outerjoin(
            ProjectMembership,
            and_(
                ProjectMembership.project_id == Project.id,
                ProjectMembership.user_id == user_id,
            ),
        ).where(
            and_(
                Project.id == project_id,
                Project.deleted_at.is_(None),
            )
        )
        result = await self.session.execute(query)
        row = result.one_or_none()

        if row is None:
            raise NotFoundError("Project not found")

        _, role = row
        if role is None:
            return None
        return parse_role(role)

    async def resolve_group_role(
        self,
        user_id: uuid.UUID,
        group_id: uuid.UUID,
    ) -> Tuple[uuid.UUID, Optional[ProjectRole]]:
        """
        Resolve the user's role for a group-scoped action.

        Group membership itself grants nothing; the group's project role
        decides.

        Returns:
            Tuple of (project_id, role or None)

        Raises:
            NotFoundError: If the group (or its project) does not exist
        """
        project_id = await self.group_project_id(group_id)
        return project_id, await self.resolve_role(user_id, project_id)

    async def group_project_id(self, group_id: uuid.UUID) -> uuid.UUID:
        query = select(Group.project_id).where(
            and_(
                Group.id == group_id,
                Group.deleted_at.is_(None),
            )
        )
        result = await self.session.execute(query)
        project_id = result.scalar_one_or_none()
        if project_id is None:
            raise NotFoundError("Group not found")
        return project_id

    async def task_project_id(self, task_id: uuid.UUID) -> uuid.UUID:
        query = select(Task.project_id).where(
            and_(
                Task.id == task_id,
                Task.deleted_at.is_(None),
            )
        )
        result = await self.session.execute(query)
        project_id = result.scalar_one_or_none()
        if project_id is None:
            raise NotFoundError("Task not found")
        return project_id

    async def get_membership(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[ProjectMembership]:
        query = select(ProjectMembership).where(
            and_(
                ProjectMembership.project_id == project_id,
                ProjectMembership.user_id == user_id,
            )
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def member_project_ids(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        """IDs of every live project the user currently belongs to."""
        query = select(ProjectMembership.project_id).join(
            Project, Project.id == ProjectMembership.project_id
        ).where(
            and_(
                ProjectMembership.user_id == user_id,
                Project.deleted_at.is_(None),
            )
        )
        result = await self.session.execute(query)
        return [row[0] for row in result.all()]
