"""
Activity Query Engine - filtered, paginated reads of the audit trail.

Read access follows project membership at query time: a member whose
membership is revoked loses access to the project's history immediately.
"""

import uuid
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from sqlalchemy import and_, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.kernel.errors import ValidationError
from src.kernel.models.activity_log import ActivityAction, ActivityLog, EntityType
from src.kernel.models.project import Project
from src.kernel.models.task import Comment, FileAttachment
from src.kernel.models.user import User
from src.kernel.permissions.guard import AccessGuard
from src.kernel.permissions.policy import PolicyAction, ResourceKind


@dataclass
class ActivityItem:
    """An audit entry joined with its actor (and project, in the user feed)."""
    entry: ActivityLog
    actor_name: Optional[str]
    actor_email: Optional[str]
    project_name: Optional[str] = None


@dataclass
class ActivityPage:
    """One page of results plus the unpaginated total."""
    items: List[ActivityItem]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


class ActivityQueryEngine:
    """
    Usage:
        engine = ActivityQueryEngine(session)
        page = await engine.query_project_activity(project_id, user_id, limit=20)
    """

    def __init__(
        self,
        session: AsyncSession,
        default_limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ):
        settings = get_settings()
        self.session = session
        self.guard = AccessGuard(session)
        self.default_limit = default_limit or settings.activity_default_limit
        self.max_limit = max_limit or settings.activity_max_limit

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.default_limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        return min(limit, self.max_limit)

    def _select_items(self, *extra_columns: Any):
        return select(ActivityLog, User.full_name, User.email, *extra_columns).outerjoin(
            User, User.id == ActivityLog.user_id
        )

    async def query_project_activity(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        entity_type: Optional[EntityType] = None,
        action: Optional[ActivityAction] = None,
        actor_id: Optional[uuid.UUID] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> ActivityPage:
        """
        Get a project's activity, newest first.

        Args:
            project_id: The project
            user_id: The caller; any current membership grants access
            entity_type: Only entries about this kind of entity
            action: Only entries with this action
            actor_id: Only entries by this user
            limit: Page size (defaults to the configured limit, capped at the maximum)
            offset: Entries to skip

        Returns:
            ActivityPage whose total ignores limit/offset

        Raises:
            ForbiddenError: If the caller is not a member (or the project is unknown)
            ValidationError: If a member asks for limit < 1 or offset < 0
        """
        await self.guard.require_member(user_id, project_id)

        page_size = self._resolve_limit(limit)
        if offset < 0:
            raise ValidationError("offset must not be negative")

        conditions = [ActivityLog.project_id == project_id]
        if entity_type is not None:
            conditions.append(ActivityLog.entity_type == EntityType(entity_type).value)
        if action is not None:
            conditions.append(ActivityLog.action == ActivityAction(action).value)
        if actor_id is not None:
            conditions.append(ActivityLog.user_id == actor_id)

        count_query = select(func.count()).select_from(ActivityLog).where(and_(*conditions))
        total = (await self.session.execute(count_query)).scalar_one()

        query = (
            self._select_items()
            .where(and_(*conditions))
            .order_by(desc(ActivityLog.sequence))
            .limit(page_size)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return ActivityPage(
            items=self._to_items(result.all()),
            total=total,
            limit=page_size,
            offset=offset,
        )

    async def query_task_activity(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        limit: Optional[int] = None,
    ) -> List[ActivityItem]:
        """
        Activity of a task together with its comments and files, newest first.

        Raises:
            ForbiddenError: If the task is unknown or the caller is not a member
        """
        project_id = await self.guard.locate(
            self.guard.resolver.task_project_id(task_id),
            user_id, ResourceKind.TASK, task_id,
        )
        await self.guard.require(
            user_id, project_id, ResourceKind.TASK, PolicyAction.READ, resource_id=task_id
        )
        page_size = self._resolve_limit(limit)

        # Soft-deleted children keep their history
        comment_ids = select(Comment.id).where(Comment.task_id == task_id)
        file_ids = select(FileAttachment.id).where(FileAttachment.task_id == task_id)

        query = (
            self._select_items()
            .where(
                and_(
                    ActivityLog.project_id == project_id,
                    or_(
                        and_(
                            ActivityLog.entity_type == EntityType.TASK.value,
                            ActivityLog.entity_id == task_id,
                        ),
                        and_(
                            ActivityLog.entity_type == EntityType.COMMENT.value,
                            ActivityLog.entity_id.in_(comment_ids),
                        ),
                        and_(
                            ActivityLog.entity_type == EntityType.FILE.value,
                            ActivityLog.entity_id.in_(file_ids),
                        ),
                    ),
                )
            )
            .order_by(desc(ActivityLog.sequence))
            .limit(page_size)
        )
        result = await self.session.execute(query)
        return self._to_items(result.all())

    async def query_user_activity(
        self,
        user_id: uuid.UUID,
        limit: Optional[int] = None,
    ) -> List[ActivityItem]:
        """Recent activity across every live project the caller belongs to."""
        page_size = self._resolve_limit(limit)

        project_ids = await self.guard.resolver.member_project_ids(user_id)
        if not project_ids:
            return []

        query = (
            self._select_items(Project.name)
            .join(Project, Project.id == ActivityLog.project_id)
            .where(ActivityLog.project_id.in_(project_ids))
            .order_by(desc(ActivityLog.created_at), desc(ActivityLog.sequence))
            .limit(page_size)
        )
        result = await self.session.execute(query)
        return self._to_items(result.all())

    @staticmethod
    def _to_items(rows: Sequence[Any]) -> List[ActivityItem]:
        return [ActivityItem(*row) for row in rows]
