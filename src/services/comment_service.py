"""
Comment service.

Only the author may edit a comment's content, whatever their role. Admins
and the owner may delete anyone's comment; members only their own.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import and_, select

from src.kernel.events.changes import Commented, Deleted, Updated, excerpt
from src.kernel.models.activity_log import ActivityAction, EntityType
from src.kernel.models.task import Comment, Task
from src.kernel.models.user import User
from src.kernel.permissions.guard import UNKNOWN_RESOURCE
from src.kernel.permissions.policy import PolicyAction, ResourceKind
from src.services.base import DomainService, Unit, require_text, same_user

MAX_COMMENT_LENGTH = 5000


@dataclass
class CommentView:
    """A comment with its author's display details."""
    comment: Comment
    author_name: Optional[str]
    author_email: Optional[str]


class CommentService(DomainService):

    async def _locate_task(self, u: Unit, task_id: uuid.UUID, user_id: uuid.UUID) -> uuid.UUID:
        return await u.guard.locate(
            u.guard.resolver.task_project_id(task_id), user_id, ResourceKind.TASK, task_id
        )

    async def _lock_comment(
        self, u: Unit, comment_id: uuid.UUID, user_id: uuid.UUID
    ) -> Tuple[Comment, uuid.UUID]:
        """Load a live comment on a live task, with its project id."""
        query = select(Comment, Task.project_id).join(
            Task, Task.id == Comment.task_id
        ).where(
            and_(
                Comment.id == comment_id,
                Comment.deleted_at.is_(None),
                Task.deleted_at.is_(None),
            )
        ).with_for_update(of=Comment)
        row = (await u.session.execute(query)).one_or_none()
        if row is None:
            raise u.guard.deny(UNKNOWN_RESOURCE, user_id, ResourceKind.COMMENT, comment_id)
        return row[0], row[1]

    async def create_comment(self, task_id: uuid.UUID, user_id: uuid.UUID, content: str) -> Comment:
        """
        Comment on a task (any role except viewer).

        Raises:
            ForbiddenError: Unknown task, no membership, or a viewer
            ValidationError: Empty content or longer than 5000 characters
        """
        content = require_text(content, "Comment", MAX_COMMENT_LENGTH)

        async with self.unit() as u:
            project_id = await self._locate_task(u, task_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.COMMENT, PolicyAction.CREATE, resource_id=task_id
            )

            comment = Comment(
                task_id=task_id,
                user_id=user_id,
                content=content,
                created_at=u.now,
                updated_at=u.now,
            )
            u.session.add(comment)
            await u.session.flush()

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.COMMENT,
                entity_id=comment.id,
                action=ActivityAction.COMMENTED,
                changes=Commented(task_id=task_id, excerpt=excerpt(content)),
            )
        return comment

    async def list_comments(self, task_id: uuid.UUID, user_id: uuid.UUID) -> List[CommentView]:
        """Live comments on a task, oldest first."""
        async with self.unit() as u:
            project_id = await self._locate_task(u, task_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.COMMENT, PolicyAction.READ, resource_id=task_id
            )
            result = await u.session.execute(
                select(Comment, User.full_name, User.email)
                .outerjoin(User, User.id == Comment.user_id)
                .where(
                    and_(
                        Comment.task_id == task_id,
                        Comment.deleted_at.is_(None),
                    )
                )
                .order_by(Comment.created_at)
            )
            return [CommentView(*row) for row in result.all()]

    async def update_comment(
        self,
        comment_id: uuid.UUID,
        user_id: uuid.UUID,
        content: str,
    ) -> Comment:
        """
        Edit a comment's content (author only).

        Raises:
            ForbiddenError: Unknown comment, no membership, or not the author
            ValidationError: Empty content or longer than 5000 characters
        """
        content = require_text(content, "Comment", MAX_COMMENT_LENGTH)

        async with self.unit() as u:
            comment, project_id = await self._lock_comment(u, comment_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.COMMENT, PolicyAction.UPDATE,
                is_owner=same_user(comment.user_id, user_id), resource_id=comment_id,
            )
            if comment.content == content:
                return comment

            before = {"content": comment.content}
            comment.content = content
            comment.updated_at = u.now

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.COMMENT,
                entity_id=comment.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before=before, after={"content": content}),
            )
        return comment

    async def delete_comment(self, comment_id: uuid.UUID, user_id: uuid.UUID) -> None:
        async with self.unit() as u:
            comment, project_id = await self._lock_comment(u, comment_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.COMMENT, PolicyAction.DELETE,
                is_owner=same_user(comment.user_id, user_id), resource_id=comment_id,
            )

            comment.deleted_at = u.now
            comment.updated_at = u.now

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.COMMENT,
                entity_id=comment.id,
                action=ActivityAction.DELETED,
                changes=Deleted(snapshot={
                    "task_id": comment.task_id,
                    "user_id": comment.user_id,
                    "content": comment.content,
                }),
            )
