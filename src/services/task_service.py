"""
Task service.

A member may update tasks they created or are assigned to, and delete
tasks they created; admins and the owner may change any task.
"""

import uuid
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy import and_, select

from src.kernel.errors import NotFoundError, ValidationError
from src.kernel.events.changes import Created, Deleted, Updated, diff, snapshot
from src.kernel.models.activity_log import ActivityAction, EntityType
from src.kernel.models.group import Group
from src.kernel.models.task import Task, TaskPriority, TaskStatus
from src.kernel.permissions.guard import UNKNOWN_RESOURCE
from src.kernel.permissions.policy import PolicyAction, ResourceKind
from src.services.base import (
    DomainService,
    Unit,
    check_date_range,
    check_updates,
    enum_value,
    require_text,
    same_user,
)

TASK_FIELDS = (
    "title",
    "description",
    "start_date",
    "end_date",
    "status",
    "priority",
    "progress",
    "assigned_to",
    "assigned_group_id",
    "parent_task_id",
)


def _normalize(values: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the standalone fields of a task payload in place."""
    if "title" in values:
        values["title"] = require_text(values["title"], "Task title", 500)
    if "status" in values:
        values["status"] = enum_value(TaskStatus, values["status"], "status")
    if "priority" in values:
        values["priority"] = enum_value(TaskPriority, values["priority"], "priority")
    if "progress" in values:
        progress = values["progress"]
        if progress is None or not 0 <= progress <= 100:
            raise ValidationError("Progress must be between 0 and 100")
    return values


class TaskService(DomainService):

    async def _lock_task(self, u: Unit, task_id: uuid.UUID, user_id: uuid.UUID) -> Task:
        query = select(Task).where(
            and_(
                Task.id == task_id,
                Task.deleted_at.is_(None),
            )
        ).with_for_update()
        task = (await u.session.execute(query)).scalar_one_or_none()
        if task is None:
            raise u.guard.deny(UNKNOWN_RESOURCE, user_id, ResourceKind.TASK, task_id)
        return task

    async def _check_references(
        self,
        u: Unit,
        project_id: uuid.UUID,
        values: Mapping[str, Any],
        task_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Assignee, group and parent must all belong to the task's project."""
        assignee = values.get("assigned_to")
        if assignee is not None:
            if await u.guard.resolver.get_membership(project_id, assignee) is None:
                raise ValidationError("Assigned user is not a project member")

        group_id = values.get("assigned_group_id")
        if group_id is not None:
            result = await u.session.execute(
                select(Group.id).where(
                    and_(
                        Group.id == group_id,
                        Group.project_id == project_id,
                        Group.deleted_at.is_(None),
                    )
                )
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Group not found in this project")

        parent_id = values.get("parent_task_id")
        if parent_id is not None:
            if task_id is not None and parent_id == task_id:
                raise ValidationError("Task cannot be its own parent")
            result = await u.session.execute(
                select(Task.id).where(
                    and_(
                        Task.id == parent_id,
                        Task.project_id == project_id,
                        Task.deleted_at.is_(None),
                    )
                )
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Parent task not found in this project")

    async def create_task(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        title: str,
        description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Union[str, TaskStatus] = TaskStatus.NOT_STARTED,
        priority: Union[str, TaskPriority] = TaskPriority.MEDIUM,
        progress: int = 0,
        assigned_to: Optional[uuid.UUID] = None,
        assigned_group_id: Optional[uuid.UUID] = None,
        parent_task_id: Optional[uuid.UUID] = None,
    ) -> Task:
        """
        Create a task (any role except viewer).

        Raises:
            ForbiddenError: Not a member, or a viewer
            ValidationError: Bad field values or assignee outside the project
            NotFoundError: Group or parent task not in this project
        """
        values = _normalize({
            "title": title,
            "description": description,
            "start_date": start_date,
            "end_date": end_date,
            "status": status,
            "priority": priority,
            "progress": progress,
            "assigned_to": assigned_to,
            "assigned_group_id": assigned_group_id,
            "parent_task_id": parent_task_id,
        })
        check_date_range(start_date, end_date)

        async with self.unit() as u:
            await u.guard.require(user_id, project_id, ResourceKind.TASK, PolicyAction.CREATE)
            await self._check_references(u, project_id, values)

            task = Task(
                project_id=project_id,
                created_by=user_id,
                completed_at=u.now if values["status"] == TaskStatus.COMPLETED.value else None,
                created_at=u.now,
                updated_at=u.now,
                **values,
            )
            u.session.add(task)
            await u.session.flush()

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.TASK,
                entity_id=task.id,
                action=ActivityAction.CREATED,
                changes=Created(snapshot=snapshot(task, TASK_FIELDS)),
            )
        return task

    async def list_tasks(
        self,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        status: Optional[Union[str, TaskStatus]] = None,
        assigned_to: Optional[uuid.UUID] = None,
    ) -> List[Task]:
        query = select(Task).where(
            and_(
                Task.project_id == project_id,
                Task.deleted_at.is_(None),
            )
        )
        if status is not None:
            query = query.where(Task.status == enum_value(TaskStatus, status, "status"))
        if assigned_to is not None:
            query = query.where(Task.assigned_to == assigned_to)
        query = query.order_by(Task.start_date, Task.created_at)

        async with self.unit() as u:
            await u.guard.require_member(user_id, project_id)
            result = await u.session.execute(query)
            return list(result.scalars().all())

    async def get_task(self, task_id: uuid.UUID, user_id: uuid.UUID) -> Task:
        async with self.unit() as u:
            project_id = await u.guard.locate(
                u.guard.resolver.task_project_id(task_id), user_id, ResourceKind.TASK, task_id
            )
            await u.guard.require(
                user_id, project_id, ResourceKind.TASK, PolicyAction.READ, resource_id=task_id
            )
            return await u.session.get(Task, task_id)

    async def update_task(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        updates: Mapping[str, Any],
    ) -> Task:
        """
        Update task fields.

        Moving a task to ``completed`` stamps ``completed_at``; moving it
        away clears the stamp.

        Raises:
            ForbiddenError: Unknown task, no membership, or not allowed to edit it
            ValidationError: Empty update, unknown field or invalid value
            NotFoundError: Group or parent task not in this project
        """
        values = _normalize(check_updates(updates, TASK_FIELDS))

        async with self.unit() as u:
            task = await self._lock_task(u, task_id, user_id)
            is_owner = same_user(task.created_by, user_id) or same_user(task.assigned_to, user_id)
            await u.guard.require(
                user_id, task.project_id, ResourceKind.TASK, PolicyAction.UPDATE,
                is_owner=is_owner, resource_id=task_id,
            )

            check_date_range(
                values.get("start_date", task.start_date),
                values.get("end_date", task.end_date),
            )
            await self._check_references(u, task.project_id, values, task_id=task.id)

            if "status" in values:
                if values["status"] == TaskStatus.COMPLETED.value and task.completed_at is None:
                    values["completed_at"] = u.now
                elif values["status"] != TaskStatus.COMPLETED.value:
                    values["completed_at"] = None

            before, after = diff(task, values)
            if not after:
                return task

            for name, value in after.items():
                setattr(task, name, value)
            task.updated_at = u.now

            await u.recorder.record(
                project_id=task.project_id,
                actor_id=user_id,
                entity_type=EntityType.TASK,
                entity_id=task.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before=before, after=after),
            )
        return task

    async def delete_task(self, task_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Soft-delete a task. Members may delete only tasks they created."""
        async with self.unit() as u:
            task = await self._lock_task(u, task_id, user_id)
            await u.guard.require(
                user_id, task.project_id, ResourceKind.TASK, PolicyAction.DELETE,
                is_owner=same_user(task.created_by, user_id), resource_id=task_id,
            )

            last = snapshot(task, TASK_FIELDS)
            task.deleted_at = u.now
            task.updated_at = u.now

            await u.recorder.record(
                project_id=task.project_id,
                actor_id=user_id,
                entity_type=EntityType.TASK,
                entity_id=task.id,
                action=ActivityAction.DELETED,
                changes=Deleted(snapshot=last),
            )
