"""
Activity Recorder - appends audit entries inside the caller's transaction.

Entries are written in the same unit of work as the mutation they describe:
if the unit rolls back, the entry and its sequence number go with it.
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.errors import NotFoundError, ValidationError
from src.kernel.events.changes import BaseChange, parse_change
from src.kernel.models.activity_log import ActivityAction, ActivityLog, EntityType
from src.kernel.models.base import utcnow
from src.kernel.models.project import Project
from src.logging_config import get_logger

logger = get_logger(__name__)


class ActivityRecorder:
    """
    Usage:
        recorder = ActivityRecorder(session, clock)
        await recorder.record(
            project_id=task.project_id,
            actor_id=user_id,
            entity_type=EntityType.TASK,
            entity_id=task.id,
            action=ActivityAction.CREATED,
            changes=Created(snapshot=task_snapshot(task)),
        )
    """

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    async def record(
        self,
        project_id: uuid.UUID,
        actor_id: uuid.UUID,
        entity_type: EntityType,
        entity_id: Optional[uuid.UUID],
        action: ActivityAction,
        changes: Union[BaseChange, Mapping[str, Any]],
    ) -> ActivityLog:
        """
        Append one audit entry.

        Must run inside an open unit of work. The project's sequence counter
        is bumped with a single UPDATE, which holds the row lock (or the
        SQLite write lock) until the surrounding transaction ends, so
        concurrent writers receive consecutive numbers.

        Args:
            project_id: Project the entry belongs to
            actor_id: The acting user
            entity_type: Kind of the affected entity
            entity_id: The affected entity, if any
            action: What happened
            changes: Typed change whose kind matches ``action``

        Returns:
            The flushed ActivityLog row

        Raises:
            ValidationError: If ``changes`` is malformed or does not match ``action``
            NotFoundError: If the project row does not exist
        """
        action = ActivityAction(action)
        change = self._coerce(changes)
        if change.kind != action.value:
            raise ValidationError(
                f"Change of kind '{change.kind}' cannot be recorded as '{action.value}'"
            )

        payload = change.to_payload()
        if not payload:
            raise ValidationError("Activity changes must not be empty")

        # Pending inserts (a new project, for one) must exist before the bump
        await self.session.flush()
        sequence = await self._next_sequence(project_id)

        entry = ActivityLog(
            project_id=project_id,
            sequence=sequence,
            user_id=actor_id,
            entity_type=EntityType(entity_type).value,
            entity_id=entity_id,
            action=action.value,
            changes=payload,
            created_at=self.clock(),
        )
        self.session.add(entry)
        await self.session.flush()

        logger.debug(
            "Activity recorded",
            extra={
                "project_id": str(project_id),
                "sequence": sequence,
                "entity_type": entry.entity_type,
                "entity_id": str(entity_id) if entity_id else None,
                "activity_action": entry.action,
            },
        )
        return entry

    def _coerce(self, changes: Union[BaseChange, Mapping[str, Any]]) -> BaseChange:
        if isinstance(changes, BaseChange):
            return changes
        if not isinstance(changes, Mapping) or not changes:
            raise ValidationError("Activity changes must not be empty")
        try:
            return parse_change(changes)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid activity changes: {e.errors()[0]['msg']}")

    async def _next_sequence(self, project_id: uuid.UUID) -> int:
        # updated_at is pinned so the counter bump is not a project edit
        bump = (
            update(Project)
            .where(Project.id == project_id)
            .values(
                activity_seq=Project.activity_seq + 1,
                updated_at=Project.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(bump)
        if result.rowcount == 0:
            raise NotFoundError("Project not found")

        query = select(Project.activity_seq).where(Project.id == project_id)
        return (await self.session.execute(query)).scalar_one()
