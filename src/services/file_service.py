"""
File attachment service.

Bytes are stored by the upload layer; this service keeps the metadata,
enforces the configured size and type limits, and audits uploads and
deletions.
"""

import os
import uuid
from typing import List, Tuple

from sqlalchemy import and_, select

from src.config import get_settings
from src.kernel.errors import ValidationError
from src.kernel.events.changes import Deleted, Uploaded
from src.kernel.models.activity_log import ActivityAction, EntityType
from src.kernel.models.task import FileAttachment, Task
from src.kernel.permissions.guard import UNKNOWN_RESOURCE
from src.kernel.permissions.policy import PolicyAction, ResourceKind
from src.services.base import DomainService, Unit, require_text, same_user


def check_upload(file_name: str, file_size: int) -> None:
    """Raise ValidationError unless the file fits the configured limits."""
    settings = get_settings()
    if file_size is None or file_size <= 0:
        raise ValidationError("File is empty")
    if file_size > settings.max_file_size:
        raise ValidationError(
            f"File exceeds the maximum size of {settings.max_file_size} bytes"
        )
    extension = os.path.splitext(file_name)[1].lower()
    allowed = {ext.lower() for ext in settings.allowed_file_types}
    if extension not in allowed:
        raise ValidationError(f"File type not allowed: {extension or file_name}")


class FileService(DomainService):

    async def _locate_task(self, u: Unit, task_id: uuid.UUID, user_id: uuid.UUID) -> uuid.UUID:
        return await u.guard.locate(
            u.guard.resolver.task_project_id(task_id), user_id, ResourceKind.TASK, task_id
        )

    async def _load_file(
        self, u: Unit, file_id: uuid.UUID, user_id: uuid.UUID, for_update: bool = False
    ) -> Tuple[FileAttachment, uuid.UUID]:
        query = select(FileAttachment, Task.project_id).join(
            Task, Task.id == FileAttachment.task_id
        ).where(
            and_(
                FileAttachment.id == file_id,
                FileAttachment.deleted_at.is_(None),
                Task.deleted_at.is_(None),
            )
        )
        if for_update:
            query = query.with_for_update(of=FileAttachment)
        row = (await u.session.execute(query)).one_or_none()
        if row is None:
            raise u.guard.deny(UNKNOWN_RESOURCE, user_id, ResourceKind.FILE, file_id)
        return row[0], row[1]

    async def register_file(
        self,
        task_id: uuid.UUID,
        user_id: uuid.UUID,
        file_name: str,
        file_path: str,
        file_size: int,
        mime_type: str,
    ) -> FileAttachment:
        """
        Record an uploaded file against a task (any role except viewer).

        Raises:
            ForbiddenError: Unknown task, no membership, or a viewer
            ValidationError: Missing name, empty or oversized file, or a
                type outside the allowed list
        """
        file_name = require_text(file_name, "File name", 255)
        check_upload(file_name, file_size)

        async with self.unit() as u:
            project_id = await self._locate_task(u, task_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.FILE, PolicyAction.CREATE, resource_id=task_id
            )

            attachment = FileAttachment(
                task_id=task_id,
                uploaded_by=user_id,
                file_name=file_name,
                file_path=file_path,
                file_size=file_size,
                mime_type=mime_type,
                uploaded_at=u.now,
            )
            u.session.add(attachment)
            await u.session.flush()

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.FILE,
                entity_id=attachment.id,
                action=ActivityAction.UPLOADED,
                changes=Uploaded(
                    task_id=task_id,
                    file_name=file_name,
                    file_size=file_size,
                    mime_type=mime_type,
                ),
            )
        return attachment

    async def list_files(self, task_id: uuid.UUID, user_id: uuid.UUID) -> List[FileAttachment]:
        async with self.unit() as u:
            project_id = await self._locate_task(u, task_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.FILE, PolicyAction.READ, resource_id=task_id
            )
            result = await u.session.execute(
                select(FileAttachment).where(
                    and_(
                        FileAttachment.task_id == task_id,
                        FileAttachment.deleted_at.is_(None),
                    )
                ).order_by(FileAttachment.uploaded_at.desc())
            )
            return list(result.scalars().all())

    async def get_file(self, file_id: uuid.UUID, user_id: uuid.UUID) -> FileAttachment:
        async with self.unit() as u:
            attachment, project_id = await self._load_file(u, file_id, user_id)
            await u.guard.require(
                user_id, project_id, ResourceKind.FILE, PolicyAction.READ, resource_id=file_id
            )
            return attachment

    async def delete_file(self, file_id: uuid.UUID, user_id: uuid.UUID) -> FileAttachment:
        """
        Soft-delete an attachment. Members may delete only their own uploads.

        Returns:
            The deleted attachment, so the caller can remove the stored bytes
        """
        async with self.unit() as u:
            attachment, project_id = await self._load_file(u, file_id, user_id, for_update=True)
            await u.guard.require(
                user_id, project_id, ResourceKind.FILE, PolicyAction.DELETE,
                is_owner=same_user(attachment.uploaded_by, user_id), resource_id=file_id,
            )

            attachment.deleted_at = u.now

            await u.recorder.record(
                project_id=project_id,
                actor_id=user_id,
                entity_type=EntityType.FILE,
                entity_id=attachment.id,
                action=ActivityAction.DELETED,
                changes=Deleted(snapshot={
                    "task_id": attachment.task_id,
                    "file_name": attachment.file_name,
                    "file_size": attachment.file_size,
                    "mime_type": attachment.mime_type,
                }),
            )
        return attachment
