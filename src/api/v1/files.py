"""
File attachment endpoints.

Uploads themselves are handled by the storage layer, which registers the
stored file's metadata here.
"""

import uuid
from typing import List

from fastapi import APIRouter, status

from src.api.deps import CurrentUser, Files
from src.schemas.common import SuccessResponse
from src.schemas.file import FileRegister, FileResponse

router = APIRouter()


@router.post(
    "/tasks/{task_id}/files",
    response_model=FileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_file(
    task_id: uuid.UUID,
    data: FileRegister,
    user: CurrentUser,
    files: Files,
):
    return await files.register_file(task_id, user.id, **data.model_dump())


@router.get("/tasks/{task_id}/files", response_model=List[FileResponse])
async def list_files(task_id: uuid.UUID, user: CurrentUser, files: Files):
    return await files.list_files(task_id, user.id)


@router.get("/files/{file_id}", response_model=FileResponse)
async def get_file(file_id: uuid.UUID, user: CurrentUser, files: Files):
    return await files.get_file(file_id, user.id)


@router.delete("/files/{file_id}", response_model=SuccessResponse)
async def delete_file(file_id: uuid.UUID, user: CurrentUser, files: Files):
    attachment = await files.delete_file(file_id, user.id)
    return SuccessResponse(message="File deleted", data={"file_path": attachment.file_path})
