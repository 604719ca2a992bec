"""
Task endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Query, status

from src.api.deps import CurrentUser, Tasks
from src.kernel.models.task import TaskStatus
from src.schemas.common import SuccessResponse
from src.schemas.task import TaskCreate, TaskResponse, TaskUpdate

router = APIRouter()


@router.post(
    "/projects/{project_id}/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    project_id: uuid.UUID,
    data: TaskCreate,
    user: CurrentUser,
    tasks: Tasks,
):
    return await tasks.create_task(project_id, user.id, **data.model_dump())


@router.get("/projects/{project_id}/tasks", response_model=List[TaskResponse])
async def list_tasks(
    project_id: uuid.UUID,
    user: CurrentUser,
    tasks: Tasks,
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    assigned_to: Optional[uuid.UUID] = Query(None),
):
    return await tasks.list_tasks(project_id, user.id, status=status_filter, assigned_to=assigned_to)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: uuid.UUID, user: CurrentUser, tasks: Tasks):
    return await tasks.get_task(task_id, user.id)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: uuid.UUID,
    data: TaskUpdate,
    user: CurrentUser,
    tasks: Tasks,
):
    return await tasks.update_task(task_id, user.id, data.model_dump(exclude_unset=True))


@router.delete("/tasks/{task_id}", response_model=SuccessResponse)
async def delete_task(task_id: uuid.UUID, user: CurrentUser, tasks: Tasks):
    await tasks.delete_task(task_id, user.id)
    return SuccessResponse(message="Task deleted")
