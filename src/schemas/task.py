"""
Task schemas.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.kernel.models.task import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Task creation request."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: TaskPriority = TaskPriority.MEDIUM
    progress: int = Field(0, ge=0, le=100)
    assigned_to: Optional[uuid.UUID] = None
    assigned_group_id: Optional[uuid.UUID] = None
    parent_task_id: Optional[uuid.UUID] = None


class TaskUpdate(BaseModel):
    """Task update request. Send null to clear an assignment or parent."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    assigned_to: Optional[uuid.UUID] = None
    assigned_group_id: Optional[uuid.UUID] = None
    parent_task_id: Optional[uuid.UUID] = None


class TaskResponse(BaseModel):
    """Task response."""

    id: uuid.UUID
    project_id: uuid.UUID
    title: str
    description: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    status: str
    priority: str
    progress: int
    assigned_to: Optional[uuid.UUID]
    assigned_group_id: Optional[uuid.UUID]
    parent_task_id: Optional[uuid.UUID]
    created_by: uuid.UUID
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
