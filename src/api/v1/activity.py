"""
Activity log endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser, Sessions
from src.database import unit_of_work
from src.kernel.events.activity_query import ActivityQueryEngine
from src.kernel.models.activity_log import ActivityAction, EntityType
from src.schemas.activity import ActivityPageResponse, ActivityResponse

router = APIRouter()


@router.get("/projects/{project_id}/activity", response_model=ActivityPageResponse)
async def project_activity(
    project_id: uuid.UUID,
    user: CurrentUser,
    session_factory: Sessions,
    entity_type: Optional[EntityType] = Query(None),
    action: Optional[ActivityAction] = Query(None),
    actor_id: Optional[uuid.UUID] = Query(None, alias="user_id"),
    limit: Optional[int] = Query(None, description="Page size; capped by the server"),
    offset: int = Query(0),
):
    """Project activity, newest first (any member)."""
    async with unit_of_work(session_factory) as session:
        engine = ActivityQueryEngine(session)
        page = await engine.query_project_activity(
            project_id,
            user.id,
            entity_type=entity_type,
            action=action,
            actor_id=actor_id,
            limit=limit,
            offset=offset,
        )

    return ActivityPageResponse(
        items=[ActivityResponse.build(item) for item in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.get("/tasks/{task_id}/activity", response_model=List[ActivityResponse])
async def task_activity(
    task_id: uuid.UUID,
    user: CurrentUser,
    session_factory: Sessions,
    limit: Optional[int] = Query(None),
):
    """Activity of a task, its comments and its files."""
    async with unit_of_work(session_factory) as session:
        items = await ActivityQueryEngine(session).query_task_activity(task_id, user.id, limit=limit)
    return [ActivityResponse.build(item) for item in items]


@router.get("/activity/me", response_model=List[ActivityResponse])
async def my_activity(
    user: CurrentUser,
    session_factory: Sessions,
    limit: Optional[int] = Query(None),
):
    """Recent activity across all of the caller's projects."""
    async with unit_of_work(session_factory) as session:
        items = await ActivityQueryEngine(session).query_user_activity(user.id, limit=limit)
    return [ActivityResponse.build(item) for item in items]
