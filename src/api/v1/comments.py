"""
Comment endpoints.
"""

import uuid
from typing import List

from fastapi import APIRouter, status

from src.api.deps import Comments, CurrentUser
from src.schemas.comment import CommentCreate, CommentResponse, CommentUpdate
from src.schemas.common import SuccessResponse

router = APIRouter()


@router.post(
    "/tasks/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    task_id: uuid.UUID,
    data: CommentCreate,
    user: CurrentUser,
    comments: Comments,
):
    comment = await comments.create_comment(task_id, user.id, data.content)
    return CommentResponse.build(comment, user.full_name, user.email)


@router.get("/tasks/{task_id}/comments", response_model=List[CommentResponse])
async def list_comments(task_id: uuid.UUID, user: CurrentUser, comments: Comments):
    views = await comments.list_comments(task_id, user.id)
    return [CommentResponse.build(v.comment, v.author_name, v.author_email) for v in views]


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: uuid.UUID,
    data: CommentUpdate,
    user: CurrentUser,
    comments: Comments,
):
    """Edit a comment (author only)."""
    comment = await comments.update_comment(comment_id, user.id, data.content)
    return CommentResponse.build(comment, user.full_name, user.email)


@router.delete("/comments/{comment_id}", response_model=SuccessResponse)
async def delete_comment(comment_id: uuid.UUID, user: CurrentUser, comments: Comments):
    await comments.delete_comment(comment_id, user.id)
    return SuccessResponse(message="Comment deleted")
