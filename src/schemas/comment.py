"""
Comment schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    """Comment response with author details."""

    id: uuid.UUID
    task_id: uuid.UUID
    user_id: uuid.UUID
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, comment, author_name=None, author_email=None) -> "CommentResponse":
        return cls(
            id=comment.id,
            task_id=comment.task_id,
            user_id=comment.user_id,
            author_name=author_name,
            author_email=author_email,
            content=comment.content,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
