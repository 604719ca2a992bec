"""
Activity log schemas.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from src.kernel.events.activity_query import ActivityItem
from src.schemas.common import enum_val


class ActivityResponse(BaseModel):
    """One audit entry with its actor."""

    id: uuid.UUID
    project_id: uuid.UUID
    project_name: Optional[str] = None
    sequence: int
    user_id: uuid.UUID
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    entity_type: str
    entity_id: Optional[uuid.UUID]
    action: str
    changes: Dict[str, Any]
    created_at: datetime

    @classmethod
    def build(cls, item: ActivityItem) -> "ActivityResponse":
        entry = item.entry
        return cls(
            id=entry.id,
            project_id=entry.project_id,
            project_name=item.project_name,
            sequence=entry.sequence,
            user_id=entry.user_id,
            user_name=item.actor_name,
            user_email=item.actor_email,
            entity_type=enum_val(entry.entity_type),
            entity_id=entry.entity_id,
            action=enum_val(entry.action),
            changes=entry.changes,
            created_at=entry.created_at,
        )


class ActivityPageResponse(BaseModel):
    """A page of project activity."""

    items: List[ActivityResponse]
    total: int
    limit: int
    offset: int
    has_more: bool = False
