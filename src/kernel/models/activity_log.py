"""
Immutable activity log for the project audit trail.

Rows are appended in the same transaction as the mutation they describe
and are never updated or deleted afterwards.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, JSON, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, generate_uuid, utcnow


class EntityType(str, Enum):
    """Kinds of entity an activity entry can describe."""
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"
    FILE = "file"
    GROUP = "group"


class ActivityAction(str, Enum):
    """What happened to the entity."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    COMMENTED = "commented"
    UPLOADED = "uploaded"
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"
    ROLE_CHANGED = "role_changed"


class ActivityLog(Base):
    """
    Append-only audit entry.

    ``sequence`` is assigned per project, starting at 1 and strictly
    increasing; (project_id, sequence) is unique.
    """

    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("projects.id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Actor
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Entity reference
    entity_type: Mapped[EntityType] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    action: Mapped[ActivityAction] = mapped_column(
        String(50),
        nullable=False,
    )

    # Typed change payload, serialized (always carries a "kind" key)
    changes: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("project_id", "sequence", name="uq_activity_logs_project_sequence"),
        Index("ix_activity_logs_entity", "entity_type", "entity_id"),
        Index("ix_activity_logs_project_action", "project_id", "action"),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog #{self.sequence} {self.entity_type}:{self.entity_id} {self.action}>"
