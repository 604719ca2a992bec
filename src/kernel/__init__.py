"""
Kernel Layer

The foundations every domain service builds on:
- Identity Core (who is calling)
- Permission Core (project membership, role policy, access guard)
- Activity audit trail (append-only, recorded in the mutation's transaction)

Invariants:
- Authorization is checked before any write; a denial writes nothing
- Every successful mutation records exactly one activity entry
- Activity entries are never updated or deleted
"""

from src.kernel.errors import (
    CoreError,
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
)
from src.kernel.models import (
    User,
    Project,
    ProjectStatus,
    ProjectRole,
    ProjectMembership,
    Group,
    GroupMembership,
    Task,
    TaskStatus,
    TaskPriority,
    Comment,
    FileAttachment,
    ActivityLog,
    ActivityAction,
    EntityType,
)

__all__ = [
    # Errors
    "CoreError",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    # Users & projects
    "User",
    "Project",
    "ProjectStatus",
    "ProjectRole",
    "ProjectMembership",
    # Groups
    "Group",
    "GroupMembership",
    # Tasks
    "Task",
    "TaskStatus",
    "TaskPriority",
    "Comment",
    "FileAttachment",
    # Activity
    "ActivityLog",
    "ActivityAction",
    "EntityType",
]
