"""
Kernel Data Models

Core SQLAlchemy models: users, projects and memberships, groups, tasks with
their comments and attachments, and the activity log.
"""

from src.kernel.models.base import Base, TimestampMixin, SoftDeleteMixin, generate_uuid, utcnow
from src.kernel.models.user import User
from src.kernel.models.project import (
    Project,
    ProjectStatus,
    ProjectRole,
    ProjectMembership,
)
from src.kernel.models.group import Group, GroupMembership
from src.kernel.models.task import (
    Task,
    TaskStatus,
    TaskPriority,
    Comment,
    FileAttachment,
)
from src.kernel.models.activity_log import ActivityLog, ActivityAction, EntityType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "generate_uuid",
    "utcnow",
    # User
    "User",
    # Project
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
    # Activity Log
    "ActivityLog",
    "ActivityAction",
    "EntityType",
]
