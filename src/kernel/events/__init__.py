"""
Activity audit trail.

Append-only entries recorded inside the mutation's transaction, and the
membership-checked queries that read them back.
"""

from src.kernel.events.changes import (
    BaseChange,
    Change,
    Commented,
    Created,
    Deleted,
    MemberAdded,
    MemberRemoved,
    RoleChanged,
    Updated,
    Uploaded,
    parse_change,
)
from src.kernel.events.activity_recorder import ActivityRecorder
from src.kernel.events.activity_query import ActivityItem, ActivityPage, ActivityQueryEngine

__all__ = [
    "BaseChange",
    "Change",
    "Commented",
    "Created",
    "Deleted",
    "MemberAdded",
    "MemberRemoved",
    "RoleChanged",
    "Updated",
    "Uploaded",
    "parse_change",
    "ActivityRecorder",
    "ActivityItem",
    "ActivityPage",
    "ActivityQueryEngine",
]
