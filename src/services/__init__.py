"""
Domain services.

Each mutating operation runs resolve -> authorize -> mutate + record in a
single unit of work.
"""

from src.services.base import DomainService
from src.services.project_service import MemberInfo, ProjectAccess, ProjectService
from src.services.group_service import GroupDetail, GroupMemberInfo, GroupService, GroupSummary
from src.services.task_service import TaskService
from src.services.comment_service import CommentService, CommentView
from src.services.file_service import FileService

__all__ = [
    "DomainService",
    "ProjectService",
    "ProjectAccess",
    "MemberInfo",
    "GroupService",
    "GroupSummary",
    "GroupDetail",
    "GroupMemberInfo",
    "TaskService",
    "CommentService",
    "CommentView",
    "FileService",
]
