"""
Pydantic schemas for API request/response validation.
"""

from src.schemas.common import ErrorResponse, SuccessResponse, HealthResponse
from src.schemas.project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    MemberAddRequest,
    MemberRoleUpdate,
    MemberResponse,
)
from src.schemas.group import (
    GroupCreate,
    GroupUpdate,
    GroupResponse,
    GroupMemberAdd,
    GroupMemberResponse,
)
from src.schemas.task import TaskCreate, TaskUpdate, TaskResponse
from src.schemas.comment import CommentCreate, CommentUpdate, CommentResponse
from src.schemas.file import FileRegister, FileResponse
from src.schemas.activity import ActivityResponse, ActivityPageResponse

__all__ = [
    # Common
    "ErrorResponse",
    "SuccessResponse",
    "HealthResponse",
    # Projects
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "MemberAddRequest",
    "MemberRoleUpdate",
    "MemberResponse",
    # Groups
    "GroupCreate",
    "GroupUpdate",
    "GroupResponse",
    "GroupMemberAdd",
    "GroupMemberResponse",
    # Tasks
    "TaskCreate",
    "TaskUpdate",
    "TaskResponse",
    # Comments
    "CommentCreate",
    "CommentUpdate",
    "CommentResponse",
    # Files
    "FileRegister",
    "FileResponse",
    # Activity
    "ActivityResponse",
    "ActivityPageResponse",
]
