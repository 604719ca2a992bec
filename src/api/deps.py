"""
FastAPI dependencies: the caller's identity and the domain services.

Authorization is not decided here; the services check it on every call.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.database import SessionFactory, get_session_factory
from src.kernel.identity.identity_service import IdentityService
from src.kernel.identity.jwt import verify_access_token
from src.kernel.models.user import User
from src.services import (
    CommentService,
    FileService,
    GroupService,
    ProjectService,
    TaskService,
)


# Security scheme
security = HTTPBearer(auto_error=False)

Sessions = Annotated[SessionFactory, Depends(get_session_factory)]


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    session_factory: Sessions,
) -> User:
    """Get the authenticated user from the bearer token or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    async with session_factory() as session:
        user = await IdentityService(session).get_user_by_id(payload.sub)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_project_service(session_factory: Sessions) -> ProjectService:
    return ProjectService(session_factory)


def get_group_service(session_factory: Sessions) -> GroupService:
    return GroupService(session_factory)


def get_task_service(session_factory: Sessions) -> TaskService:
    return TaskService(session_factory)


def get_comment_service(session_factory: Sessions) -> CommentService:
    return CommentService(session_factory)


def get_file_service(session_factory: Sessions) -> FileService:
    return FileService(session_factory)


Projects = Annotated[ProjectService, Depends(get_project_service)]
Groups = Annotated[GroupService, Depends(get_group_service)]
Tasks = Annotated[TaskService, Depends(get_task_service)]
Comments = Annotated[CommentService, Depends(get_comment_service)]
Files = Annotated[FileService, Depends(get_file_service)]


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)
