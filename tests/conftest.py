"""
Pytest fixtures for Project Hub tests.

Every test gets its own file-backed SQLite database (aiosqlite), so
concurrent units of work use separate connections exactly as they would
against PostgreSQL.
"""

import os
import tempfile
import uuid
from typing import AsyncGenerator, Awaitable, Callable, Optional

# Settings are read once and cached; point them at a throwaway database
# before anything imports src.database.
_tmp_dir = tempfile.mkdtemp(prefix="project-hub-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'app.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from src.config import get_settings

get_settings.cache_clear()

from src.database import SessionFactory, build_engine, build_session_factory, init_db, unit_of_work
from src.kernel.identity.jwt import JWTManager
from src.kernel.models import ActivityLog, Project, Task, User
from src.services import CommentService, FileService, GroupService, ProjectService, TaskService


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh schema in a per-test SQLite file."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> SessionFactory:
    return build_session_factory(db_engine)


@pytest.fixture
def make_user(session_factory: SessionFactory) -> Callable[..., Awaitable[User]]:
    """Factory creating users the way the auth service provisions them."""

    async def _make(full_name: str = "Test User", email: Optional[str] = None, is_active: bool = True) -> User:
        email = email or f"{full_name.split()[0].lower()}-{uuid.uuid4().hex[:8]}@example.com"
        user = User(email=email.lower(), full_name=full_name, is_active=is_active)
        async with unit_of_work(session_factory) as session:
            session.add(user)
        return user

    return _make


@pytest_asyncio.fixture
async def owner(make_user) -> User:
    return await make_user("Olivia Owner")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("Adam Admin")


@pytest_asyncio.fixture
async def member(make_user) -> User:
    return await make_user("Mia Member")


@pytest_asyncio.fixture
async def viewer(make_user) -> User:
    return await make_user("Victor Viewer")


@pytest_asyncio.fixture
async def outsider(make_user) -> User:
    return await make_user("Oscar Outsider")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.fixture
def project_service(session_factory) -> ProjectService:
    return ProjectService(session_factory)


@pytest.fixture
def group_service(session_factory) -> GroupService:
    return GroupService(session_factory)


@pytest.fixture
def task_service(session_factory) -> TaskService:
    return TaskService(session_factory)


@pytest.fixture
def comment_service(session_factory) -> CommentService:
    return CommentService(session_factory)


@pytest.fixture
def file_service(session_factory) -> FileService:
    return FileService(session_factory)


# ---------------------------------------------------------------------------
# Populated project
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def project(project_service: ProjectService, owner: User) -> Project:
    """A project owned by ``owner`` with no other members."""
    return await project_service.create_project(owner.id, "Test Project", description="For tests")


@pytest_asyncio.fixture
async def team_project(
    project_service: ProjectService,
    project: Project,
    owner: User,
    admin: User,
    member: User,
    viewer: User,
) -> Project:
    """``project`` with one admin, one member and one viewer."""
    await project_service.add_member(project.id, owner.id, admin.email, "admin")
    await project_service.add_member(project.id, owner.id, member.email, "member")
    await project_service.add_member(project.id, owner.id, viewer.email, "viewer")
    return project


@pytest_asyncio.fixture
async def task(task_service: TaskService, team_project: Project, owner: User) -> Task:
    return await task_service.create_task(team_project.id, owner.id, "Write the report")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def count_activity(session_factory) -> Callable[..., Awaitable[int]]:
    """Count activity entries in a project."""

    async def _count(project_id: uuid.UUID) -> int:
        async with unit_of_work(session_factory) as session:
            result = await session.execute(
                select(func.count()).select_from(ActivityLog).where(ActivityLog.project_id == project_id)
            )
            return result.scalar_one()

    return _count


@pytest.fixture
def load_activity(session_factory) -> Callable[..., Awaitable[list]]:
    """All activity entries of a project, oldest first."""

    async def _load(project_id: uuid.UUID) -> list:
        async with unit_of_work(session_factory) as session:
            result = await session.execute(
                select(ActivityLog)
                .where(ActivityLog.project_id == project_id)
                .order_by(ActivityLog.sequence)
            )
            return list(result.scalars().all())

    return _load


@pytest.fixture
def jwt_manager() -> JWTManager:
    """JWT manager for tests."""
    return JWTManager(
        secret_key="test-secret-key-for-testing-only-0123456789",
        algorithm="HS256",
        access_token_expire_minutes=30,
    )
