"""Integration tests for project and group role resolution."""

import uuid

import pytest

from src.database import unit_of_work
from src.kernel.errors import NotFoundError
from src.kernel.models import ProjectRole
from src.kernel.permissions import MembershipResolver


class TestResolveRole:

    @pytest.mark.asyncio
    async def test_roles_of_members(self, session_factory, team_project, owner, admin, member, viewer):
        async with unit_of_work(session_factory) as session:
            resolver = MembershipResolver(session)
            roles = [await resolver.resolve_role(u.id, team_project.id) for u in (owner, admin, member, viewer)]

        assert roles == [ProjectRole.OWNER, ProjectRole.ADMIN, ProjectRole.MEMBER, ProjectRole.VIEWER]

    @pytest.mark.asyncio
    async def test_non_member_is_none(self, session_factory, team_project, outsider):
        async with unit_of_work(session_factory) as session:
            assert await MembershipResolver(session).resolve_role(outsider.id, team_project.id) is None

    @pytest.mark.asyncio
    async def test_unknown_project(self, session_factory, owner):
        async with unit_of_work(session_factory) as session:
            with pytest.raises(NotFoundError):
                await MembershipResolver(session).resolve_role(owner.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_deleted_project(self, session_factory, project_service, project, owner):
        await project_service.delete_project(project.id, owner.id)
        async with unit_of_work(session_factory) as session:
            with pytest.raises(NotFoundError):
                await MembershipResolver(session).resolve_role(owner.id, project.id)


class TestResolveGroupRole:

    @pytest.mark.asyncio
    async def test_live_group(self, session_factory, group_service, team_project, owner, member):
        group = await group_service.create_group(team_project.id, owner.id, "Design")

        async with unit_of_work(session_factory) as session:
            project_id, role = await MembershipResolver(session).resolve_group_role(member.id, group.id)

        assert project_id == team_project.id
        assert role is ProjectRole.MEMBER

    @pytest.mark.asyncio
    async def test_non_member_gets_project_and_none(self, session_factory, group_service, team_project, owner, outsider):
        group = await group_service.create_group(team_project.id, owner.id, "Design")

        async with unit_of_work(session_factory) as session:
            project_id, role = await MembershipResolver(session).resolve_group_role(outsider.id, group.id)

        assert project_id == team_project.id
        assert role is None

    @pytest.mark.asyncio
    async def test_unknown_group(self, session_factory, owner):
        async with unit_of_work(session_factory) as session:
            with pytest.raises(NotFoundError):
                await MembershipResolver(session).resolve_group_role(owner.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_deleted_group(self, session_factory, group_service, team_project, owner):
        group = await group_service.create_group(team_project.id, owner.id, "Design")
        await group_service.delete_group(group.id, owner.id)

        async with unit_of_work(session_factory) as session:
            with pytest.raises(NotFoundError):
                await MembershipResolver(session).resolve_group_role(owner.id, group.id)

    @pytest.mark.asyncio
    async def test_group_of_deleted_project(self, session_factory, group_service, project_service, project, owner):
        """Project deletion removes its groups, so the group lookup already fails."""
        group = await group_service.create_group(project.id, owner.id, "Design")
        await project_service.delete_project(project.id, owner.id)

        async with unit_of_work(session_factory) as session:
            with pytest.raises(NotFoundError):
                await MembershipResolver(session).resolve_group_role(owner.id, group.id)
