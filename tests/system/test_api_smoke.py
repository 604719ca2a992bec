"""
End-to-end smoke tests through the HTTP API.

Drives the FastAPI app in-process with httpx and checks that domain errors
surface with the right status codes.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.database import get_session_factory
from src.kernel.identity.jwt import create_access_token
from src.main import app


def auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest_asyncio.fixture
async def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class TestHealthAndAuth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/projects")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_bad_token(self, client):
        response = await client.get("/api/v1/projects", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_user(self, client, make_user):
        gone = await make_user("Gina Gone", is_active=False)
        response = await client.get("/api/v1/projects", headers=auth(gone))
        assert response.status_code == 401


class TestProjectFlow:

    @pytest.mark.asyncio
    async def test_full_flow(self, client, owner, member, outsider):
        """Create a project, invite a member, work on a task and read the activity."""
        response = await client.post(
            "/api/v1/projects", json={"name": "Launch", "description": "Q3 launch"}, headers=auth(owner)
        )
        assert response.status_code == 201
        project = response.json()
        assert project["role"] == "owner"
        project_id = project["id"]

        response = await client.post(
            f"/api/v1/projects/{project_id}/members",
            json={"email": member.email, "role": "member"},
            headers=auth(owner),
        )
        assert response.status_code == 201

        response = await client.post(
            f"/api/v1/projects/{project_id}/tasks", json={"title": "Draft copy"}, headers=auth(member)
        )
        assert response.status_code == 201
        task_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/tasks/{task_id}/comments", json={"content": "Started"}, headers=auth(member)
        )
        assert response.status_code == 201

        response = await client.get(f"/api/v1/projects/{project_id}/activity", headers=auth(member))
        assert response.status_code == 200
        page = response.json()
        assert page["total"] == 4
        assert [item["action"] for item in page["items"]] == [
            "commented", "created", "member_added", "created",
        ]
        assert page["items"][0]["user_name"] == "Mia Member"

        response = await client.get(
            f"/api/v1/projects/{project_id}/activity",
            params={"entity_type": "comment", "limit": 1},
            headers=auth(owner),
        )
        assert response.json()["has_more"] is False
        assert response.json()["total"] == 1

        response = await client.get(f"/api/v1/tasks/{task_id}/activity", headers=auth(owner))
        assert [item["entity_type"] for item in response.json()] == ["comment", "task"]

        response = await client.get(f"/api/v1/projects/{project_id}/activity", headers=auth(outsider))
        assert response.status_code == 403


class TestErrorMapping:

    @pytest.mark.asyncio
    async def test_unknown_project_is_403(self, client, owner):
        response = await client.get(f"/api/v1/projects/{uuid.uuid4()}", headers=auth(owner))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_invitee_is_404(self, client, project, owner):
        response = await client.post(
            f"/api/v1/projects/{project.id}/members",
            json={"email": "nobody@example.com", "role": "member"},
            headers=auth(owner),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_second_owner_is_409(self, client, project, owner, member):
        response = await client.post(
            f"/api/v1/projects/{project.id}/members",
            json={"email": member.email, "role": "owner"},
            headers=auth(owner),
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_empty_update_is_400(self, client, project, owner):
        response = await client.patch(f"/api/v1/projects/{project.id}", json={}, headers=auth(owner))
        assert response.status_code == 400
        assert response.json()["detail"] == "No fields to update"

    @pytest.mark.asyncio
    async def test_null_auto_schedule_is_400(self, client, project, owner):
        response = await client.patch(
            f"/api/v1/projects/{project.id}", json={"auto_schedule": None}, headers=auth(owner)
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "auto_schedule cannot be null"

    @pytest.mark.asyncio
    async def test_bad_body_is_422(self, client, project, owner):
        response = await client.post(
            f"/api/v1/projects/{project.id}/members",
            json={"email": "not-an-email", "role": "member"},
            headers=auth(owner),
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Validation error"

    @pytest.mark.asyncio
    async def test_bad_limit_is_400(self, client, project, owner):
        response = await client.get(
            f"/api/v1/projects/{project.id}/activity", params={"limit": 0}, headers=auth(owner)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_viewer_write_is_403(self, client, team_project, viewer):
        response = await client.post(
            f"/api/v1/projects/{team_project.id}/tasks", json={"title": "Nope"}, headers=auth(viewer)
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Resource not found or access denied"
