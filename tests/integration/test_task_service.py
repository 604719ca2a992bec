"""Integration tests for tasks."""

import uuid
from datetime import date

import pytest

from src.kernel.errors import ForbiddenError, NotFoundError, ValidationError


class TestCreateTask:

    @pytest.mark.asyncio
    async def test_records_snapshot(self, task, load_activity):
        last = (await load_activity(task.project_id))[-1]

        assert (last.entity_type, last.entity_id, last.action) == ("task", task.id, "created")
        snapshot = last.changes["snapshot"]
        assert snapshot["title"] == "Write the report"
        assert snapshot["status"] == "not_started"
        assert snapshot["priority"] == "medium"

    @pytest.mark.asyncio
    async def test_viewer_cannot_create(self, task_service, team_project, viewer):
        with pytest.raises(ForbiddenError):
            await task_service.create_task(team_project.id, viewer.id, "Sneaky")

    @pytest.mark.asyncio
    async def test_assignee_must_be_member(self, task_service, team_project, owner, outsider):
        with pytest.raises(ValidationError):
            await task_service.create_task(team_project.id, owner.id, "Outsourced", assigned_to=outsider.id)

    @pytest.mark.asyncio
    async def test_parent_from_other_project(self, task_service, project_service, team_project, owner):
        other = await project_service.create_project(owner.id, "Other")
        foreign = await task_service.create_task(other.id, owner.id, "Foreign")
        with pytest.raises(NotFoundError):
            await task_service.create_task(team_project.id, owner.id, "Child", parent_task_id=foreign.id)

    @pytest.mark.asyncio
    async def test_unknown_group(self, task_service, team_project, owner):
        with pytest.raises(NotFoundError):
            await task_service.create_task(team_project.id, owner.id, "Lost", assigned_group_id=uuid.uuid4())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs", [
        {"progress": 101},
        {"progress": -1},
        {"status": "done"},
        {"priority": "urgent"},
        {"start_date": date(2026, 3, 2), "end_date": date(2026, 3, 1)},
    ])
    async def test_invalid_values(self, task_service, team_project, owner, kwargs):
        with pytest.raises(ValidationError):
            await task_service.create_task(team_project.id, owner.id, "Bad", **kwargs)

    @pytest.mark.asyncio
    async def test_completed_on_create(self, task_service, team_project, owner):
        task = await task_service.create_task(team_project.id, owner.id, "Done already", status="completed")
        assert task.completed_at is not None


class TestUpdateTask:

    @pytest.mark.asyncio
    async def test_records_diff(self, task_service, task, owner, load_activity):
        await task_service.update_task(task.id, owner.id, {"title": "Write the final report", "priority": "medium"})

        last = (await load_activity(task.project_id))[-1]
        assert last.action == "updated"
        assert last.changes["before"] == {"title": "Write the report"}
        assert last.changes["after"] == {"title": "Write the final report"}

    @pytest.mark.asyncio
    async def test_completion_stamp(self, task_service, task, owner):
        done = await task_service.update_task(task.id, owner.id, {"status": "completed", "progress": 100})
        assert done.completed_at is not None

        reopened = await task_service.update_task(task.id, owner.id, {"status": "in_progress"})
        assert reopened.completed_at is None

    @pytest.mark.asyncio
    async def test_assignee_may_update(self, task_service, task, owner, member):
        await task_service.update_task(task.id, owner.id, {"assigned_to": member.id})

        updated = await task_service.update_task(task.id, member.id, {"progress": 50})
        assert updated.progress == 50

        with pytest.raises(ForbiddenError):
            await task_service.delete_task(task.id, member.id)

    @pytest.mark.asyncio
    async def test_member_cannot_update_others_task(self, task_service, task, member, count_activity):
        before = await count_activity(task.project_id)
        with pytest.raises(ForbiddenError):
            await task_service.update_task(task.id, member.id, {"title": "Mine"})
        assert await count_activity(task.project_id) == before

    @pytest.mark.asyncio
    async def test_not_own_parent(self, task_service, task, owner):
        with pytest.raises(ValidationError):
            await task_service.update_task(task.id, owner.id, {"parent_task_id": task.id})

    @pytest.mark.asyncio
    async def test_empty_update(self, task_service, task, owner):
        with pytest.raises(ValidationError):
            await task_service.update_task(task.id, owner.id, {})


class TestDeleteAndRead:

    @pytest.mark.asyncio
    async def test_member_deletes_own_task(self, task_service, team_project, member, load_activity):
        mine = await task_service.create_task(team_project.id, member.id, "Scratch")
        await task_service.delete_task(mine.id, member.id)

        last = (await load_activity(team_project.id))[-1]
        assert (last.action, last.changes["snapshot"]["title"]) == ("deleted", "Scratch")
        with pytest.raises(ForbiddenError):
            await task_service.get_task(mine.id, member.id)

    @pytest.mark.asyncio
    async def test_admin_deletes_any_task(self, task_service, task, admin):
        await task_service.delete_task(task.id, admin.id)
        assert await task_service.list_tasks(task.project_id, admin.id) == []

    @pytest.mark.asyncio
    async def test_list_filters(self, task_service, task, team_project, owner, member, viewer):
        await task_service.create_task(team_project.id, owner.id, "Assigned", assigned_to=member.id)

        assert len(await task_service.list_tasks(team_project.id, viewer.id)) == 2
        assigned = await task_service.list_tasks(team_project.id, viewer.id, assigned_to=member.id)
        assert [t.title for t in assigned] == ["Assigned"]
        assert await task_service.list_tasks(team_project.id, viewer.id, status="blocked") == []

    @pytest.mark.asyncio
    async def test_outsider_cannot_read(self, task_service, task, outsider):
        with pytest.raises(ForbiddenError):
            await task_service.get_task(task.id, outsider.id)
        with pytest.raises(ForbiddenError):
            await task_service.list_tasks(task.project_id, outsider.id)
