"""Integration tests for the activity recorder."""

import asyncio
import uuid

import pytest
from sqlalchemy import select

from src.database import run_in_transaction, unit_of_work
from src.kernel.errors import NotFoundError, ValidationError
from src.kernel.events import ActivityRecorder, Commented, Created, Updated
from src.kernel.models import ActivityLog, Project
from src.kernel.models.activity_log import ActivityAction, EntityType


async def _project_seq(session_factory, project_id):
    async with unit_of_work(session_factory) as session:
        result = await session.execute(select(Project.activity_seq).where(Project.id == project_id))
        return result.scalar_one()


class TestRecord:

    @pytest.mark.asyncio
    async def test_sequences_start_at_one_and_increase(self, session_factory, project, owner, load_activity):
        """Creating the project is entry 1; later entries follow on."""
        for n in range(3):
            async with unit_of_work(session_factory) as session:
                await ActivityRecorder(session).record(
                    project_id=project.id,
                    actor_id=owner.id,
                    entity_type=EntityType.PROJECT,
                    entity_id=project.id,
                    action=ActivityAction.UPDATED,
                    changes=Updated(before={"name": f"v{n}"}, after={"name": f"v{n + 1}"}),
                )

        entries = await load_activity(project.id)
        assert [e.sequence for e in entries] == [1, 2, 3, 4]
        assert await _project_seq(session_factory, project.id) == 4

    @pytest.mark.asyncio
    async def test_stores_typed_payload(self, session_factory, project, owner):
        task_id = uuid.uuid4()
        async with unit_of_work(session_factory) as session:
            entry = await ActivityRecorder(session).record(
                project_id=project.id,
                actor_id=owner.id,
                entity_type=EntityType.COMMENT,
                entity_id=uuid.uuid4(),
                action=ActivityAction.COMMENTED,
                changes=Commented(task_id=task_id, excerpt="First!"),
            )

        assert entry.changes == {"kind": "commented", "task_id": str(task_id), "excerpt": "First!"}
        assert entry.entity_type == "comment"
        assert entry.action == "commented"

    @pytest.mark.asyncio
    async def test_accepts_mapping_payload(self, session_factory, project, owner):
        async with unit_of_work(session_factory) as session:
            entry = await ActivityRecorder(session).record(
                project_id=project.id,
                actor_id=owner.id,
                entity_type=EntityType.PROJECT,
                entity_id=project.id,
                action="updated",
                changes={"kind": "updated", "before": {"status": "planning"}, "after": {"status": "active"}},
            )
        assert entry.sequence == 2

    @pytest.mark.asyncio
    async def test_kind_must_match_action(self, session_factory, project, owner, count_activity):
        """A created payload cannot be filed as a deletion."""
        with pytest.raises(ValidationError):
            async with unit_of_work(session_factory) as session:
                await ActivityRecorder(session).record(
                    project_id=project.id,
                    actor_id=owner.id,
                    entity_type=EntityType.PROJECT,
                    entity_id=project.id,
                    action=ActivityAction.DELETED,
                    changes=Created(snapshot={"name": "x"}),
                )
        assert await count_activity(project.id) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("changes", [{}, {"kind": "updated", "before": {}, "after": {}}, {"kind": "bogus"}])
    async def test_malformed_changes_rejected(self, session_factory, project, owner, changes):
        with pytest.raises(ValidationError):
            async with unit_of_work(session_factory) as session:
                await ActivityRecorder(session).record(
                    project_id=project.id,
                    actor_id=owner.id,
                    entity_type=EntityType.PROJECT,
                    entity_id=project.id,
                    action=ActivityAction.UPDATED,
                    changes=changes,
                )

    @pytest.mark.asyncio
    async def test_unknown_project(self, session_factory, owner):
        with pytest.raises(NotFoundError):
            async with unit_of_work(session_factory) as session:
                await ActivityRecorder(session).record(
                    project_id=uuid.uuid4(),
                    actor_id=owner.id,
                    entity_type=EntityType.PROJECT,
                    entity_id=None,
                    action=ActivityAction.UPDATED,
                    changes=Updated(before={"a": 1}, after={"a": 2}),
                )


class TestAtomicity:

    @pytest.mark.asyncio
    async def test_rollback_discards_entry_and_sequence(self, session_factory, project, owner, count_activity):
        """If the surrounding work fails, neither the entry nor the counter bump survive."""

        async def work(session):
            await ActivityRecorder(session).record(
                project_id=project.id,
                actor_id=owner.id,
                entity_type=EntityType.PROJECT,
                entity_id=project.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before={"name": "a"}, after={"name": "b"}),
            )
            raise RuntimeError("mutation failed after recording")

        with pytest.raises(RuntimeError):
            await run_in_transaction(session_factory, work)

        assert await count_activity(project.id) == 1
        assert await _project_seq(session_factory, project.id) == 1

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back(self, session_factory, project, owner, count_activity):
        recorded = asyncio.Event()

        async def work(session):
            await ActivityRecorder(session).record(
                project_id=project.id,
                actor_id=owner.id,
                entity_type=EntityType.PROJECT,
                entity_id=project.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before={"name": "a"}, after={"name": "b"}),
            )
            recorded.set()
            await asyncio.sleep(30)

        pending = asyncio.create_task(run_in_transaction(session_factory, work))
        await recorded.wait()
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        assert await count_activity(project.id) == 1
        assert await _project_seq(session_factory, project.id) == 1

    @pytest.mark.asyncio
    async def test_next_entry_reuses_rolled_back_number(self, session_factory, project, owner, load_activity):
        """Sequences stay gap-free across a failed unit."""

        async def failing(session):
            await ActivityRecorder(session).record(
                project_id=project.id,
                actor_id=owner.id,
                entity_type=EntityType.PROJECT,
                entity_id=project.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before={"x": 1}, after={"x": 2}),
            )
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await run_in_transaction(session_factory, failing)

        async with unit_of_work(session_factory) as session:
            entry = await ActivityRecorder(session).record(
                project_id=project.id,
                actor_id=owner.id,
                entity_type=EntityType.PROJECT,
                entity_id=project.id,
                action=ActivityAction.UPDATED,
                changes=Updated(before={"x": 1}, after={"x": 3}),
            )

        assert entry.sequence == 2
        assert [e.sequence for e in await load_activity(project.id)] == [1, 2]


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_writers_get_consecutive_numbers(
        self, comment_service, task, owner, admin, member, load_activity
    ):
        """Parallel comments on one project never share or skip a sequence number."""
        authors = [owner, admin, member] * 3

        await asyncio.gather(*[
            comment_service.create_comment(task.id, author.id, f"Comment {i}")
            for i, author in enumerate(authors)
        ])

        entries = await load_activity(task.project_id)
        sequences = [e.sequence for e in entries]
        assert sequences == list(range(1, len(entries) + 1))
        assert sum(1 for e in entries if e.action == "commented") == len(authors)
