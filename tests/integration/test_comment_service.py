"""Integration tests for comments."""

import pytest

from src.kernel.errors import ForbiddenError, ValidationError
from src.services.comment_service import MAX_COMMENT_LENGTH


class TestComments:

    @pytest.mark.asyncio
    async def test_member_cannot_delete_anothers_comment(
        self, comment_service, task, owner, member, load_activity
    ):
        """A (owner) comments, B (member) comments and fails to delete A's; A deletes their own."""
        first = await comment_service.create_comment(task.id, owner.id, "Please review section 2")
        await comment_service.create_comment(task.id, member.id, "On it")
        recorded = len(await load_activity(task.project_id))

        with pytest.raises(ForbiddenError):
            await comment_service.delete_comment(first.id, member.id)
        assert len(await load_activity(task.project_id)) == recorded

        await comment_service.delete_comment(first.id, owner.id)

        entries = await load_activity(task.project_id)
        assert len(entries) == recorded + 1
        last = entries[-1]
        assert (last.entity_type, last.entity_id, last.action) == ("comment", first.id, "deleted")
        assert last.changes["snapshot"]["content"] == "Please review section 2"

        remaining = await comment_service.list_comments(task.id, member.id)
        assert [view.comment.content for view in remaining] == ["On it"]

    @pytest.mark.asyncio
    async def test_records_excerpt(self, comment_service, task, member, load_activity):
        long_text = "x" * 250
        await comment_service.create_comment(task.id, member.id, long_text)

        last = (await load_activity(task.project_id))[-1]
        assert last.action == "commented"
        assert last.changes["excerpt"] == "x" * 100
        assert last.changes["task_id"] == str(task.id)

    @pytest.mark.asyncio
    async def test_viewer_cannot_comment(self, comment_service, task, viewer):
        with pytest.raises(ForbiddenError):
            await comment_service.create_comment(task.id, viewer.id, "Nice")

    @pytest.mark.asyncio
    async def test_outsider_cannot_read(self, comment_service, task, outsider):
        with pytest.raises(ForbiddenError):
            await comment_service.list_comments(task.id, outsider.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", "y" * (MAX_COMMENT_LENGTH + 1)])
    async def test_invalid_content(self, comment_service, task, member, content):
        with pytest.raises(ValidationError):
            await comment_service.create_comment(task.id, member.id, content)

    @pytest.mark.asyncio
    async def test_list_includes_author(self, comment_service, task, member):
        await comment_service.create_comment(task.id, member.id, "Hello")
        views = await comment_service.list_comments(task.id, member.id)
        assert views[0].author_name == "Mia Member"


class TestEditComment:

    @pytest.mark.asyncio
    async def test_author_edits(self, comment_service, task, member, load_activity):
        comment = await comment_service.create_comment(task.id, member.id, "Frist")
        edited = await comment_service.update_comment(comment.id, member.id, "First")

        assert edited.content == "First"
        last = (await load_activity(task.project_id))[-1]
        assert last.changes == {"kind": "updated", "before": {"content": "Frist"}, "after": {"content": "First"}}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("editor", ["admin", "owner"])
    async def test_nobody_else_edits(self, comment_service, task, owner, admin, member, editor):
        editors = {"owner": owner, "admin": admin}
        comment = await comment_service.create_comment(task.id, member.id, "Mine")
        with pytest.raises(ForbiddenError):
            await comment_service.update_comment(comment.id, editors[editor].id, "Theirs")

    @pytest.mark.asyncio
    async def test_admin_deletes_any(self, comment_service, task, member, admin):
        comment = await comment_service.create_comment(task.id, member.id, "Off topic")
        await comment_service.delete_comment(comment.id, admin.id)
        assert await comment_service.list_comments(task.id, admin.id) == []

    @pytest.mark.asyncio
    async def test_deleted_comment_is_gone(self, comment_service, task, member):
        comment = await comment_service.create_comment(task.id, member.id, "Temporary")
        await comment_service.delete_comment(comment.id, member.id)
        with pytest.raises(ForbiddenError):
            await comment_service.update_comment(comment.id, member.id, "Back again")
