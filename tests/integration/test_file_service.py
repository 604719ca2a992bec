"""Integration tests for file attachments."""

import pytest

from src.kernel.errors import ForbiddenError, ValidationError


class TestRegisterFile:

    @pytest.mark.asyncio
    async def test_records_upload(self, file_service, task, member, load_activity):
        attachment = await file_service.register_file(
            task.id, member.id, "notes.txt", "uploads/notes.txt", 512, "text/plain"
        )

        last = (await load_activity(task.project_id))[-1]
        assert (last.entity_type, last.entity_id, last.action) == ("file", attachment.id, "uploaded")
        assert last.changes["file_name"] == "notes.txt"
        assert last.changes["file_size"] == 512

    @pytest.mark.asyncio
    @pytest.mark.parametrize("file_name,file_size", [
        ("script.exe", 100),
        ("empty.pdf", 0),
        ("huge.pdf", 10 * 1024 * 1024 + 1),
        ("", 100),
    ])
    async def test_rejected_uploads(self, file_service, task, member, file_name, file_size, count_activity):
        before = await count_activity(task.project_id)
        with pytest.raises(ValidationError):
            await file_service.register_file(task.id, member.id, file_name, "uploads/x", file_size, "application/octet-stream")
        assert await count_activity(task.project_id) == before

    @pytest.mark.asyncio
    async def test_viewer_cannot_upload(self, file_service, task, viewer):
        with pytest.raises(ForbiddenError):
            await file_service.register_file(task.id, viewer.id, "a.pdf", "uploads/a.pdf", 10, "application/pdf")


class TestFileAccess:

    @pytest.mark.asyncio
    async def test_viewer_reads(self, file_service, task, member, viewer):
        attachment = await file_service.register_file(
            task.id, member.id, "plan.PDF", "uploads/plan.PDF", 2048, "application/pdf"
        )

        assert [f.id for f in await file_service.list_files(task.id, viewer.id)] == [attachment.id]
        assert (await file_service.get_file(attachment.id, viewer.id)).file_name == "plan.PDF"

    @pytest.mark.asyncio
    async def test_member_deletes_only_own(self, file_service, task, owner, member, admin):
        theirs = await file_service.register_file(task.id, owner.id, "a.png", "uploads/a.png", 10, "image/png")
        mine = await file_service.register_file(task.id, member.id, "b.png", "uploads/b.png", 10, "image/png")

        with pytest.raises(ForbiddenError):
            await file_service.delete_file(theirs.id, member.id)

        removed = await file_service.delete_file(mine.id, member.id)
        assert removed.file_path == "uploads/b.png"
        await file_service.delete_file(theirs.id, admin.id)

        assert await file_service.list_files(task.id, owner.id) == []

    @pytest.mark.asyncio
    async def test_outsider_denied(self, file_service, task, member, outsider):
        attachment = await file_service.register_file(task.id, member.id, "c.txt", "uploads/c.txt", 1, "text/plain")
        with pytest.raises(ForbiddenError):
            await file_service.get_file(attachment.id, outsider.id)
