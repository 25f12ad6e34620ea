"""File Service — uploads, per-file failures, blob cleanup and uploader-only delete."""

from uuid import uuid4

import pytest

from roomshare.core.domain_types import FileCategory
from roomshare.core.errors import (
    InputValidationError, PermissionDeniedError, ResourceNotFoundError, StoreError,
)
from roomshare.services.file_service import (
    FileService, UploadItem, build_storage_path, parse_category,
)


def test_storage_path_keeps_only_the_base_name():
    room_id = uuid4()
    assert build_storage_path(room_id, "C:\\docs\\hw1.pdf", 42) == f"rooms/{room_id}/42_hw1.pdf"
    assert build_storage_path(room_id, "../../etc/passwd", 42) == f"rooms/{room_id}/42_passwd"


def test_storage_path_rejects_empty_names():
    with pytest.raises(InputValidationError):
        build_storage_path(uuid4(), "..", 1)


def test_category_defaults_to_assignment():
    assert parse_category(None) is FileCategory.ASSIGNMENT
    assert parse_category(" Notes ") is FileCategory.NOTES
    with pytest.raises(InputValidationError):
        parse_category("homework")


async def test_upload_stores_blob_and_record(signed_up, objects):
    alice = await signed_up("alice")
    room = await alice.create_room("Files")

    outcome = await alice.upload_files(room.id, [UploadItem("notes.md", b"# hi")], "notes")
    assert outcome.failed == []
    record = outcome.uploaded[0]
    assert record.file_name == "notes.md"
    assert record.category is FileCategory.NOTES
    assert record.file_size == 4
    assert record.storage_path.startswith(f"rooms/{room.id}/")
    assert record.file_url == objects.get_public_url(record.storage_path)
    assert await objects.exists(record.storage_path)
    assert [f.storage_path for f in alice.reconciler.replica.file_list] == [record.storage_path]


async def test_oversized_file_fails_alone(signed_up, objects):
    alice = await signed_up("alice")
    room = await alice.create_room("Files")

    outcome = await alice.upload_files(
        room.id, [UploadItem("big.bin", b"x" * 2048), UploadItem("small.txt", b"ok")],
    )
    assert [f.file_name for f in outcome.uploaded] == ["small.txt"]
    assert outcome.failed[0].file_name == "big.bin"
    assert outcome.failed[0].code == "VALIDATION_ERROR"


async def test_failed_record_insert_removes_blob(signed_up, objects):
    alice = await signed_up("alice")
    room = await alice.create_room("Files")

    class BrokenFiles:
        def __init__(self, inner):
            self._inner = inner

        async def create(self, **kwargs):
            raise StoreError("disk full", "commit")

        def __getattr__(self, name):
            return getattr(self._inner, name)

    ctx = alice.ctx
    ctx.files = BrokenFiles(ctx.files)
    service = FileService(ctx, clock=lambda: 1234)
    outcome = await service.upload(room.id, [UploadItem("a.txt", b"a")])

    assert outcome.uploaded == []
    assert outcome.failed[0].code == "DATABASE_ERROR"
    assert not await objects.exists(f"rooms/{room.id}/1234_a.txt")


async def test_upload_to_missing_room_is_not_found(signed_up):
    alice = await signed_up("alice")
    with pytest.raises(ResourceNotFoundError):
        await alice.files.upload(uuid4(), [UploadItem("a.txt", b"a")])


async def test_only_uploader_may_delete(signed_up, objects):
    alice = await signed_up("alice")
    bob = await signed_up("bob")
    room = await alice.create_room("Shared")
    await bob.join_room(room.join_code)
    outcome = await bob.upload_files(room.id, [UploadItem("bob.txt", b"b")])
    path = outcome.uploaded[0].storage_path

    with pytest.raises(PermissionDeniedError):
        await alice.delete_file(room.id, path)
    assert await objects.exists(path)

    deleted = await bob.delete_file(room.id, path)
    assert deleted is not None
    assert not await objects.exists(path)
    assert await bob.ctx.files.get_by_path(path) is None
    assert bob.reconciler.replica.file_list == []


async def test_deleting_twice_is_a_noop(signed_up):
    alice = await signed_up("alice")
    room = await alice.create_room("Files")
    outcome = await alice.upload_files(room.id, [UploadItem("a.txt", b"a")])
    path = outcome.uploaded[0].storage_path

    assert await alice.delete_file(room.id, path) is not None
    assert await alice.delete_file(room.id, path) is None


async def test_file_from_another_room_is_not_deleted(signed_up):
    alice = await signed_up("alice")
    first = await alice.create_room("First")
    second = await alice.create_room("Second")
    outcome = await alice.upload_files(first.id, [UploadItem("a.txt", b"a")])
    path = outcome.uploaded[0].storage_path

    assert await alice.files.delete(second.id, path) is None
    assert await alice.ctx.files.get_by_path(path) is not None


async def test_non_member_cannot_upload(signed_up, objects):
    alice = await signed_up("alice")
    mallory = await signed_up("mallory")
    room = await alice.create_room("Private")

    service = FileService(mallory.ctx, clock=lambda: 99)
    with pytest.raises(PermissionDeniedError):
        await service.upload(room.id, [UploadItem("m.txt", b"m")])
    assert not await objects.exists(f"rooms/{room.id}/99_m.txt")
    assert await alice.ctx.files.list_for_room(room.id) == []
