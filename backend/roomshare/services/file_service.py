"""File Service — room file uploads and uploader-only deletion.

Invariants:
    - Object path is rooms/<room id>/<ms timestamp>_<base name>; the path is the file's key
    - A blob whose record insert fails is removed again (no orphan blobs)
    - One failing file never aborts the rest of a multi-file upload; failures are reported
    - Only the room creator or a member may upload
    - Only the uploader may delete a file; blob removed first, then the record
    - Deleting an already-deleted file is a no-op (concurrent deletes are idempotent)

Design Decisions:
    - Per-file outcome list instead of all-or-nothing: matches drag-and-drop of many files
    - Size limit checked before the upload call
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from roomshare.core.domain_types import FileCategory, RoomId
from roomshare.core.errors import (
    ErrorContext, InputValidationError, ObjectStoreError, PermissionDeniedError, RoomShareError,
)
from roomshare.core.records import FileRecord
from roomshare.services.app_context import AppContext, require_session
from roomshare.services.room_service import (
    require_room_id, require_room_member, room_storage_prefix,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadItem:
    file_name: str
    data: bytes


@dataclass(frozen=True)
class UploadFailure:
    file_name: str
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"file_name": self.file_name, "code": self.code, "message": self.message}


@dataclass
class UploadOutcome:
    uploaded: list[FileRecord] = field(default_factory=list)
    failed: list[UploadFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "uploaded": [f.to_dict() for f in self.uploaded],
            "failed": [f.to_dict() for f in self.failed],
        }


def base_file_name(file_name: str) -> str:
    """Strip client-side directories; what remains is shown and stored."""
    base = PurePosixPath((file_name or "").replace("\\", "/")).name
    if not base or base in (".", ".."):
        raise InputValidationError("File name is invalid.", "file_name")
    return base


def build_storage_path(room_id: RoomId, file_name: str, now_ms: int) -> str:
    return f"{room_storage_prefix(room_id)}/{now_ms}_{base_file_name(file_name)}"


def parse_category(raw: str | FileCategory | None) -> FileCategory:
    if isinstance(raw, FileCategory):
        return raw
    try:
        return FileCategory((raw or FileCategory.ASSIGNMENT.value).strip().lower())
    except ValueError:
        raise InputValidationError(
            f"Category must be one of: {', '.join(c.value for c in FileCategory)}.",
            "category",
        )


class FileService:
    def __init__(self, ctx: AppContext, clock: Callable[[], int] | None = None):
        self._ctx = ctx
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)

    async def upload(
        self,
        raw_room_id,
        items: Iterable[UploadItem],
        category: str | FileCategory | None = None,
    ) -> UploadOutcome:
        room_id = require_room_id(raw_room_id)
        kind = parse_category(category)
        session = await require_session(self._ctx)
        await require_room_member(self._ctx, room_id, session.user_id)

        outcome = UploadOutcome()
        for item in items:
            try:
                record = await self._upload_one(room_id, session.user_id, item, kind)
            except RoomShareError as e:
                logger.warning(
                    f"Upload failed for {item.file_name}: {e.message}",
                    extra={"room_id": str(room_id), "error_code": e.code},
                )
                outcome.failed.append(UploadFailure(item.file_name, e.code, e.message))
                continue
            outcome.uploaded.append(record)
        return outcome

    async def _upload_one(self, room_id, user_id, item: UploadItem, kind: FileCategory) -> FileRecord:
        limit = self._ctx.settings.max_upload_bytes
        if len(item.data) > limit:
            raise InputValidationError(
                f"{item.file_name} exceeds the {limit} byte upload limit.", "file",
            )
        base = base_file_name(item.file_name)
        path = build_storage_path(room_id, base, self._clock())
        await self._ctx.objects.upload(path, item.data)
        try:
            return await self._ctx.files.create(
                room_id=room_id,
                uploaded_by=user_id,
                file_name=base,
                storage_path=path,
                file_url=self._ctx.objects.get_public_url(path),
                file_size=len(item.data),
                category=kind,
            )
        except RoomShareError:
            try:
                await self._ctx.objects.remove([path])
            except ObjectStoreError as cleanup:
                logger.error(
                    f"Orphan blob left after failed insert: {cleanup.message}",
                    extra={"room_id": str(room_id), "path": path},
                )
            raise

    async def delete(self, raw_room_id, storage_path: str) -> FileRecord | None:
        """Delete blob then record. Returns None when the file was already gone."""
        room_id = require_room_id(raw_room_id)
        session = await require_session(self._ctx)
        record = await self._ctx.files.get_by_path(storage_path)
        if record is None or record.room_id != room_id:
            return None
        if record.uploaded_by != session.user_id:
            raise PermissionDeniedError(
                "delete this file",
                ErrorContext(room_id=str(room_id), user_id=str(session.user_id)),
            )
        await self._ctx.objects.remove([storage_path])
        deleted = await self._ctx.files.delete_by_path(storage_path)
        logger.info(
            f"File deleted: {record.file_name}",
            extra={"room_id": str(room_id), "path": storage_path},
        )
        return record if deleted else None
