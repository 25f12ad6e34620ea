"""Room Content Routes — file uploads/deletes, comments and the live room stream.

Invariants:
    - Uploads always answer with the per-file outcome, failures included (never a silent drop)
    - The SSE stream emits a snapshot on connect and after every replica change
    - The stream ends with a "closed" event once the client leaves the room

Design Decisions:
    - StreamingResponse for SSE with anti-buffering headers
    - follow=false returns the current snapshot once and closes (polling clients, tests)
    - Heartbeat comments keep idle proxies from dropping the connection
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse

from roomshare.api.routes.clients import client_dependency
from roomshare.core.errors import RoomShareError
from roomshare.schemas.room import CommentCreate
from roomshare.services.client_session import ClientSession
from roomshare.services.file_service import UploadItem

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/clients/{client_id}/rooms/{room_id}", tags=["room-content"])

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}
_HEARTBEAT_SECONDS = 15.0


@router.post("/files")
async def upload_files(
    room_id: str,
    files: list[UploadFile] = File(...),
    category: str = Form("assignment"),
    client: ClientSession = Depends(client_dependency),
):
    items = [UploadItem(f.filename or "upload", await f.read()) for f in files]
    outcome = await client.upload_files(room_id, items, category)
    return {**outcome.to_dict(), "room": client.view()["room"]}


@router.delete("/files")
async def delete_file(
    room_id: str,
    path: str = Query(..., min_length=1),
    client: ClientSession = Depends(client_dependency),
):
    record = await client.delete_file(room_id, path)
    return {"deleted": record is not None, "room": client.view()["room"]}


@router.post("/comments", status_code=201)
async def post_comment(
    room_id: str,
    body: CommentCreate,
    client: ClientSession = Depends(client_dependency),
):
    comment = await client.post_comment(room_id, body.content)
    return {"comment": comment.to_dict(), "room": client.view()["room"]}


@router.get("/stream")
async def stream_room(
    room_id: str,
    follow: bool = True,
    client: ClientSession = Depends(client_dependency),
):
    """SSE stream of room snapshots for the client's open room."""
    details = await client.enter_room(room_id)
    reconciler = client.reconciler
    changed = asyncio.Event()
    handle = reconciler.add_listener(changed.set)

    async def event_generator():
        try:
            if details is None:
                yield _sse_line({"type": "redirect", "data": client.view()})
                return
            opened_room = reconciler.room_id
            yield _sse_line({"type": "snapshot", "data": reconciler.snapshot()})
            while follow:
                try:
                    await asyncio.wait_for(changed.wait(), _HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                changed.clear()
                if reconciler.room_id != opened_room:
                    break
                yield _sse_line({"type": "snapshot", "data": reconciler.snapshot()})
            if follow:
                yield _sse_line({"type": "closed", "data": {"location": client.location}})
        except asyncio.CancelledError:
            logger.info(
                "Client disconnected from room stream",
                extra={"client_id": client.client_id, "room_id": room_id},
            )
            return
        except RoomShareError as e:
            yield _sse_line(e.to_sse_event())
        finally:
            reconciler.remove_listener(handle)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


def _sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
