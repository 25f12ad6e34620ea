"""Room Routes — dashboard, create, join, enter and delete rooms for one client.

Invariants:
    - Room creation and join move the client onto the room screen (see ClientSession)
    - Entering a room the guard refuses returns the redirected view with room=None
    - The join code is only included for the room's creator
"""

import logging

from fastapi import APIRouter, Depends, status

from roomshare.api.routes.clients import client_dependency
from roomshare.schemas.room import RoomCreate, RoomJoin
from roomshare.services.client_session import ClientSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/clients/{client_id}", tags=["rooms"])


@router.get("/dashboard")
async def get_dashboard(client: ClientSession = Depends(client_dependency)):
    dashboard = await client.dashboard()
    return {**client.view(), "dashboard": dashboard.to_dict()}


@router.post("/rooms", status_code=status.HTTP_201_CREATED)
async def create_room(
    body: RoomCreate, client: ClientSession = Depends(client_dependency),
):
    room = await client.create_room(body.name)
    return {**client.view(), "created_room": room.to_dict()}


@router.post("/rooms/join")
async def join_room(
    body: RoomJoin, client: ClientSession = Depends(client_dependency),
):
    result = await client.join_room(body.join_code)
    return {
        **client.view(),
        "joined_room": result.room.to_dict(include_join_code=False),
        "already_member": result.already_member,
    }


@router.get("/rooms/{room_id}")
async def enter_room(
    room_id: str, client: ClientSession = Depends(client_dependency),
):
    """Navigate onto the room screen and return its metadata and content."""
    details = await client.enter_room(room_id)
    return {**client.view(), "details": details.to_dict() if details else None}


@router.delete("/rooms/{room_id}")
async def delete_room(
    room_id: str, client: ClientSession = Depends(client_dependency),
):
    await client.delete_room(room_id)
    return client.view()
