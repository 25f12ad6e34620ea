"""Client Routes — client session lifecycle, auth flows and navigation.

Invariants:
    - Every response carries the client's view: session state, location, open room
    - Unknown client ids → 404 via ResourceNotFoundError (global handler)
    - Auth failures surface as 401 envelopes; the client's location is unchanged

Design Decisions:
    - client_id in the path, not a cookie: the API is consumed by a SPA that keeps
      its own id and may hold several tabs (one client id each)
"""

import logging

from fastapi import APIRouter, Depends, status

from roomshare.schemas.client import ClientOpen, Credentials, NavigateRequest, UsernameUpdate
from roomshare.services.client_session import (
    ClientSession, close_client, get_client, open_client,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/clients", tags=["clients"])


async def client_dependency(client_id: str) -> ClientSession:
    return get_client(client_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(body: ClientOpen | None = None):
    """Open a client session (or resume one) and resolve its initial screen."""
    client = await open_client(body.client_id if body else None)
    return client.view()


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client: ClientSession = Depends(client_dependency)):
    close_client(client.client_id)


@router.get("/{client_id}/state")
async def get_state(client: ClientSession = Depends(client_dependency)):
    return client.view()


@router.post("/{client_id}/navigate")
async def navigate(
    body: NavigateRequest, client: ClientSession = Depends(client_dependency),
):
    return await client.navigate(body.path, replace=body.replace)


@router.post("/{client_id}/back")
async def back(client: ClientSession = Depends(client_dependency)):
    return await client.back()


@router.post("/{client_id}/auth/sign-up")
async def sign_up(
    body: Credentials, client: ClientSession = Depends(client_dependency),
):
    return await client.sign_up(body.email, body.password)


@router.post("/{client_id}/auth/sign-in")
async def sign_in(
    body: Credentials, client: ClientSession = Depends(client_dependency),
):
    return await client.sign_in(body.email, body.password)


@router.post("/{client_id}/auth/sign-out")
async def sign_out(client: ClientSession = Depends(client_dependency)):
    return await client.sign_out()


@router.put("/{client_id}/profile/username")
async def set_username(
    body: UsernameUpdate, client: ClientSession = Depends(client_dependency),
):
    return await client.set_username(body.username)
