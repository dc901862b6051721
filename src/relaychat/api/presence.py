"""Presence snapshot over HTTP.

Learn: Same list a client gets in `presence-list` frames, for clients
that want the initial state before opening a socket (and for the CLI).
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()


class PresenceRead(BaseModel):
    users: list[str]


@router.get("/presence", response_model=PresenceRead)
async def get_presence(request: Request):
    """List identities that currently have a live connection."""
    return PresenceRead(users=request.app.state.relay.online())
