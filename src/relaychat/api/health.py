"""Health check endpoint."""

from fastapi import APIRouter, Request

from relaychat import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and report live connection counts."""
    relay = request.app.state.relay
    return {
        "status": "healthy",
        "server": "ok",
        "version": __version__,
        "online": len(relay.registry),
        "connections": len(relay.hub),
    }
