"""API route aggregation.

All routers registered here get mounted in main.py. The HTTP surface is
read-only: health and the current presence snapshot. Everything that
changes state happens over the WebSocket.
"""

from fastapi import APIRouter

from relaychat.api.health import router as health_router
from relaychat.api.presence import router as presence_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(presence_router, tags=["presence"])
