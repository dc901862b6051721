"""WebSocket endpoint — the realtime event surface for chat clients.

Learn: Each browser tab opens one connection to /ws. The handler:
1. Accepts the socket and attaches it to the relay (unauthenticated)
2. Feeds every inbound frame to the relay, in order
3. Drains the connection's outbound queue into the socket
4. Unregisters the connection when either side goes away

The client declares who it is with a `set-identity` frame after login.
"""

import asyncio
import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from relaychat.realtime.hub import CloseRequest, Connection
from relaychat.realtime.relay import ChatRelay

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket):
    """WebSocket endpoint for private chat.

    Learn: Two concurrent tasks run:
    1. Outbox writer — reads the connection's queue, sends to the WebSocket
    2. Client listener — reads from the WebSocket, hands frames to the relay

    When either side finishes, the other is cancelled and the connection
    is torn down (presence is re-announced if it was logged in).
    """
    relay: ChatRelay = websocket.app.state.relay

    # Attach first so no presence announcement slips past this socket
    conn = relay.connect()
    structlog.contextvars.bind_contextvars(connection_id=conn.handle)

    tasks: list[asyncio.Task] = []
    try:
        await websocket.accept()

        tasks.append(asyncio.create_task(_outbox_writer(websocket, conn)))
        tasks.append(asyncio.create_task(_client_listener(websocket, relay, conn)))

        # Wait for either to finish (usually client disconnect)
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        # Also reached when this endpoint itself is cancelled
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        relay.disconnect(conn.handle)
        if (
            websocket.application_state == WebSocketState.CONNECTED
            and websocket.client_state == WebSocketState.CONNECTED
        ):
            await websocket.close()
        structlog.contextvars.unbind_contextvars("connection_id")


async def _outbox_writer(websocket: WebSocket, conn: Connection) -> None:
    """Forward queued frames to the client until asked to close."""
    try:
        while True:
            item = await conn.outbox.get()
            if isinstance(item, CloseRequest):
                await websocket.close(code=item.code, reason=item.reason)
                return
            await websocket.send_text(json.dumps(item))
    except (WebSocketDisconnect, RuntimeError) as e:
        # Socket went away underneath us; the listener sees the disconnect too
        logger.debug("relaychat.writer_stopped", error=str(e))
    except asyncio.CancelledError:
        pass


async def _client_listener(websocket: WebSocket, relay: ChatRelay, conn: Connection) -> None:
    """Hand every inbound frame to the relay, one at a time."""
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            data = message.get("text")
            if data is None:
                data = message.get("bytes") or b""
            relay.handle_frame(conn.handle, data)
    except (WebSocketDisconnect, asyncio.CancelledError):
        pass
