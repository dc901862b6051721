"""Connection hub — the delivery substrate between the relay and sockets.

Learn: Every live connection gets an outbound FIFO queue. The relay only
ever *enqueues* (non-blocking, fire-and-forget); a per-connection writer
task drains the queue into the WebSocket. Because a single queue is
strictly FIFO and a connection's events are handled one at a time, all
subscribers see one sender's messages in the order they were sent.

A slow socket only backs up its own queue; it never blocks the relay
or other connections.
"""

import asyncio
import enum
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional


class ConnectionState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


@dataclass(frozen=True)
class CloseRequest:
    """Queued after the last frame to make the writer close the socket."""

    code: int = 1000
    reason: str = ""


@dataclass
class Connection:
    """One live transport endpoint as seen by the relay."""

    handle: str
    state: ConnectionState = ConnectionState.UNAUTHENTICATED
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)

    def push(self, frame: dict) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self.outbox.put_nowait(frame)

    def request_close(self, code: int = 1000, reason: str = "") -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self.outbox.put_nowait(CloseRequest(code=code, reason=reason))

    def drain(self) -> list:
        """Pop everything queued so far without waiting."""
        items = []
        while not self.outbox.empty():
            items.append(self.outbox.get_nowait())
        return items


class ConnectionHub:
    """All live connections, keyed by opaque handle."""

    def __init__(self):
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}

    def attach(self, handle: Optional[str] = None) -> Connection:
        conn = Connection(handle=handle or uuid.uuid4().hex)
        with self._lock:
            if conn.handle in self._connections:
                raise ValueError(f"Connection {conn.handle} already attached")
            self._connections[conn.handle] = conn
        return conn

    def detach(self, handle: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.pop(handle, None)

    def get(self, handle: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(handle)

    def handles(self) -> list[str]:
        with self._lock:
            return list(self._connections)

    def send(self, handle: str, frame: dict) -> bool:
        """Enqueue a frame for one connection. False if it's gone."""
        conn = self.get(handle)
        if conn is None:
            return False
        conn.push(frame)
        return True

    def broadcast(self, frame: dict) -> int:
        """Enqueue a frame for every live connection."""
        with self._lock:
            connections = list(self._connections.values())
        for conn in connections:
            conn.push(frame)
        return len(connections)

    def close(self, handle: str, code: int = 1000, reason: str = "") -> bool:
        conn = self.get(handle)
        if conn is None:
            return False
        conn.request_close(code=code, reason=reason)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
