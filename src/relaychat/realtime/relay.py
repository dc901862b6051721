"""Chat relay — per-connection lifecycle on top of registry, router and hub.

Learn: Each connection moves through three states:

    unauthenticated --set-identity--> authenticated --disconnect--> closed
    unauthenticated --disconnect--> closed

The relay owns every shared structure (registry, subscriptions, hub) and
is the only thing that mutates them. Frames from one connection are fed
in one at a time, in the order the client sent them; frames from
different connections may interleave freely. Each operation runs under one
relay-level lock, so resolving an identity and acting on it (subscribe,
deliver, displace) can never be split by another connection's event.

Errors caused by a frame are sent back to that connection as an `error`
event. Nothing raised while handling one connection's frame escapes to
the transport or touches another connection.
"""

import json
import threading
from datetime import datetime
from typing import Callable, Optional, Union

import structlog
from pydantic import ValidationError

from relaychat.auth.tokens import TokenError, verify_identity_token
from relaychat.config import Settings, settings as default_settings
from relaychat.realtime import events
from relaychat.realtime.channels import normalize_identity
from relaychat.realtime.contacts import ContactDirectory
from relaychat.realtime.errors import (
    ChatError,
    InvalidIdentity,
    MalformedEvent,
    Unauthenticated,
)
from relaychat.realtime.hub import Connection, ConnectionHub, ConnectionState
from relaychat.realtime.presence import PresenceBroadcaster
from relaychat.realtime.registry import ConnectionRegistry
from relaychat.realtime.router import MessageRouter, utcnow
from relaychat.realtime.subscriptions import ChannelSubscriptions
from relaychat.schemas.chat import (
    ChatMessage,
    JoinChannel,
    Ping,
    SendMessage,
    SetIdentity,
    client_events,
)

logger = structlog.get_logger()

# Close code sent to a connection displaced by a newer login
SESSION_REPLACED_CLOSE_CODE = 4002


class ChatRelay:
    """Connection lifecycle manager for the private-chat relay."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        contacts: Optional[ContactDirectory] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or default_settings
        self._lock = threading.RLock()
        self.registry = ConnectionRegistry()
        self.subscriptions = ChannelSubscriptions()
        self.hub = ConnectionHub()
        self.presence = PresenceBroadcaster(self.registry, self.hub)
        self.router = MessageRouter(
            self.registry,
            self.subscriptions,
            self.hub,
            self.settings,
            contacts=contacts,
            clock=clock,
        )

    # ─── Connect ──────────────────────────────────────────

    def connect(self, handle: Optional[str] = None) -> Connection:
        """Attach a new, unauthenticated transport connection."""
        conn = self.hub.attach(handle)
        logger.info("relaychat.connected", connection_id=conn.handle)
        return conn

    # ─── Set identity ─────────────────────────────────────

    def set_identity(self, handle: str, identity: str, token: Optional[str] = None) -> str:
        """Register the connection as the live session for an identity.

        A newer registration for the same identity wins: the older
        connection loses its channels, is told why, and (by default) is
        closed. Returns the registered identity.
        """
        name = self._validate_identity(identity, token)

        with self._lock:
            conn = self._open_connection(handle)
            current = self.registry.resolve_identity(handle)
            if current is not None and current != name:
                # Switching identity on one socket: channels belonged to the old name
                self.subscriptions.unsubscribe_all(handle)

            previous = self.registry.register(name, handle)
            conn.state = ConnectionState.AUTHENTICATED
            if previous is not None:
                self._displace(previous, name)

            logger.info(
                "relaychat.identity_set",
                connection_id=handle,
                identity=name,
                replaced=previous,
            )
            self.presence.announce()
        return name

    # ─── Join / send ──────────────────────────────────────

    def join_channel(self, handle: str, counterpart: str) -> str:
        with self._lock:
            self._open_connection(handle)
            return self.router.join_channel(handle, counterpart)

    def send_message(self, handle: str, to: str, text: str) -> tuple[ChatMessage, int]:
        with self._lock:
            self._open_connection(handle)
            return self.router.send_private_message(handle, to, text)

    # ─── Disconnect ───────────────────────────────────────

    def disconnect(self, handle: str) -> bool:
        """Tear down a connection. Returns True if presence changed."""
        with self._lock:
            conn = self.hub.detach(handle)
            if conn is not None:
                conn.state = ConnectionState.CLOSED
            self.subscriptions.unsubscribe_all(handle)

            identity = self.registry.unregister(handle)
            if identity is None:
                logger.info("relaychat.disconnected", connection_id=handle)
                return False

            logger.info("relaychat.disconnected", connection_id=handle, identity=identity)
            self.presence.announce()
            return True

    # ─── Frame dispatch ───────────────────────────────────

    def handle_frame(self, handle: str, raw: Union[str, bytes]) -> None:
        """Decode and apply one inbound frame, reporting errors to the sender."""
        try:
            self._dispatch(handle, self._decode(raw))
        except ChatError as e:
            logger.info(
                "relaychat.event_rejected",
                connection_id=handle,
                kind=e.kind,
                reason=e.reason,
            )
            self.hub.send(handle, events.frame(events.ERROR, reason=e.reason, kind=e.kind))
        except Exception:
            logger.exception("relaychat.event_failed", connection_id=handle)
            self.hub.send(
                handle,
                events.frame(events.ERROR, reason="Internal error", kind="internal"),
            )

    def _decode(self, raw: Union[str, bytes]):
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                raise MalformedEvent("Frame is not valid UTF-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            raise MalformedEvent("Frame is not valid JSON")
        if not isinstance(data, dict):
            raise MalformedEvent("Frame must be a JSON object")
        try:
            return client_events.validate_python(data)
        except ValidationError:
            raise MalformedEvent(f"Unsupported or malformed event: {data.get('type')!r}")

    def _dispatch(self, handle: str, event) -> None:
        if isinstance(event, SetIdentity):
            self.set_identity(handle, event.identity, event.token)
        elif isinstance(event, JoinChannel):
            self.join_channel(handle, event.counterpart)
        elif isinstance(event, SendMessage):
            self.send_message(handle, event.to, event.text)
        elif isinstance(event, Ping):
            self.hub.send(handle, events.frame(events.PONG))

    # ─── Queries / shutdown ───────────────────────────────

    def online(self) -> list[str]:
        return self.registry.list_online()

    def shutdown(self, reason: str = "Server shutting down") -> int:
        """Ask every live connection to close (code 1001)."""
        handles = self.hub.handles()
        for handle in handles:
            self.hub.close(handle, code=1001, reason=reason)
        return len(handles)

    # ─── Helpers ──────────────────────────────────────────

    def _open_connection(self, handle: str) -> Connection:
        conn = self.hub.get(handle)
        if conn is None or conn.state is ConnectionState.CLOSED:
            raise Unauthenticated("Connection is closed")
        return conn

    def _validate_identity(self, identity: str, token: Optional[str]) -> str:
        try:
            name = normalize_identity(identity, self.settings.max_identity_length)
        except ValueError as e:
            raise InvalidIdentity(str(e))

        if token:
            try:
                verified = verify_identity_token(token, self.settings)
            except TokenError as e:
                raise InvalidIdentity(str(e))
            if verified != name:
                raise InvalidIdentity("Token was issued for a different identity")
        elif self.settings.identity_token_required:
            raise InvalidIdentity("Identity token required")
        return name

    def _displace(self, stale_handle: str, identity: str) -> None:
        """Cut a replaced connection off from everything addressed to identity."""
        self.subscriptions.unsubscribe_all(stale_handle)
        stale = self.hub.get(stale_handle)
        if stale is None:
            return
        stale.state = ConnectionState.UNAUTHENTICATED
        stale.push(events.frame(events.SESSION_REPLACED, identity=identity))
        if self.settings.close_replaced_connections:
            stale.request_close(SESSION_REPLACED_CLOSE_CODE, "Session replaced")
        logger.info(
            "relaychat.session_replaced",
            connection_id=stale_handle,
            identity=identity,
        )
