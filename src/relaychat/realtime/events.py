"""Realtime event type constants.

Learn: Centralizing event types as constants prevents typos and
makes it easy to discover the whole wire contract in one place.
"""

# ─── Client → server ─────────────────────────────────────

SET_IDENTITY = "set-identity"
JOIN_CHANNEL = "join-channel"
SEND_MESSAGE = "send-message"
PING = "ping"

# ─── Server → client ─────────────────────────────────────

PRESENCE_LIST = "presence-list"
CHANNEL_JOINED = "channel-joined"
MESSAGE = "message"
ERROR = "error"
PONG = "pong"
SESSION_REPLACED = "session-replaced"


def frame(event_type: str, **data) -> dict:
    """Build an outbound frame: {"type": ..., **data}."""
    return {"type": event_type, **data}
