"""Errors reported back to a connection as `error` events.

None of these close the connection; the client may retry with
corrected input.
"""


class ChatError(Exception):
    """Base class for errors caused by a connection's own event."""

    kind = "error"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class Unauthenticated(ChatError):
    """Raised when an action is attempted before an identity is set."""

    kind = "unauthenticated"


class InvalidIdentity(ChatError):
    """Raised when a declared identity is empty, malformed or unverified."""

    kind = "invalid_identity"


class InvalidTarget(ChatError):
    """Raised on self-targeting, an unreachable counterpart or bad message text."""

    kind = "invalid_target"


class MalformedEvent(ChatError):
    """Raised when an inbound frame can't be decoded or validated."""

    kind = "malformed_event"
