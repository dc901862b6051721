"""Channel subscriptions — private channel id → subscribed connections.

A channel has no storage of its own: it exists while at least one
connection is subscribed and disappears with its last subscriber.
"""

import threading


class ChannelSubscriptions:
    """Thread-safe channel membership, indexed both ways."""

    def __init__(self):
        self._lock = threading.Lock()
        self._members: dict[str, set[str]] = {}
        self._channels: dict[str, set[str]] = {}

    def subscribe(self, channel: str, handle: str) -> bool:
        """Subscribe a connection. Returns False if it already was."""
        with self._lock:
            members = self._members.setdefault(channel, set())
            if handle in members:
                return False
            members.add(handle)
            self._channels.setdefault(handle, set()).add(channel)
            return True

    def unsubscribe_all(self, handle: str) -> set[str]:
        """Drop every subscription of a connection; returns the channels left."""
        with self._lock:
            channels = self._channels.pop(handle, set())
            for channel in channels:
                members = self._members.get(channel)
                if members is None:
                    continue
                members.discard(handle)
                if not members:
                    del self._members[channel]
            return channels

    def subscribers(self, channel: str) -> set[str]:
        with self._lock:
            return set(self._members.get(channel, ()))

    def channels_of(self, handle: str) -> set[str]:
        with self._lock:
            return set(self._channels.get(handle, ()))

    def __contains__(self, channel: str) -> bool:
        with self._lock:
            return channel in self._members
