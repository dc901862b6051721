"""Presence broadcasting.

Every announcement carries the full online list and goes to every live
connection (authenticated or not). Clients replace their view wholesale,
so there is nothing to reconcile if they miss an update.
"""

import structlog

from relaychat.realtime.events import PRESENCE_LIST, frame
from relaychat.realtime.hub import ConnectionHub
from relaychat.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


class PresenceBroadcaster:
    def __init__(self, registry: ConnectionRegistry, hub: ConnectionHub):
        self.registry = registry
        self.hub = hub

    def snapshot(self) -> dict:
        return frame(PRESENCE_LIST, users=self.registry.list_online())

    def announce(self) -> int:
        """Push the current online list to every connection."""
        payload = self.snapshot()
        delivered = self.hub.broadcast(payload)
        logger.debug(
            "relaychat.presence_announced",
            online=len(payload["users"]),
            connections=delivered,
        )
        return delivered
