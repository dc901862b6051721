"""Connection registry — the single source of truth for "who is online".

Learn: Maps identity → the handle of its one live connection. A second
registration for the same identity replaces the first (last writer wins)
and hands the old handle back so the caller can deal with it.

Every operation takes the same lock, so a disconnect racing a newer
registration of the same identity can never remove the newer mapping.
"""

import threading
from typing import Optional


class ConnectionRegistry:
    """Thread-safe identity ↔ connection handle map."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_identity: dict[str, str] = {}
        self._by_handle: dict[str, str] = {}

    def register(self, identity: str, handle: str) -> Optional[str]:
        """Insert or replace the session for an identity.

        Returns the previously registered handle, if a different one existed.
        """
        with self._lock:
            previous = self._by_identity.get(identity)
            if previous == handle:
                return None

            # A handle speaks for one identity at a time
            old_identity = self._by_handle.pop(handle, None)
            if old_identity is not None and old_identity != identity:
                del self._by_identity[old_identity]

            if previous is not None:
                self._by_handle.pop(previous, None)

            self._by_identity[identity] = handle
            self._by_handle[handle] = identity
            return previous

    def resolve_identity(self, handle: str) -> Optional[str]:
        """Reverse lookup: which identity does this connection speak for."""
        with self._lock:
            return self._by_handle.get(handle)

    def handle_for(self, identity: str) -> Optional[str]:
        with self._lock:
            return self._by_identity.get(identity)

    def unregister(self, handle: str) -> Optional[str]:
        """Remove the session owned by this handle.

        Only effective while the handle is still the registered one for its
        identity. Returns the removed identity, or None if nothing changed.
        """
        with self._lock:
            identity = self._by_handle.pop(handle, None)
            if identity is None:
                return None
            if self._by_identity.get(identity) == handle:
                del self._by_identity[identity]
            return identity

    def list_online(self) -> list[str]:
        """Snapshot of registered identities (sorted for stable output)."""
        with self._lock:
            return sorted(self._by_identity)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_identity)
