"""Contact directory hook.

The contact list lives in the external directory. The relay can
optionally ask it whether a counterpart is allowed before opening a
channel or routing a message; by default everyone may talk to everyone.
"""

from typing import Iterable, Mapping, Protocol


class ContactDirectory(Protocol):
    def allows(self, identity: str, counterpart: str) -> bool: ...


class OpenDirectory:
    """No contact enforcement."""

    def allows(self, identity: str, counterpart: str) -> bool:
        return True


class StaticContactDirectory:
    """Contacts from an in-memory mapping: identity → permitted counterparts.

    Contacts are one-directional, like the directory's contacts table.
    """

    def __init__(self, contacts: Mapping[str, Iterable[str]]):
        self._contacts = {k: frozenset(v) for k, v in contacts.items()}

    def allows(self, identity: str, counterpart: str) -> bool:
        return counterpart in self._contacts.get(identity, frozenset())
