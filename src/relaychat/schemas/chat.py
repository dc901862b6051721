"""Pydantic schemas for realtime frames.

Learn: Inbound payloads only check *shape* here (strings where strings are
expected). Whether a value is acceptable — empty identity, self-targeting,
blank message — is the relay's decision, so those fields default to ""
and the relay reports the specific error kind.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer

from relaychat.realtime import events


# ─── Client → server ──────────────────────────────────────


class SetIdentity(BaseModel):
    type: Literal["set-identity"]
    identity: str = ""
    token: Optional[str] = None


class JoinChannel(BaseModel):
    type: Literal["join-channel"]
    counterpart: str = ""


class SendMessage(BaseModel):
    type: Literal["send-message"]
    to: str = ""
    text: str = ""


class Ping(BaseModel):
    type: Literal["ping"]


ClientEvent = Annotated[
    Union[SetIdentity, JoinChannel, SendMessage, Ping],
    Field(discriminator="type"),
]


client_events = TypeAdapter(ClientEvent)


# ─── Server → client ──────────────────────────────────────


def isoformat_z(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2026-01-02T03:04:05.678Z."""
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ChatMessage(BaseModel):
    """A message as stamped by the server — never taken from the client."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sender: str = Field(alias="from")
    text: str
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return isoformat_z(value)

    def to_frame(self) -> dict:
        return events.frame(events.MESSAGE, **self.model_dump(by_alias=True))
