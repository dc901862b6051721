"""Message router — private channels and scoped delivery.

Learn: The router never trusts who the client *says* it is. Every action
starts by resolving the connection handle through the registry; the
sender of a message is whatever identity the registry holds for it.

Delivery is fire-and-forget: a message goes to the connections subscribed
to the pair's channel *right now*. If the counterpart is offline or never
joined, the message is gone — there is no store-and-forward.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from relaychat.config import Settings
from relaychat.realtime.channels import derive_channel, normalize_identity
from relaychat.realtime.contacts import ContactDirectory, OpenDirectory
from relaychat.realtime.errors import InvalidTarget, Unauthenticated
from relaychat.realtime.events import CHANNEL_JOINED, frame
from relaychat.realtime.hub import ConnectionHub
from relaychat.realtime.registry import ConnectionRegistry
from relaychat.realtime.subscriptions import ChannelSubscriptions
from relaychat.schemas.chat import ChatMessage

logger = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRouter:
    """Resolves the sender, derives the channel, delivers to its subscribers."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        subscriptions: ChannelSubscriptions,
        hub: ConnectionHub,
        settings: Settings,
        contacts: Optional[ContactDirectory] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.registry = registry
        self.subscriptions = subscriptions
        self.hub = hub
        self.settings = settings
        self.contacts = contacts or OpenDirectory()
        self.clock = clock

    # ─── Join channel ─────────────────────────────────────

    def join_channel(self, handle: str, counterpart: str) -> str:
        """Subscribe a connection to its private channel with a counterpart.

        With bilateral joins the counterpart's live connection (if any) is
        subscribed too, so it can receive before it joins on its own.
        Returns the channel id.
        """
        identity = self._require_identity(handle)
        counterpart = self._check_counterpart(identity, counterpart)

        channel = derive_channel(identity, counterpart)
        self.subscriptions.subscribe(channel, handle)

        counterpart_handle = self.registry.handle_for(counterpart)
        if counterpart_handle is not None:
            if self.settings.bilateral_join:
                self.subscriptions.subscribe(channel, counterpart_handle)
            self.hub.send(counterpart_handle, frame(CHANNEL_JOINED, **{"from": identity}))

        logger.info(
            "relaychat.channel_joined",
            identity=identity,
            counterpart=counterpart,
            channel=channel,
            counterpart_online=counterpart_handle is not None,
        )
        return channel

    # ─── Send message ─────────────────────────────────────

    def send_private_message(self, handle: str, to: str, text: str) -> tuple[ChatMessage, int]:
        """Stamp a message and deliver it to the pair's channel.

        Returns the stamped message and how many connections it was
        queued for (0 means nobody was listening).
        """
        identity = self._require_identity(handle)
        to = self._check_counterpart(identity, to)
        if not text or not text.strip():
            raise InvalidTarget("Message text is required")
        if len(text) > self.settings.max_message_length:
            raise InvalidTarget(
                f"Message exceeds {self.settings.max_message_length} characters"
            )

        channel = derive_channel(identity, to)
        message = ChatMessage(sender=identity, text=text, timestamp=self.clock())
        payload = message.to_frame()

        delivered = 0
        for subscriber in self.subscriptions.subscribers(channel):
            if self.hub.send(subscriber, payload):
                delivered += 1

        logger.debug(
            "relaychat.message_routed",
            identity=identity,
            channel=channel,
            delivered=delivered,
        )
        return message, delivered

    # ─── Helpers ──────────────────────────────────────────

    def _require_identity(self, handle: str) -> str:
        identity = self.registry.resolve_identity(handle)
        if identity is None:
            raise Unauthenticated("Not authenticated")
        return identity

    def _check_counterpart(self, identity: str, counterpart: str) -> str:
        """Normalize a target the way declared identities are; returns it."""
        if not (counterpart or "").strip():
            raise InvalidTarget("Counterpart is required")
        try:
            counterpart = normalize_identity(counterpart, self.settings.max_identity_length)
        except ValueError:
            raise InvalidTarget(f"Unknown counterpart: {counterpart.strip()}")
        if counterpart == identity:
            raise InvalidTarget("Cannot open a private channel with yourself")
        if not self.contacts.allows(identity, counterpart):
            raise InvalidTarget(f"{counterpart} is not in your contacts")
        return counterpart
