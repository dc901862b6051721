"""Message router tests — join and scoped delivery."""

import pytest

from relaychat.realtime.contacts import StaticContactDirectory
from relaychat.realtime.errors import InvalidTarget, Unauthenticated
from relaychat.realtime.relay import ChatRelay


@pytest.fixture()
def pair(relay, drain):
    """alice and bob logged in, queues emptied."""
    a = relay.connect()
    b = relay.connect()
    relay.set_identity(a.handle, "alice")
    relay.set_identity(b.handle, "bob")
    drain(a)
    drain(b)
    return a, b


def test_join_requires_identity(relay):
    conn = relay.connect()
    with pytest.raises(Unauthenticated):
        relay.router.join_channel(conn.handle, "bob")


def test_join_with_self_rejected(relay, pair):
    a, _ = pair
    with pytest.raises(InvalidTarget, match="yourself"):
        relay.router.join_channel(a.handle, "alice")


def test_join_with_empty_counterpart_rejected(relay, pair):
    a, _ = pair
    with pytest.raises(InvalidTarget):
        relay.router.join_channel(a.handle, "")


def test_join_subscribes_both_and_notifies(relay, pair, drain):
    a, b = pair
    channel = relay.router.join_channel(a.handle, "bob")

    assert channel == "private_alice_bob"
    assert relay.subscriptions.subscribers(channel) == {a.handle, b.handle}
    assert drain(b) == [{"type": "channel-joined", "from": "alice"}]
    assert drain(a) == []


def test_one_sided_join(chat_settings, drain):
    """With bilateral joins off, only the initiator is subscribed."""
    relay = ChatRelay(settings=chat_settings.model_copy(update={"bilateral_join": False}))
    a = relay.connect()
    b = relay.connect()
    relay.set_identity(a.handle, "alice")
    relay.set_identity(b.handle, "bob")
    drain(b)

    relay.router.join_channel(a.handle, "bob")
    assert relay.subscriptions.subscribers("private_alice_bob") == {a.handle}
    # Still told someone wants to talk
    assert drain(b) == [{"type": "channel-joined", "from": "alice"}]

    _, delivered = relay.router.send_private_message(a.handle, "bob", "hello?")
    assert delivered == 1
    assert drain(b) == []


def test_join_offline_counterpart(relay, pair, drain):
    a, _ = pair
    channel = relay.router.join_channel(a.handle, "carol")
    assert relay.subscriptions.subscribers(channel) == {a.handle}


def test_message_is_stamped_by_server(relay, pair, drain, fixed_now):
    a, b = pair
    relay.router.join_channel(a.handle, "bob")
    drain(b)

    message, delivered = relay.router.send_private_message(a.handle, "bob", "hi")

    assert delivered == 2
    assert message.sender == "alice"
    assert message.timestamp == fixed_now
    expected = {
        "type": "message",
        "from": "alice",
        "text": "hi",
        "timestamp": "2026-03-14T15:09:26.535Z",
    }
    assert drain(b) == [expected]
    assert drain(a) == [expected]


def test_message_without_subscribers_is_dropped(relay, pair, drain):
    a, b = pair
    _, delivered = relay.router.send_private_message(a.handle, "bob", "anyone?")
    assert delivered == 0
    assert drain(b) == []


def test_send_requires_identity(relay, drain):
    conn = relay.connect()
    with pytest.raises(Unauthenticated):
        relay.router.send_private_message(conn.handle, "bob", "hi")


@pytest.mark.parametrize("text", ["", "   "])
def test_blank_message_rejected(relay, pair, text):
    a, _ = pair
    with pytest.raises(InvalidTarget, match="text"):
        relay.router.send_private_message(a.handle, "bob", text)


def test_oversized_message_rejected(relay, pair):
    a, _ = pair
    too_long = "x" * (relay.settings.max_message_length + 1)
    with pytest.raises(InvalidTarget, match="exceeds"):
        relay.router.send_private_message(a.handle, "bob", too_long)


def test_message_to_self_rejected(relay, pair):
    a, _ = pair
    with pytest.raises(InvalidTarget):
        relay.router.send_private_message(a.handle, "alice", "note to self")


def test_messages_keep_sender_order(relay, pair, drain):
    a, b = pair
    relay.router.join_channel(a.handle, "bob")
    drain(b)

    for i in range(20):
        relay.router.send_private_message(a.handle, "bob", f"m{i}")

    assert [f["text"] for f in drain(b)] == [f"m{i}" for i in range(20)]


def test_contact_directory_enforced(chat_settings, drain):
    contacts = StaticContactDirectory({"alice": ["bob"]})
    relay = ChatRelay(settings=chat_settings, contacts=contacts)
    a = relay.connect()
    relay.set_identity(a.handle, "alice")

    relay.router.join_channel(a.handle, "bob")
    with pytest.raises(InvalidTarget, match="contacts"):
        relay.router.join_channel(a.handle, "mallory")
    with pytest.raises(InvalidTarget, match="contacts"):
        relay.router.send_private_message(a.handle, "mallory", "hi")


# ─── Counterpart normalization ───────────────────────────


@pytest.mark.parametrize("target", ["alice ", " alice", "\talice\n"])
def test_padded_self_target_rejected(relay, pair, target):
    a, _ = pair
    with pytest.raises(InvalidTarget, match="yourself"):
        relay.router.join_channel(a.handle, target)
    with pytest.raises(InvalidTarget, match="yourself"):
        relay.router.send_private_message(a.handle, target, "hi")
    assert relay.subscriptions.channels_of(a.handle) == set()


def test_padded_counterpart_reaches_registered_identity(relay, drain):
    """A login as " bob" is bob; so is a message addressed to " bob"."""
    a = relay.connect()
    b = relay.connect()
    relay.set_identity(a.handle, "alice")
    relay.set_identity(b.handle, " bob")
    drain(a)
    drain(b)

    channel = relay.router.join_channel(a.handle, " bob")
    assert channel == "private_alice_bob"
    assert drain(b) == [{"type": "channel-joined", "from": "alice"}]

    _, delivered = relay.router.send_private_message(a.handle, "bob  ", "hi")
    assert delivered == 2
    assert [f["text"] for f in drain(b)] == ["hi"]


def test_counterpart_that_can_not_be_an_identity_rejected(relay, pair):
    a, _ = pair
    with pytest.raises(InvalidTarget, match="Unknown counterpart"):
        relay.router.join_channel(a.handle, "bob_smith")
    with pytest.raises(InvalidTarget, match="Unknown counterpart"):
        relay.router.join_channel(a.handle, "b" * (relay.settings.max_identity_length + 1))


def test_blank_counterpart_rejected(relay, pair):
    a, _ = pair
    with pytest.raises(InvalidTarget, match="required"):
        relay.router.send_private_message(a.handle, "   ", "hi")
