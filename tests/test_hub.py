"""Connection hub tests — outbox ordering, drain, close."""

from relaychat.realtime.hub import CloseRequest, ConnectionHub, ConnectionState


def test_drain_returns_queued_items_in_order_and_empties_outbox():
    hub = ConnectionHub()
    conn = hub.attach("c1")
    hub.send("c1", {"type": "pong"})
    hub.broadcast({"type": "presence-list", "users": []})
    hub.close("c1", code=1001, reason="bye")

    assert conn.drain() == [
        {"type": "pong"},
        {"type": "presence-list", "users": []},
        CloseRequest(1001, "bye"),
    ]
    assert conn.drain() == []


def test_closed_connection_gets_nothing():
    hub = ConnectionHub()
    conn = hub.attach("c1")
    conn.state = ConnectionState.CLOSED
    conn.push({"type": "pong"})
    conn.request_close()
    assert conn.drain() == []


def test_send_to_detached_connection():
    hub = ConnectionHub()
    hub.attach("c1")
    hub.detach("c1")
    assert hub.send("c1", {"type": "pong"}) is False
    assert len(hub) == 0
