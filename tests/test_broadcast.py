import asyncio
import json

import pytest

from orderdesk import broadcast
from orderdesk.broadcast import BroadcastHub
from orderdesk.errors import InvalidState, ServiceUnavailable
from orderdesk.ordering import OrderDesk, lifecycle
from tests.conftest import FakeConnection


def _types(conn):
    return [json.loads(frame)["type"] for frame in conn.sent]


@pytest.mark.asyncio
async def test_connect_accepts_and_tracks(hub):
    conn = FakeConnection()
    await hub.connect(conn)
    assert conn.accepted
    assert hub.connection_count == 1


@pytest.mark.asyncio
async def test_failing_connection_does_not_block_others(hub):
    good_a = FakeConnection("a")
    bad = FakeConnection("bad", fail=True)
    good_b = FakeConnection("b")
    for conn in (good_a, bad, good_b):
        await hub.connect(conn)

    delivered = await hub.broadcast(broadcast.orders_reset_event(2))

    assert delivered == 2
    assert _types(good_a) == ["orders_reset"]
    assert _types(good_b) == ["orders_reset"]
    assert bad not in hub.active_connections
    assert hub.connection_count == 2


@pytest.mark.asyncio
async def test_dead_connection_not_retried(hub):
    good = FakeConnection("good")
    bad = FakeConnection("bad", fail=True)
    await hub.connect(good)
    await hub.connect(bad)

    await hub.broadcast(broadcast.orders_reset_event(0))
    bad.fail = False
    await hub.broadcast(broadcast.orders_reset_event(0))

    assert len(good.sent) == 2
    assert bad.sent == []


@pytest.mark.asyncio
async def test_broadcast_with_no_connections(hub):
    assert await hub.broadcast(broadcast.orders_reset_event(0)) == 0


@pytest.mark.asyncio
async def test_disconnect_is_idempotent(hub):
    conn = FakeConnection()
    await hub.connect(conn)
    hub.disconnect(conn)
    hub.disconnect(conn)
    assert hub.connection_count == 0


@pytest.mark.asyncio
async def test_close_all_connections(hub):
    conns = [FakeConnection(str(i)) for i in range(3)]
    for conn in conns:
        await hub.connect(conn)

    await hub.close_all_connections()

    assert all(c.closed for c in conns)
    assert hub.connection_count == 0


@pytest.mark.asyncio
async def test_desk_events_arrive_in_operation_order(desk, hub, make_order):
    conn = FakeConnection()
    await hub.connect(conn)

    order = await desk.place_order(make_order())
    await desk.update_status(order.id, "ready")
    await desk.update_payment(order.id, "cash", "paid")
    await desk.update_status(order.id, "completed")
    other = await desk.place_order(make_order())
    await desk.cancel_order(other.id, "Changed mind")
    await desk.reset_completed()
    await desk.set_pause("bar", True, 15, "Rush")

    assert _types(conn) == [
        "new_order",
        "order_updated",
        "payment_updated",
        "order_updated",
        "new_order",
        "order_cancelled",
        "orders_reset",
        "orders_pause_updated",
    ]
    assert set(_types(conn)) == set(broadcast.EVENT_TYPES)


@pytest.mark.asyncio
async def test_event_payloads_carry_order_snapshot(desk, hub, make_order):
    conn = FakeConnection()
    await hub.connect(conn)

    order = await desk.place_order(make_order(service_type="bar", table_number="R1"))
    await desk.update_payment(order.id, "upi", "paid")

    created, paid = [json.loads(frame) for frame in conn.sent]
    assert created["order_id"] == order.id
    assert created["service_type"] == "bar"
    assert created["order"]["order_number"] == order.order_number
    assert created["order"]["table_number"] == "R1"
    assert "timestamp" in created

    assert paid["payment_method"] == "upi"
    assert paid["payment_status"] == "paid"


@pytest.mark.asyncio
async def test_pause_event_payload(desk, hub):
    conn = FakeConnection()
    await hub.connect(conn)

    await desk.set_pause("restaurant", True, 20, "Kitchen backlog")

    event = json.loads(conn.sent[0])
    assert event["type"] == "orders_pause_updated"
    assert event["service_type"] == "restaurant"
    assert event["is_paused"] is True
    assert event["pause_duration_minutes"] == 20
    assert event["pause_reason"] == "Kitchen backlog"


@pytest.mark.asyncio
async def test_failed_operations_emit_nothing(desk, hub, make_order):
    conn = FakeConnection()
    await hub.connect(conn)

    order = await desk.place_order(make_order())
    await desk.update_status(order.id, "ready")
    conn.sent.clear()

    with pytest.raises(InvalidState):
        await desk.cancel_order(order.id)
    with pytest.raises(InvalidState):
        await desk.update_status(order.id, "completed")

    await desk.set_pause("restaurant", True, 10, "Rush")
    conn.sent.clear()
    with pytest.raises(ServiceUnavailable):
        await desk.place_order(make_order())

    assert conn.sent == []


@pytest.mark.asyncio
async def test_unenforced_status_update_skips_policy(desk, make_order):
    order = await desk.place_order(make_order())
    order = await desk.update_status(order.id, "completed", enforce_policy=False)
    assert order.status == "completed"


@pytest.mark.asyncio
async def test_stalled_display_is_dropped_after_timeout():
    hub = BroadcastHub(send_timeout=0.05)
    good = FakeConnection("good")
    stalled = FakeConnection("stalled", stall=True)
    await hub.connect(good)
    await hub.connect(stalled)

    delivered = await asyncio.wait_for(hub.broadcast(broadcast.orders_reset_event(0)), timeout=1.0)

    assert delivered == 1
    assert _types(good) == ["orders_reset"]
    assert stalled not in hub.active_connections


@pytest.mark.asyncio
async def test_stalled_display_does_not_hang_order_placement(store, make_order):
    hub = BroadcastHub(send_timeout=0.05)
    desk = OrderDesk(store, hub)
    good = FakeConnection("good")
    await hub.connect(FakeConnection("stalled-a", stall=True))
    await hub.connect(FakeConnection("stalled-b", stall=True))
    await hub.connect(good)

    order = await asyncio.wait_for(desk.place_order(make_order()), timeout=1.0)
    await asyncio.wait_for(desk.update_status(order.id, "ready"), timeout=1.0)

    assert [o.id for o in lifecycle.list_orders(store)] == [order.id]
    assert _types(good) == ["new_order", "order_updated"]
    assert hub.active_connections == {good}
