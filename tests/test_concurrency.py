"""
Store-level atomicity under threads: every operation runs inside the store
transaction, so concurrent writers never lose each other's updates and readers
never see half an order.
"""
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from orderdesk.ordering import analytics, lifecycle, pause
from orderdesk.schemas import LineItemIn


def _thali(make_order):
    return make_order(items=[LineItemIn(id=None, name="THALI", price=Decimal("100.00"), quantity=1)])


def test_status_and_payment_on_same_order_both_land(store, make_order):
    orders = [lifecycle.place_order(store, make_order()) for _ in range(20)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = []
        for o in orders:
            futures.append(pool.submit(lifecycle.update_payment, store, o.id, "cash", "paid"))
            futures.append(pool.submit(lifecycle.update_status, store, o.id, "ready"))
        for f in futures:
            f.result()

    for o in orders:
        after = lifecycle.get_order(store, o.id)
        assert after.status == "ready"
        assert after.payment_status == "paid"
        assert after.payment_method == "cash"


def test_concurrent_placements_get_distinct_numbers(store, make_order):
    with ThreadPoolExecutor(max_workers=8) as pool:
        placed = list(pool.map(lambda _: lifecycle.place_order(store, make_order()), range(40)))

    numbers = {o.order_number for o in placed}
    assert len(numbers) == 40
    assert len(lifecycle.list_orders(store)) == 40
    for o in placed:
        assert len(lifecycle.get_order_items(store, o.id)) == 2


def test_analytics_sees_whole_orders_during_mutation(store, clock, make_order):
    orders = [lifecycle.place_order(store, _thali(make_order)) for _ in range(30)]
    for o in orders:
        lifecycle.update_payment(store, o.id, "upi", "paid")
    start, end = analytics.period_window("today", clock())

    def complete(order_id):
        lifecycle.update_status(store, order_id, "completed", policy=lifecycle.check_transition_policy)

    def scan(_):
        return analytics.sales_analytics(store, start, end)

    with ThreadPoolExecutor(max_workers=8) as pool:
        writes = [pool.submit(complete, o.id) for o in orders]
        reads = [pool.submit(scan, i) for i in range(40)]
        snapshots = [r.result() for r in reads]
        for w in writes:
            w.result()

    for snap in snapshots:
        assert snap.total_sales == Decimal("100.00") * snap.order_count
        if snap.order_count:
            assert snap.top_items[0].quantity == snap.order_count
            assert snap.average_order == Decimal("100.00")

    final = analytics.sales_analytics(store, start, end)
    assert final.order_count == 30
    assert final.total_sales == Decimal("3000.00")


def test_lazy_expiry_never_overwrites_a_fresh_pause(store, clock):
    pause.set_pause(store, "bar", True, 10, "Rush")
    clock.advance(minutes=11)

    with ThreadPoolExecutor(max_workers=8) as pool:
        checks = [pool.submit(pause.check_paused, store, "bar") for _ in range(20)]
        repause = pool.submit(pause.set_pause, store, "bar", True, 30, "Second rush")
        checks += [pool.submit(pause.check_paused, store, "bar") for _ in range(20)]
        repause.result()
        for c in checks:
            c.result()

    status = pause.check_paused(store, "bar")
    assert status.is_paused is True
    assert status.remaining_minutes == 30
    assert status.pause_reason == "Second rush"
