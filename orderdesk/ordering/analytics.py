# orderdesk/ordering/analytics.py
"""
Sales and payment reporting over the live order data.

Each report runs the retention sweep and its scan inside one store
transaction, so a concurrent order mutation is either fully in the numbers or
not in them at all. Bounds are naive UTC; the business-day offset is only
used by ``period_window`` when turning "today"/"week"/"month" into bounds.
"""
from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ..config import settings
from ..models import PAYMENT_METHODS, DiningTable, MenuItem, Order, OrderItem, q2
from ..schemas import DashboardStats, PaymentAnalytics, SalesAnalytics, TopItem
from ..store import OrderStore
from .retention import sweep_expired_orders

TOP_ITEMS_LIMIT = 10
ZERO = Decimal("0.00")


def _months_back(d: datetime, months: int) -> datetime:
    year, month = d.year, d.month - months
    while month <= 0:
        month += 12
        year -= 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def period_window(
    period: str,
    now: datetime,
    offset_minutes: Optional[int] = None,
) -> Tuple[datetime, datetime]:
    """
    (start, end) in naive UTC for a reporting period in business-local time.
    Every period ends at the close of the local day; unknown periods mean today.
    """
    offset = timedelta(minutes=settings.business_utc_offset_minutes if offset_minutes is None else offset_minutes)

    local_now = now + offset
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_local = midnight + timedelta(days=1) - timedelta(microseconds=1)

    if period == "week":
        start_local = midnight - timedelta(days=7)
    elif period == "month":
        start_local = _months_back(midnight, 1)
    else:
        start_local = midnight

    return start_local - offset, end_local - offset


def sales_analytics(
    store: OrderStore,
    start: datetime,
    end: datetime,
    service_type: Optional[str] = None,
) -> SalesAnalytics:
    with store.transaction() as db:
        sweep_expired_orders(db, store.now())

        q = db.query(Order).filter(
            Order.status == "completed",
            Order.created_at >= start,
            Order.created_at <= end,
        )
        if service_type:
            q = q.filter(Order.service_type == service_type)
        orders = q.order_by(Order.id).all()

        total = sum((o.total_amount for o in orders), ZERO)
        count = len(orders)

        # insertion order doubles as the tie-break for equal quantities
        stats: Dict[str, Dict[str, object]] = {}
        ids = [o.id for o in orders]
        if ids:
            rows = (
                db.query(OrderItem)
                .filter(OrderItem.order_id.in_(ids))
                .order_by(OrderItem.order_id, OrderItem.id)
                .all()
            )
            for it in rows:
                s = stats.setdefault(it.item_name, {"quantity": 0, "revenue": ZERO})
                s["quantity"] += it.quantity
                s["revenue"] += it.price * it.quantity

    ranked = sorted(stats.items(), key=lambda kv: kv[1]["quantity"], reverse=True)
    top_items: List[TopItem] = [
        TopItem(item_name=name, quantity=s["quantity"], revenue=q2(s["revenue"]))
        for name, s in ranked[:TOP_ITEMS_LIMIT]
    ]

    return SalesAnalytics(
        total_sales=q2(total),
        order_count=count,
        average_order=q2(total / count) if count else ZERO,
        top_items=top_items,
    )


def payment_analytics(store: OrderStore, start: datetime, end: datetime) -> PaymentAnalytics:
    totals = {m: ZERO for m in PAYMENT_METHODS}

    with store.transaction() as db:
        sweep_expired_orders(db, store.now())

        rows = (
            db.query(Order.payment_method, Order.total_amount)
            .filter(
                Order.payment_status == "paid",
                Order.created_at >= start,
                Order.created_at <= end,
            )
            .all()
        )

    for method, amount in rows:
        if method in totals:
            totals[method] += amount

    return PaymentAnalytics(
        cash=q2(totals["cash"]),
        upi=q2(totals["upi"]),
        card=q2(totals["card"]),
        total=q2(sum(totals.values(), ZERO)),
    )


def dashboard_stats(store: OrderStore) -> DashboardStats:
    start, end = period_window("today", store.now())
    today = sales_analytics(store, start, end)

    with store.transaction() as db:
        active_orders = db.query(Order).filter(Order.status == "pending").count()
        tables = db.query(DiningTable).filter(DiningTable.table_type == "table").all()
        occupied = sum(1 for t in tables if t.status == "occupied")
        menu_items = db.query(MenuItem).count()

    return DashboardStats(
        today_sales=today.total_sales,
        active_orders=active_orders,
        active_tables=f"{occupied}/{len(tables)}",
        menu_items=menu_items,
    )
