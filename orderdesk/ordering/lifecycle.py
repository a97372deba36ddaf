# orderdesk/ordering/lifecycle.py
"""
Order lifecycle: placement, status and payment transitions, cancellation and
the completed-orders reset.

``update_status`` only moves an order forward through the workflow; skipping a
step is fine, going back is not, and a completed or cancelled order stays put.
A status change to ``cancelled`` follows the same rules as ``cancel_order``.
Payment gating (no completion before payment) lives in
``check_transition_policy``; callers that want it pass it as the ``policy``
argument so the check runs in the same transaction as the write.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import InvalidState, NotFound, ServiceUnavailable, ValidationError
from ..models import (
    CANCELLABLE_STATUSES,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    DiningTable,
    MenuItem,
    Order,
    OrderItem,
    q2,
)
from ..schemas import OrderCreate, OrderItemOut, OrderOut
from ..store import OrderStore
from .cart import cart_total, dump_cart, snapshot_lines
from .pause import evaluate_pause

logger = logging.getLogger(__name__)

TransitionPolicy = Callable[[Order, str], None]

# forward order of the fulfilment workflow
_STATUS_RANK = {"pending": 0, "preparing": 1, "ready": 2, "completed": 3}


def _get_order_row(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise NotFound(f"Order {order_id} not found")
    return order


# -------------------
# Placement
# -------------------
def place_order(store: OrderStore, data: OrderCreate) -> OrderOut:
    lines = snapshot_lines(data.items)
    total = q2(data.total_amount)

    computed = cart_total(lines)
    if computed != total:
        # client-side discounts are allowed; only note it
        logger.warning(f"Order total {total} differs from line total {computed} ({data.service_type})")

    with store.transaction() as db:
        now = store.now()

        pause = evaluate_pause(db, data.service_type, now)
        if pause.is_paused:
            logger.warning(f"Rejected {data.service_type} order: paused for {pause.remaining_minutes} more min")
            raise ServiceUnavailable(
                f"{data.service_type.capitalize()} orders are paused. "
                f"Please try again in {pause.remaining_minutes} minutes.",
                remaining_minutes=pause.remaining_minutes,
                pause_reason=pause.pause_reason,
            )

        table_id = data.table_id
        if table_id is not None:
            if not db.get(DiningTable, table_id):
                raise NotFound(f"Table {table_id} not found")
        else:
            table = db.query(DiningTable).filter(DiningTable.number == data.table_number).first()
            table_id = table.id if table else None

        order = Order(
            order_number=store.next_order_number(data.service_type, now),
            table_id=table_id,
            table_number=data.table_number,
            service_type=data.service_type,
            status="pending",
            total_amount=total,
            items=dump_cart(lines),
            payment_method=None,
            payment_status="pending",
            created_at=now,
        )
        db.add(order)
        db.flush()

        # keep the menu reference only while the item still exists
        ref_ids = [line["id"] for line in lines if line["id"] is not None]
        known = set()
        if ref_ids:
            known = {mid for (mid,) in db.query(MenuItem.id).filter(MenuItem.id.in_(ref_ids)).all()}

        for line in lines:
            db.add(
                OrderItem(
                    order_id=order.id,
                    menu_item_id=line["id"] if line["id"] in known else None,
                    quantity=line["quantity"],
                    price=line["price"],
                    item_name=line["name"],
                )
            )
        db.flush()
        out = OrderOut.model_validate(order)

    logger.info(f"Order {out.order_number} placed for table {out.table_number} ({out.total_amount})")
    return out


# -------------------
# Transitions
# -------------------
def _check_forward(order: Order, new_status: str) -> None:
    current = order.status

    if new_status == current:
        return

    if current in ("completed", "cancelled"):
        raise InvalidState(f"Order {order.order_number} is already {current}")

    if new_status == "cancelled":
        if current not in CANCELLABLE_STATUSES:
            raise InvalidState(f"Order {order.order_number} is {current} and cannot be cancelled")
        return

    if _STATUS_RANK[new_status] < _STATUS_RANK[current]:
        raise InvalidState(f"Cannot move order {order.order_number} back from {current} to {new_status}")


def check_transition_policy(order: Order, new_status: str) -> None:
    """Payment gate layered over the forward-only core transition."""
    if new_status == "completed" and order.status != "completed" and order.payment_status != "paid":
        raise InvalidState("Please complete the payment before marking the order as completed")


def update_status(
    store: OrderStore,
    order_id: int,
    new_status: str,
    policy: Optional[TransitionPolicy] = None,
) -> OrderOut:
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status '{new_status}'")

    with store.transaction() as db:
        order = _get_order_row(db, order_id)
        _check_forward(order, new_status)
        if policy is not None:
            policy(order, new_status)

        previous = order.status
        order.status = new_status
        if new_status == "completed" and order.completed_at is None:
            order.completed_at = store.now()
        if new_status == "cancelled" and order.cancelled_at is None:
            order.cancelled_at = store.now()
            order.cancel_reason = order.cancel_reason or settings.default_cancel_reason

        db.flush()
        out = OrderOut.model_validate(order)

    logger.info(f"Order {out.order_number}: {previous} -> {new_status}")
    return out


def update_payment(
    store: OrderStore,
    order_id: int,
    payment_method: Optional[str],
    payment_status: str,
) -> OrderOut:
    if payment_status == "completed":
        payment_status = "paid"
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"Unknown payment status '{payment_status}'")
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method '{payment_method}'")

    with store.transaction() as db:
        order = _get_order_row(db, order_id)

        method = payment_method or order.payment_method
        if payment_status == "paid" and not method:
            raise ValidationError("A payment method is required to mark an order as paid")

        order.payment_method = method
        order.payment_status = payment_status
        if payment_status == "paid":
            if order.paid_at is None:
                order.paid_at = store.now()
        else:
            order.paid_at = None

        db.flush()
        out = OrderOut.model_validate(order)

    logger.info(f"Order {out.order_number}: payment {out.payment_status} via {out.payment_method}")
    return out


def cancel_order(store: OrderStore, order_id: int, reason: Optional[str] = None) -> OrderOut:
    reason = (reason or "").strip() or settings.default_cancel_reason

    with store.transaction() as db:
        order = _get_order_row(db, order_id)
        if order.status not in CANCELLABLE_STATUSES:
            logger.warning(f"Refused to cancel order {order.order_number} in status {order.status}")
            raise InvalidState(f"Order {order.order_number} is {order.status} and cannot be cancelled")

        order.status = "cancelled"
        order.cancelled_at = store.now()
        order.cancel_reason = reason

        db.flush()
        out = OrderOut.model_validate(order)

    logger.info(f"Order {out.order_number} cancelled: {reason}")
    return out


def reset_completed(store: OrderStore) -> int:
    """Delete every completed order and its items. Irreversible."""
    with store.transaction() as db:
        ids = [oid for (oid,) in db.query(Order.id).filter(Order.status == "completed").all()]
        if ids:
            db.query(OrderItem).filter(OrderItem.order_id.in_(ids)).delete(synchronize_session=False)
            db.query(Order).filter(Order.id.in_(ids)).delete(synchronize_session=False)

    logger.info(f"Reset removed {len(ids)} completed orders")
    return len(ids)


# -------------------
# Reads
# -------------------
def list_orders(
    store: OrderStore,
    status: Optional[str] = None,
    service_type: Optional[str] = None,
) -> List[OrderOut]:
    with store.transaction() as db:
        q = db.query(Order)
        if status:
            q = q.filter(Order.status == status)
        if service_type:
            q = q.filter(Order.service_type == service_type)
        rows = q.order_by(Order.created_at.desc(), Order.id.desc()).all()
        return [OrderOut.model_validate(o) for o in rows]


def get_order(store: OrderStore, order_id: int) -> OrderOut:
    with store.transaction() as db:
        return OrderOut.model_validate(_get_order_row(db, order_id))


def get_order_by_number(store: OrderStore, order_number: str) -> OrderOut:
    with store.transaction() as db:
        order = db.query(Order).filter(Order.order_number == order_number).first()
        if not order:
            raise NotFound(f"Order {order_number} not found")
        return OrderOut.model_validate(order)


def get_order_items(store: OrderStore, order_id: int) -> List[OrderItemOut]:
    with store.transaction() as db:
        _get_order_row(db, order_id)
        rows = db.query(OrderItem).filter(OrderItem.order_id == order_id).order_by(OrderItem.id).all()
        return [OrderItemOut.model_validate(r) for r in rows]
