# orderdesk/ordering/retention.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..config import settings
from ..models import Order, OrderItem
from ..store import OrderStore

logger = logging.getLogger(__name__)


def sweep_expired_orders(db: Session, now: datetime, retention_days: int | None = None) -> int:
    """Delete orders (and their items) created before the retention window."""
    days = settings.retention_days if retention_days is None else retention_days
    cutoff = now - timedelta(days=days)

    ids = [oid for (oid,) in db.query(Order.id).filter(Order.created_at < cutoff).all()]
    if not ids:
        return 0

    db.query(OrderItem).filter(OrderItem.order_id.in_(ids)).delete(synchronize_session=False)
    db.query(Order).filter(Order.id.in_(ids)).delete(synchronize_session=False)

    logger.info(f"Retention sweep removed {len(ids)} orders older than {days} days")
    return len(ids)


def run_sweep(store: OrderStore, retention_days: int | None = None) -> int:
    with store.transaction() as db:
        return sweep_expired_orders(db, store.now(), retention_days)
