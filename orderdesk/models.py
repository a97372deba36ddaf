# orderdesk/models.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.types import TypeDecorator

from .db import Base

SERVICE_TYPES = ("restaurant", "bar")

ORDER_STATUSES = ("pending", "preparing", "ready", "completed", "cancelled")
CANCELLABLE_STATUSES = ("pending", "preparing")

PAYMENT_METHODS = ("cash", "upi", "card")
PAYMENT_STATUSES = ("pending", "paid")

CENTS = Decimal("0.01")


def utcnow() -> datetime:
    """Naive UTC, matching what the DateTime columns hand back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def q2(val) -> Decimal:
    """Round to 2 places."""
    return Decimal(str(val)).quantize(CENTS, rounding=ROUND_HALF_UP)


class Money(TypeDecorator):
    """Fixed-point amount persisted as its exact decimal string."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(q2(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="admin")
    created_at = Column(DateTime, default=utcnow)


class MenuCategory(Base):
    __tablename__ = "menu_categories"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    service_type = Column(String, nullable=False)  # restaurant | bar


class MenuItem(Base):
    __tablename__ = "menu_items"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Money, nullable=False)
    image = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("menu_categories.id", ondelete="SET NULL"), nullable=True)
    service_type = Column(String, nullable=False)  # restaurant | bar
    available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)


class DiningTable(Base):
    __tablename__ = "tables"
    id = Column(Integer, primary_key=True)
    number = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    table_type = Column(String, nullable=False, default="table")  # table | room
    status = Column(String, nullable=False, default="available")  # available | occupied | reserved
    created_at = Column(DateTime, default=utcnow)


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    order_number = Column(String, unique=True, index=True, nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id", ondelete="SET NULL"), nullable=True)
    table_number = Column(String, nullable=False)
    service_type = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")
    total_amount = Column(Money, nullable=False)
    items = Column(Text, nullable=False, default="[]")  # line-item snapshot at placement
    payment_method = Column(String, nullable=True)  # cash | upi | card
    payment_status = Column(String, nullable=False, default="pending")  # pending | paid
    created_at = Column(DateTime, default=utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancel_reason = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Money, nullable=False)
    item_name = Column(String, nullable=False)


class OrderPauseSettings(Base):
    __tablename__ = "order_pause_settings"
    id = Column(Integer, primary_key=True)
    service_type = Column(String, unique=True, nullable=False)
    is_paused = Column(Boolean, nullable=False, default=False)
    pause_duration_minutes = Column(Integer, nullable=False, default=30)
    paused_at = Column(DateTime, nullable=True)
    pause_reason = Column(Text, nullable=False, default="Rush hours")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
