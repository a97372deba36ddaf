# orderdesk/schemas.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

ServiceType = Literal["restaurant", "bar"]
OrderStatus = Literal["pending", "preparing", "ready", "completed", "cancelled"]
PaymentMethod = Literal["cash", "upi", "card"]

# stored naive UTC; JSON carries the offset so clients do not read local time
UTCDateTime = Annotated[
    datetime,
    PlainSerializer(lambda v: v.replace(tzinfo=timezone.utc).isoformat(), return_type=str, when_used="json"),
]


class Snapshot(BaseModel):
    """Read model copied out of the store; never a live ORM row."""

    model_config = ConfigDict(from_attributes=True)


# -------------------
# Orders
# -------------------
class LineItemIn(BaseModel):
    id: Optional[int] = None
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    service_type: ServiceType
    table_number: str = Field(min_length=1)
    table_id: Optional[int] = None
    items: List[LineItemIn] = Field(min_length=1)
    total_amount: Decimal = Field(ge=0)


class StatusUpdate(BaseModel):
    status: OrderStatus


class PaymentUpdate(BaseModel):
    payment_method: Optional[PaymentMethod] = None
    # "completed" is the legacy spelling of "paid"
    payment_status: Literal["pending", "paid", "completed"]


class CancelIn(BaseModel):
    reason: Optional[str] = None


class OrderOut(Snapshot):
    id: int
    order_number: str
    table_id: Optional[int]
    table_number: str
    service_type: str
    status: str
    total_amount: Decimal
    items: str
    payment_method: Optional[str]
    payment_status: str
    created_at: UTCDateTime
    completed_at: Optional[UTCDateTime]
    cancelled_at: Optional[UTCDateTime]
    cancel_reason: Optional[str]
    paid_at: Optional[UTCDateTime]


class OrderItemOut(Snapshot):
    id: int
    order_id: int
    menu_item_id: Optional[int]
    quantity: int
    price: Decimal
    item_name: str


# -------------------
# Pause control
# -------------------
class PauseIn(BaseModel):
    service_type: ServiceType
    is_paused: bool
    pause_duration_minutes: Optional[int] = Field(default=None, ge=1)
    pause_reason: Optional[str] = None


class PauseSettingsOut(Snapshot):
    id: int
    service_type: str
    is_paused: bool
    pause_duration_minutes: int
    paused_at: Optional[UTCDateTime]
    pause_reason: str
    created_at: Optional[UTCDateTime]
    updated_at: Optional[UTCDateTime]


class PauseStatus(BaseModel):
    is_paused: bool
    paused_at: Optional[UTCDateTime] = None
    pause_duration_minutes: Optional[int] = None
    pause_reason: Optional[str] = None
    remaining_minutes: Optional[int] = None


# -------------------
# Analytics
# -------------------
class TopItem(BaseModel):
    item_name: str
    quantity: int
    revenue: Decimal


class SalesAnalytics(BaseModel):
    total_sales: Decimal
    order_count: int
    average_order: Decimal
    top_items: List[TopItem]


class PaymentAnalytics(BaseModel):
    cash: Decimal
    upi: Decimal
    card: Decimal
    total: Decimal


class DashboardStats(BaseModel):
    today_sales: Decimal
    active_orders: int
    active_tables: str
    menu_items: int


# -------------------
# Catalog
# -------------------
class CategoryIn(BaseModel):
    name: str = Field(min_length=1)
    service_type: ServiceType


class CategoryPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    service_type: Optional[ServiceType] = None


class CategoryOut(Snapshot):
    id: int
    name: str
    service_type: str


class MenuItemIn(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    price: Decimal = Field(ge=0)
    image: Optional[str] = None
    category_id: Optional[int] = None
    service_type: ServiceType
    available: bool = True


class MenuItemPatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    image: Optional[str] = None
    category_id: Optional[int] = None
    service_type: Optional[ServiceType] = None
    available: Optional[bool] = None


class MenuItemOut(Snapshot):
    id: int
    name: str
    description: str
    price: Decimal
    image: Optional[str]
    category_id: Optional[int]
    service_type: str
    available: bool
    created_at: Optional[UTCDateTime]


class TableIn(BaseModel):
    number: str = Field(min_length=1)
    name: str = Field(min_length=1)
    table_type: Literal["table", "room"] = "table"
    status: Literal["available", "occupied", "reserved"] = "available"

    @field_validator("number")
    @classmethod
    def _strip_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Table number is required")
        return v


class TablePatch(BaseModel):
    number: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    table_type: Optional[Literal["table", "room"]] = None
    status: Optional[Literal["available", "occupied", "reserved"]] = None


class TableOut(Snapshot):
    id: int
    number: str
    name: str
    table_type: str
    status: str
    created_at: Optional[UTCDateTime]


class TableQR(BaseModel):
    qr_code: str
    url: str


# -------------------
# Auth
# -------------------
class LoginIn(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserOut(Snapshot):
    id: int
    username: str
    role: str
