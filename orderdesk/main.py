# orderdesk/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from . import auth, catalog
from .broadcast import BroadcastHub
from .config import settings
from .errors import OrderDeskError
from .ordering import OrderDesk, analytics, lifecycle, pause, retention
from .qr import qr_data_url, table_order_url
from .schemas import (
    CancelIn,
    CategoryIn,
    CategoryOut,
    CategoryPatch,
    DashboardStats,
    LoginIn,
    MenuItemIn,
    MenuItemOut,
    MenuItemPatch,
    OrderCreate,
    OrderItemOut,
    OrderOut,
    PaymentAnalytics,
    PaymentUpdate,
    PauseIn,
    PauseSettingsOut,
    PauseStatus,
    SalesAnalytics,
    ServiceType,
    StatusUpdate,
    TableIn,
    TableOut,
    TablePatch,
    TableQR,
    UserOut,
)
from .store import OrderStore

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

router = APIRouter()


# -------------------
# Dependencies
# -------------------
def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub


def get_desk(request: Request) -> OrderDesk:
    return request.app.state.desk


def require_staff(
    store: OrderStore = Depends(get_store),
    authorization: str | None = Header(default=None),
) -> UserOut:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Authentication required")

    token = authorization.split(" ", 1)[1].strip()
    uid = auth.decode_token(token)
    if not uid:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = auth.get_user(store, uid)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def handle_orderdesk_error(request: Request, exc: OrderDeskError) -> JSONResponse:
    logger.warning(f"{exc.error_code} at {request.url.path}: {exc.detail}")
    body = exc.to_dict()
    body["path"] = str(request.url.path)
    return JSONResponse(status_code=exc.status_code, content=body)


# -------------------
# Health
# -------------------
@router.get("/")
def root(hub: BroadcastHub = Depends(get_hub)):
    return {"ok": True, "service": "orderdesk-api", "live_connections": hub.connection_count}


# -------------------
# Auth
# -------------------
@router.post("/api/auth/login")
def login(payload: LoginIn, store: OrderStore = Depends(get_store)):
    user = auth.authenticate(store, payload.username, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {"token": auth.create_token(user.id), "user": user}


@router.get("/api/auth/me", response_model=UserOut)
def me(user: UserOut = Depends(require_staff)):
    return user


# -------------------
# Menu categories
# -------------------
@router.get("/api/menu-categories", response_model=List[CategoryOut])
def get_categories(type: Optional[ServiceType] = None, store: OrderStore = Depends(get_store)):
    return catalog.list_categories(store, type)


@router.post("/api/menu-categories", response_model=CategoryOut, status_code=201)
def post_category(payload: CategoryIn, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    return catalog.create_category(store, payload)


@router.put("/api/menu-categories/{category_id}", response_model=CategoryOut)
def put_category(
    category_id: int,
    payload: CategoryPatch,
    store: OrderStore = Depends(get_store),
    _: UserOut = Depends(require_staff),
):
    return catalog.update_category(store, category_id, payload)


@router.delete("/api/menu-categories/{category_id}")
def remove_category(category_id: int, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    catalog.delete_category(store, category_id)
    return {"message": "Category deleted successfully"}


# -------------------
# Menu items
# -------------------
@router.get("/api/menu-items", response_model=List[MenuItemOut])
def get_menu_items(
    type: Optional[ServiceType] = None,
    category_id: Optional[int] = None,
    store: OrderStore = Depends(get_store),
):
    return catalog.list_menu_items(store, type, category_id)


@router.get("/api/menu-items/{item_id}", response_model=MenuItemOut)
def get_menu_item(item_id: int, store: OrderStore = Depends(get_store)):
    return catalog.get_menu_item(store, item_id)


@router.post("/api/menu-items", response_model=MenuItemOut, status_code=201)
def post_menu_item(payload: MenuItemIn, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    return catalog.create_menu_item(store, payload)


@router.put("/api/menu-items/{item_id}", response_model=MenuItemOut)
def put_menu_item(
    item_id: int,
    payload: MenuItemPatch,
    store: OrderStore = Depends(get_store),
    _: UserOut = Depends(require_staff),
):
    return catalog.update_menu_item(store, item_id, payload)


@router.delete("/api/menu-items/{item_id}")
def remove_menu_item(item_id: int, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    catalog.delete_menu_item(store, item_id)
    return {"message": "Menu item deleted successfully"}


# -------------------
# Tables and rooms
# -------------------
@router.get("/api/tables", response_model=List[TableOut])
def get_tables(type: Optional[str] = None, store: OrderStore = Depends(get_store)):
    return catalog.list_tables(store, type)


@router.get("/api/tables/{number}", response_model=TableOut)
def get_table_by_number(number: str, store: OrderStore = Depends(get_store)):
    return catalog.get_table_by_number(store, number)


@router.get("/api/tables/{table_id}/qr", response_model=TableQR)
def get_table_qr(table_id: int, store: OrderStore = Depends(get_store)):
    table = catalog.get_table(store, table_id)
    url = table_order_url(table.number)
    return TableQR(qr_code=qr_data_url(url), url=url)


@router.post("/api/tables", response_model=TableOut, status_code=201)
def post_table(payload: TableIn, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    return catalog.create_table(store, payload)


@router.put("/api/tables/{table_id}", response_model=TableOut)
def put_table(
    table_id: int,
    payload: TablePatch,
    store: OrderStore = Depends(get_store),
    _: UserOut = Depends(require_staff),
):
    return catalog.update_table(store, table_id, payload)


@router.delete("/api/tables/{table_id}")
def remove_table(table_id: int, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    catalog.delete_table(store, table_id)
    return {"message": "Table deleted successfully"}


# -------------------
# Orders
# -------------------
@router.post("/api/orders", response_model=OrderOut, status_code=201)
async def place_order(payload: OrderCreate, desk: OrderDesk = Depends(get_desk)):
    return await desk.place_order(payload)


@router.get("/api/orders", response_model=List[OrderOut])
def get_orders(
    status: Optional[str] = None,
    service_type: Optional[ServiceType] = None,
    store: OrderStore = Depends(get_store),
    _: UserOut = Depends(require_staff),
):
    return lifecycle.list_orders(store, status, service_type)


@router.get("/api/orders/number/{order_number}", response_model=OrderOut)
def get_order_by_number(order_number: str, store: OrderStore = Depends(get_store)):
    return lifecycle.get_order_by_number(store, order_number)


@router.get("/api/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: int, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    return lifecycle.get_order(store, order_id)


@router.get("/api/orders/{order_id}/items", response_model=List[OrderItemOut])
def get_order_items(order_id: int, store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    return lifecycle.get_order_items(store, order_id)


@router.put("/api/orders/{order_id}/status", response_model=OrderOut)
async def put_order_status(
    order_id: int,
    payload: StatusUpdate,
    enforce_policy: bool = True,
    desk: OrderDesk = Depends(get_desk),
    _: UserOut = Depends(require_staff),
):
    return await desk.update_status(order_id, payload.status, enforce_policy=enforce_policy)


@router.put("/api/orders/{order_id}/payment", response_model=OrderOut)
async def put_order_payment(
    order_id: int,
    payload: PaymentUpdate,
    desk: OrderDesk = Depends(get_desk),
    _: UserOut = Depends(require_staff),
):
    return await desk.update_payment(order_id, payload.payment_method, payload.payment_status)


@router.put("/api/orders/{order_id}/cancel", response_model=OrderOut)
async def put_order_cancel(
    order_id: int,
    payload: Optional[CancelIn] = None,
    desk: OrderDesk = Depends(get_desk),
    _: UserOut = Depends(require_staff),
):
    reason = payload.reason if payload else None
    return await desk.cancel_order(order_id, reason)


@router.post("/api/orders/reset")
async def reset_orders(desk: OrderDesk = Depends(get_desk), _: UserOut = Depends(require_staff)):
    removed = await desk.reset_completed()
    return {"message": "Completed orders reset successfully", "removed": removed}


# -------------------
# Order pause
# -------------------
@router.get("/api/order-pause/{service_type}", response_model=PauseStatus)
def get_pause_status(service_type: ServiceType, store: OrderStore = Depends(get_store)):
    return pause.check_paused(store, service_type)


@router.post("/api/order-pause", response_model=PauseSettingsOut)
async def post_pause(payload: PauseIn, desk: OrderDesk = Depends(get_desk), _: UserOut = Depends(require_staff)):
    return await desk.set_pause(
        payload.service_type,
        payload.is_paused,
        payload.pause_duration_minutes,
        payload.pause_reason,
    )


# -------------------
# Analytics
# -------------------
@router.get("/api/analytics", response_model=SalesAnalytics)
def get_sales_analytics(
    period: str = "today",
    service_type: Optional[ServiceType] = None,
    store: OrderStore = Depends(get_store),
    _: UserOut = Depends(require_staff),
):
    start, end = analytics.period_window(period, store.now())
    return analytics.sales_analytics(store, start, end, service_type)


@router.get("/api/analytics/payments", response_model=PaymentAnalytics)
def get_payment_analytics(
    period: str = "today",
    store: OrderStore = Depends(get_store),
    _: UserOut = Depends(require_staff),
):
    start, end = analytics.period_window(period, store.now())
    return analytics.payment_analytics(store, start, end)


@router.get("/api/dashboard/stats", response_model=DashboardStats)
def get_dashboard_stats(store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    return analytics.dashboard_stats(store)


@router.post("/api/maintenance/sweep")
def post_sweep(store: OrderStore = Depends(get_store), _: UserOut = Depends(require_staff)):
    return {"removed": retention.run_sweep(store)}


# -------------------
# Live feed (push-only)
# -------------------
@router.websocket("/ws")
async def orders_feed(websocket: WebSocket):
    hub: BroadcastHub = websocket.app.state.hub
    await hub.connect(websocket)
    try:
        # inbound frames (text or binary) are ignored; reading only surfaces the disconnect
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)


# -------------------
# App factory
# -------------------
def create_app(
    store: OrderStore | None = None,
    hub: BroadcastHub | None = None,
    seed: bool | None = None,
) -> FastAPI:
    store = store or OrderStore(settings.database_url)
    hub = hub or BroadcastHub()

    if settings.seed_data if seed is None else seed:
        auth.ensure_user(store, settings.admin_username, settings.admin_password)
        catalog.seed_catalog(store, catalog.load_seed_catalog())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await hub.close_all_connections()
        store.dispose()

    app = FastAPI(title="OrderDesk API", lifespan=lifespan)
    app.state.store = store
    app.state.hub = hub
    app.state.desk = OrderDesk(store, hub)

    app.add_exception_handler(OrderDeskError, handle_orderdesk_error)
    app.include_router(router)
    return app


app = create_app()
