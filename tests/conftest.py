"""
Shared fixtures: an isolated in-memory store per test, a controllable clock,
and fake WebSocket connections for the broadcast hub.
"""
import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from orderdesk import auth, catalog
from orderdesk.broadcast import BroadcastHub
from orderdesk.main import create_app
from orderdesk.ordering import OrderDesk
from orderdesk.schemas import LineItemIn, OrderCreate
from orderdesk.store import OrderStore

ADMIN_USERNAME = "kitchen-admin"
ADMIN_PASSWORD = "s3cret-pass"


class FakeClock:
    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, when: datetime) -> None:
        self.current = when


class FakeConnection:
    """Stands in for a WebSocket; records every text frame it is sent."""

    def __init__(self, name: str = "conn", fail: bool = False, stall: bool = False):
        self.name = name
        self.fail = fail
        self.stall = stall
        self.accepted = False
        self.closed = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, text: str):
        if self.stall:
            # a display that stopped reading: the send never completes
            await asyncio.Event().wait()
        if self.fail:
            raise RuntimeError(f"{self.name} is gone")
        self.sent.append(text)

    async def close(self):
        self.closed = True


@pytest.fixture
def clock():
    # 06:30 UTC is 12:00 at the +05:30 business offset
    return FakeClock(datetime(2025, 3, 10, 6, 30, 0))


@pytest.fixture
def store(clock):
    s = OrderStore("sqlite://", clock=clock)
    yield s
    s.dispose()


@pytest.fixture
def seeded_store(store):
    catalog.seed_catalog(store, catalog.load_seed_catalog())
    return store


@pytest.fixture
def hub():
    return BroadcastHub()


@pytest.fixture
def desk(store, hub):
    return OrderDesk(store, hub)


@pytest.fixture
def make_order():
    def _make(
        service_type="restaurant",
        table_number="5",
        items=None,
        total=None,
        table_id=None,
    ) -> OrderCreate:
        if items is None:
            items = [
                LineItemIn(id=None, name="PANEER PAKORA", price=Decimal("300.00"), quantity=1),
                LineItemIn(id=None, name="MILK TEA", price=Decimal("75.00"), quantity=2),
            ]
        if total is None:
            total = sum((i.price * i.quantity for i in items), Decimal("0"))
        return OrderCreate(
            service_type=service_type,
            table_number=table_number,
            table_id=table_id,
            items=items,
            total_amount=total,
        )

    return _make


@pytest.fixture
def app(store, hub):
    application = create_app(store=store, hub=hub, seed=False)
    auth.ensure_user(store, ADMIN_USERNAME, ADMIN_PASSWORD)
    catalog.seed_catalog(store, catalog.load_seed_catalog())
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    resp = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}
