# orderdesk/ordering/service.py
from __future__ import annotations

from typing import Optional

from .. import broadcast
from ..broadcast import BroadcastHub
from ..schemas import OrderCreate, OrderOut, PauseSettingsOut
from ..store import OrderStore
from . import lifecycle, pause


class OrderDesk:
    """
    State-changing operations plus their broadcast.

    The store write happens synchronously on the event loop and the hub lock
    is taken before the first await, so events leave in the order the writes
    were committed. A failed operation raises before anything is broadcast.
    """

    def __init__(self, store: OrderStore, hub: BroadcastHub):
        self.store = store
        self.hub = hub

    async def place_order(self, data: OrderCreate) -> OrderOut:
        order = lifecycle.place_order(self.store, data)
        await self.hub.broadcast(broadcast.new_order_event(order))
        return order

    async def update_status(self, order_id: int, new_status: str, enforce_policy: bool = True) -> OrderOut:
        policy = lifecycle.check_transition_policy if enforce_policy else None
        order = lifecycle.update_status(self.store, order_id, new_status, policy=policy)
        await self.hub.broadcast(broadcast.order_updated_event(order))
        return order

    async def update_payment(self, order_id: int, payment_method: Optional[str], payment_status: str) -> OrderOut:
        order = lifecycle.update_payment(self.store, order_id, payment_method, payment_status)
        await self.hub.broadcast(broadcast.payment_updated_event(order))
        return order

    async def cancel_order(self, order_id: int, reason: Optional[str] = None) -> OrderOut:
        order = lifecycle.cancel_order(self.store, order_id, reason)
        await self.hub.broadcast(broadcast.order_cancelled_event(order))
        return order

    async def reset_completed(self) -> int:
        removed = lifecycle.reset_completed(self.store)
        await self.hub.broadcast(broadcast.orders_reset_event(removed))
        return removed

    async def set_pause(
        self,
        service_type: str,
        is_paused: bool,
        duration_minutes: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> PauseSettingsOut:
        rec = pause.set_pause(self.store, service_type, is_paused, duration_minutes, reason)
        await self.hub.broadcast(
            broadcast.pause_updated_event(
                rec.service_type, rec.is_paused, rec.pause_duration_minutes, rec.pause_reason
            )
        )
        return rec
