# orderdesk/broadcast.py

"""
Fan-out of order events to connected staff displays.

Events are invalidation signals: receivers refetch over REST. Delivery is
best-effort; a connection that fails a send is dropped from the live set and
never affects delivery to the others.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from .config import settings
from .schemas import OrderOut

logger = logging.getLogger(__name__)

NEW_ORDER = "new_order"
ORDER_UPDATED = "order_updated"
PAYMENT_UPDATED = "payment_updated"
ORDER_CANCELLED = "order_cancelled"
ORDERS_RESET = "orders_reset"
ORDERS_PAUSE_UPDATED = "orders_pause_updated"

EVENT_TYPES = (
    NEW_ORDER,
    ORDER_UPDATED,
    PAYMENT_UPDATED,
    ORDER_CANCELLED,
    ORDERS_RESET,
    ORDERS_PAUSE_UPDATED,
)


class BroadcastHub:
    """Owns the set of live WebSocket connections."""

    def __init__(self, send_timeout: Optional[float] = None):
        self.active_connections: Set[Any] = set()
        # Held for a whole fan-out so events go out in emission order
        self.lock = asyncio.Lock()
        self.send_timeout = settings.ws_send_timeout_seconds if send_timeout is None else send_timeout

    async def connect(self, websocket) -> None:
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"WebSocket client connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info(f"WebSocket client disconnected. Total connections: {len(self.active_connections)}")

    @property
    def connection_count(self) -> int:
        return len(self.active_connections)

    async def _send(self, websocket, message_text: str) -> None:
        await asyncio.wait_for(websocket.send_text(message_text), timeout=self.send_timeout)

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """
        Send to every live connection; returns how many deliveries succeeded.

        Sends run side by side, each bounded by ``send_timeout``, so a display
        that stopped reading costs the caller at most one timeout and is then
        dropped like any other failed connection.
        """
        message_text = json.dumps(message, default=str)

        async with self.lock:
            # snapshot; connect/disconnect may mutate the set meanwhile
            targets = list(self.active_connections)
            results = await asyncio.gather(
                *(self._send(websocket, message_text) for websocket in targets),
                return_exceptions=True,
            )

            delivered = 0
            for websocket, result in zip(targets, results):
                if isinstance(result, Exception):
                    if isinstance(result, asyncio.TimeoutError):
                        logger.error(f"Timed out broadcasting {message.get('type')} after {self.send_timeout}s")
                    else:
                        logger.error(f"Error broadcasting {message.get('type')}: {str(result)}")
                    self.disconnect(websocket)
                else:
                    delivered += 1

        return delivered

    async def close_all_connections(self) -> None:
        tasks = [websocket.close() for websocket in list(self.active_connections)]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self.active_connections.clear()
        logger.info("All WebSocket connections closed")


# -------------------
# Event payloads
# -------------------
def _event(event_type: str, **payload: Any) -> Dict[str, Any]:
    message = {"type": event_type, "timestamp": datetime.now(timezone.utc).isoformat()}
    message.update(payload)
    return message


def new_order_event(order: OrderOut) -> Dict[str, Any]:
    return _event(
        NEW_ORDER,
        order_id=order.id,
        service_type=order.service_type,
        order=order.model_dump(mode="json"),
    )


def order_updated_event(order: OrderOut) -> Dict[str, Any]:
    return _event(
        ORDER_UPDATED,
        order_id=order.id,
        status=order.status,
        service_type=order.service_type,
        order=order.model_dump(mode="json"),
    )


def payment_updated_event(order: OrderOut) -> Dict[str, Any]:
    return _event(
        PAYMENT_UPDATED,
        order_id=order.id,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        service_type=order.service_type,
        order=order.model_dump(mode="json"),
    )


def order_cancelled_event(order: OrderOut) -> Dict[str, Any]:
    return _event(
        ORDER_CANCELLED,
        order_id=order.id,
        service_type=order.service_type,
        order=order.model_dump(mode="json"),
    )


def orders_reset_event(removed: int) -> Dict[str, Any]:
    return _event(
        ORDERS_RESET,
        removed=removed,
        message="Completed orders have been reset",
    )


def pause_updated_event(
    service_type: str,
    is_paused: bool,
    pause_duration_minutes: Optional[int],
    pause_reason: Optional[str],
) -> Dict[str, Any]:
    return _event(
        ORDERS_PAUSE_UPDATED,
        service_type=service_type,
        is_paused=is_paused,
        pause_duration_minutes=pause_duration_minutes,
        pause_reason=pause_reason,
    )
