# orderdesk/errors.py
"""
Domain errors raised by the store-level services.

The HTTP layer turns every OrderDeskError into a JSON body with a stable
``error_code``. Nothing here is ever raised into the broadcast hub: events are
only emitted after the owning transaction has committed.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class OrderDeskError(Exception):
    status_code = 400
    error_code = "ERROR"

    def __init__(self, detail: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.detail, "error_code": self.error_code}
        body.update(self.extra)
        return body


class NotFound(OrderDeskError):
    status_code = 404
    error_code = "NOT_FOUND"


class InvalidState(OrderDeskError):
    status_code = 409
    error_code = "INVALID_STATE"


class ValidationError(OrderDeskError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class ServiceUnavailable(OrderDeskError):
    """Order placement rejected because the channel is paused."""

    status_code = 503
    error_code = "ORDERS_PAUSED"

    def __init__(self, detail: str, remaining_minutes: int, pause_reason: str | None = None):
        super().__init__(
            detail,
            extra={"remaining_minutes": remaining_minutes, "pause_reason": pause_reason},
        )
        self.remaining_minutes = remaining_minutes
        self.pause_reason = pause_reason
