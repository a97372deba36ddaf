# orderdesk/ordering/pause.py
"""
Per-channel order pause (admission control).

A pause expires lazily: there is no timer. The first status read after
``paused_at + duration`` flips the stored record back to unpaused, inside the
same locked transaction as the read, so a concurrent toggle can never be lost.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ValidationError
from ..models import SERVICE_TYPES, OrderPauseSettings
from ..schemas import PauseSettingsOut, PauseStatus
from ..store import OrderStore

logger = logging.getLogger(__name__)


def _require_service_type(service_type: str) -> str:
    st = (service_type or "").strip().lower()
    if st not in SERVICE_TYPES:
        raise ValidationError(f"Unknown service type '{service_type}'")
    return st


def _get_record(db: Session, service_type: str) -> Optional[OrderPauseSettings]:
    return db.query(OrderPauseSettings).filter(OrderPauseSettings.service_type == service_type).first()


def evaluate_pause(db: Session, service_type: str, now: datetime) -> PauseStatus:
    """Live status for one channel. Caller must hold the store transaction."""
    rec = _get_record(db, service_type)
    if not rec or not rec.is_paused or not rec.paused_at:
        return PauseStatus(is_paused=False)

    elapsed_minutes = int((now - rec.paused_at).total_seconds() // 60)
    remaining = max(0, rec.pause_duration_minutes - elapsed_minutes)

    if remaining <= 0:
        rec.is_paused = False
        rec.updated_at = now
        logger.info(f"Order pause for {service_type} expired after {rec.pause_duration_minutes} min")
        return PauseStatus(is_paused=False)

    return PauseStatus(
        is_paused=True,
        paused_at=rec.paused_at,
        pause_duration_minutes=rec.pause_duration_minutes,
        pause_reason=rec.pause_reason,
        remaining_minutes=remaining,
    )


def check_paused(store: OrderStore, service_type: str) -> PauseStatus:
    st = _require_service_type(service_type)
    with store.transaction() as db:
        return evaluate_pause(db, st, store.now())


def get_pause_settings(store: OrderStore, service_type: str) -> Optional[PauseSettingsOut]:
    st = _require_service_type(service_type)
    with store.transaction() as db:
        rec = _get_record(db, st)
        return PauseSettingsOut.model_validate(rec) if rec else None


def set_pause(
    store: OrderStore,
    service_type: str,
    is_paused: bool,
    duration_minutes: Optional[int] = None,
    reason: Optional[str] = None,
) -> PauseSettingsOut:
    st = _require_service_type(service_type)
    duration = duration_minutes or settings.default_pause_minutes
    if duration <= 0:
        raise ValidationError("Pause duration must be a positive number of minutes")
    reason = (reason or "").strip() or settings.default_pause_reason

    with store.transaction() as db:
        now = store.now()
        rec = _get_record(db, st)
        if not rec:
            rec = OrderPauseSettings(service_type=st, created_at=now)
            db.add(rec)

        rec.is_paused = bool(is_paused)
        rec.pause_duration_minutes = duration
        rec.pause_reason = reason
        rec.updated_at = now
        if is_paused:
            rec.paused_at = now

        db.flush()
        out = PauseSettingsOut.model_validate(rec)

    if is_paused:
        logger.info(f"Orders paused for {st}: {duration} min ({reason})")
    else:
        logger.info(f"Orders resumed for {st}")
    return out
