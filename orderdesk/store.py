# orderdesk/store.py
"""
Single-process entity store.

Every logical operation goes through ``OrderStore.transaction()``, which holds
one non-reentrant lock for the life of a SQLAlchemy session. That gives each
mutation (and each analytics scan) an atomic view of the data: an order and its
line items are committed together, and no reader sees one without the other.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator

from sqlalchemy.orm import Session

from .db import Base, make_engine, make_session_factory
from .models import utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class OrderStore:
    def __init__(self, database_url: str = "sqlite://", clock: Clock = utcnow, echo: bool = False):
        self.engine = make_engine(database_url, echo=echo)
        self.SessionLocal = make_session_factory(self.engine)
        self.clock = clock
        self._lock = threading.Lock()
        self._last_order_millis: Dict[str, int] = {}

        Base.metadata.create_all(bind=self.engine)
        logger.info("Entity store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    def now(self) -> datetime:
        return self.clock()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with self._lock:
            db = self.SessionLocal()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def next_order_number(self, service_type: str, now: datetime) -> str:
        """
        <SERVICE><epoch millis>. Call with the transaction lock held.
        Two placements in the same millisecond get consecutive millis instead of
        colliding, so the format stays the same but numbers never repeat in-process.
        """
        millis = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
        last = self._last_order_millis.get(service_type, 0)
        if millis <= last:
            millis = last + 1
        self._last_order_millis[service_type] = millis
        return f"{service_type.upper()}{millis}"

    def dispose(self) -> None:
        self.engine.dispose()
