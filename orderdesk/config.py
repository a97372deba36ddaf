# orderdesk/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite://")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")
    # default 24h
    jwt_expire_minutes: int = _env_int("JWT_EXPIRE_MIN", 1440)

    admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin-change-me")
    seed_data: bool = _env_flag("SEED_DATA", "1")

    retention_days: int = _env_int("RETENTION_DAYS", 30)
    # IST (+05:30) business day
    business_utc_offset_minutes: int = _env_int("BUSINESS_UTC_OFFSET_MINUTES", 330)

    default_pause_minutes: int = _env_int("DEFAULT_PAUSE_MINUTES", 30)
    default_pause_reason: str = os.getenv("DEFAULT_PAUSE_REASON", "Rush hours")
    default_cancel_reason: str = os.getenv("DEFAULT_CANCEL_REASON", "Cancelled by customer request")

    # a staff display that cannot take a frame within this is dropped
    ws_send_timeout_seconds: float = _env_float("WS_SEND_TIMEOUT_SECONDS", 5.0)

    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")


settings = Settings()
