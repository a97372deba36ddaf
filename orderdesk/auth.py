# orderdesk/auth.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings
from .models import User
from .schemas import UserOut
from .store import OrderStore

pwd = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    return pwd.verify(p, h)


def create_token(user_id: int) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str) -> Optional[int]:
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
        return int(data.get("sub"))
    except (JWTError, TypeError, ValueError):
        return None


def authenticate(store: OrderStore, username: str, password: str) -> Optional[UserOut]:
    with store.transaction() as db:
        u = db.query(User).filter(User.username == username).first()
        if not u:
            return None
        password_hash = u.password_hash
        user = UserOut.model_validate(u)

    # argon2 is slow; verify outside the store lock
    if not verify_password(password, password_hash):
        return None
    return user


def get_user(store: OrderStore, user_id: int) -> Optional[UserOut]:
    with store.transaction() as db:
        u = db.get(User, user_id)
        return UserOut.model_validate(u) if u else None


def _find_user(store: OrderStore, username: str) -> Optional[UserOut]:
    with store.transaction() as db:
        u = db.query(User).filter(User.username == username).first()
        return UserOut.model_validate(u) if u else None


def ensure_user(store: OrderStore, username: str, password: str, role: str = "admin") -> UserOut:
    existing = _find_user(store, username)
    if existing:
        return existing

    password_hash = hash_password(password)
    with store.transaction() as db:
        u = db.query(User).filter(User.username == username).first()
        if not u:
            u = User(username=username, password_hash=password_hash, role=role, created_at=store.now())
            db.add(u)
            db.flush()
        return UserOut.model_validate(u)
