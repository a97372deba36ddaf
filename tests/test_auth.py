from orderdesk import auth


def _lock_free(store, fn, calls):
    def wrapper(*args):
        calls.append(store._lock.locked())
        return fn(*args)

    return wrapper


def test_password_hashing_runs_outside_store_lock(store, monkeypatch):
    calls = []
    monkeypatch.setattr(auth, "hash_password", _lock_free(store, auth.hash_password, calls))
    monkeypatch.setattr(auth, "verify_password", _lock_free(store, auth.verify_password, calls))

    auth.ensure_user(store, "bar-lead", "pour-it")
    assert auth.authenticate(store, "bar-lead", "pour-it") is not None
    assert auth.authenticate(store, "bar-lead", "wrong") is None

    assert calls == [False, False, False]


def test_ensure_user_is_idempotent(store):
    first = auth.ensure_user(store, "manager", "one")
    second = auth.ensure_user(store, "manager", "two")
    assert second.id == first.id
    assert auth.authenticate(store, "manager", "one") is not None
    assert auth.authenticate(store, "manager", "two") is None


def test_unknown_user(store):
    assert auth.authenticate(store, "nobody", "x") is None


def test_token_round_trip_and_garbage(store):
    user = auth.ensure_user(store, "host", "welcome")
    assert auth.decode_token(auth.create_token(user.id)) == user.id
    assert auth.decode_token("not-a-token") is None
