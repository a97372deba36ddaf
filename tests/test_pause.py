import pytest

from orderdesk.errors import ServiceUnavailable, ValidationError
from orderdesk.ordering import lifecycle, pause


def test_no_record_means_not_paused(store):
    status = pause.check_paused(store, "restaurant")
    assert status.is_paused is False
    assert pause.get_pause_settings(store, "restaurant") is None


def test_paused_channel_rejects_then_accepts_after_expiry(store, clock, make_order):
    pause.set_pause(store, "bar", True, 30, "Rush")

    with pytest.raises(ServiceUnavailable) as exc_info:
        lifecycle.place_order(store, make_order(service_type="bar"))
    assert exc_info.value.remaining_minutes == 30
    assert exc_info.value.pause_reason == "Rush"
    assert lifecycle.list_orders(store) == []

    clock.advance(minutes=31)
    order = lifecycle.place_order(store, make_order(service_type="bar"))
    assert order.status == "pending"

    assert pause.check_paused(store, "bar").is_paused is False
    assert pause.get_pause_settings(store, "bar").is_paused is False


def test_pause_only_gates_its_own_channel(store, make_order):
    pause.set_pause(store, "bar", True, 30, "Rush")
    order = lifecycle.place_order(store, make_order(service_type="restaurant"))
    assert order.service_type == "restaurant"


def test_remaining_minutes_counts_down(store, clock):
    pause.set_pause(store, "restaurant", True, 20, "Kitchen backlog")

    clock.advance(minutes=5, seconds=30)
    status = pause.check_paused(store, "restaurant")
    assert status.is_paused is True
    assert status.remaining_minutes == 15
    assert status.pause_duration_minutes == 20
    assert status.pause_reason == "Kitchen backlog"


def test_expiry_is_idempotent_and_clears_record(store, clock):
    pause.set_pause(store, "bar", True, 10, "Rush")
    clock.advance(minutes=10)

    assert pause.get_pause_settings(store, "bar").is_paused is True

    results = [pause.check_paused(store, "bar") for _ in range(3)]
    assert all(r.is_paused is False for r in results)
    assert pause.get_pause_settings(store, "bar").is_paused is False

    clock.advance(minutes=60)
    assert pause.check_paused(store, "bar").is_paused is False


def test_still_paused_one_minute_before_expiry(store, clock):
    pause.set_pause(store, "bar", True, 10, "Rush")
    clock.advance(minutes=9, seconds=59)
    status = pause.check_paused(store, "bar")
    assert status.is_paused is True
    assert status.remaining_minutes == 1


def test_upsert_keeps_one_record_per_channel(store, clock):
    first = pause.set_pause(store, "restaurant", True, 15, "Rush")
    clock.advance(minutes=2)
    second = pause.set_pause(store, "restaurant", False)

    assert second.id == first.id
    assert second.is_paused is False
    assert pause.check_paused(store, "restaurant").is_paused is False

    clock.advance(minutes=2)
    third = pause.set_pause(store, "restaurant", True, 45, "Short staffed")
    assert third.id == first.id
    assert third.paused_at == clock()
    assert pause.check_paused(store, "restaurant").remaining_minutes == 45


def test_defaults_applied(store):
    rec = pause.set_pause(store, "restaurant", True)
    assert rec.pause_duration_minutes == 30
    assert rec.pause_reason == "Rush hours"


def test_unknown_channel_rejected(store):
    with pytest.raises(ValidationError):
        pause.set_pause(store, "patio", True, 10, "Rain")
    with pytest.raises(ValidationError):
        pause.check_paused(store, "patio")
