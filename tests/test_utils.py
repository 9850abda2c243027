import pytest

from utils.cache import TTLCache, make_cache_key
from utils.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitState
from utils.events import EventBus
from utils.payload import strip_empty


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_ttl_cache_expires_entries():
    clock = FakeClock()
    cache = TTLCache(name="test", ttl_seconds=30, clock=clock)

    cache.set("feed:a:", ["x"])
    clock.now = 29
    assert cache.get("feed:a:") == ["x"]

    clock.now = 30
    assert cache.get("feed:a:") is None
    assert list(cache.keys()) == []


def test_ttl_cache_prefix_invalidation():
    cache = TTLCache(name="test", ttl_seconds=30)
    cache.set(make_cache_key("feed", "u1", "u2,u3"), 1)
    cache.set(make_cache_key("feed", "u1", ""), 2)
    cache.set(make_cache_key("feed", "u10", ""), 3)

    assert cache.invalidate(make_cache_key("feed", "u1") + ":") == 2
    assert list(cache.keys()) == ["feed:u10:"]


def test_cache_key_parts_cannot_spill_into_each_other():
    assert make_cache_key("feed", "u1:x", "") == "feed:u1\\:x:"
    assert make_cache_key("feed", "u1", "x:") != make_cache_key("feed", "u1:x", "")

    cache = TTLCache(name="test", ttl_seconds=30)
    cache.set(make_cache_key("feed", "u1", ""), 1)
    cache.set(make_cache_key("feed", "u1:x", ""), 2)

    assert cache.invalidate(make_cache_key("feed", "u1") + ":") == 1
    assert cache.get(make_cache_key("feed", "u1:x", "")) == 2


def test_strip_empty_drops_blank_values_recursively():
    payload = {
        "title": "Heat",
        "description": "  ",
        "details": {"year": 1995, "director": None, "cast": ["Pacino", ""], "extra": {"empty": None}},
        "count": 0,
        "flag": False,
    }

    assert strip_empty(payload) == {
        "title": "Heat",
        "details": {"year": 1995, "cast": ["Pacino"]},
        "count": 0,
        "flag": False,
    }


def test_circuit_breaker_opens_and_recovers():
    breaker = CircuitBreaker(name="test", failure_threshold=2, recovery_timeout_seconds=0)

    def boom():
        raise RuntimeError("down")

    for _ in range(2):
        with pytest.raises(RuntimeError):
            breaker.call(boom)

    assert breaker.state == CircuitState.OPEN

    # zero recovery window lets the next call probe immediately
    assert breaker.call(lambda: "ok") == "ok"
    assert breaker.state == CircuitState.CLOSED


def test_circuit_breaker_rejects_while_open():
    breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout_seconds=3600)

    with pytest.raises(RuntimeError):
        breaker.call(lambda: (_ for _ in ()).throw(RuntimeError("down")))

    with pytest.raises(CircuitBreakerOpenError):
        breaker.call(lambda: "never")


def test_event_bus_isolates_handler_failures():
    bus = EventBus()
    received = []

    def broken(**_):
        raise RuntimeError("handler bug")

    bus.subscribe("changed", broken)
    bus.subscribe("changed", lambda **payload: received.append(payload))

    bus.publish("changed", user_id="u1")

    assert received == [{"user_id": "u1"}]
