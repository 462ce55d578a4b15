"""Unit tests for the short-lived schedule read cache."""

from __future__ import annotations

from backend.schedule.cache import ReadCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entry_is_served_until_ttl_expires():
    clock = FakeClock()
    cache = ReadCache(90, clock=clock)
    cache.put(("course_tasks", 1), ["a"])

    clock.now += 89
    assert cache.get(("course_tasks", 1)) == ["a"]

    clock.now += 1
    assert cache.get(("course_tasks", 1)) is None


def test_zero_ttl_disables_cache():
    cache = ReadCache(0, clock=FakeClock())
    cache.put("k", "v")
    assert cache.get("k") is None


def test_clear_drops_entries():
    cache = ReadCache(90, clock=FakeClock())
    cache.put("k", "v")
    cache.clear()
    assert cache.get("k") is None
    assert cache.ttl_seconds == 90
