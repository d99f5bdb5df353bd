import asyncio

import pytest

from autocare.sessions.cache import ChatMessage, SessionCache, SessionData


def _messages(n):
    return [ChatMessage(role="user", content=f"m{i}", timestamp=f"t{i}") for i in range(n)]


def _session(n=1):
    return SessionData(messages=_messages(n), created_at="2024-01-01T00:00:00Z")


def test_get_missing_session_returns_none(clock):
    cache = SessionCache(clock=clock)
    assert cache.get("nobody") is None


def test_set_then_get(clock):
    cache = SessionCache(clock=clock)
    cache.set("s1", _session(2))

    data = cache.get("s1")
    assert [m.content for m in data.messages] == ["m0", "m1"]
    assert data.created_at == "2024-01-01T00:00:00Z"


def test_messages_truncated_to_last_n(clock):
    cache = SessionCache(max_messages_per_session=6, clock=clock)
    cache.set("s1", _session(10))

    assert [m.content for m in cache.get("s1").messages] == ["m4", "m5", "m6", "m7", "m8", "m9"]


@pytest.mark.parametrize("kwargs", [{"max_messages_per_session": 0}, {"max_size": 0}])
def test_non_positive_limits_are_rejected(clock, kwargs):
    with pytest.raises(ValueError):
        SessionCache(clock=clock, **kwargs)


def test_stored_window_is_not_aliased(clock):
    cache = SessionCache(clock=clock)
    data = _session(2)
    cache.set("s1", data)
    data.messages.append(ChatMessage(role="user", content="late", timestamp="t"))

    fetched = cache.get("s1")
    fetched.messages.clear()
    assert len(cache.get("s1").messages) == 2


def test_capacity_evicts_least_recently_used(clock):
    cache = SessionCache(max_size=2, clock=clock)
    cache.set("a", _session())
    clock.advance(1)
    cache.set("b", _session())
    clock.advance(1)
    cache.set("c", _session())

    assert cache.get("a") is None
    assert cache.get("b") is not None
    assert cache.get("c") is not None


def test_reading_refreshes_recency(clock):
    cache = SessionCache(max_size=2, clock=clock)
    cache.set("a", _session())
    clock.advance(1)
    cache.set("b", _session())
    clock.advance(1)
    cache.get("a")
    clock.advance(1)
    cache.set("c", _session())

    assert cache.get("b") is None
    assert cache.get("a") is not None


def test_replacing_existing_key_does_not_evict(clock):
    cache = SessionCache(max_size=2, clock=clock)
    cache.set("a", _session())
    cache.set("b", _session())
    cache.set("a", _session(3))

    assert cache.size() == 2
    assert len(cache.get("a").messages) == 3


def test_size_never_exceeds_capacity(clock):
    cache = SessionCache(max_size=5, clock=clock)
    for i in range(50):
        cache.set(f"s{i % 13}", _session())
        clock.advance(0.5)
        assert cache.size() <= 5


def test_expired_entry_is_dropped_on_read(clock):
    cache = SessionCache(max_age=60, clock=clock)
    cache.set("s1", _session())
    clock.advance(60)
    assert cache.get("s1") is not None

    clock.advance(61)
    assert cache.get("s1") is None
    assert cache.size() == 0


def test_access_count_and_stats(clock):
    cache = SessionCache(clock=clock)
    cache.set("s1", _session(3))
    cache.get("s1")
    cache.get("s1")
    clock.advance(5)

    stats = cache.get_stats()
    assert stats["size"] == 1
    assert stats["max_size"] == 1000
    [entry] = stats["sessions"]
    assert entry == {"session_id": "s1", "message_count": 3, "access_count": 3, "age_sec": 5.0}
    assert "messages" not in entry


def test_rate_limit_allows_exactly_max_requests(clock):
    cache = SessionCache(max_requests_per_minute=5, clock=clock)
    results = [cache.check_rate_limit("s1") for _ in range(6)]
    assert results == [True] * 5 + [False]


def test_rate_limit_is_per_session(clock):
    cache = SessionCache(max_requests_per_minute=1, clock=clock)
    assert cache.check_rate_limit("a") is True
    assert cache.check_rate_limit("a") is False
    assert cache.check_rate_limit("b") is True


def test_rate_limit_window_slides(clock):
    cache = SessionCache(max_requests_per_minute=2, clock=clock)
    assert cache.check_rate_limit("s1")
    clock.advance(30)
    assert cache.check_rate_limit("s1")
    assert not cache.check_rate_limit("s1")
    assert cache.retry_after("s1") == 30

    clock.advance(30)
    assert cache.check_rate_limit("s1")


def test_rejected_requests_are_not_counted(clock):
    cache = SessionCache(max_requests_per_minute=1, clock=clock)
    cache.check_rate_limit("s1")
    for _ in range(10):
        cache.check_rate_limit("s1")
    clock.advance(60)
    assert cache.check_rate_limit("s1") is True


def test_delete_removes_entry_and_rate_window(clock):
    cache = SessionCache(max_requests_per_minute=1, clock=clock)
    cache.set("s1", _session())
    cache.check_rate_limit("s1")

    assert cache.delete("s1") is True
    assert cache.get("s1") is None
    assert cache.check_rate_limit("s1") is True
    assert cache.delete("s1") is False


def test_clear_removes_everything(clock):
    cache = SessionCache(max_requests_per_minute=1, clock=clock)
    cache.set("a", _session())
    cache.check_rate_limit("a")
    cache.clear()

    assert cache.size() == 0
    assert cache.check_rate_limit("a") is True


def test_sweep_evicts_expired_sessions_and_their_windows(clock):
    cache = SessionCache(max_age=100, max_requests_per_minute=1, clock=clock)
    cache.set("old", _session())
    cache.check_rate_limit("old")
    clock.advance(90)
    cache.set("fresh", _session())
    cache.check_rate_limit("fresh")
    clock.advance(20)

    assert cache.sweep() == 1
    assert cache.size() == 1
    assert cache.get("fresh") is not None
    assert cache.check_rate_limit("old") is True


def test_sweep_drops_aged_out_rate_windows(clock):
    cache = SessionCache(clock=clock)
    cache.check_rate_limit("ghost")
    clock.advance(61)
    cache.sweep()
    assert cache.retry_after("ghost") == 0.0
    assert "ghost" not in cache._requests


def test_background_sweeper_runs_and_stops(clock):
    async def scenario():
        cache = SessionCache(max_age=10, sweep_interval=0.01, clock=clock)
        cache.set("s1", _session())
        clock.advance(11)

        cache.start()
        assert cache.running
        for _ in range(100):
            if cache.size() == 0:
                break
            await asyncio.sleep(0.01)
        await cache.stop()
        return cache

    cache = asyncio.run(scenario())
    assert cache.size() == 0
    assert not cache.running


def test_stop_without_start_is_a_no_op(clock):
    asyncio.run(SessionCache(clock=clock).stop())
