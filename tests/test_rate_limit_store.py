import asyncio
import threading

import pytest

from opportunity_explorer.adapters.rate_limiting.memory_adapter import InMemoryRateLimitStore
from opportunity_explorer.domain.policies import RateLimitPolicy


@pytest.fixture
def store(clock):
    return InMemoryRateLimitStore(name="test", clock=clock, sweep_interval_seconds=3600)


async def test_allows_exactly_limit_then_blocks(store):
    policy = RateLimitPolicy(requests=3, window="1m")

    results = [await store.check("10.0.0.1", policy) for _ in range(4)]

    assert results == [False, False, False, True]


async def test_blocked_requests_do_not_increment(store):
    policy = RateLimitPolicy(requests=2, window="1m")
    for _ in range(5):
        await store.check("10.0.0.1", policy)

    counter = await store.get_counter("10.0.0.1", policy)
    assert counter.count == 2


async def test_window_expiry_resets_counter_to_one(store, clock):
    policy = RateLimitPolicy(requests=2, window="1m")
    for _ in range(3):
        await store.check("10.0.0.1", policy)
    assert await store.check("10.0.0.1", policy) is True

    clock.advance(61)

    assert await store.check("10.0.0.1", policy) is False
    counter = await store.get_counter("10.0.0.1", policy)
    assert counter.count == 1
    assert counter.reset_at == clock.now + 60


async def test_counter_still_blocks_at_exact_reset_time(store, clock):
    policy = RateLimitPolicy(requests=1, window="10s")
    await store.check("u1", policy)

    clock.advance(10)
    assert await store.check("u1", policy) is True

    clock.advance(0.001)
    assert await store.check("u1", policy) is False


async def test_subjects_are_isolated(store):
    policy = RateLimitPolicy(requests=1, window="1m")
    await store.check("alice", policy)

    assert await store.check("alice", policy) is True
    assert await store.check("bob", policy) is False


async def test_policies_on_same_subject_are_isolated(store):
    strict = RateLimitPolicy(requests=1, window="1m")
    lenient = RateLimitPolicy(requests=1, window="1h")
    await store.check("alice", strict)

    assert await store.check("alice", strict) is True
    assert await store.check("alice", lenient) is False


async def test_counter_key_includes_serialized_policy(store):
    policy = RateLimitPolicy(requests=2, window="1m")

    assert store.counter_key("10.0.0.1", policy) == '10.0.0.1:{"requests":2,"window":"1m"}'


async def test_reset_single_subject(store):
    policy = RateLimitPolicy(requests=1, window="1m")
    await store.check("alice", policy)
    await store.check("bob", policy)

    await store.reset("alice")

    assert await store.get_counter("alice", policy) is None
    assert await store.get_counter("bob", policy) is not None


async def test_reset_all(store):
    policy = RateLimitPolicy(requests=1, window="1m")
    await store.check("alice", policy)
    await store.check("bob", policy)

    await store.reset()

    assert len(store) == 0


async def test_sweep_removes_only_expired_counters(store, clock):
    short = RateLimitPolicy(requests=5, window="10s")
    long = RateLimitPolicy(requests=5, window="1h")
    await store.check("alice", short)
    await store.check("alice", long)

    clock.advance(11)

    assert store.sweep_expired() == 1
    assert await store.get_counter("alice", short) is None
    assert await store.get_counter("alice", long) is not None


async def test_periodic_sweep_runs_during_checks(clock):
    store = InMemoryRateLimitStore(clock=clock, sweep_interval_seconds=60)
    policy = RateLimitPolicy(requests=5, window="10s")
    for subject in ("a", "b", "c"):
        await store.check(subject, policy)

    clock.advance(61)
    await store.check("d", policy)

    assert len(store) == 1


def test_threads_never_overshoot_the_limit():
    store = InMemoryRateLimitStore()
    policy = RateLimitPolicy(requests=5, window="1h")
    results = []
    results_lock = threading.Lock()

    def worker():
        blocked = asyncio.run(store.check("10.0.0.1", policy))
        with results_lock:
            results.append(blocked)

    threads = [threading.Thread(target=worker) for _ in range(40)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(False) == 5
    assert results.count(True) == 35
