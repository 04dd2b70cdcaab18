import threading
from datetime import datetime, timezone

from dotoracle.rate_limit import RateLimiter
from dotoracle.utils.dates import next_utc_midnight_ms

NOON = int(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc).timestamp() * 1000)
MIDNIGHT = int(datetime(2024, 6, 2, tzinfo=timezone.utc).timestamp() * 1000)


def test_next_utc_midnight():
    assert next_utc_midnight_ms(NOON) == MIDNIGHT


def test_first_request_is_allowed(store):
    decision = RateLimiter(store, limit=3).acquire("1.2.3.4", now=NOON)
    assert decision.allowed
    assert decision.remaining == 2
    assert decision.reset_at == MIDNIGHT


def test_limit_reached(store):
    limiter = RateLimiter(store, limit=2)
    assert limiter.acquire("ip", now=NOON).allowed
    assert limiter.acquire("ip", now=NOON + 1).allowed
    decision = limiter.acquire("ip", now=NOON + 2)
    assert not decision.allowed
    assert decision.remaining == 0
    assert decision.reset_at == MIDNIGHT
    assert limiter.status("ip", now=NOON + 3).count == 2


def test_release_gives_the_slot_back(store):
    limiter = RateLimiter(store, limit=1)
    limiter.acquire("ip", now=NOON)
    limiter.release("ip", now=NOON + 1)
    assert limiter.status("ip", now=NOON + 2).count == 0
    assert limiter.acquire("ip", now=NOON + 3).allowed


def test_release_without_reservation_is_noop(store):
    limiter = RateLimiter(store, limit=1)
    limiter.release("ip", now=NOON)
    assert limiter.status("ip", now=NOON).count == 0


def test_counter_resets_after_midnight(store):
    limiter = RateLimiter(store, limit=1)
    limiter.acquire("ip", now=NOON)
    assert not limiter.acquire("ip", now=NOON).allowed
    assert limiter.acquire("ip", now=MIDNIGHT + 1).allowed

    status = limiter.status("ip", now=MIDNIGHT + 2)
    assert status.count == 1
    assert status.remaining == 0


def test_identities_are_independent(store):
    limiter = RateLimiter(store, limit=1)
    limiter.acquire("a", now=NOON)
    assert limiter.acquire("b", now=NOON).allowed


def test_concurrent_requests_never_exceed_limit(store):
    limiter = RateLimiter(store, limit=3)
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(limiter.acquire("ip", now=NOON).allowed)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 3
    assert limiter.status("ip", now=NOON).count == 3


def test_status_for_unknown_identity(store):
    status = RateLimiter(store, limit=30).status("nobody", now=NOON)
    assert status.count == 0
    assert status.remaining == 30
    assert status.expired
