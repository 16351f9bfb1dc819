from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal

from conftest import FakeMonotonic, FakeRateProvider, make_snapshot
from dualcash.core.errors import RateFetchError
from dualcash.services.rates import RateCache


def _cache(provider, clock=None) -> RateCache:
    return RateCache(
        provider,
        ttl_seconds=600,
        clock=clock or FakeMonotonic(),
        now=lambda: datetime(2026, 2, 1, 15, 0),
    )


def test_second_call_within_ttl_hits_cache():
    provider = FakeRateProvider(snapshot=make_snapshot())
    clock = FakeMonotonic()
    cache = _cache(provider, clock)
    try:
        first = cache.get_rates()
        clock.advance(599)
        second = cache.get_rates()
    finally:
        cache.close()

    assert first is second
    assert provider.calls == 1


def test_refetches_after_ttl():
    provider = FakeRateProvider(snapshot=make_snapshot())
    clock = FakeMonotonic()
    cache = _cache(provider, clock)
    try:
        cache.get_rates()
        clock.advance(600)
        provider.snapshot = make_snapshot(bcv=Decimal("37.0"))
        refreshed = cache.get_rates()
    finally:
        cache.close()

    assert provider.calls == 2
    assert refreshed.bcv == Decimal("37.0")


def test_failure_serves_uncached_fallback():
    provider = FakeRateProvider(error=RateFetchError("down"))
    cache = _cache(provider)
    try:
        first = cache.get_rates()
        second = cache.get_rates()
    finally:
        cache.close()

    assert first.is_fallback is True
    assert (first.bcv, first.euro, first.usdt) == (Decimal("341.74"), Decimal("395.0"), Decimal("500.0"))
    assert first.updated_at == datetime(2026, 2, 1, 15, 0)
    # Fallback is never cached: every call goes back to the provider
    assert second.is_fallback is True
    assert provider.calls == 2


def test_recovers_after_failure():
    provider = FakeRateProvider(error=RateFetchError("down"))
    cache = _cache(provider)
    try:
        assert cache.get_rates().is_fallback is True
        provider.error = None
        provider.snapshot = make_snapshot()
        live = cache.get_rates()
        again = cache.get_rates()
    finally:
        cache.close()

    assert live.is_fallback is False
    assert again is live
    assert provider.calls == 2


class BlockingProvider:
    def __init__(self) -> None:
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def fetch_rates(self):
        with self._lock:
            self.calls += 1
        self.started.set()
        self.release.wait(timeout=5)
        return make_snapshot()


def test_concurrent_misses_share_one_fetch():
    provider = BlockingProvider()
    cache = _cache(provider)
    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(cache.get_rates) for _ in range(8)]
            assert provider.started.wait(timeout=5)
            provider.release.set()
            results = [f.result(timeout=5) for f in futures]
    finally:
        cache.close()

    assert provider.calls == 1
    assert all(r is results[0] for r in results)


def test_fetch_completes_for_late_waiters():
    provider = BlockingProvider()
    cache = _cache(provider)
    try:
        starter = threading.Thread(target=cache.get_rates, daemon=True)
        starter.start()
        assert provider.started.wait(timeout=5)
        provider.release.set()
        starter.join(timeout=5)
        # The refresh ran on the cache's worker and populated the cache
        snapshot = cache.get_rates()
    finally:
        cache.close()

    assert provider.calls == 1
    assert snapshot.is_fallback is False


def test_unexpected_provider_error_serves_fallback():
    provider = FakeRateProvider(error=ZeroDivisionError("bad quote"))
    cache = _cache(provider)
    try:
        snapshot = cache.get_rates()
        provider.error = None
        provider.snapshot = make_snapshot()
        recovered = cache.get_rates()
    finally:
        cache.close()

    assert snapshot.is_fallback is True
    assert recovered.is_fallback is False
    assert provider.calls == 2
