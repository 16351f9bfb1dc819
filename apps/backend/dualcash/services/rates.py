from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Protocol

import requests

from dualcash.core.config import settings
from dualcash.core.errors import RateFetchError
from dualcash.models import RateType, now_utc_naive
from dualcash.utils.money import round2, to_decimal

logger = logging.getLogger(__name__)

# Served when live sources are down
FALLBACK_BCV = Decimal("341.74")
FALLBACK_EURO = Decimal("395.0")
FALLBACK_USDT = Decimal("500.0")


@dataclass(frozen=True)
class RateSnapshot:
    """VES per 1 USD under each regime."""

    bcv: Decimal
    euro: Decimal
    usdt: Decimal
    updated_at: datetime
    is_fallback: bool = False

    def rate_for(self, rate_type: RateType | str) -> Decimal:
        return getattr(self, RateType(rate_type).value)


def fallback_snapshot(now: datetime | None = None) -> RateSnapshot:
    return RateSnapshot(
        bcv=FALLBACK_BCV,
        euro=FALLBACK_EURO,
        usdt=FALLBACK_USDT,
        updated_at=now or now_utc_naive(),
        is_fallback=True,
    )


class RateProvider(Protocol):
    def fetch_rates(self) -> RateSnapshot: ...


@dataclass
class DolarApiRateProvider:
    """Official and parallel quotes from DolarApi; euro derived by a fixed markup."""

    official_url: str = settings.RATE_OFFICIAL_URL
    parallel_url: str = settings.RATE_PARALLEL_URL
    timeout_seconds: float = settings.RATE_FETCH_TIMEOUT_SECONDS
    euro_markup: Decimal = field(default_factory=lambda: to_decimal(settings.EURO_MARKUP))
    session: requests.Session = field(default_factory=requests.Session)
    clock: Callable[[], datetime] = now_utc_naive

    def fetch_rates(self) -> RateSnapshot:
        official = self._fetch_quote(self.official_url)
        parallel = self._fetch_quote(self.parallel_url)
        return RateSnapshot(
            bcv=official,
            euro=round2(official * self.euro_markup),
            usdt=parallel,
            updated_at=self.clock(),
        )

    def _fetch_quote(self, url: str) -> Decimal:
        try:
            response = self.session.get(url, timeout=self.timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise RateFetchError(f"rate source unavailable: {url}") from exc
        return _parse_promedio(payload, url)


def _parse_promedio(payload: Any, url: str) -> Decimal:
    if not isinstance(payload, dict):
        raise RateFetchError(f"rate source returned a non-object payload: {url}")
    raw = payload.get("promedio")
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise RateFetchError(f"rate source payload missing 'promedio': {url}")
    try:
        value = to_decimal(raw)
    except ArithmeticError as exc:
        raise RateFetchError(f"rate source returned a non-numeric 'promedio': {url}") from exc
    if not value.is_finite() or value <= 0:
        raise RateFetchError(f"rate source returned a non-positive 'promedio': {url}")
    return value


class RateCache:
    """Time-bounded memo of the provider's last good snapshot.

    A miss starts one refresh on the cache's own worker thread and publishes it
    as the in-flight future; concurrent callers wait on that same future. The
    refresh runs to completion even if every waiter goes away, and either stores
    the new snapshot or hands out a fallback without caching it.
    """

    def __init__(
        self,
        provider: RateProvider,
        *,
        ttl_seconds: float = settings.RATE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = now_utc_naive,
    ) -> None:
        self.provider = provider
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._now = now
        self._lock = threading.Lock()
        self._snapshot: RateSnapshot | None = None
        self._expires_at: float = 0.0
        self._in_flight: Future[RateSnapshot] | None = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rate-refresh")

    def get_rates(self) -> RateSnapshot:
        with self._lock:
            if self._snapshot is not None and self._clock() < self._expires_at:
                logger.debug("serving rates from cache")
                return self._snapshot
            future = self._in_flight
            if future is None:
                future = self._executor.submit(self._refresh)
                self._in_flight = future
        return future.result()

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def _refresh(self) -> RateSnapshot:
        logger.info("fetching fresh rates")
        try:
            snapshot = self.provider.fetch_rates()
        except RateFetchError as exc:
            logger.warning("rate fetch failed, serving fallback: %s", exc)
            return self._fallback()
        except Exception:
            logger.exception("rate provider crashed, serving fallback")
            return self._fallback()
        with self._lock:
            self._snapshot = snapshot
            self._expires_at = self._clock() + self.ttl_seconds
            self._in_flight = None
        return snapshot

    def _fallback(self) -> RateSnapshot:
        with self._lock:
            self._in_flight = None
        return fallback_snapshot(self._now())
