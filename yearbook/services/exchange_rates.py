from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

from yearbook.core.config import settings
from yearbook.reliability.circuit_breaker import (
    CircuitBreaker,
    exchange_rate_circuit_breaker,
)


logger = logging.getLogger(__name__)


class ExchangeRateError(Exception):
    pass


class ExchangeRateProvider:
    """
    Fetches the USD->NGN rate used for NGN price display.
    Falls back to the configured rate if anything fails.
    """

    def __init__(
        self,
        url: str | None = None,
        fallback_rate: float | None = None,
        ttl_seconds: float | None = None,
        timeout_seconds: float = 5.0,
        breaker: CircuitBreaker | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url or settings.EXCHANGE_RATE_URL
        self.fallback_rate = fallback_rate or settings.FALLBACK_NGN_RATE
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.EXCHANGE_RATE_TTL_SECONDS
        )
        self.breaker = breaker or exchange_rate_circuit_breaker
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._clock = clock
        self._cached_rate: Optional[float] = None
        self._cached_at = 0.0

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _fetch_rate(self) -> float:
        response = await self._client.get(self.url)
        response.raise_for_status()
        try:
            rate = float(response.json()["rates"]["NGN"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ExchangeRateError(f"Unexpected exchange-rate payload: {exc}") from exc
        if rate <= 0:
            raise ExchangeRateError(f"Non-positive exchange rate: {rate}")
        return rate

    async def get_usd_to_ngn(self) -> float:
        if self._cached_rate is not None and self._clock() - self._cached_at < self.ttl_seconds:
            return self._cached_rate

        if self.breaker.is_open:
            logger.info("Exchange-rate circuit is OPEN; using cached/fallback rate")
            return self._cached_rate or self.fallback_rate

        rate = await self.breaker.acall(self._fetch_rate)
        if rate is None:
            logger.warning("Exchange-rate fetch failed; using cached/fallback rate")
            return self._cached_rate or self.fallback_rate

        self._cached_rate = rate
        self._cached_at = self._clock()
        return rate
