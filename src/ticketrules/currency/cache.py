"""Session-scoped, single-flight exchange rate cache."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import httpx
import structlog

from ticketrules.currency.base import RateProvider
from ticketrules.errors import RateUnavailableError

log = structlog.get_logger(__name__)


class RateCache:
    """One fetch per currency pair for the lifetime of the cache.

    Concurrent callers for the same pair share the in-flight fetch. A failed
    fetch is remembered as unavailable (None). A caller that gives up waiting
    gets None without cancelling the shared fetch, so later callers can
    still use its result.
    """

    def __init__(self, provider: RateProvider, *, fetch_timeout: float = 5.0) -> None:
        self.provider = provider
        self.fetch_timeout = fetch_timeout
        self._pairs: dict[tuple[str, str], asyncio.Future[Decimal | None]] = {}

    async def get_rate(self, base: str, target: str, timeout: float | None = None) -> Decimal | None:
        """Rate base -> target, or None if the source cannot supply it in time."""
        base, target = base.upper(), target.upper()
        if base == target:
            return Decimal(1)
        key = (base, target)
        fut = self._pairs.get(key)
        if fut is not None and (fut.cancelled() or fut.get_loop() is not asyncio.get_running_loop()):
            # Left over from another event loop (e.g. a previous asyncio.run).
            if fut.done() and not fut.cancelled():
                return fut.result()
            fut = None
        if fut is None:
            fut = asyncio.ensure_future(self._fetch(base, target))
            self._pairs[key] = fut
        wait = self.fetch_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(asyncio.shield(fut), wait)
        except asyncio.TimeoutError:
            log.warning("rate_wait_timeout", base=base, target=target, timeout_sec=wait)
            return None

    async def _fetch(self, base: str, target: str) -> Decimal | None:
        try:
            rates = await self.provider.fetch_rates(base, [target])
        except (httpx.HTTPError, RateUnavailableError) as e:
            log.warning("rate_fetch_failed", base=base, target=target, error=str(e))
            return None
        except Exception as e:
            log.error("rate_fetch_failed", base=base, target=target, error=repr(e))
            return None
        rate = rates.get(target)
        if rate is not None and not (rate.is_finite() and rate > 0):
            log.warning("rate_invalid", base=base, target=target, rate=str(rate))
            rate = None
        if rate is None:
            log.warning("rate_missing", base=base, target=target)
        else:
            log.debug("rate_fetched", base=base, target=target, rate=str(rate))
        return rate

    def known_rates(self) -> dict[str, Decimal | None]:
        """Settled pairs as {"EUR/USD": rate}; None marks a pair cached as unavailable."""
        return {
            f"{b}/{t}": fut.result()
            for (b, t), fut in self._pairs.items()
            if fut.done() and not fut.cancelled() and fut.exception() is None
        }
