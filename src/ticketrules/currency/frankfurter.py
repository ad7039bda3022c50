"""Frankfurter-compatible exchange rate client (GET /latest?from=X&to=Y)."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
import structlog

from ticketrules.errors import RateUnavailableError

log = structlog.get_logger(__name__)

FRANKFURTER_URL = "https://api.frankfurter.app"


def parse_rates(data: Any, symbols: list[str]) -> dict[str, Decimal]:
    """Pull `rates` out of a Frankfurter response. Missing, non-finite or non-positive rates are dropped."""
    raw = data.get("rates") if isinstance(data, dict) else None
    if not isinstance(raw, dict):
        raise RateUnavailableError("response has no rates object")
    wanted = {s.upper() for s in symbols}
    rates: dict[str, Decimal] = {}
    for code, value in raw.items():
        code = str(code).upper()
        if code not in wanted:
            continue
        try:
            rate = Decimal(str(value))
        except (InvalidOperation, ValueError):
            log.warning("skip_rate", currency=code, value=value)
            continue
        if rate.is_finite() and rate > 0:
            rates[code] = rate
        else:
            log.warning("skip_rate", currency=code, value=value)
    return rates


class FrankfurterRateProvider:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = (base_url or FRANKFURTER_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def fetch_rates(self, base: str, symbols: list[str]) -> dict[str, Decimal]:
        """Fetch spot rates base -> each symbol. Raises httpx.HTTPError or RateUnavailableError."""
        params = {"from": base.upper(), "to": ",".join(s.upper() for s in symbols)}
        resp = await self._client.get(f"{self.base_url}/latest", params=params)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as e:
            raise RateUnavailableError(f"invalid JSON from rate source: {e}") from e
        return parse_rates(data, symbols)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
