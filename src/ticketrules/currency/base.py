"""Rate source protocol (Frankfurter, or a fake in tests)."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol


class RateProvider(Protocol):
    """Spot rates from one base currency to a set of targets."""

    async def fetch_rates(self, base: str, symbols: list[str]) -> dict[str, Decimal]: ...

    async def aclose(self) -> None: ...
