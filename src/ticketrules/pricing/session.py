"""Pricing sessions: one rate cache and one quote memo per storefront session."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import duckdb
import structlog
from pydantic import BaseModel, Field

from ticketrules.currency.cache import RateCache
from ticketrules.models import Scope
from ticketrules.pricing.composer import PriceComposer, PriceQuote, compose_price, normalize_currency
from ticketrules.resolver import Resolver

log = structlog.get_logger(__name__)

DEFAULT_SESSION = "default"


class ListingItem(BaseModel):
    scope: Scope
    face_value: Decimal = Field(..., ge=0)
    ticket_currency: str


class PricingSession:
    """Rates are fetched once per pair for the session's lifetime. Quotes are
    memoised per (ticket, currency, face value, display currency) until the next
    committed rule edit; the memo keeps at most `max_quotes` entries.
    Only fully converted quotes are memoised; a degraded one is recomputed next time.
    """

    def __init__(
        self,
        resolver: Resolver,
        rates: RateCache,
        *,
        reference_currency: str = "USD",
        default_display_currency: str | None = None,
        session_id: str = DEFAULT_SESSION,
        max_quotes: int = 10000,
    ) -> None:
        self.session_id = session_id
        self.resolver = resolver
        self.rates = rates
        self.composer = PriceComposer(rates, reference_currency=reference_currency)
        self.default_display_currency = normalize_currency(default_display_currency or reference_currency)
        self.max_quotes = max(1, max_quotes)
        self._quotes: OrderedDict[tuple[Any, ...], PriceQuote] = OrderedDict()
        self._memo_version = resolver.store.write_version

    def _display(self, display_currency: str | None) -> str:
        return normalize_currency(display_currency or self.default_display_currency)

    async def quote(
        self,
        scope: Scope | dict[str, Any],
        face_value: Decimal,
        ticket_currency: str,
        display_currency: str | None = None,
    ) -> PriceQuote:
        """Resolve and price one ticket. Store errors propagate."""
        scope = Scope.coerce(scope)
        ticket_currency = normalize_currency(ticket_currency)
        display = self._display(display_currency)
        face_value = Decimal(str(face_value))
        key = (scope.key_values(), ticket_currency, face_value, display)
        version = self.resolver.store.write_version
        if version != self._memo_version:
            log.debug("quote_memo_reset", session=self.session_id, dropped=len(self._quotes))
            self._quotes.clear()
            self._memo_version = version
        cached = self._quotes.get(key)
        if cached is not None:
            self._quotes.move_to_end(key)
            return cached
        markup = await asyncio.to_thread(self.resolver.resolve_markup, scope)
        quote = await self.composer.compute_final_price(face_value, ticket_currency, markup, display)
        # A rule edit committed while resolving may not be reflected in this quote.
        if not quote.degraded and self.resolver.store.write_version == version == self._memo_version:
            self._quotes[key] = quote
            while len(self._quotes) > self.max_quotes:
                self._quotes.popitem(last=False)
        return quote

    async def quote_listing(
        self, items: list[ListingItem], display_currency: str | None = None
    ) -> list[PriceQuote]:
        """Price a storefront listing. A ticket whose rules cannot be read is shown at face value."""
        display = self._display(display_currency)
        return list(await asyncio.gather(*(self._listing_quote(item, display) for item in items)))

    async def _listing_quote(self, item: ListingItem, display: str) -> PriceQuote:
        try:
            return await self.quote(item.scope, item.face_value, item.ticket_currency, display)
        except duckdb.Error as e:
            log.error(
                "listing_resolution_failed",
                session=self.session_id,
                scope=item.scope.model_dump(exclude_none=True),
                error=str(e),
            )
            ticket_currency = normalize_currency(item.ticket_currency)
            quote = compose_price(item.face_value, ticket_currency, None, ticket_currency, rate=Decimal(1))
            return quote.model_copy(
                update={
                    "display_currency": display,
                    "converted": ticket_currency == display,
                    "markup_unavailable": True,
                }
            )

    def memo_size(self) -> int:
        return len(self._quotes)


class SessionRegistry:
    """Pricing sessions keyed by session id, least recently used evicted first."""

    def __init__(self, factory: Callable[[str], PricingSession], max_sessions: int = 1000) -> None:
        self._factory = factory
        self.max_sessions = max(1, max_sessions)
        self._sessions: OrderedDict[str, PricingSession] = OrderedDict()

    def get(self, session_id: str | None = None) -> PricingSession:
        session_id = (session_id or "").strip() or DEFAULT_SESSION
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
            return session
        session = self._factory(session_id)
        self._sessions[session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            log.debug("pricing_session_evicted", session=evicted)
        return session

    def __len__(self) -> int:
        return len(self._sessions)
