"""Price composition: face value -> display currency, plus the resolved markup.

compose_price is the only place the arithmetic lives; the API, the CLI and
the listing all go through it so they cannot disagree.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

import structlog
from pydantic import BaseModel

from ticketrules.currency.cache import RateCache
from ticketrules.errors import InvalidRequestError
from ticketrules.models import MarkupType, ResolvedMarkup

log = structlog.get_logger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal(100)
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_currency(code: str) -> str:
    code = (code or "").strip().upper()
    if not _CURRENCY_RE.match(code):
        raise InvalidRequestError(f"invalid currency code: {code!r}")
    return code


class PriceQuote(BaseModel):
    face_value: Decimal
    ticket_currency: str
    display_currency: str  # requested
    currency: str  # the amounts below are in this currency
    converted: bool
    rate: Decimal | None = None
    base_price: Decimal
    markup: Decimal
    final_price: Decimal
    applied_markup: ResolvedMarkup | None = None
    markup_unavailable: bool = False  # a matched markup could not be applied

    @property
    def degraded(self) -> bool:
        return not self.converted or self.markup_unavailable


def compose_price(
    face_value: Decimal,
    ticket_currency: str,
    resolved_markup: ResolvedMarkup | None,
    display_currency: str,
    *,
    rate: Decimal | None,
    markup_rate: Decimal | None = None,
    reference_currency: str = "USD",
) -> PriceQuote:
    """Pure arithmetic for one ticket.

    `rate` converts ticket_currency -> display_currency (None: unavailable).
    `markup_rate` converts reference_currency -> the quote currency and is
    only read for fixed markups. Base and markup are rounded half-up to
    cents before they are summed.
    """
    if face_value < 0:
        raise InvalidRequestError("face_value must be >= 0")
    if ticket_currency == display_currency:
        rate = Decimal(1)
    if rate is None:
        currency, converted = ticket_currency, False
        base = to_cents(face_value)
    else:
        currency, converted = display_currency, True
        base = to_cents(face_value * rate)

    markup = Decimal("0.00")
    unavailable = False
    if resolved_markup is not None:
        amount = resolved_markup.markup_amount
        if resolved_markup.markup_type is MarkupType.PERCENTAGE:
            markup = to_cents(base * amount / HUNDRED)
        elif currency == reference_currency:
            markup = to_cents(amount)
        elif markup_rate is not None:
            markup = to_cents(amount * markup_rate)
        else:
            unavailable = True

    return PriceQuote(
        face_value=face_value,
        ticket_currency=ticket_currency,
        display_currency=display_currency,
        currency=currency,
        converted=converted,
        rate=rate,
        base_price=base,
        markup=markup,
        final_price=base + markup,
        applied_markup=resolved_markup,
        markup_unavailable=unavailable,
    )


class PriceComposer:
    """Fetches the rates compose_price needs from a RateCache."""

    def __init__(self, rates: RateCache, *, reference_currency: str = "USD") -> None:
        self.rates = rates
        self.reference_currency = normalize_currency(reference_currency)

    async def compute_final_price(
        self,
        face_value: Decimal,
        ticket_currency: str,
        resolved_markup: ResolvedMarkup | None,
        display_currency: str,
        timeout: float | None = None,
    ) -> PriceQuote:
        """Convert and mark up one ticket. `timeout` bounds each rate wait (default: the cache's)."""
        ticket_currency = normalize_currency(ticket_currency)
        display_currency = normalize_currency(display_currency)
        face_value = Decimal(str(face_value))

        rate = await self.rates.get_rate(ticket_currency, display_currency, timeout=timeout)
        quote_currency = display_currency if rate is not None else ticket_currency
        markup_rate = None
        if resolved_markup is not None and resolved_markup.markup_type is MarkupType.FIXED:
            markup_rate = await self.rates.get_rate(self.reference_currency, quote_currency, timeout=timeout)

        quote = compose_price(
            face_value,
            ticket_currency,
            resolved_markup,
            display_currency,
            rate=rate,
            markup_rate=markup_rate,
            reference_currency=self.reference_currency,
        )
        if quote.degraded:
            log.warning(
                "quote_degraded",
                ticket_currency=ticket_currency,
                display_currency=display_currency,
                converted=quote.converted,
                markup_unavailable=quote.markup_unavailable,
            )
        return quote
