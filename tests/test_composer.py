"""Price composition: conversion, markup and cent rounding."""

import asyncio
from decimal import Decimal

import pytest

from ticketrules.currency import RateCache
from ticketrules.errors import InvalidRequestError
from ticketrules.models import Level, MarkupType, ResolvedMarkup, SourceKind
from ticketrules.pricing.composer import PriceComposer, compose_price, normalize_currency, to_cents


def _markup(amount, markup_type=MarkupType.FIXED):
    return ResolvedMarkup(
        level=Level.EVENT,
        source=SourceKind.HIERARCHICAL,
        rule_id=1,
        markup_type=markup_type,
        markup_amount=Decimal(amount),
    )


def test_percentage_markup_on_converted_base():
    quote = compose_price(
        Decimal("100"), "EUR", _markup("10", MarkupType.PERCENTAGE), "USD", rate=Decimal("1.10")
    )
    assert quote.currency == "USD"
    assert quote.converted
    assert quote.base_price == Decimal("110.00")
    assert quote.markup == Decimal("11.00")
    assert quote.final_price == Decimal("121.00")
    assert not quote.degraded


def test_fixed_markup_converted_from_reference_currency():
    quote = compose_price(
        Decimal("100"),
        "GBP",
        _markup("5"),
        "AED",
        rate=Decimal("4.6500"),
        markup_rate=Decimal("3.6725"),
    )
    assert quote.base_price == Decimal("465.00")
    assert quote.markup == Decimal("18.36")
    assert quote.final_price == Decimal("483.36")


def test_fixed_markup_in_reference_currency_needs_no_rate():
    quote = compose_price(Decimal("40"), "USD", _markup("2.5"), "USD", rate=None)
    assert quote.rate == Decimal(1)
    assert quote.converted
    assert quote.final_price == Decimal("42.50")


def test_no_markup_is_face_value_converted():
    quote = compose_price(Decimal("20"), "EUR", None, "USD", rate=Decimal("1.10"))
    assert quote.markup == Decimal("0.00")
    assert quote.final_price == Decimal("22.00")
    assert quote.applied_markup is None


def test_unavailable_rate_falls_back_to_ticket_currency():
    quote = compose_price(Decimal("100"), "EUR", _markup("10", MarkupType.PERCENTAGE), "JPY", rate=None)
    assert quote.currency == "EUR"
    assert quote.display_currency == "JPY"
    assert not quote.converted
    assert quote.base_price == Decimal("100.00")
    assert quote.final_price == Decimal("110.00")
    assert quote.degraded


def test_unconvertible_fixed_markup_is_flagged():
    quote = compose_price(Decimal("100"), "EUR", _markup("5"), "EUR", rate=None, markup_rate=None)
    assert quote.converted
    assert quote.markup_unavailable
    assert quote.markup == Decimal("0.00")
    assert quote.final_price == Decimal("100.00")


def test_components_round_half_up_before_summing():
    assert to_cents(Decimal("10.005")) == Decimal("10.01")
    assert to_cents(Decimal("0.125")) == Decimal("0.13")
    quote = compose_price(Decimal("1.005"), "USD", _markup("12.5", MarkupType.PERCENTAGE), "USD", rate=None)
    assert quote.base_price == Decimal("1.01")
    # 12.5% of the rounded base 1.01 = 0.12625
    assert quote.markup == Decimal("0.13")
    assert quote.final_price == Decimal("1.14")


def test_negative_face_value_rejected():
    with pytest.raises(InvalidRequestError):
        compose_price(Decimal("-1"), "USD", None, "USD", rate=None)


@pytest.mark.parametrize("code", ["", "US", "USDX", "12$"])
def test_bad_currency_codes(code):
    with pytest.raises(InvalidRequestError):
        normalize_currency(code)


def test_currency_codes_are_upper_cased():
    assert normalize_currency(" eur ") == "EUR"


def test_composer_fetches_rates(fake_rates):
    composer = PriceComposer(RateCache(fake_rates))
    quote = asyncio.run(composer.compute_final_price(Decimal("100"), "gbp", _markup("5"), "aed"))
    assert quote.final_price == Decimal("483.36")
    assert sorted(fake_rates.calls) == [("GBP", "AED"), ("USD", "AED")]


def test_composer_degrades_when_rate_missing(fake_rates):
    composer = PriceComposer(RateCache(fake_rates))
    quote = asyncio.run(composer.compute_final_price(Decimal("50"), "EUR", _markup("5"), "JPY"))
    # No EUR->JPY: priced in EUR; the fixed USD markup then needs USD->EUR.
    assert quote.currency == "EUR"
    assert not quote.converted
    assert quote.markup == Decimal("4.50")
    assert quote.final_price == Decimal("54.50")
