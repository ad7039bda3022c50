"""RateCache single-flight behaviour and the Frankfurter client."""

import asyncio
from decimal import Decimal

import httpx
import pytest

from ticketrules.currency import FrankfurterRateProvider, RateCache
from ticketrules.currency.frankfurter import parse_rates
from ticketrules.errors import RateUnavailableError
from ticketrules.pricing import PriceComposer


def test_concurrent_callers_share_one_fetch(make_rates):
    provider = make_rates({("EUR", "USD"): "1.10"}, delay=0.05)
    cache = RateCache(provider)

    async def main():
        return await asyncio.gather(*(cache.get_rate("EUR", "USD") for _ in range(5)))

    assert asyncio.run(main()) == [Decimal("1.10")] * 5
    assert provider.calls == [("EUR", "USD")]


def test_same_currency_needs_no_fetch(fake_rates):
    cache = RateCache(fake_rates)
    assert asyncio.run(cache.get_rate("usd", "USD")) == Decimal(1)
    assert fake_rates.calls == []


def test_failure_is_cached_as_unavailable(fake_rates):
    fake_rates.failing.add(("EUR", "USD"))
    cache = RateCache(fake_rates)

    async def main():
        first = await cache.get_rate("EUR", "USD")
        second = await cache.get_rate("EUR", "USD")
        return first, second

    assert asyncio.run(main()) == (None, None)
    assert fake_rates.calls == [("EUR", "USD")]
    assert cache.known_rates() == {"EUR/USD": None}


def test_timeout_does_not_poison_the_cache(make_rates):
    provider = make_rates({("EUR", "USD"): "1.10"}, delay=0.2)
    cache = RateCache(provider)

    async def main():
        impatient = await cache.get_rate("EUR", "USD", timeout=0.01)
        patient = await cache.get_rate("EUR", "USD", timeout=2.0)
        return impatient, patient

    assert asyncio.run(main()) == (None, Decimal("1.10"))
    assert provider.calls == [("EUR", "USD")]


def test_settled_rate_survives_a_new_event_loop(fake_rates):
    cache = RateCache(fake_rates)
    assert asyncio.run(cache.get_rate("EUR", "USD")) == Decimal("1.10")
    assert asyncio.run(cache.get_rate("EUR", "USD")) == Decimal("1.10")
    assert fake_rates.calls == [("EUR", "USD")]


def test_parse_rates_drops_unknown_and_bad_values():
    data = {"amount": 1.0, "base": "EUR", "rates": {"USD": 1.1, "GBP": "x", "JPY": 0, "CHF": 0.95}}
    assert parse_rates(data, ["USD", "GBP", "JPY"]) == {"USD": Decimal("1.1")}
    with pytest.raises(RateUnavailableError):
        parse_rates({"message": "not found"}, ["USD"])


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_frankfurter_request_shape():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"base": "GBP", "rates": {"AED": 4.65}})

    async def main():
        client = _client(handler)
        provider = FrankfurterRateProvider("https://rates.test/", client=client)
        try:
            return await provider.fetch_rates("gbp", ["aed"])
        finally:
            await provider.aclose()
            await client.aclose()

    assert asyncio.run(main()) == {"AED": Decimal("4.65")}
    assert seen[0].url.path == "/latest"
    assert seen[0].url.params["from"] == "GBP"
    assert seen[0].url.params["to"] == "AED"


def test_http_error_becomes_unavailable_rate():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "down"})

    async def main():
        client = _client(handler)
        cache = RateCache(FrankfurterRateProvider("https://rates.test", client=client))
        try:
            return await cache.get_rate("EUR", "USD")
        finally:
            await client.aclose()

    assert asyncio.run(main()) is None


def test_parse_rates_drops_non_finite_values():
    data = {"rates": {"USD": "NaN", "GBP": "Infinity", "CHF": "-Infinity", "JPY": 160.5}}
    assert parse_rates(data, ["USD", "GBP", "CHF", "JPY"]) == {"JPY": Decimal("160.5")}


@pytest.mark.parametrize("raw", [b'{"rates": {"USD": NaN}}', b'{"rates": {"USD": Infinity}}'])
def test_non_finite_rate_from_the_wire_is_unavailable(raw):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=raw, headers={"content-type": "application/json"})

    async def main():
        client = _client(handler)
        provider = FrankfurterRateProvider("https://rates.test", client=client)
        try:
            return await provider.fetch_rates("EUR", ["USD"]), await RateCache(provider).get_rate("EUR", "USD")
        finally:
            await client.aclose()

    assert asyncio.run(main()) == ({}, None)


def test_non_finite_rate_from_a_provider_is_unavailable(make_rates):
    provider = make_rates({("EUR", "USD"): "NaN"})
    assert asyncio.run(RateCache(provider).get_rate("EUR", "USD")) is None


class _ResettingProvider:
    def __init__(self):
        self.calls = 0

    async def fetch_rates(self, base, symbols):
        self.calls += 1
        raise OSError("connection reset")

    async def aclose(self):
        pass


def test_unexpected_provider_error_degrades_the_quote():
    provider = _ResettingProvider()
    composer = PriceComposer(RateCache(provider))

    async def main():
        first = await composer.compute_final_price(Decimal("100"), "EUR", None, "USD")
        second = await composer.compute_final_price(Decimal("100"), "EUR", None, "USD")
        return first, second

    first, second = asyncio.run(main())
    assert not first.converted
    assert first.currency == "EUR"
    assert first.final_price == Decimal("100.00")
    assert not second.converted
    assert provider.calls == 1


def test_compute_final_price_honours_the_timeout(make_rates):
    provider = make_rates({("EUR", "USD"): "1.10"}, delay=0.3)
    composer = PriceComposer(RateCache(provider))
    quote = asyncio.run(composer.compute_final_price(Decimal("100"), "EUR", None, "USD", timeout=0.01))
    assert not quote.converted
    assert quote.final_price == Decimal("100.00")
