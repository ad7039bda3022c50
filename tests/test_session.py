"""PricingSession memo, listing fail-open and the session registry."""

import asyncio
from decimal import Decimal

import duckdb
import pytest

from ticketrules.currency import RateCache
from ticketrules.errors import BatchApplyError
from ticketrules.models import MarkupRuleInput, MarkupType, Scope
from ticketrules.pricing import ListingItem, PricingSession, SessionRegistry

TICKET = Scope(sport_type="football", event_id="e1", ticket_id="t1")


@pytest.fixture
def session(resolver, fake_rates):
    return PricingSession(resolver, RateCache(fake_rates), session_id="s1")


def _percent(editor, amount, **scope):
    editor.create_or_update_rule(
        MarkupRuleInput(scope=Scope(**scope), markup_type=MarkupType.PERCENTAGE, markup_amount=Decimal(amount))
    )


def test_quote_is_memoised_for_the_session(editor, session, fake_rates):
    _percent(editor, "10", sport_type="football", event_id="e1")

    async def main():
        first = await session.quote(TICKET, Decimal("100"), "EUR", "USD")
        second = await session.quote(TICKET.model_dump(), "100.00", "eur", "usd")
        return first, second

    first, second = asyncio.run(main())
    assert first.final_price == Decimal("121.00")
    assert second is first
    assert session.memo_size() == 1
    assert fake_rates.calls == [("EUR", "USD")]


def test_memo_is_dropped_when_rules_change(editor, session):
    _percent(editor, "10", sport_type="football")
    first = asyncio.run(session.quote(TICKET, Decimal("100"), "USD"))
    assert first.final_price == Decimal("110.00")
    assert session.memo_size() == 1

    _percent(editor, "50", sport_type="football")
    again = asyncio.run(session.quote(TICKET, Decimal("100"), "USD"))
    assert again.final_price == Decimal("150.00")
    assert session.memo_size() == 1


def test_failed_edit_keeps_the_memo(editor, session):
    _percent(editor, "10", sport_type="football")
    first = asyncio.run(session.quote(TICKET, Decimal("100"), "USD"))
    with pytest.raises(BatchApplyError):
        editor.replace_hospitalities_at_scope(Scope(sport_type="football"), [4242])
    assert asyncio.run(session.quote(TICKET, Decimal("100"), "USD")) is first


def test_memo_is_bounded(resolver, fake_rates):
    session = PricingSession(resolver, RateCache(fake_rates), max_quotes=2)

    async def main():
        for face in ("1", "2", "3"):
            await session.quote(TICKET, Decimal(face), "USD")

    asyncio.run(main())
    assert session.memo_size() == 2


def test_degraded_quotes_are_not_memoised(session, fake_rates):
    quote = asyncio.run(session.quote(TICKET, Decimal("10"), "EUR", "JPY"))
    assert not quote.converted
    assert session.memo_size() == 0


def test_default_display_currency(resolver, fake_rates):
    session = PricingSession(resolver, RateCache(fake_rates), default_display_currency="eur")
    quote = asyncio.run(session.quote(TICKET, Decimal("10"), "USD"))
    assert quote.currency == "EUR"
    assert quote.final_price == Decimal("9.00")


def test_listing_prices_every_item(editor, session):
    _percent(editor, "10", sport_type="football")
    items = [
        ListingItem(scope=TICKET, face_value=Decimal("100"), ticket_currency="EUR"),
        ListingItem(scope=TICKET.with_ticket("t2"), face_value=Decimal("50"), ticket_currency="USD"),
    ]
    quotes = asyncio.run(session.quote_listing(items, "USD"))
    assert [q.final_price for q in quotes] == [Decimal("121.00"), Decimal("55.00")]


def test_listing_fails_open_when_rules_cannot_be_read(session, monkeypatch):
    def broken(scope):
        raise duckdb.IOException("database is locked")

    monkeypatch.setattr(session.resolver, "resolve_markup", broken)
    items = [ListingItem(scope=TICKET, face_value=Decimal("80"), ticket_currency="GBP")]
    (quote,) = asyncio.run(session.quote_listing(items, "USD"))
    assert quote.currency == "GBP"
    assert quote.final_price == Decimal("80.00")
    assert quote.markup_unavailable
    assert not quote.converted
    assert quote.display_currency == "USD"


def test_single_quote_propagates_store_errors(session, monkeypatch):
    def broken(scope):
        raise duckdb.IOException("database is locked")

    monkeypatch.setattr(session.resolver, "resolve_markup", broken)
    with pytest.raises(duckdb.Error):
        asyncio.run(session.quote(TICKET, Decimal("80"), "GBP", "USD"))


def test_registry_reuses_and_evicts_sessions(resolver, fake_rates):
    created = []

    def factory(session_id):
        created.append(session_id)
        return PricingSession(resolver, RateCache(fake_rates), session_id=session_id)

    registry = SessionRegistry(factory, max_sessions=2)
    a = registry.get("a")
    assert registry.get("a") is a
    assert registry.get(None).session_id == "default"
    registry.get("a")  # a is now most recent
    registry.get("b")  # evicts "default"
    assert len(registry) == 2
    registry.get("default")
    assert created == ["a", "default", "b", "default"]
    assert registry.get("a") is not a  # evicted when "default" came back
