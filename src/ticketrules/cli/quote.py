"""Quote command: resolve and price one ticket against the live rate source."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import typer

from ticketrules.cli.common import EVENT, SPORT, TEAM, TICKET, TOURNAMENT, build_scope, open_store
from ticketrules.currency import FrankfurterRateProvider, RateCache
from ticketrules.pricing import PriceQuote, PricingSession
from ticketrules.resolver import Resolver

app = typer.Typer(help="Price a ticket")


async def _quote(session: PricingSession, scope, face_value: Decimal, currency: str, display: str | None) -> PriceQuote:
    try:
        return await session.quote(scope, face_value, currency, display)
    finally:
        await session.rates.provider.aclose()


@app.callback(invoke_without_command=True)
def quote(
    ctx: typer.Context,
    sport: str = SPORT,
    tournament: str | None = TOURNAMENT,
    team: str | None = TEAM,
    event: str | None = EVENT,
    ticket: str | None = TICKET,
    face_value: float = typer.Option(..., "--face", "-f", help="Face value in the ticket currency"),
    currency: str = typer.Option(..., "--currency", "-c", help="Ticket currency (ISO code)"),
    display: str | None = typer.Option(None, "--display", "-d", help="Display currency (default from config)"),
) -> None:
    """Resolve the markup for a ticket and show its price in the display currency."""
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    with open_store(ctx) as store:
        scope = build_scope(sport, tournament, team, event, ticket)
        provider = FrankfurterRateProvider(settings.currency_api_base, timeout=settings.rate_http_timeout_sec)
        session = PricingSession(
            Resolver(store),
            RateCache(provider, fetch_timeout=settings.rate_fetch_timeout_sec),
            reference_currency=settings.reference_currency,
            default_display_currency=settings.default_display_currency,
            session_id="cli",
        )
        q = asyncio.run(_quote(session, scope, Decimal(str(face_value)), currency, display))
    typer.echo(f"Base:   {q.base_price} {q.currency}" + ("" if q.converted else "  (not converted, rate unavailable)"))
    if q.applied_markup is not None:
        m = q.applied_markup
        typer.echo(f"Markup: {q.markup} {q.currency}  ({m.markup_type.value} {m.markup_amount} from {m.level.value}, {m.source.value})")
        if q.markup_unavailable:
            typer.echo("        fixed markup dropped: reference currency rate unavailable")
    else:
        typer.echo(f"Markup: {q.markup} {q.currency}  (no rule)")
    typer.echo(f"Final:  {q.final_price} {q.currency}")
