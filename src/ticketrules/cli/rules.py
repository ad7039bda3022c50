"""Rules subcommand: list, set, clear, resolve markups."""

from __future__ import annotations

from decimal import Decimal

import typer

from ticketrules.cli.common import EVENT, SPORT, TEAM, TICKET, TOURNAMENT, build_scope, open_store
from ticketrules.editor import BatchRuleEditor
from ticketrules.models import Level, MarkupType, MarkupValue, Resolution
from ticketrules.resolver import Resolver
from ticketrules.storage.markup_rules import list_markup_rules, markup_stats

app = typer.Typer(help="Hierarchical markup rules")


@app.command("list")
def list_rules(
    ctx: typer.Context,
    sport: str | None = typer.Option(None, "--sport", "-s", help="Filter by sport type"),
    level: Level | None = typer.Option(None, "--level", "-l", help="Filter by level"),
    event: str | None = typer.Option(None, "--event", "-e", help="Filter by event ID"),
    include_inactive: bool = typer.Option(False, "--all", help="Include invalidated rules"),
    limit: int = typer.Option(100, "--limit", "-n", help="Max rules to show"),
) -> None:
    """List markup rules, sport level first."""
    filters = {"sport_type": sport, "level": level, "event_id": event}
    if not include_inactive:
        filters["is_active"] = True
    with open_store(ctx) as store, store.read() as conn:
        result = list_markup_rules(conn, filters, limit=limit)
        stats = markup_stats(conn)
    for rule in result["data"]:
        keys = " ".join(f"{k}={v}" for k, v in rule.scope.model_dump(exclude_none=True).items())
        state = "" if rule.is_active else "  (inactive)"
        typer.echo(f"#{rule.id:<5} {rule.level.value:<10} {keys:<60} {rule.markup_type.value} {rule.markup_amount}{state}")
    typer.echo(
        f"{result['pagination']['total_records']} rules shown of {stats['total_rules']} "
        f"({stats['active_rules']} active, {stats['legacy_ticket_markups']} legacy ticket markups)"
    )


@app.command("set")
def set_rule(
    ctx: typer.Context,
    sport: str = SPORT,
    tournament: str | None = TOURNAMENT,
    team: str | None = TEAM,
    event: str | None = EVENT,
    ticket: str | None = TICKET,
    markup_type: MarkupType = typer.Option(MarkupType.FIXED, "--type", help="fixed (reference currency) or percentage"),
    amount: float = typer.Option(..., "--amount", "-a", help="Markup amount"),
) -> None:
    """Replace the markup at a scope with a single rule."""
    with open_store(ctx) as store:
        scope = build_scope(sport, tournament, team, event, ticket)
        result = BatchRuleEditor(store).replace_markup_at_scope(
            scope, [MarkupValue(markup_type=markup_type, markup_amount=Decimal(str(amount)))]
        )
    typer.echo(f"Set {markup_type.value} {amount} at {scope.target_level.value} level (replaced {result.deleted_count}).")


@app.command("clear")
def clear(
    ctx: typer.Context,
    sport: str = SPORT,
    tournament: str | None = TOURNAMENT,
    team: str | None = TEAM,
    event: str | None = EVENT,
    ticket: str | None = TICKET,
) -> None:
    """Remove the markup at a scope so pricing falls through to the parent level."""
    with open_store(ctx) as store:
        scope = build_scope(sport, tournament, team, event, ticket)
        removed = BatchRuleEditor(store).remove_markup_at_scope(scope)
    typer.echo(f"Removed {removed} rule(s) at {scope.target_level.value} level.")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    sport: str = SPORT,
    tournament: str | None = TOURNAMENT,
    team: str | None = TEAM,
    event: str | None = EVENT,
    ticket: str | None = TICKET,
) -> None:
    """Show which markup applies to a ticket scope."""
    with open_store(ctx) as store:
        scope = build_scope(sport, tournament, team, event, ticket)
        markup = Resolver(store).resolve_markup(scope)
    typer.echo(Resolution(markup=markup).markup_message)
    if markup is not None:
        typer.echo(f"  rule #{markup.rule_id}: {markup.markup_type.value} {markup.markup_amount}")
