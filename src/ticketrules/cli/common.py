"""Shared CLI helpers: scope options, store access, error reporting."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from ticketrules.errors import PricingError
from ticketrules.models import Scope
from ticketrules.storage import RuleStore

SPORT = typer.Option(..., "--sport", "-s", help="Sport type (e.g. football)")
TOURNAMENT = typer.Option(None, "--tournament", help="Tournament ID")
TEAM = typer.Option(None, "--team", help="Team ID (requires --tournament)")
EVENT = typer.Option(None, "--event", "-e", help="Event ID")
TICKET = typer.Option(None, "--ticket", "-t", help="Ticket ID (requires --event)")


def build_scope(
    sport: str, tournament: str | None, team: str | None, event: str | None, ticket: str | None
) -> Scope:
    return Scope.coerce(
        {"sport_type": sport, "tournament_id": tournament, "team_id": team, "event_id": event, "ticket_id": ticket}
    )


@contextmanager
def open_store(ctx: typer.Context) -> Iterator[RuleStore]:
    """Open the configured store; PricingErrors and validation errors become a one-line message and exit code 1."""
    settings = ctx.obj["settings"]
    store = RuleStore.from_settings(settings)
    try:
        yield store
    except (PricingError, ValueError) as e:
        typer.echo(f"Error ({getattr(e, 'code', 'invalid_request')}): {e}", err=True)
        raise typer.Exit(1) from e
    finally:
        store.close()
