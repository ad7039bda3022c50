"""Hospitality subcommand: catalogue and scope assignments."""

from __future__ import annotations

import typer

from ticketrules.cli.common import EVENT, SPORT, TEAM, TICKET, TOURNAMENT, build_scope, open_store
from ticketrules.editor import BatchRuleEditor
from ticketrules.models import HospitalityInput
from ticketrules.resolver import Resolver
from ticketrules.storage.hospitalities import hospitality_stats, list_hospitalities

app = typer.Typer(help="Hospitality catalogue and assignments")


@app.command("list")
def list_catalogue(
    ctx: typer.Context,
    active_only: bool = typer.Option(False, "--active", help="Only active hospitalities"),
) -> None:
    """List the hospitality catalogue with assignment counts."""
    with open_store(ctx) as store, store.read() as conn:
        items = list_hospitalities(conn, active_only=active_only)
        stats = hospitality_stats(conn)
    counts = {row["id"]: row["assignment_count"] for row in stats["top_hospitalities"]}
    for h in items:
        state = "" if h.is_active else "  (inactive)"
        used = f"  [{counts[h.id]} assignments]" if h.id in counts else ""
        typer.echo(f"#{h.id:<4} {h.name}{state}{used}")
    typer.echo(
        f"{stats['total_assignments']} active assignments, {stats['legacy_assignments']} legacy ticket links"
    )


@app.command("add")
def add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Display name"),
    description: str | None = typer.Option(None, "--description", "-d"),
    sort_order: int = typer.Option(0, "--sort-order", help="Lower sorts first"),
) -> None:
    """Add a hospitality to the catalogue."""
    with open_store(ctx) as store:
        created = BatchRuleEditor(store).create_hospitality(
            HospitalityInput(name=name, description=description, sort_order=sort_order)
        )
    typer.echo(f"Created hospitality #{created.id} {created.name}")


@app.command("assign")
def assign(
    ctx: typer.Context,
    hospitality_ids: list[int] = typer.Option(..., "--id", "-i", help="Hospitality ID (repeatable)"),
    sport: str = SPORT,
    tournament: str | None = TOURNAMENT,
    team: str | None = TEAM,
    event: str | None = EVENT,
    ticket: str | None = TICKET,
    replace: bool = typer.Option(False, "--replace", help="Make these the only hospitalities at the scope"),
) -> None:
    """Assign hospitalities at a scope."""
    with open_store(ctx) as store:
        scope = build_scope(sport, tournament, team, event, ticket)
        editor = BatchRuleEditor(store)
        if replace:
            result = editor.replace_hospitalities_at_scope(scope, hospitality_ids)
            typer.echo(f"Replaced {result.deleted_count} with {result.inserted_count} at {scope.target_level.value} level.")
        else:
            saved = editor.add_hospitalities_at_scope(scope, hospitality_ids)
            created = sum(1 for _, c in saved if c)
            typer.echo(f"Assigned {len(saved)} ({created} new) at {scope.target_level.value} level.")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    sport: str = SPORT,
    tournament: str | None = TOURNAMENT,
    team: str | None = TEAM,
    event: str | None = EVENT,
    ticket: str | None = TICKET,
) -> None:
    """Show the hospitality bundle for a ticket scope."""
    with open_store(ctx) as store:
        scope = build_scope(sport, tournament, team, event, ticket)
        bundle = Resolver(store).resolve_hospitalities(scope)
    if not bundle:
        typer.echo("No hospitalities apply.")
        return
    for h in bundle:
        levels = ", ".join(m.level.value if m.source.value == "hierarchical" else "legacy" for m in h.matched_levels)
        typer.echo(f"#{h.hospitality_id:<4} {h.name:<40} from {h.level.value} ({h.source.value}); matched: {levels}")
