"""ticketrules command line: rule admin, hospitality bundles, quotes and the API server."""

from pathlib import Path

import typer

from ticketrules.cli import api_cmd, hospitality, quote, rules
from ticketrules.config import get_settings
from ticketrules.config.settings import configure_logging

app = typer.Typer(name="ticketrules", help="Hierarchical ticket markups, hospitality bundles and pricing.", no_args_is_help=True)
app.add_typer(rules.app, name="rules")
app.add_typer(hospitality.app, name="hospitality")
app.add_typer(quote.app, name="quote")
app.add_typer(api_cmd.app, name="api")


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(None, "--config-dir", "-C", help="Directory holding default.toml"),
    profile: str | None = typer.Option(None, "--profile", "-p", help="Overlay <profile>.toml on default.toml"),
) -> None:
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings}


def run() -> None:
    app()
