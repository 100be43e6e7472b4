"""Typer CLI entrypoint."""

from __future__ import annotations

import json

import typer

from irctl.core.config_loader import load_settings
from irctl.core.diagnostics import configure_logging
from irctl.core.errors import IrctlError
from irctl.core.model import TransactionResult
from irctl.core.report import render_text
from irctl.core.service import IRControlService

USAGE = "Usage: irctl [on|off]"
_STATES = {"on": True, "off": False}

app = typer.Typer(
    help="Inspect or toggle the Apple IR receiver.",
    add_completion=False,
)


def _build_service() -> IRControlService:
    return IRControlService()


def _emit(result: TransactionResult, *, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(result.as_dict(), indent=2))
        return
    for line in render_text(result):
        typer.echo(line)


@app.command(context_settings={"ignore_unknown_options": True})
def main(
    args: list[str] | None = typer.Argument(None, metavar="[on|off]", show_default=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print diagnostic messages"),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Show the IR receiver state, or turn it on or off (requires root)."""
    args = args or []
    if len(args) > 1 or (args and args[0] not in _STATES):
        typer.echo(USAGE, err=True)
        raise typer.Exit(code=1)

    try:
        settings = load_settings()
    except IrctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    configure_logging(verbose or settings.verbose)

    try:
        service = _build_service()
        if args:
            result = service.set_enabled(_STATES[args[0]])
        else:
            result = service.status()
        _emit(result, as_json=json_output or settings.format == "json")
    except IrctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
