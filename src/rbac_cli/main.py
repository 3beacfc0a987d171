"""Root ``rbac`` CLI app."""

from __future__ import annotations

import typer

from rbac_engine.common.logging import setup_logging

from . import shared
from .commands import register_all

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Manage and query the RBAC authorization engine.",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    with shared.cli_errors():
        setup_logging(shared.load_settings())
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


register_all(app)
