"""Owner and snapshot commands: ``init``, ``owner``, ``export``, ``import``."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from rbac_engine import EngineSnapshot, Unauthorized

from .. import shared


def register(app: typer.Typer) -> None:
    @app.command(name="init", help="Create the store and bind its owner.")
    def init(
        owner: Annotated[
            str | None,
            typer.Option("--owner", help="Owner identity (hex). Defaults to RBAC_OWNER."),
        ] = None,
    ) -> None:
        with shared.cli_errors():
            settings = shared.load_settings()
            selected = shared.parse_ids(owner)[0] if owner else settings.owner_id
            if selected is None:
                raise ValueError("An owner is required (use --owner or set RBAC_OWNER).")
        with shared.command_context(owner=selected, create=True) as ctx:
            typer.echo(f"Engine owned by {ctx.engine.owner}")

    @app.command(name="owner", help="Print the owner recorded in the store.")
    def owner() -> None:
        with shared.command_context() as ctx:
            typer.echo(ctx.engine.owner.to_hex())

    @app.command(name="export", help="Write a JSON snapshot of the owner and every edge.")
    def export(
        output: Annotated[
            Path | None,
            typer.Option("--output", "-o", help="Write to this file instead of stdout."),
        ] = None,
    ) -> None:
        with shared.command_context() as ctx:
            payload = ctx.engine.export_snapshot().model_dump_json(indent=2)
            if output is None:
                typer.echo(payload)
                return
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(payload + "\n", encoding="utf-8")
        typer.echo(f"Snapshot written to {output}")

    @app.command(name="import", help="Restore a JSON snapshot into an empty store.")
    def import_snapshot(
        path: Annotated[Path, typer.Argument(help="Snapshot file produced by `rbac export`.")],
        caller: shared.CallerOption = None,
    ) -> None:
        with shared.cli_errors():
            snapshot = EngineSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
            acting = shared.resolve_caller(caller, shared.load_settings())
            # A fresh store would record snapshot.owner on open.
            if acting != snapshot.owner:
                raise Unauthorized("Snapshot belongs to a different owner", caller=acting)
        with shared.command_context(owner=snapshot.owner, create=True) as ctx:
            ctx.engine.restore(snapshot, caller=acting)
        typer.echo(
            f"Restored {len(snapshot.memberships)} memberships, "
            f"{len(snapshot.assignments)} assignments, {len(snapshot.grants)} grants."
        )
