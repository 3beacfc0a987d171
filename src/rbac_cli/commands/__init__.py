"""Root ``rbac`` command registration."""

from __future__ import annotations

import typer

from . import mutations, queries, state


def register_all(app: typer.Typer) -> None:
    for module in (
        state,
        mutations,
        queries,
    ):
        module.register(app)
