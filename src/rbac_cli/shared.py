"""Shared helpers for ``rbac`` CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Annotated

import typer
from pydantic import ValidationError

from rbac_engine import AuthorizationEngine, Identifier, RbacError
from rbac_engine.settings import Settings

CallerOption = Annotated[
    str | None,
    typer.Option("--caller", help="Acting identity (hex). Defaults to RBAC_CALLER."),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Emit JSON instead of plain text."),
]


def load_settings() -> Settings:
    """Read settings fresh for each invocation so env changes are honoured."""

    return Settings()


class CommandContext:
    """Bundle the opened engine and the settings it was built from."""

    def __init__(self, *, engine: AuthorizationEngine, settings: Settings) -> None:
        self.engine = engine
        self.settings = settings

    def caller(self, explicit: str | None) -> Identifier:
        return resolve_caller(explicit, self.settings)


def resolve_caller(explicit: str | None, settings: Settings) -> Identifier:
    """Resolve the acting identity from ``--caller`` or ``RBAC_CALLER``."""

    if explicit:
        return Identifier.coerce(explicit)
    caller = settings.caller_id
    if caller is None:
        raise ValueError("A caller is required (use --caller or set RBAC_CALLER).")
    return caller


def _echo_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


@contextmanager
def cli_errors() -> Iterator[None]:
    """Turn engine and validation errors into ``Error: ...`` and exit code 1."""

    try:
        yield
    except ValidationError as exc:
        _echo_error(_first_error(exc))
        raise typer.Exit(code=1) from exc
    except (RbacError, ValueError, OSError) as exc:
        _echo_error(str(exc))
        raise typer.Exit(code=1) from exc


@contextmanager
def command_context(
    *,
    owner: str | Identifier | None = None,
    create: bool = False,
) -> Iterator[CommandContext]:
    """Open the persistent engine for one command and close it afterwards.

    Only ``create=True`` may create a missing store; otherwise the command
    fails and asks for `rbac init`.
    """

    with cli_errors():
        settings = load_settings()
        engine = AuthorizationEngine.from_settings(
            settings,
            owner=owner,
            backend="sql",
            create=create,
        )
        try:
            yield CommandContext(engine=engine, settings=settings)
        finally:
            engine.close()


def parse_ids(*values: str) -> tuple[Identifier, ...]:
    return tuple(Identifier.coerce(value) for value in values)


def _json_default(value: object) -> str:
    if isinstance(value, Identifier):
        return value.to_hex()
    return str(value)


def emit_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=_json_default))


def emit_identifiers(
    identifiers: Iterable[Identifier],
    *,
    json_output: bool,
    empty_message: str,
) -> None:
    items = [identifier.to_hex() for identifier in identifiers]
    if json_output:
        emit_json(items)
        return
    if not items:
        typer.echo(empty_message)
        return
    for item in items:
        typer.echo(item)


def report_change(changed: bool, *, done: str, unchanged: str) -> None:
    typer.echo(done if changed else unchanged)


__all__ = [
    "CallerOption",
    "CommandContext",
    "JsonOption",
    "cli_errors",
    "command_context",
    "emit_identifiers",
    "emit_json",
    "load_settings",
    "parse_ids",
    "report_change",
    "resolve_caller",
]
