"""Read-only query commands, open to any caller."""

from __future__ import annotations

from typing import Annotated

import typer

from rbac_engine.schemas import AccessDecisionOut

from .. import shared


def register(app: typer.Typer) -> None:
    groups_app = typer.Typer(add_completion=False, help="Group membership queries.")
    app.add_typer(groups_app, name="groups")

    @groups_app.command(name="members", help="List the users in a group.")
    def group_members(
        group: Annotated[str, typer.Argument(help="Group identifier (hex).")],
        json_output: shared.JsonOption = False,
    ) -> None:
        with shared.command_context() as ctx:
            members = ctx.engine.read_user_group(group)
        shared.emit_identifiers(members, json_output=json_output, empty_message="No members.")

    @groups_app.command(name="of", help="List the groups a user belongs to.")
    def groups_of(
        user: Annotated[str, typer.Argument(help="User identifier (hex).")],
        json_output: shared.JsonOption = False,
    ) -> None:
        with shared.command_context() as ctx:
            groups = ctx.engine.read_user_groups(user)
        shared.emit_identifiers(groups, json_output=json_output, empty_message="No groups.")

    @app.command(name="roles", help="List the effective roles of a user or group.")
    def roles(
        subject: Annotated[str, typer.Argument(help="User or group identifier (hex).")],
        direct: Annotated[
            bool,
            typer.Option("--direct", help="Only roles assigned to the subject itself."),
        ] = False,
        json_output: shared.JsonOption = False,
    ) -> None:
        with shared.command_context() as ctx:
            if direct:
                found = ctx.engine.read_direct_roles(subject)
            else:
                found = ctx.engine.read_user_or_group_roles(subject)
        shared.emit_identifiers(found, json_output=json_output, empty_message="No roles.")

    @app.command(
        name="permissions",
        help="List a role's permissions, or a user's with --effective.",
    )
    def permissions(
        identifier: Annotated[
            str,
            typer.Argument(help="Role identifier, or user identifier with --effective."),
        ],
        effective: Annotated[
            bool,
            typer.Option("--effective", help="Resolve every permission a user holds."),
        ] = False,
        json_output: shared.JsonOption = False,
    ) -> None:
        with shared.command_context() as ctx:
            if effective:
                found = ctx.engine.read_effective_permissions(identifier)
            else:
                found = ctx.engine.read_permissions(identifier)
        shared.emit_identifiers(found, json_output=json_output, empty_message="No permissions.")

    @app.command(name="check", help="Check whether a user holds a permission.")
    def check(
        user: Annotated[str, typer.Argument(help="User identifier (hex).")],
        permission: Annotated[str, typer.Argument(help="Permission identifier (hex).")],
        explain: Annotated[
            bool,
            typer.Option("--explain", help="Show the roles and groups behind the decision."),
        ] = False,
        json_output: shared.JsonOption = False,
    ) -> None:
        with shared.command_context() as ctx:
            user_id, permission_id = shared.parse_ids(user, permission)
            if not explain:
                allowed = ctx.engine.check_access(user_id, permission_id)
            else:
                decision = AccessDecisionOut.model_validate(
                    ctx.engine.explain_access(user_id, permission_id)
                )

        if not explain:
            if json_output:
                shared.emit_json(
                    {
                        "user": user_id.to_hex(),
                        "permission": permission_id.to_hex(),
                        "allowed": allowed,
                    }
                )
            else:
                typer.echo("allowed" if allowed else "denied")
            return

        if json_output:
            shared.emit_json(decision.model_dump(mode="json"))
            return
        typer.echo("allowed" if decision.allowed else "denied")
        for label, values in (
            ("direct roles", decision.direct_roles),
            ("groups", decision.groups),
            ("group roles", decision.group_roles),
            ("granting roles", decision.granting_roles),
        ):
            rendered = ", ".join(value.to_hex() for value in values) or "-"
            typer.echo(f"  {label}: {rendered}")
