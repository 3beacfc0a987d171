"""Owner-only mutation commands."""

from __future__ import annotations

from typing import Annotated

import typer

from .. import shared

UserArg = Annotated[str, typer.Argument(help="User identifier (hex).")]
GroupArg = Annotated[str, typer.Argument(help="Group identifier (hex).")]
SubjectArg = Annotated[str, typer.Argument(help="User or group identifier (hex).")]
RoleArg = Annotated[str, typer.Argument(help="Role identifier (hex).")]
PermissionArg = Annotated[str, typer.Argument(help="Permission identifier (hex).")]


def register(app: typer.Typer) -> None:
    @app.command(name="add-user-to-group", help="Add a user to a group.")
    def add_user_to_group(
        user: UserArg,
        group: GroupArg,
        caller: shared.CallerOption = None,
    ) -> None:
        with shared.command_context() as ctx:
            user_id, group_id = shared.parse_ids(user, group)
            changed = ctx.engine.add_user_to_group(user_id, group_id, caller=ctx.caller(caller))
        shared.report_change(
            changed,
            done=f"Added {user_id} to group {group_id}.",
            unchanged=f"{user_id} is already in group {group_id}.",
        )

    @app.command(name="remove-user-from-group", help="Remove a user from a group.")
    def remove_user_from_group(
        user: UserArg,
        group: GroupArg,
        caller: shared.CallerOption = None,
    ) -> None:
        with shared.command_context() as ctx:
            user_id, group_id = shared.parse_ids(user, group)
            changed = ctx.engine.remove_user_from_group(
                user_id, group_id, caller=ctx.caller(caller)
            )
        shared.report_change(
            changed,
            done=f"Removed {user_id} from group {group_id}.",
            unchanged=f"{user_id} is not in group {group_id}.",
        )

    @app.command(name="add-to-role", help="Assign a role to a user or group.")
    def add_to_role(
        subject: SubjectArg,
        role: RoleArg,
        caller: shared.CallerOption = None,
    ) -> None:
        with shared.command_context() as ctx:
            subject_id, role_id = shared.parse_ids(subject, role)
            changed = ctx.engine.add_user_or_group_to_role(
                subject_id, role_id, caller=ctx.caller(caller)
            )
        shared.report_change(
            changed,
            done=f"Assigned role {role_id} to {subject_id}.",
            unchanged=f"{subject_id} already holds role {role_id}.",
        )

    @app.command(name="remove-from-role", help="Remove a role from a user or group.")
    def remove_from_role(
        subject: SubjectArg,
        role: RoleArg,
        caller: shared.CallerOption = None,
    ) -> None:
        with shared.command_context() as ctx:
            subject_id, role_id = shared.parse_ids(subject, role)
            changed = ctx.engine.remove_user_or_group_from_role(
                subject_id, role_id, caller=ctx.caller(caller)
            )
        shared.report_change(
            changed,
            done=f"Removed role {role_id} from {subject_id}.",
            unchanged=f"{subject_id} does not hold role {role_id}.",
        )

    @app.command(name="grant", help="Grant a permission to a role.")
    def grant(
        role: RoleArg,
        permission: PermissionArg,
        caller: shared.CallerOption = None,
    ) -> None:
        with shared.command_context() as ctx:
            role_id, permission_id = shared.parse_ids(role, permission)
            changed = ctx.engine.add_role_to_permission(
                role_id, permission_id, caller=ctx.caller(caller)
            )
        shared.report_change(
            changed,
            done=f"Granted {permission_id} to role {role_id}.",
            unchanged=f"Role {role_id} already has {permission_id}.",
        )

    @app.command(name="revoke", help="Revoke a permission from a role.")
    def revoke(
        role: RoleArg,
        permission: PermissionArg,
        caller: shared.CallerOption = None,
    ) -> None:
        with shared.command_context() as ctx:
            role_id, permission_id = shared.parse_ids(role, permission)
            changed = ctx.engine.remove_role_from_permission(
                role_id, permission_id, caller=ctx.caller(caller)
            )
        shared.report_change(
            changed,
            done=f"Revoked {permission_id} from role {role_id}.",
            unchanged=f"Role {role_id} does not have {permission_id}.",
        )
