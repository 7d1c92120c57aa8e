"""CLI entry point for aumos-permits.

Invoked as::

    aumos-permits [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_permits.cli.main

Commands
--------
- version      Show version information
- inspect      Show the roles, resources and actions of a definitions file
- definitions  List (optionally consolidated) definitions
- check        Query a permit for a user, action and resource
"""
from __future__ import annotations

import asyncio
import sys
from typing import Any

import click
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from aumos_permits.definitions.loader import DefinitionsLoader, PermissionConfigError
from aumos_permits.errors import PermissionsError
from aumos_permits.permissions import Permissions

console = Console()
err_console = Console(stderr=True)

_EXIT_DENIED = 1
_EXIT_ERROR = 2


def _load(config_path: str) -> Permissions:
    try:
        return DefinitionsLoader().load(config_path).build()
    except PermissionConfigError as exc:
        err_console.print(f"[red]Invalid definitions config:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_ERROR)


def _parse_id(raw: str | None) -> int | str | None:
    if raw is None:
        return None
    return int(raw) if raw.lstrip("-").isdigit() else raw


def _hook_name(hook: Any) -> str:
    if hook is None:
        return ""
    return getattr(hook, "__qualname__", None) or repr(hook)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-permits")
def cli() -> None:
    """Permissions CLI: inspect definitions and query permits."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_permits import __version__

    console.print(
        Panel(
            f"[bold]aumos-permits[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Role, resource and ownership based permissions.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
def inspect_command(config_path: str) -> None:
    """Show the roles, resources and actions defined in CONFIG_PATH."""
    permissions = _load(config_path)

    table = Table(title="Definitions Summary", box=box.SIMPLE)
    table.add_column("Kind", style="cyan")
    table.add_column("Count", style="bold")
    table.add_column("Names")
    for kind, names in (
        ("Roles", permissions.get_roles()),
        ("Resources", permissions.get_resources()),
        ("Actions", permissions.get_actions()),
    ):
        table.add_row(kind, str(len(names)), escape(", ".join(names)))
    console.print(table)


# ---------------------------------------------------------------------------
# definitions
# ---------------------------------------------------------------------------


@cli.command(name="definitions")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--resource", "-r", default=None, help="Only definitions for this resource.")
@click.option("--role", "roles", multiple=True, help="Only definitions holding these roles.")
@click.option(
    "--consolidate",
    type=click.Choice(["no", "yes", "force"]),
    default="no",
    show_default=True,
    help="Merge and de-duplicate definitions ('force' also merges own grants).",
)
@click.option("--yaml", "as_yaml", is_flag=True, help="Print YAML instead of a table.")
def definitions_command(
    config_path: str,
    resource: str | None,
    roles: tuple[str, ...],
    consolidate: str,
    as_yaml: bool,
) -> None:
    """List the definitions in CONFIG_PATH."""
    permissions = _load(config_path)

    filter_: dict[str, Any] = {}
    if resource:
        filter_["resource"] = resource
    if roles:
        filter_["roles"] = list(roles)
    mode: bool | str = {"no": False, "yes": True, "force": "force"}[consolidate]

    try:
        definitions = permissions.get_definitions(filter_ or None, consolidate=mode)
    except PermissionsError as exc:
        err_console.print(f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_ERROR)

    if as_yaml:
        rendered = [
            {
                key: (_hook_name(value) if callable(value) else value)
                for key, value in definition.items()
                if value is not None
            }
            for definition in definitions
        ]
        click.echo(
            yaml.dump(
                {"definitions": rendered},
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            ),
            nl=False,
        )
        return

    table = Table(title=f"{len(definitions)} Definitions", box=box.SIMPLE)
    table.add_column("Roles", style="cyan")
    table.add_column("Resource", style="magenta")
    table.add_column("Grant")
    table.add_column("Ownership hooks", style="dim")
    for definition in definitions:
        grant = definition.get("grant", {})
        hooks = ", ".join(
            f"{name}={_hook_name(definition.get(name))}"
            for name in ("is_owner", "list_owned", "limit_owned")
            if definition.get(name) is not None
        )
        table.add_row(
            escape(", ".join(definition.get("roles", filter_.get("roles", [])))),
            escape(str(definition.get("resource", filter_.get("resource", "")))),
            escape("\n".join(f"{key}: {attrs}" for key, attrs in grant.items())),
            escape(hooks),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--user-id", required=True, help="The querying user's id.")
@click.option("--role", "roles", multiple=True, help="A role of the user (repeatable).")
@click.option("--action", "-a", required=True, help="Bare action name, e.g. 'read'.")
@click.option("--resource", "-r", required=True, help="Resource name, e.g. 'document'.")
@click.option("--resource-id", default=None, help="Optional resource id to check ownership of.")
def check_command(
    config_path: str,
    user_id: str,
    roles: tuple[str, ...],
    action: str,
    resource: str,
    resource_id: str | None,
) -> None:
    """Query a permit; exits 0 when granted, 1 when denied, 2 on errors."""
    permissions = _load(config_path)
    user = {"id": _parse_id(user_id), "roles": list(roles)}

    try:
        permit = asyncio.run(
            permissions.grant_permit(user, action, resource, _parse_id(resource_id))
        )
    except PermissionsError as exc:
        err_console.print(f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_ERROR)

    status_str = "[green]GRANTED[/green]" if permit.granted else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Permit", border_style="blue"))

    table = Table(box=box.SIMPLE)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("granted", str(permit.granted))
    table.add_row("any_granted", str(permit.any_granted))
    table.add_row("own_granted", str(permit.own_granted))
    table.add_row("any_attributes", escape(", ".join(permit.any_attributes)))
    table.add_row("own_attributes", escape(", ".join(permit.own_attributes)))
    console.print(table)

    sys.exit(0 if permit.granted else _EXIT_DENIED)


if __name__ == "__main__":
    cli()
