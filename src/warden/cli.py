"""
CLI entry point for Warden.

This module provides the Typer-based command-line interface for Warden,
useful for checking a policy by hand or from scripts.

Commands:
    check        Decide a single permission for a subject
    authorize    Run the guard for an operation from a config file
    operations   List the operations declared in a config file
    roles        Show the roles of a subject
    permissions  Show the permissions of a subject

Exit codes:
    0  allowed / success
    1  denied
    2  error (bad config, policy engine failure, unknown operation)
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Any, NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from warden import __version__
from warden.authorizer import Authorizer
from warden.enforcer import CasbinEnforcer
from warden.errors import ConfigError, WardenError
from warden.guard import Guard
from warden.registry import PermissionRegistry, builtin_ownership_checks
from warden.schema import (
    AuthAction,
    AuthPossession,
    Decision,
    PermissionRequirement,
    RequestContext,
    WardenConfig,
    load_config,
)

EXIT_ALLOWED = 0
EXIT_DENIED = 1
EXIT_ERROR = 2

# Initialize Typer app with metadata
app = typer.Typer(
    name="warden",
    help="Check authorization decisions against a Casbin policy.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


ModelOption = Annotated[
    Optional[Path],
    typer.Option(
        "--model",
        "-m",
        help="Casbin model file. Defaults to the bundled RBAC model.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
PolicyOption = Annotated[
    Optional[Path],
    typer.Option(
        "--policy",
        "-p",
        help="Casbin policy CSV file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to the Warden YAML config.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output results in JSON format.",
    ),
]
DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full error tracebacks.",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]warden[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log every policy engine call to stderr.",
        ),
    ] = False,
) -> None:
    """
    Warden - per-request authorization decisions over a Casbin policy.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


# =============================================================================
# Commands
# =============================================================================


@app.command()
def check(
    subject: Annotated[str, typer.Argument(help="Subject to check.")],
    resource: Annotated[str, typer.Argument(help="Resource name.")],
    action: Annotated[AuthAction, typer.Argument(help="Action to check.")],
    possession: Annotated[
        AuthPossession,
        typer.Option(
            "--possession",
            help="Possession qualifier of the permission.",
        ),
    ] = AuthPossession.ANY,
    owns: Annotated[
        bool,
        typer.Option(
            "--owns",
            help="Treat the subject as the owner of the targeted resource.",
        ),
    ] = False,
    model: ModelOption = None,
    policy: PolicyOption = None,
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Decide a single permission for a subject.

    Example:
        $ warden check alice USER read --policy policy.csv
        $ warden check bob DOC update --possession own --owns -p policy.csv
    """
    try:
        enforcer = _load_enforcer(model, policy)
        requirement = PermissionRequirement(
            action=action,
            resource=resource,
            possession=possession,
            is_own=_assume_owner if owns else None,
        )
        decision = Authorizer(enforcer).explain(subject, [requirement])
    except (WardenError, ValidationError) as e:
        _fail(e, json_output, debug)

    _finish(decision, json_output)


@app.command()
def authorize(
    operation: Annotated[str, typer.Argument(help="Operation identifier.")],
    config_path: ConfigOption,
    subject: Annotated[
        Optional[str],
        typer.Option(
            "--subject",
            "-s",
            help="Acting subject. Omit to check an anonymous request.",
        ),
    ] = None,
    params: Annotated[
        Optional[list[str]],
        typer.Option(
            "--param",
            help="Request parameter as key=value (repeatable).",
        ),
    ] = None,
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Run the guard for an operation declared in a config file.

    Ownership-qualified requirements may use the built-in "owner_id"
    check, which compares --param owner_id=... with the subject.

    Example:
        $ warden authorize docs.update -c warden.yaml -s bob --param owner_id=bob
    """
    try:
        config = _load_config(config_path)
        guard = Guard.from_config(config, builtin_ownership_checks())
        context = RequestContext(subject=subject, params=_parse_params(params or []))
        decision = guard.check(operation, context)
    except (WardenError, ValidationError) as e:
        _fail(e, json_output, debug)

    _finish(decision, json_output, operation=operation)


@app.command()
def operations(
    config_path: ConfigOption,
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    List the operations declared in a config file.

    Example:
        $ warden operations -c warden.yaml
    """
    try:
        config = _load_config(config_path)
        registry = PermissionRegistry.from_config(config, builtin_ownership_checks())
    except WardenError as e:
        _fail(e, json_output, debug)

    if json_output:
        output = {
            name: [r.model_dump(mode="json") for r in registry.get(name)]
            for name in registry.list_operations()
        }
        print(json.dumps(output, indent=2))
        raise typer.Exit(code=EXIT_ALLOWED)

    if not len(registry):
        console.print("[dim]No operations declared.[/dim]")
        raise typer.Exit(code=EXIT_ALLOWED)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Operation", style="cyan")
    table.add_column("Requirements")

    for name in registry.list_operations():
        requirements = registry.get(name)
        if requirements:
            details = "\n".join(r.describe() for r in requirements)
        else:
            details = "[dim]public[/dim]"
        table.add_row(name, details)

    console.print(table)


@app.command()
def roles(
    subject: Annotated[str, typer.Argument(help="Subject to inspect.")],
    implicit: Annotated[
        bool,
        typer.Option(
            "--implicit",
            help="Include roles inherited through the role hierarchy.",
        ),
    ] = False,
    model: ModelOption = None,
    policy: PolicyOption = None,
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Show the roles of a subject.

    Example:
        $ warden roles alice --implicit -p policy.csv
    """
    try:
        enforcer = _load_enforcer(model, policy)
        if implicit:
            found = enforcer.get_implicit_roles_for_user(subject)
        else:
            found = enforcer.get_roles_for_user(subject)
    except WardenError as e:
        _fail(e, json_output, debug)

    if json_output:
        print(json.dumps({"subject": subject, "roles": found}, indent=2))
        raise typer.Exit(code=EXIT_ALLOWED)

    if not found:
        console.print(f"[dim]{subject} has no roles.[/dim]")
        raise typer.Exit(code=EXIT_ALLOWED)

    for role in found:
        console.print(f"  [cyan]{role}[/cyan]")


@app.command()
def permissions(
    subject: Annotated[str, typer.Argument(help="Subject to inspect.")],
    implicit: Annotated[
        bool,
        typer.Option(
            "--implicit",
            help="Include permissions granted through roles.",
        ),
    ] = False,
    model: ModelOption = None,
    policy: PolicyOption = None,
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Show the permissions of a subject.

    Example:
        $ warden permissions alice --implicit -p policy.csv
    """
    try:
        enforcer = _load_enforcer(model, policy)
        if implicit:
            found = enforcer.get_implicit_permissions_for_user(subject)
        else:
            found = enforcer.get_permissions_for_user(subject)
    except WardenError as e:
        _fail(e, json_output, debug)

    if json_output:
        print(json.dumps({"subject": subject, "permissions": found}, indent=2))
        raise typer.Exit(code=EXIT_ALLOWED)

    if not found:
        console.print(f"[dim]{subject} has no permissions.[/dim]")
        raise typer.Exit(code=EXIT_ALLOWED)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Subject", style="cyan")
    table.add_column("Resource")
    table.add_column("Action")
    for rule in found:
        table.add_row(*[str(part) for part in rule[:3]])
    console.print(table)


# =============================================================================
# Helpers
# =============================================================================


def _assume_owner(context: RequestContext) -> bool:
    """Ownership predicate for --owns."""
    return True


def _load_enforcer(model: Path | None, policy: Path | None) -> CasbinEnforcer:
    if model is None:
        return CasbinEnforcer.default(policy)
    return CasbinEnforcer.from_files(model, policy)


def _load_config(path: Path) -> WardenConfig:
    try:
        return load_config(path)
    except OSError as e:
        raise ConfigError(message=f"Cannot read config: {e}", path=str(path)) from e


def _parse_params(raw: list[str]) -> dict[str, Any]:
    """Parse key=value pairs."""
    params: dict[str, Any] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {item!r}", param_hint="--param")
        params[key] = value
    return params


def _finish(decision: Decision, json_output: bool, operation: str | None = None) -> None:
    """Display a decision and exit with its code."""
    if json_output:
        output = decision.model_dump(mode="json")
        if operation is not None:
            output["operation"] = operation
        print(json.dumps(output, indent=2))
    else:
        _display_decision(decision, operation)

    raise typer.Exit(code=EXIT_ALLOWED if decision.allowed else EXIT_DENIED)


def _display_decision(decision: Decision, operation: str | None) -> None:
    """Display a decision in a formatted way."""
    target = f" for [bold]{operation}[/bold]" if operation else ""
    subject = decision.subject or "<anonymous>"
    if decision.allowed:
        console.print(f"[green]✓[/green] {subject}{target}: [green]allowed[/green]")
    else:
        console.print(f"[red]✗[/red] {subject}{target}: [red]denied[/red]")
    console.print(f"[dim]{decision.reason}[/dim]")

    if not decision.outcomes:
        return

    console.print()
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Requirement", style="cyan")
    table.add_column("Checked as")
    table.add_column("Result", width=8)

    for i, outcome in enumerate(decision.outcomes, start=1):
        if outcome.skipped:
            result = "[dim]skipped[/dim]"
        elif outcome.allowed:
            result = "[green]allow[/green]"
        else:
            result = "[red]deny[/red]"
        table.add_row(
            str(i),
            f"{outcome.action.value} {outcome.resource} ({outcome.possession.value})",
            outcome.effective_resource or "[dim]-[/dim]",
            result,
        )

    console.print(table)


def _fail(error: Exception, json_output: bool, debug: bool) -> NoReturn:
    """Report an error and exit with EXIT_ERROR."""
    if json_output:
        if isinstance(error, WardenError):
            output = {"error": True, **error.to_dict()}
        else:
            output = {
                "error": True,
                "error_type": error.__class__.__name__,
                "message": str(error),
            }
        if debug:
            output["traceback"] = traceback.format_exc()
        print(json.dumps(output, indent=2, default=str))
    else:
        err_console.print(f"[red]Error: {error}[/red]")
        if debug:
            err_console.print(f"[dim]{traceback.format_exc()}[/dim]")
    raise typer.Exit(code=EXIT_ERROR)
