"""
CLI entry point for agentgate.

Commands:
    validate    Load and compile a policy, show what it allows
    check       Evaluate one tool call against a policy

Exit codes:
    0   the call is allowed (`check`), the policy is valid (`validate`)
    1   the call is denied (`check`)
    2   the policy could not be loaded or the arguments are unusable

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to
    agentgate.policy. A proxy embeds PolicyEngine directly.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from agentgate import __version__
from agentgate.config import get_settings
from agentgate.errors import AgentGateError
from agentgate.policy import CompiledPolicy, PolicyEngine, load_policy_file

EXIT_ALLOWED = 0
EXIT_DENIED = 1
EXIT_ERROR = 2

app = typer.Typer(
    name="agentgate",
    help="Authorize agent tool calls against an AgentPolicy.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def _configure_logging(level_name: str) -> None:
    """Send agentgate logs to stderr through Rich."""
    levels = logging.getLevelNamesMapping()
    level = levels.get(level_name.upper())
    if level is None:
        err_console.print(f"[red]Unknown log level: {escape(level_name)}[/red]")
        raise typer.Exit(code=EXIT_ERROR)

    pkg_logger = logging.getLogger("agentgate")
    pkg_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in pkg_logger.handlers):
        pkg_logger.addHandler(RichHandler(console=err_console, show_path=False))


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]agentgate[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to AGENTGATE_LOG_LEVEL or WARNING.",
        ),
    ] = None,
) -> None:
    """
    agentgate - Fail-closed authorization for agent tool calls.
    """
    _configure_logging(log_level or get_settings().log_level)


# =============================================================================
# Helpers
# =============================================================================


def _resolve_policy_path(policy_path: Path | None) -> Path:
    path = policy_path or get_settings().policy_path
    if path is None:
        err_console.print(
            "[red]No policy given.[/red] Pass --policy or set AGENTGATE_POLICY_PATH."
        )
        raise typer.Exit(code=EXIT_ERROR)
    return path


def _load_or_exit(path: Path, json_output: bool, debug: bool) -> CompiledPolicy:
    try:
        return load_policy_file(path)
    except AgentGateError as e:
        if json_output:
            _output_json_error(e, debug)
        else:
            err_console.print(f"[red]Error loading policy:[/red] {escape(str(e))}")
            if debug:
                err_console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
        raise typer.Exit(code=EXIT_ERROR)


def _output_json_error(error: AgentGateError, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output: dict[str, Any] = {"error": True, **error.to_dict()}
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2, default=str))


def parse_arg_value(raw: str) -> Any:
    """
    Interpret a --arg value.

    JSON scalars are decoded ("true" -> True, "42" -> 42, "null" -> None);
    anything else, including JSON arrays and objects, stays text.
    """
    try:
        value = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return raw


def _parse_arguments(pairs: list[str], args_json: str | None) -> dict[str, Any]:
    arguments: dict[str, Any] = {}
    if args_json:
        try:
            decoded = json.loads(args_json)
        except ValueError as e:
            err_console.print(f"[red]Invalid --args-json:[/red] {escape(str(e))}")
            raise typer.Exit(code=EXIT_ERROR)
        if not isinstance(decoded, dict):
            err_console.print("[red]--args-json must be a JSON object[/red]")
            raise typer.Exit(code=EXIT_ERROR)
        arguments.update(decoded)

    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            err_console.print(f"[red]Invalid --arg {escape(pair)!r}, expected key=value[/red]")
            raise typer.Exit(code=EXIT_ERROR)
        arguments[key] = parse_arg_value(raw)
    return arguments


# =============================================================================
# Commands
# =============================================================================


@app.command()
def validate(
    policy_path: Annotated[
        Path,
        typer.Argument(help="Path to the policy YAML file."),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the summary in JSON format."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full error tracebacks."),
    ] = False,
) -> None:
    """
    Load and compile a policy and show what it allows.

    Example:
        $ agentgate validate agent.yaml
    """
    compiled = _load_or_exit(policy_path, json_output, debug)

    if json_output:
        output = {
            "name": compiled.name,
            "api_version": compiled.document.api_version,
            "allowed_tools": sorted(compiled.allowed),
            "tool_rules": {
                name: dict(rule.patterns) for name, rule in sorted(compiled.rules.items())
            },
            "denied_tools": list(compiled.document.spec.denied_tools),
        }
        print(json.dumps(output, indent=2))
        return

    _display_policy(compiled)


def _display_policy(compiled: CompiledPolicy) -> None:
    """Display a compiled policy as a table."""
    metadata = compiled.document.metadata
    console.print(
        f"[green]✓[/green] Policy [bold]{escape(compiled.name or '<unnamed>')}[/bold] "
        f"({escape(compiled.document.api_version)})"
    )
    if metadata.version or metadata.owner:
        console.print(
            f"[dim]  version: {escape(metadata.version or '-')} | "
            f"owner: {escape(metadata.owner or '-')}[/dim]"
        )
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Tool", style="cyan")
    table.add_column("Argument constraints")

    for name in sorted(compiled.allowed):
        rule = compiled.rules.get(name)
        if rule is None or not rule.patterns:
            constraints = "[dim]any arguments[/dim]"
        else:
            constraints = "\n".join(
                f"{escape(arg)}: {escape(pattern)}" for arg, pattern in rule.patterns.items()
            )
        table.add_row(escape(name), constraints)

    console.print(table)

    denied = compiled.document.spec.denied_tools
    if denied:
        console.print(
            f"[yellow]Note: denied_tools is not enforced ({escape(', '.join(denied))})[/yellow]"
        )


@app.command()
def check(
    tool: Annotated[
        str,
        typer.Argument(help="Name of the tool being called."),
    ],
    policy_path: Annotated[
        Optional[Path],
        typer.Option(
            "--policy",
            "-p",
            help="Path to the policy YAML file. Defaults to AGENTGATE_POLICY_PATH.",
        ),
    ] = None,
    arg: Annotated[
        Optional[list[str]],
        typer.Option(
            "--arg",
            "-a",
            help="Tool argument as key=value. Repeatable. JSON scalars are decoded.",
        ),
    ] = None,
    args_json: Annotated[
        Optional[str],
        typer.Option("--args-json", help="Tool arguments as a JSON object."),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the decision in JSON format."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full error tracebacks."),
    ] = False,
) -> None:
    """
    Evaluate one tool call against a policy.

    Example:
        $ agentgate check fetch_url -p agent.yaml --arg url=https://github.com/x
    """
    path = _resolve_policy_path(policy_path)
    arguments = _parse_arguments(arg or [], args_json)
    engine = PolicyEngine(_load_or_exit(path, json_output, debug))

    result = engine.is_allowed(tool, arguments)

    if json_output:
        print(json.dumps({"tool": tool, "policy": engine.policy_name, **result.to_dict()}, indent=2))
    elif result.allowed:
        console.print(f"[green]✓ allowed[/green] {escape(tool)}")
    else:
        console.print(f"[red]✗ denied[/red] {escape(tool)}: {escape(result.reason)}")
        if result.failed_arg is not None:
            console.print(f"[dim]  argument: {escape(result.failed_arg)}[/dim]")
            console.print(f"[dim]  pattern:  {escape(result.failed_pattern or '')}[/dim]")

    raise typer.Exit(code=EXIT_ALLOWED if result.allowed else EXIT_DENIED)
