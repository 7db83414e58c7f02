#!/usr/bin/env python3
"""
Manifest Runner CLI

Command-line interface for writing, loading and checking supervisor
service manifests.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import structlog
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import ConfigError, RunnerConfig, create_default_config, load_config
from .exceptions import ManifestValidationError, RunStepError
from .logging_config import configure_logging
from .manifest import build_test_manifest, encode_manifest, load_manifest
from .runner import ManifestRunner

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)
logger = structlog.get_logger(__name__)


def _load_runner_config(
    ctx: click.Context, overrides: Optional[Dict[str, Any]] = None
) -> RunnerConfig:
    cli_args: Dict[str, Any] = dict(overrides or {})
    cli_args["log_level"] = ctx.obj.get("log_level")
    try:
        config = load_config(ctx.obj.get("config_path"), cli_args)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {escape(e.message)}[/red]")
        sys.exit(1)
    configure_logging(config.log_level)
    return config


@click.group()
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to YAML configuration (default: ~/.config/manifest-runner/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], config_path: Optional[Path]) -> None:
    """Manifest Runner - load a test service manifest into the supervisor."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.upper() if log_level else None
    ctx.obj["config_path"] = config_path


@cli.command("run")
@click.option(
    "--supervisor",
    "supervisor_binary",
    default=None,
    help="Supervisor control binary (default: ../launchctl)",
)
@click.option(
    "--wait-seconds",
    type=float,
    default=None,
    help="Seconds to wait after loading (default: 2)",
)
@click.option(
    "--manifest-filename",
    default=None,
    help="Manifest file name in the current directory (default: sa-wrapper.json)",
)
@click.option(
    "--display-binary",
    default=None,
    help="Program used to print the manifest (default: cat)",
)
@click.pass_context
def run_command(
    ctx: click.Context,
    supervisor_binary: Optional[str],
    wait_seconds: Optional[float],
    manifest_filename: Optional[str],
    display_binary: Optional[str],
) -> None:
    """Write the test manifest, load it, print it and remove it.

    The supervisor is invoked as '<supervisor> load <manifest>'. If it fails
    the run stops at once and the manifest is left on disk.

    Examples:
        manifest-runner run
        manifest-runner run --supervisor /usr/local/bin/launchctl --wait-seconds 5
    """
    config = _load_runner_config(
        ctx,
        {
            "supervisor_binary": supervisor_binary,
            "wait_seconds": wait_seconds,
            "manifest_filename": manifest_filename,
            "display_binary": display_binary,
        },
    )

    try:
        exit_code = ManifestRunner(config).run()
    except RunStepError as e:
        logger.error("Manifest run failed", **e.to_dict())
        err_console.print(
            f"[red]Manifest run failed at {e.step_label}: {escape(e.message)}[/red]"
        )
        if e.recovery_suggestion:
            err_console.print(f"[yellow]{escape(e.recovery_suggestion)}[/yellow]")
        sys.exit(1)
    sys.exit(exit_code)


@cli.command("render")
@click.pass_context
def render_command(ctx: click.Context) -> None:
    """Print the test manifest for the current directory without loading it."""
    config = _load_runner_config(ctx)
    try:
        cwd = os.getcwd()
    except OSError as e:
        err_console.print(
            f"[red]Cannot determine the current directory: {escape(str(e))}[/red]"
        )
        sys.exit(1)
    click.echo(encode_manifest(build_test_manifest(cwd, config.manifest)), nl=False)


@cli.command("validate")
@click.argument(
    "manifest_path",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.pass_context
def validate_command(ctx: click.Context, manifest_path: Path) -> None:
    """Check a manifest file against the supervisor's rules.

    Examples:
        manifest-runner validate sa-wrapper.json
    """
    _load_runner_config(ctx)
    try:
        manifest = load_manifest(manifest_path)
        ports = manifest.socket_ports()
    except ManifestValidationError as e:
        err_console.print(
            f"[red]{escape(str(manifest_path))}: {escape(e.message)}[/red]"
        )
        for error in e.errors:
            err_console.print(f"  [red]-[/red] {escape(error)}")
        sys.exit(1)

    table = Table(title="Service Manifest", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Label", escape(manifest.label or ""))
    table.add_row(
        "Program",
        escape(manifest.program or " ".join(manifest.program_arguments or [])),
    )
    table.add_row("User", escape(f"{manifest.user_name}:{manifest.group_name}"))
    for name, port in ports.items():
        table.add_row(escape(f"Socket {name}"), str(port))
    console.print(table)
    console.print(
        Panel(
            f"[bold green]✓[/bold green] Manifest is valid\n{escape(str(manifest_path))}",
            style="green",
        )
    )


@cli.command("init-config")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """Write a commented default configuration file."""
    try:
        path = create_default_config(ctx.obj.get("config_path"), force=force)
    except ConfigError as e:
        err_console.print(f"[red]{escape(e.message)}[/red]")
        sys.exit(1)
    console.print(f"[green]Configuration written to {escape(str(path))}[/green]")


def main() -> None:
    load_dotenv()
    cli(obj={})


if __name__ == "__main__":
    main()
