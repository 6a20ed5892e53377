"""CLI entry point for crates-publisher.

Invoked as::

    crates-publish [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m crates_publisher.cli.main

Commands
--------
- info      Show plugin metadata and the configuration schema
- validate  Validate a publish config file
- publish   Run (or preview) the post-publish hook
- serve     Answer JSON-lines plugin requests on stdin/stdout
- version   Show version information
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("crates.yaml")


def _load_raw_config(config_path: str) -> dict[str, object]:
    import yaml

    from crates_publisher.errors import ConfigurationError
    from crates_publisher.plugin.config_loader import ConfigLoader

    path = Path(config_path)
    if not path.exists():
        return {}
    try:
        return ConfigLoader().load(path)
    except (ConfigurationError, yaml.YAMLError) as exc:
        err_console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="crates-publisher")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (repeatable).")
def cli(verbose: int) -> None:
    """Crates publisher CLI — publish Rust crates from a release workflow."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from crates_publisher import __version__

    console.print(
        Panel(
            f"[bold]crates-publisher[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Release plugin that publishes crates with cargo publish.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------


@cli.command(name="info")
@click.option("--schema", is_flag=True, help="Print the configuration JSON schema only.")
def info_command(schema: bool) -> None:
    """Show plugin metadata and configuration options."""
    from crates_publisher.plugin.crates_plugin import CratesPlugin

    info = CratesPlugin().get_info()

    if schema:
        click.echo(json.dumps(info.config_schema, indent=2))
        return

    console.print(
        Panel(
            f"[bold]{info.name}[/bold] v[cyan]{info.version}[/cyan]\n"
            f"{info.description}\n"
            f"Author: {info.author}\n"
            f"Hooks: {', '.join(str(h) for h in info.hooks)}",
            title="Plugin",
            border_style="blue",
        )
    )

    table = Table(title="Configuration", box=box.SIMPLE)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Type", style="magenta")
    table.add_column("Default")
    table.add_column("Description")
    properties: dict[str, dict[str, object]] = info.config_schema.get("properties", {})
    for key, prop in properties.items():
        table.add_row(
            key,
            str(prop.get("type", "")),
            str(prop.get("default", "")),
            str(prop.get("description", "")),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(exists=True),
    help="Path to the publish config YAML.",
)
def validate_command(config_path: str) -> None:
    """Validate a publish configuration file."""
    from crates_publisher.plugin.crates_plugin import CratesPlugin

    raw = _load_raw_config(config_path)
    response = CratesPlugin().validate(raw)

    if response.valid:
        console.print(
            Panel(
                f"[green]VALID[/green]  {config_path}",
                title="Config Validation",
                border_style="green",
            )
        )
        return

    console.print(
        Panel(
            f"[red]INVALID[/red]  {config_path} — {len(response.errors)} error(s)",
            title="Config Validation",
            border_style="red",
        )
    )
    table = Table(box=box.SIMPLE)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Error")
    for error in response.errors:
        table.add_row(error.field, error.message)
    console.print(table)
    sys.exit(1)


# ---------------------------------------------------------------------------
# publish
# ---------------------------------------------------------------------------


@cli.command(name="publish")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to the publish config YAML (defaults apply when missing).",
)
@click.option("--release-version", "-r", "release_version", required=True, help="Release version, e.g. v1.2.3.")
@click.option("--dry-run", is_flag=True, help="Show the cargo command without running it.")
@click.option(
    "--hook",
    default="post-publish",
    show_default=True,
    help="Lifecycle hook to invoke.",
)
@click.option("--timeout", type=float, default=None, help="Seconds before cargo publish is aborted.")
def publish_command(
    config_path: str,
    release_version: str,
    dry_run: bool,
    hook: str,
    timeout: float | None,
) -> None:
    """Publish the crate (or preview the command with --dry-run)."""
    from crates_publisher.plugin.crates_plugin import CratesPlugin
    from crates_publisher.plugin.hooks import ExecuteRequest, ReleaseContext

    request = ExecuteRequest(
        hook=hook,
        config=_load_raw_config(config_path),
        context=ReleaseContext(version=release_version),
        dry_run=dry_run,
    )
    response = CratesPlugin().execute(request, timeout=timeout)

    if not response.success:
        console.print(Panel(f"[red]FAILED[/red]\n{escape(response.error)}", title="Publish", border_style="red"))
        sys.exit(1)

    console.print(Panel(f"[green]OK[/green]  {escape(response.message)}", title="Publish", border_style="green"))
    if response.outputs:
        table = Table(title="Outputs", box=box.SIMPLE)
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value")
        for key, value in response.outputs.items():
            table.add_row(key, escape(str(value)))
        console.print(table)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--timeout", type=float, default=None, help="Default timeout for execute requests.")
def serve_command(timeout: float | None) -> None:
    """Answer JSON-lines plugin requests on stdin/stdout."""
    from crates_publisher.plugin.server import PluginServer

    PluginServer(timeout=timeout).serve(sys.stdin, sys.stdout)


if __name__ == "__main__":  # pragma: no cover - manual invocation
    cli()
