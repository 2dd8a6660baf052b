"""Main CLI implementation using Typer."""

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from devimage.builder.config import ConfigManager
from devimage.cli.commands import (
    build_image,
    list_specs,
    plan_build,
    render_spec,
    validate_config,
)
from devimage.errors import ProvisioningError, SpecNotFound
from devimage.utils.logging import setup_logging


app = typer.Typer(
    name="devimage",
    help="devimage - reproducible development-environment images",
    add_completion=False,
)

console = Console(stderr=True)

CONFIG_DIR_OPTION = typer.Option(
    Path("./configs"),
    "--config-dir",
    "-c",
    envvar="DEVIMAGE_CONFIG_DIR",
    help="Configuration directory",
)


def _load_config(config_dir: Path) -> ConfigManager:
    """Load configuration and set up logging from it."""
    manager = ConfigManager(config_dir)
    asyncio.run(manager.load())
    setup_logging(manager.config.provisioner.log_level)
    return manager


def _run_cli_command(handler: Callable[..., Any], config_dir: Path, **kwargs: Any):
    """Helper to run a CLI command with loaded configuration and error handling."""
    try:
        manager = _load_config(config_dir)
        return handler(manager, **kwargs)
    except (ProvisioningError, SpecNotFound, ValidationError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


@app.command("build")
def build_command(
    spec: str = typer.Argument(..., help="Spec name or path to a spec file"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Tag for the built image"),
    keep_container: bool = typer.Option(
        False, "--keep-container", help="Do not remove the working container"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print errors"),
    config_dir: Path = CONFIG_DIR_OPTION,
):
    """Provision an image from a spec."""
    _run_cli_command(
        build_image,
        config_dir,
        reference=spec,
        tag=tag,
        keep_container=keep_container,
        quiet=quiet,
    )


@app.command("plan")
def plan_command(
    spec: str = typer.Argument(..., help="Spec name or path to a spec file"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Tag for the built image"),
    config_dir: Path = CONFIG_DIR_OPTION,
):
    """Show the commands a build would run."""
    _run_cli_command(plan_build, config_dir, reference=spec, tag=tag)


@app.command("render")
def render_command(
    spec: str = typer.Argument(..., help="Spec name or path to a spec file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file"),
    config_dir: Path = CONFIG_DIR_OPTION,
):
    """Render a spec as an equivalent Dockerfile."""
    _run_cli_command(render_spec, config_dir, reference=spec, output=output)


@app.command("validate")
def validate_command(config_dir: Path = CONFIG_DIR_OPTION):
    """Validate configuration files."""
    if not _run_cli_command(validate_config, config_dir):
        raise typer.Exit(1)


@app.command("list")
def list_command(config_dir: Path = CONFIG_DIR_OPTION):
    """List configured specs."""
    _run_cli_command(list_specs, config_dir)


def main():
    """Main entry point for CLI."""
    app()
