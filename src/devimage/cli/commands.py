"""Command implementations for CLI."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from devimage.builder.config import ConfigManager
from devimage.builder.dockerfile import render_dockerfile
from devimage.builder.provisioner import Provisioner
from devimage.builder.result import ProvisionResult
from devimage.providers import ProviderRegistry


console = Console()
stderr_console = Console(stderr=True)


async def _create_provisioner(manager: ConfigManager) -> Provisioner:
    """Build a provisioner wired to the configured providers."""
    registry = ProviderRegistry()
    await registry.initialize(manager.config)
    return Provisioner(provider_registry=registry)


def build_image(
    manager: ConfigManager,
    reference: str,
    tag: Optional[str] = None,
    keep_container: bool = False,
    quiet: bool = False,
) -> ProvisionResult:
    """Build an image from a spec, raising on fatal failure."""
    if keep_container:
        manager.config.engine.keep_container = True

    async def _build() -> ProvisionResult:
        spec = await manager.resolve_spec(reference)
        provisioner = await _create_provisioner(manager)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=stderr_console,
            disable=quiet,
        ) as progress:
            task = progress.add_task(f"Provisioning {spec.name}...", total=None)
            result = await provisioner.provision(spec, tag=tag)
            progress.update(task, completed=True)

        return result

    result = asyncio.run(_build())

    for warning in result.warnings:
        stderr_console.print(f"[yellow]Warning:[/yellow] {escape(str(warning))}")

    result.raise_for_status()

    if not quiet:
        console.print(
            f"[green]✓[/green] Built {result.spec_name}: {result.image_id} "
            f"({result.duration:.1f}s)"
        )
    return result


def plan_build(manager: ConfigManager, reference: str, tag: Optional[str] = None):
    """Show the commands a build would run."""
    async def _plan():
        spec = await manager.resolve_spec(reference)
        provisioner = await _create_provisioner(manager)
        return spec, provisioner.plan(spec, tag=tag)

    spec, steps = asyncio.run(_plan())

    table = Table(title=f"Build plan for {spec.name}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Phase", style="cyan")
    table.add_column("Command", style="magenta")
    table.add_column("Detail", style="dim")

    for index, step in enumerate(steps, 1):
        table.add_row(
            str(index),
            step.phase,
            escape(" ".join(step.command)),
            escape(step.detail or ""),
        )

    console.print(table)


def render_spec(manager: ConfigManager, reference: str, output: Optional[Path] = None):
    """Render a spec as a Dockerfile."""
    spec = asyncio.run(manager.resolve_spec(reference))
    dockerfile = render_dockerfile(spec, manager.config)

    if output:
        output.write_text(dockerfile)
        stderr_console.print(f"[green]✓[/green] Wrote {output}")
    else:
        typer.echo(dockerfile, nl=False)


def validate_config(manager: ConfigManager) -> bool:
    """Report configuration problems. Returns False when any spec is invalid."""
    for source, error in manager.errors.items():
        console.print(f"[red]✗[/red] {source}: {escape(error)}")

    for name, spec in manager.specs.items():
        for answer in spec.orphan_preseeds():
            console.print(
                f"[yellow]![/yellow] {name}: pre-seed {answer.key} has no effect, "
                f"{answer.package} is not in packages"
            )

    if manager.errors:
        return False

    console.print(f"[green]✓[/green] {len(manager.specs)} specs valid")
    return True


def list_specs(manager: ConfigManager):
    """List configured specs."""
    table = Table(title="Specs")
    table.add_column("Name", style="cyan")
    table.add_column("Base image", style="magenta")
    table.add_column("Packages", justify="right")
    table.add_column("Pre-seed", justify="right")
    table.add_column("Tag", style="dim")

    for name, spec in sorted(manager.specs.items()):
        table.add_row(
            name,
            spec.base_image,
            str(len(spec.packages)),
            str(len(spec.preseed)),
            spec.tag or "",
        )

    console.print(table)
