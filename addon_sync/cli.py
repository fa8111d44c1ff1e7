"""
CLI commands for addon-sync.

Provides the `addon-sync` command-line interface for watching a project,
registering existing files and inspecting the resolved settings.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from config.loader import ConfigurationLoader
from core.models.config import SyncSettings
from core.sync.engine import RegistrySyncEngine

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _notify_failure(message: str) -> None:
    console.print(f"[red]❌ {message}[/red]")


def _load_settings(project_path: Path, **overrides) -> SyncSettings:
    try:
        return ConfigurationLoader().load_settings(project_path, overrides)
    except ValueError as e:
        console.print(f"[red]❌ Invalid settings: {e}[/red]")
        sys.exit(2)


@click.group()
@click.version_option(version="1.0.0", prog_name="addon-sync")
def main():
    """
    addon-sync CLI.

    Keeps __manifest__.py data lists and __init__.py imports in step with
    the files of an addon project.
    """
    pass


@main.command()
@click.argument(
    'project_path',
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default='.'
)
@click.option(
    '--create-missing-index/--strict',
    default=None,
    help='Create a missing __init__.py when a module is added (default: strict)'
)
@click.option(
    '--restart-command',
    default=None,
    help='Command run after a successful maintenance script'
)
@click.option(
    '--log-level',
    default=None,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    help='Logging level'
)
def watch(
    project_path: Path,
    create_missing_index: Optional[bool],
    restart_command: Optional[str],
    log_level: Optional[str]
):
    """Watch PROJECT_PATH and keep its registries synchronized."""
    settings = _load_settings(
        project_path,
        create_missing_index=create_missing_index,
        restart_command=restart_command,
        log_level=log_level.upper() if log_level else None
    )
    _configure_logging(settings.log_level)

    console.print(f"[blue]👀 Watching {project_path.resolve()} (Ctrl+C to stop)[/blue]")
    try:
        asyncio.run(_run_watch(project_path, settings))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


async def _run_watch(project_path: Path, settings: SyncSettings) -> None:
    engine = RegistrySyncEngine(project_path, settings, notifier=_notify_failure)
    if not await engine.start():
        console.print("[red]❌ Could not start watching the project[/red]")
        sys.exit(1)
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await engine.stop()


@main.command()
@click.argument(
    'paths',
    nargs=-1,
    required=True,
    type=click.Path(exists=True, path_type=Path)
)
@click.option(
    '--project', '-p', 'project_path',
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default='.',
    help='Project root holding the maintenance script'
)
@click.option(
    '--no-maintenance',
    is_flag=True,
    help='Do not run the maintenance script afterwards'
)
def register(paths: Tuple[Path, ...], project_path: Path, no_maintenance: bool):
    """Register existing files (directories are scanned recursively)."""
    settings = _load_settings(project_path)
    _configure_logging(settings.log_level)

    changes = asyncio.run(_run_register(project_path, settings, paths, no_maintenance))
    if changes:
        console.print(f"[green]✅ Updated {changes} registry document(s)[/green]")
    else:
        console.print("[dim]Registries already up to date[/dim]")


async def _run_register(
    project_path: Path,
    settings: SyncSettings,
    paths: Tuple[Path, ...],
    no_maintenance: bool
) -> int:
    engine = RegistrySyncEngine(project_path, settings, notifier=_notify_failure)
    changes = await engine.register_paths(paths)
    if no_maintenance:
        engine.maintenance.cancel()
    else:
        await engine.maintenance.wait_idle()
    return changes


@main.command()
@click.argument(
    'project_path',
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default='.'
)
def status(project_path: Path):
    """Show the resolved settings for PROJECT_PATH."""
    loader = ConfigurationLoader()
    settings = _load_settings(project_path)
    changed = loader.describe_overrides(settings)

    table = Table(title="addon-sync Settings")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_column("Source", style="dim")

    for key, value in settings.model_dump().items():
        source = "override" if key in changed else "default"
        table.add_row(key, str(value), source)

    script = project_path.resolve() / settings.maintenance_script
    if script.is_file():
        table.add_row("maintenance script", "[green]✅ Present[/green]", str(script))
    else:
        table.add_row("maintenance script", "[yellow]Not found[/yellow]", str(script))

    console.print(table)


if __name__ == "__main__":
    main()
