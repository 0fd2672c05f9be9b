"""CLI entrypoint for bundleinject."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .config import Settings, load_settings
from .injector import InjectedAsset
from .manifest import ManifestFormatError, ManifestNotFoundError
from .orchestrator import DestinationResult, ProcessResult, process
from .state import ManifestCache
from .watcher import ManifestWatcher

COLUMN_WIDTH = 60
SEPARATOR = "-----------"
WATCH_TOKEN = "watch"

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    help="Inject bundler manifest assets into an HTML template.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"bundleinject {__version__}")
        raise typer.Exit()


@app.command()
def main(
    tokens: Annotated[
        list[str] | None,
        typer.Argument(
            help="Optional config path (file or directory) and/or the word 'watch' to keep running.",
            show_default=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = False,
) -> None:
    """Write the configured HTML template with the manifest's CSS/JS tags injected."""
    _configure_logging(verbose)
    config_path, watch = _parse_tokens(tokens or [])
    settings = _load(config_path)
    cache = ManifestCache()

    if watch:
        _watch(settings, cache)
        return

    console.print(f"processing {escape(_display_path(settings.manifest))}")
    console.print(SEPARATOR)
    raise typer.Exit(code=_run_pass(settings, cache))


def _parse_tokens(tokens: list[str]) -> tuple[str | None, bool]:
    watch = WATCH_TOKEN in tokens
    remaining = [token for token in tokens if token != WATCH_TOKEN]
    if len(remaining) > 1:
        raise typer.BadParameter(
            f"Expected at most one config path, got: {', '.join(remaining)}",
            param_hint="TOKENS",
        )
    return (remaining[0] if remaining else None), watch


def _watch(settings: Settings, cache: ManifestCache) -> None:
    console.print(
        f"watching: [blue]{escape(_display_path(settings.manifest))}[/] [red]({settings.watch}ms)[/]"
    )
    console.print(SEPARATOR)
    watcher = ManifestWatcher(settings, lambda: _run_pass(settings, cache))
    _run_pass(settings, cache)
    watcher.run_forever()


def _run_pass(settings: Settings, cache: ManifestCache) -> int:
    """Process the manifest once and print the outcome; returns the exit status."""
    try:
        result = process(settings, cache)
    except ManifestNotFoundError:
        console.print("[red]manifest file not found[/]")
        console.print(SEPARATOR)
        return 1
    except ManifestFormatError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        console.print(SEPARATOR)
        return 1
    _print_result(result)
    return 0


def _print_result(result: ProcessResult) -> None:
    for destination in result.written:
        _print_destination(destination)


def _print_destination(destination: DestinationResult) -> None:
    for asset in destination.assets:
        console.print(_format_asset_line(asset), soft_wrap=True)
    console.print(escape(str(destination.path)), soft_wrap=True)
    console.print(SEPARATOR)


def _format_asset_line(asset: InjectedAsset) -> str:
    padded = escape(asset.value.ljust(COLUMN_WIDTH))
    if asset.changed:
        padded = f"[green]{padded}[/]"
    return f"{padded} {escape(asset.key)}"


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("bundleinject")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.addHandler(RichHandler(console=err_console, show_path=False))
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load(path: str | None) -> Settings:
    try:
        return load_settings(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return path.as_posix()
