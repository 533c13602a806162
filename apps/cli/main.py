"""CLI application for lockdiff."""

import asyncio
import logging
from importlib import metadata
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from lockdiff.compare import compare_project
from lockdiff.lockfile import ProjectFileError, find_project_files, load_lockfile, load_manifest
from lockdiff.present import build_report, render_report
from lockdiff.registry import DEFAULT_REGISTRY, DEFAULT_TIMEOUT, NpmCliClient, NpmRegistryClient
from lockdiff.resolve import VersionResolver

console = Console()
err_console = Console(stderr=True)


def get_version() -> str:
    try:
        return metadata.version("lockdiff")
    except metadata.PackageNotFoundError:
        return "unknown"


def configure_logging() -> None:
    """Send diagnostics to stderr so they never mix with the table."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    if value:
        console.print(f"lockdiff {get_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="lockdiff",
    help="lockdiff - Compare npm ci, npm i and latest versions of your dependencies",
    add_completion=False,
)


@app.command()
def check(
    directory: Path = typer.Option(Path("."), "--directory", "-d", help="Directory containing package.json and package-lock.json"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show all packages, even those without changes"),
    registry: str | None = typer.Option(None, "--registry", envvar=["NPM_CONFIG_REGISTRY", "npm_config_registry"], help=f"npm registry URL (default: {DEFAULT_REGISTRY}, or .npmrc with --use-npm)"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Per-query timeout in seconds"),
    use_npm: bool = typer.Option(False, "--use-npm", help="Query through the npm executable instead of HTTP"),
    version: bool = typer.Option(False, "--version", "-v", callback=version_callback, is_eager=True, help="Show version and exit"),
) -> None:
    """lockdiff - Show how `npm ci`, `npm i` and the latest release differ."""

    configure_logging()

    try:
        # Load inputs
        try:
            manifest_path, lockfile_path = find_project_files(directory.resolve())
            manifest = load_manifest(manifest_path)
            lockfile = load_lockfile(lockfile_path)
        except ProjectFileError as e:
            err_console.print(str(e), style="red", markup=False)
            raise typer.Exit(1)

        # Resolve and classify
        if use_npm:
            client = NpmCliClient(timeout=timeout, registry_url=registry)
        else:
            client = NpmRegistryClient(registry_url=registry or DEFAULT_REGISTRY, timeout=timeout)
        resolver = VersionResolver(client)

        with err_console.status("Comparing package versions...") as status:
            results = asyncio.run(
                compare_project(
                    manifest,
                    lockfile,
                    resolver,
                    on_progress=lambda name: status.update(f"Checking {name}..."),
                )
            )
        err_console.print("[green]✔[/green] Version comparison complete!")

        # Render
        report = build_report(results, show_all=show_all)
        console.print(render_report(report))

    except typer.Exit:
        raise
    except Exception as e:
        err_console.print(f"An error occurred: {e}", style="red", markup=False)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
