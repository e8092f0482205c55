"""CLI application for propsbump."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from propsbump.config import IGNORES_ENV_VAR, Settings, split_ignores
from propsbump.driver import RunSummary, TargetNotFoundError, run
from propsbump.logging_config import setup_logging

console = Console()


def find_target_directory(target: str | None, target_directory: str | None) -> Path:
    """Pick the directory to search.

    ``--target-directory`` is resolved to an absolute path, a bare positional
    argument is used as given, and with neither the current directory is used.
    """
    if target_directory:
        return Path(target_directory).resolve()
    if target:
        return Path(target)
    return Path.cwd()


def format_summary(summary: RunSummary) -> str:
    """Format the outcome of a run for the console."""
    changes = [change for report in summary.reports for change in report.changes]
    lines = [
        f"Processed {len(summary.processed)} solution(s), "
        f"{len(changes)} package change(s) in {len(summary.reports)} central manifest(s)"
    ]

    for change in changes:
        if change.kind == "migration":
            lines.append(
                f"  {change.package} {change.old_version} -> {change.new_package} {change.new_version}"
            )
        else:
            lines.append(f"  {change.package}: {change.old_version} -> {change.new_version}")

    if summary.excluded:
        lines.append(f"Excluded {len(summary.excluded)} solution(s)")
    if summary.failed:
        lines.append(f"Failed {len(summary.failed)} solution(s):")
        lines.extend(f"  {solution}" for solution in summary.failed)

    return "\n".join(lines)


app = typer.Typer(
    name="propsbump",
    help="propsbump - Update centrally managed NuGet package versions to their latest releases",
    add_completion=False,
)


@app.command()
def update(
    target: str | None = typer.Argument(None, help="Directory to search for .sln/.slnx files"),
    target_directory: str | None = typer.Option(
        None, "--target-directory", "-t", help="Directory to search (resolved to an absolute path)"
    ),
    package: str | None = typer.Option(None, "--package", "-p", help="Only update this package"),
    build: bool = typer.Option(False, "--build", "-b", help="Build each solution after updating"),
    ignore: str | None = typer.Option(
        None,
        "--ignore",
        envvar=IGNORES_ENV_VAR,
        help="Comma-separated path fragments of solutions to skip",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """propsbump - Update Directory.Packages.props pins across every solution in a tree."""

    setup_logging(verbose)
    directory = find_target_directory(target, target_directory)

    try:
        settings = Settings.from_env(ignores=split_ignores(ignore) or None)
        summary = asyncio.run(run(directory, package=package, build=build, settings=settings))
    except TargetNotFoundError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)

    console.print(format_summary(summary), highlight=False, markup=False)


if __name__ == "__main__":
    app()
