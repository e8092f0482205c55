"""Solution discovery and per-solution update orchestration."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings
from .context import UpdateContext
from .detect import CENTRAL_MANIFEST, is_central_manifest
from .excluder import Excluder
from .filesystem import enumerate_files
from .formatting import format_elapsed
from .models import UpdateReport
from .pending import read_pending_updates
from .process import ProcessError, run_dotnet
from .propagate import PROJECT_PATTERNS
from .updater import update

logger = logging.getLogger(__name__)

SOLUTION_PATTERNS = ("*.sln", "*.slnx")


class TargetNotFoundError(Exception):
    """Raised when the target directory does not exist."""


@dataclass
class RunSummary:
    """What happened during one run."""

    processed: list[Path] = field(default_factory=list)
    excluded: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)
    reports: list[UpdateReport] = field(default_factory=list)
    elapsed_s: float = 0.0


def find_central_manifest(directory: Path) -> Path | None:
    """Return the central package manifest in a directory, if there is one."""
    for child in sorted(directory.iterdir()):
        if child.is_file() and is_central_manifest(child.name):
            return child
    return None


async def run(
    directory: Path | str,
    package: str | None = None,
    build: bool = False,
    settings: Settings | None = None,
    context: UpdateContext | None = None,
) -> RunSummary:
    """Update every solution found under a directory.

    Args:
        directory: Root to search for ``*.sln`` and ``*.slnx`` files
        package: Only update this package
        build: Start a build of each solution after updating it
        settings: Timeouts and exclusions, read from the environment when omitted
        context: Registry clients to reuse, created for this run when omitted

    Returns:
        Summary of the run

    Raises:
        TargetNotFoundError: If the directory does not exist
    """
    directory = Path(directory)
    logger.info("TargetDirectory: %s", directory)
    logger.info("Package: %s", package)
    if not directory.is_dir():
        raise TargetNotFoundError(f"Target directory does not exist: {directory}")

    settings = settings or Settings.from_env()
    excluder = Excluder(settings.ignores)
    summary = RunSummary()
    started = time.perf_counter()

    owns_context = context is None
    if context is None:
        context = UpdateContext.create(timeout=settings.http_timeout_s)
    try:
        for solution in enumerate_files(directory, *SOLUTION_PATTERNS):
            await try_process_solution(solution, package, build, context, settings, excluder, summary)
    finally:
        if owns_context:
            await context.aclose()

    await shutdown(settings)

    summary.elapsed_s = time.perf_counter() - started
    logger.info("Completed in %s", format_elapsed(summary.elapsed_s))
    return summary


async def try_process_solution(
    solution: Path,
    package: str | None,
    build: bool,
    context: UpdateContext,
    settings: Settings,
    excluder: Excluder,
    summary: RunSummary,
) -> None:
    try:
        await process_solution(solution, package, build, context, settings, excluder, summary)
    except Exception as e:
        logger.error("Failed to process solution: %s.\nError: %s", solution, e)
        summary.failed.append(solution)


async def process_solution(
    solution: Path,
    package: str | None,
    build: bool,
    context: UpdateContext,
    settings: Settings,
    excluder: Excluder,
    summary: RunSummary,
) -> None:
    if excluder.should_exclude(str(solution)):
        logger.info("  Exclude: %s", solution)
        summary.excluded.append(solution)
        return

    logger.info("  %s", solution)
    solution_directory = solution.parent

    manifest = find_central_manifest(solution_directory)
    if manifest is not None:
        logger.info("    Found %s. Processing only central packages", CENTRAL_MANIFEST)
        summary.reports.append(await update(context, manifest, package))
    else:
        await restore(solution, settings)
        await update_projects(
            package,
            enumerate_files(solution_directory, *PROJECT_PATTERNS),
            solution_directory,
            settings,
        )

    summary.processed.append(solution)

    if build:
        await build_solution(solution, settings)


async def update_projects(
    package: str | None,
    projects: list[Path],
    solution_directory: Path,
    settings: Settings,
) -> None:
    """Update package references of projects that do not use central management."""
    for project in projects:
        logger.info("    %s", project.relative_to(solution_directory))
        for pending in await read_pending_updates(project, settings.list_timeout_s):
            if package and pending.package.lower() != package.lower():
                continue
            await add_package(project, pending.package, pending.latest, settings)


async def add_package(project: Path, package: str, version: str, settings: Settings) -> None:
    logger.info("      %s : %s", package, version)
    await run_dotnet(
        "add", str(project), "package", package, "--version", version,
        directory=project.parent,
        timeout=settings.add_timeout_s,
    )


async def restore(solution: Path, settings: Settings) -> None:
    await run_dotnet(
        "restore", str(solution), "--interactive",
        directory=solution.parent,
        timeout=settings.restore_timeout_s,
    )


async def build_solution(solution: Path, settings: Settings) -> None:
    logger.info("    Build %s", solution)
    await run_dotnet(
        "build", str(solution), "--no-restore", "--nologo",
        directory=solution.parent,
        timeout=settings.build_timeout_s,
    )


async def shutdown(settings: Settings) -> None:
    """Stop the build servers left running by dotnet."""
    logger.info("Shutdown dotnet build")
    try:
        await run_dotnet(
            "build-server", "shutdown",
            directory=Path.cwd(),
            timeout=settings.shutdown_timeout_s,
        )
    except (ProcessError, OSError) as e:
        logger.warning("dotnet build-server shutdown failed: %s", e)
