"""Parsing of ``dotnet list package --outdated`` output."""

from collections.abc import Iterable
from pathlib import Path

from .models import PendingUpdate
from .process import run_dotnet

ROW_PREFIX = "   >"


def parse_line(line: str) -> PendingUpdate:
    """Parse one package row of the outdated listing.

    Rows look like ``   > Package   Requested   Resolved   Latest`` and carry a
    ``(D)`` suffix when the package is deprecated.
    """
    split = line.split()
    return PendingUpdate(
        package=split[1],
        resolved=split[3],
        latest=split[4],
        is_deprecated=line.rstrip().endswith("(D)"),
    )


def parse_updates(lines: Iterable[str]) -> list[PendingUpdate]:
    return [parse_line(line) for line in lines if line.startswith(ROW_PREFIX)]


def stable_or_with_prerelease(update: PendingUpdate) -> bool:
    """Reject deprecated packages and stable-to-prerelease steps."""
    if update.is_deprecated:
        return False
    resolved_is_stable = "-" not in update.resolved
    latest_is_stable = "-" not in update.latest
    return not resolved_is_stable or latest_is_stable


def parse_with_updates(lines: Iterable[str]) -> list[PendingUpdate]:
    """Parse the listing and keep only the updates worth applying."""
    return [
        update
        for update in parse_updates(lines)
        if update.latest != update.resolved and stable_or_with_prerelease(update)
    ]


async def read_pending_updates(project: Path, timeout: float = 100.0) -> list[PendingUpdate]:
    """List outdated packages of a project."""
    lines = await run_dotnet(
        "list", str(project), "package", "--outdated",
        directory=project.parent,
        timeout=timeout,
    )
    return parse_with_updates(lines)
