"""Recursive file enumeration that tolerates unreadable directories."""

import fnmatch
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def enumerate_files(directory: Path | str, *patterns: str) -> list[Path]:
    """Find files under a directory whose names match any of the patterns.

    Directories that cannot be read are skipped and the walk carries on with their
    siblings. Symlinked directories are not followed.

    Args:
        directory: Root of the walk
        *patterns: Case-insensitive glob patterns such as ``*.sln``

    Returns:
        Matching files, grouped by pattern in the order the patterns were given
    """
    lowered = [pattern.lower() for pattern in patterns]
    matches: dict[str, list[Path]] = {pattern: [] for pattern in lowered}
    stack = [Path(directory)]

    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                children = sorted(entries, key=lambda entry: entry.name)
        except PermissionError:
            logger.debug("Access denied: %s", current)
            continue
        except OSError as e:
            logger.debug("Cannot read %s: %s", current, e)
            continue

        for entry in children:
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(Path(entry.path))
                    continue
                if not entry.is_file():
                    continue
            except OSError:
                continue

            name = entry.name.lower()
            for pattern in lowered:
                if fnmatch.fnmatchcase(name, pattern):
                    matches[pattern].append(Path(entry.path))
                    break

    return [path for pattern in lowered for path in matches[pattern]]
