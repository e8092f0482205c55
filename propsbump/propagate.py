"""Rewriting of package references after a package migration."""

import logging
from pathlib import Path

from .filesystem import enumerate_files
from .manifest import ManifestDocument, ManifestError
from .models import Migration

logger = logging.getLogger(__name__)

PROJECT_PATTERNS = ("*.csproj", "*.fsproj", "*.vbproj")
REFERENCE_TAG = "PackageReference"


def rewrite_references(document: ManifestDocument, migrations: list[Migration]) -> int:
    """Point references to migrated packages at their replacements.

    Returns:
        Number of references changed
    """
    renames = {migration.old_package.lower(): migration.new_package for migration in migrations}
    changed = 0
    for element in document.find(REFERENCE_TAG):
        include = element.get("Include")
        if include is None:
            continue
        new_package = renames.get(include.lower())
        if new_package is None:
            continue
        element.set("Include", new_package)
        changed += 1
    return changed


def propagate_migrations(root: Path | str, migrations: list[Migration]) -> list[Path]:
    """Apply package migrations to every project file under a directory.

    Files without a matching reference are left untouched on disk.

    Args:
        root: Directory to search
        migrations: Package identity changes to apply

    Returns:
        Project files that were rewritten
    """
    if not migrations:
        return []

    written = []
    for path in enumerate_files(root, *PROJECT_PATTERNS):
        try:
            document = ManifestDocument.load(path)
        except (ManifestError, OSError) as e:
            logger.warning("Skipping %s: %s", path, e)
            continue

        count = rewrite_references(document, migrations)
        if not count:
            continue

        document.save()
        written.append(path)
        logger.info("Updated %d package reference(s) in %s", count, path)

    return written
