"""Migration of deprecated packages to their suggested replacements."""

import logging

from .context import UpdateContext
from .manifest import ManifestDocument
from .models import Migration, PackageEntry, PackageSource
from .selector import find_latest, find_metadata
from .versioning import ZERO, PackageVersion

logger = logging.getLogger(__name__)

PACKAGE_TAG = "PackageVersion"


def has_package(document: ManifestDocument, package: str) -> bool:
    """Check whether a manifest already pins a package, ignoring case."""
    wanted = package.lower()
    return any(
        (element.get("Include") or "").lower() == wanted
        for element in document.find(PACKAGE_TAG)
    )


async def try_migrate(
    entry: PackageEntry,
    current: PackageVersion,
    sources: list[PackageSource],
    context: UpdateContext,
    document: ManifestDocument,
) -> Migration | None:
    """Replace a deprecated package with its suggested alternative.

    The entry is rewritten in place when the pinned version is deprecated, the
    registry names an alternative, the alternative is not already pinned and it
    resolves in the configured sources.

    Args:
        entry: Manifest entry to check
        current: Parsed pinned version
        sources: Enabled package sources
        context: Per-run clients and memo
        document: Manifest the entry belongs to

    Returns:
        The migration performed, or None
    """
    metadata = await find_metadata(entry.package, current, sources, context)
    if metadata is None or metadata.deprecation is None:
        return None

    alternate = metadata.deprecation.alternate
    if alternate is None:
        logger.warning(
            "%s %s is deprecated (%s) with no alternative package",
            entry.package,
            current,
            ", ".join(metadata.deprecation.reasons) or "no reason given",
        )
        return None

    if has_package(document, alternate.package):
        logger.warning(
            "%s is deprecated in favour of %s, which is already present. Skipping migration",
            entry.package,
            alternate.package,
        )
        return None

    latest = await find_latest(alternate.package, ZERO, sources, context)
    if latest is None:
        logger.warning(
            "%s is deprecated in favour of %s, which was not found in any source",
            entry.package,
            alternate.package,
        )
        return None

    if alternate.min_version is not None and alternate.min_version > ZERO:
        version = str(alternate.min_version)
    else:
        version = str(latest.version)

    entry.migrate_to = alternate.package
    entry.element.set("Include", alternate.package)
    entry.element.set("Version", version)
    logger.info("Migrated %s %s -> %s %s", entry.package, current, alternate.package, version)
    return Migration(old_package=entry.package, new_package=alternate.package, version=version)
