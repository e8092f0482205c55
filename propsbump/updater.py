"""Central package manifest updates."""

import logging
from pathlib import Path

from .context import UpdateContext
from .deprecation import PACKAGE_TAG, try_migrate
from .manifest import ManifestDocument
from .models import EntryChange, PackageEntry, PackageSource, UpdateReport
from .propagate import propagate_migrations
from .registry import RegistryError
from .selector import find_latest
from .sources import read_sources
from .versioning import PackageVersion

logger = logging.getLogger(__name__)


def is_pinned(value: str | None) -> bool:
    return value is not None and value.strip().lower() == "true"


def read_entries(document: ManifestDocument) -> list[PackageEntry]:
    """Collect the version pins of a manifest, including pinned ones."""
    entries = []
    for element in document.find(PACKAGE_TAG):
        package = element.get("Include")
        version = element.get("Version")
        if package is None or version is None:
            continue
        entries.append(
            PackageEntry(
                element=element,
                package=package,
                version=version,
                pinned=is_pinned(element.get("Pinned")),
            )
        )
    return entries


async def update(
    context: UpdateContext,
    manifest_path: Path | str,
    package: str | None = None,
    sources: list[PackageSource] | None = None,
) -> UpdateReport:
    """Update the version pins of a central package manifest.

    Deprecated packages with a usable alternative are migrated first; everything
    else is bumped to the newest listed eligible version. The file is rewritten only
    when something changed, and project files next to it are updated for any
    migrations.

    Args:
        context: Per-run clients and memo
        manifest_path: Path to ``Directory.Packages.props``
        package: Only update this package (case-insensitive)
        sources: Package sources, read from nuget.config when omitted

    Returns:
        Report of the changes made
    """
    path = Path(manifest_path)
    directory = path.parent
    report = UpdateReport(path=path)

    document = ManifestDocument.load(path)
    entries = [entry for entry in read_entries(document) if not entry.pinned]

    if package:
        entries = [entry for entry in entries if entry.package.lower() == package.lower()]
        if not entries:
            logger.warning("Package %s not found in %s", package, path)
            return report

    if sources is None:
        sources = read_sources(directory)
    sources = [source for source in sources if source.enabled]
    if not sources:
        logger.warning("No enabled package sources for %s", path)
        return report

    for entry in entries:
        current = PackageVersion.try_parse(entry.version)
        if current is None:
            logger.info("Skipping %s: cannot parse version %r", entry.package, entry.version)
            report.skipped.append(entry.package)
            continue

        try:
            migration = await try_migrate(entry, current, sources, context, document)
            if migration is not None:
                report.migrations.append(migration)
                report.changes.append(
                    EntryChange(
                        package=entry.package,
                        old_version=entry.version,
                        new_version=migration.version,
                        kind="migration",
                        new_package=entry.migrate_to,
                    )
                )
                continue

            latest = await find_latest(entry.package, current, sources, context)
        except RegistryError as e:
            logger.error(
                "Failed to resolve %s %s from %s: %s",
                entry.package,
                entry.version,
                e.source or "registry",
                e,
            )
            report.skipped.append(entry.package)
            continue

        if latest is None or latest.version <= current:
            continue

        new_version = str(latest.version)
        entry.element.set("Version", new_version)
        report.changes.append(
            EntryChange(package=entry.package, old_version=entry.version, new_version=new_version)
        )
        logger.info("Updated %s: %s -> %s", entry.package, current, new_version)

    report.written = document.save()

    if report.migrations:
        report.propagated = propagate_migrations(directory, report.migrations)

    return report
