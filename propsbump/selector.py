"""Selection of the newest eligible version across package sources."""

import logging

from .context import UpdateContext
from .models import PackageMetadata, PackageSource
from .registry import RegistryError
from .versioning import CandidateKey, PackageVersion

logger = logging.getLogger(__name__)


def should_consider(candidate: PackageVersion, current: PackageVersion) -> bool:
    """Check whether a candidate version is an acceptable update.

    From a stable version only stable versions qualify; from a pre-release any newer
    version does.
    """
    if not current.is_prerelease and candidate.is_prerelease:
        return False
    return candidate > current


async def get_candidates(client, package: str, current: PackageVersion) -> list[PackageVersion]:
    """List the eligible versions a source offers, newest first."""
    versions = await client.get_all_versions(package)
    return sorted(
        (version for version in versions if should_consider(version, current)),
        reverse=True,
    )


async def find_latest(
    package: str,
    current: PackageVersion,
    sources: list[PackageSource],
    context: UpdateContext,
) -> PackageMetadata | None:
    """Find the newest listed version above the current one.

    Every source is queried. Within a source candidates are checked newest first and
    the first listed one is that source's best; the greatest across sources wins. A
    source that fails is logged and left out of the comparison.

    Args:
        package: Package identifier
        current: Currently pinned version
        sources: Enabled package sources
        context: Per-run clients and memo

    Returns:
        Metadata of the selected version, or None if nothing newer is available

    Raises:
        RegistryError: If every source failed
    """
    key = (CandidateKey(package, current), tuple(source.url for source in sources))
    if key in context.resolved:
        return context.resolved[key]

    best: PackageMetadata | None = None
    enabled = [source for source in sources if source.enabled]
    errors: list[RegistryError] = []
    for source in enabled:
        try:
            best = await _best_from_source(package, current, source, context, best)
        except RegistryError as e:
            _log_source_error(package, source, e)
            errors.append(e)

    if errors and len(errors) == len(enabled):
        raise errors[-1]
    if not errors:
        context.resolved[key] = best
    return best


async def _best_from_source(
    package: str,
    current: PackageVersion,
    source: PackageSource,
    context: UpdateContext,
    best: PackageMetadata | None,
) -> PackageMetadata | None:
    client = await context.clients.get(source)
    for candidate in await get_candidates(client, package, current):
        if best is not None and candidate <= best.version:
            break

        metadata = await client.get_metadata(package, candidate)
        if metadata is None or not metadata.listed:
            logger.debug("Skipping unlisted %s %s from %s", package, candidate, source.url)
            continue

        return metadata
    return best


async def find_metadata(
    package: str,
    version: PackageVersion,
    sources: list[PackageSource],
    context: UpdateContext,
) -> PackageMetadata | None:
    """Fetch metadata for an exact version from the first source that has it.

    Failing sources are skipped; the error is raised only when every source failed.
    """
    enabled = [source for source in sources if source.enabled]
    errors: list[RegistryError] = []
    for source in enabled:
        try:
            client = await context.clients.get(source)
            metadata = await client.get_metadata(package, version)
        except RegistryError as e:
            _log_source_error(package, source, e)
            errors.append(e)
            continue
        if metadata is not None:
            return metadata

    if errors and len(errors) == len(enabled):
        raise errors[-1]
    return None


def _log_source_error(package: str, source: PackageSource, error: RegistryError) -> None:
    logger.warning("Lookup of %s failed on %s: %s", package, source.url, error)
