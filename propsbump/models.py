"""Core data models for propsbump."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .versioning import PackageVersion

if TYPE_CHECKING:
    from .manifest import ManifestElement


@dataclass(frozen=True)
class PackageSource:
    """A package registry endpoint from configuration."""

    name: str
    url: str
    enabled: bool = True

    @property
    def is_local(self) -> bool:
        """True for folder feeds rather than HTTP endpoints."""
        return not self.url.lower().startswith(("http://", "https://"))


@dataclass
class AlternatePackage:
    """Replacement suggested by a deprecation."""

    package: str
    min_version: PackageVersion | None = None  # None means any version


@dataclass
class Deprecation:
    """Deprecation marker attached to a published version."""

    reasons: list[str] = field(default_factory=list)
    message: str | None = None
    alternate: AlternatePackage | None = None


@dataclass
class PackageMetadata:
    """Registry metadata for one published version of a package."""

    package: str
    version: PackageVersion
    listed: bool = True
    deprecation: Deprecation | None = None
    source: str | None = None


@dataclass
class PackageEntry:
    """A single version pin declared in a manifest."""

    element: "ManifestElement"
    package: str
    version: str
    pinned: bool = False
    migrate_to: str | None = None


@dataclass(frozen=True)
class Migration:
    """A package identity change from a deprecated package to its replacement."""

    old_package: str
    new_package: str
    version: str


@dataclass
class EntryChange:
    """A change applied to one manifest entry."""

    package: str
    old_version: str
    new_version: str
    kind: str = "update"  # update, migration
    new_package: str | None = None


@dataclass
class UpdateReport:
    """Outcome of updating one manifest."""

    path: Path
    changes: list[EntryChange] = field(default_factory=list)
    migrations: list[Migration] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    propagated: list[Path] = field(default_factory=list)
    written: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


@dataclass
class PendingUpdate:
    """An outdated package reported by ``dotnet list package --outdated``."""

    package: str
    resolved: str
    latest: str
    is_deprecated: bool = False
