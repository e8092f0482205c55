"""NuGet-style semantic versions and version ranges."""

import functools
import re
from dataclasses import dataclass

_VERSION_PATTERN = re.compile(
    r"^(?P<release>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<meta>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)


class InvalidVersion(ValueError):
    """Raised when a version string cannot be parsed."""


def _label_key(label: str) -> tuple[int, int, str]:
    # Numeric identifiers sort before alphanumeric ones
    if label.isdigit():
        return (0, int(label), "")
    return (1, 0, label.lower())


@functools.total_ordering
class PackageVersion:
    """A parsed package version.

    Supports one to four numeric release parts, an optional pre-release label and
    optional build metadata. Build metadata is ignored for equality and ordering,
    and pre-release labels compare case-insensitively.
    """

    __slots__ = ("release", "prerelease", "metadata", "original", "_key")

    def __init__(
        self,
        major: int = 0,
        minor: int = 0,
        patch: int = 0,
        revision: int = 0,
        prerelease: str | None = None,
        metadata: str | None = None,
        original: str | None = None,
    ):
        self.release = (major, minor, patch, revision)
        self.prerelease = prerelease or None
        self.metadata = metadata or None
        self.original = original
        if self.prerelease:
            labels = tuple(_label_key(label) for label in self.prerelease.split("."))
            self._key = (self.release, 0, labels)
        else:
            self._key = (self.release, 1, ())

    @classmethod
    def parse(cls, text: str) -> "PackageVersion":
        """Parse a version string.

        Args:
            text: Version text such as ``1.2.3``, ``1.0`` or ``2.0.0-beta.1+sha``

        Returns:
            Parsed version

        Raises:
            InvalidVersion: If the text is not a valid version
        """
        if text is None:
            raise InvalidVersion("Version is missing")
        if not isinstance(text, str):
            raise InvalidVersion(f"Invalid version: {text!r}")
        stripped = text.strip()
        match = _VERSION_PATTERN.match(stripped)
        if not match:
            raise InvalidVersion(f"Invalid version: {text!r}")

        parts = [int(part) for part in match.group("release").split(".")]
        parts.extend([0] * (4 - len(parts)))
        return cls(
            *parts,
            prerelease=match.group("pre"),
            metadata=match.group("meta"),
            original=stripped,
        )

    @classmethod
    def try_parse(cls, text: str | None) -> "PackageVersion | None":
        """Parse a version string, returning None when it is not valid."""
        if text is None:
            return None
        try:
            return cls.parse(text)
        except InvalidVersion:
            return None

    @property
    def major(self) -> int:
        return self.release[0]

    @property
    def minor(self) -> int:
        return self.release[1]

    @property
    def patch(self) -> int:
        return self.release[2]

    @property
    def revision(self) -> int:
        return self.release[3]

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    @property
    def normalized(self) -> str:
        """Normalized form: three release parts, a fourth only when non-zero."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: "PackageVersion") -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        return self.original or self.normalized

    def __repr__(self) -> str:
        return f"PackageVersion({str(self)!r})"


ZERO = PackageVersion(0, 0, 0)


def parse_range_minimum(text: str | None) -> PackageVersion | None:
    """Extract the lower bound of a version range.

    Handles bare versions (``1.0.0`` means "1.0.0 or later") and interval notation
    (``[1.0.0, )``, ``(1.0,2.0]``). An open lower bound such as ``[,)`` or ``(, 2.0]``
    yields None.

    Args:
        text: Range text from registry metadata

    Returns:
        Minimum version, or None when the range has no usable lower bound
    """
    if not text:
        return None
    stripped = text.strip()
    if not stripped:
        return None

    if stripped[0] not in "[(":
        return PackageVersion.try_parse(stripped)

    inner = stripped[1:].rstrip("])").strip()
    lower = inner.split(",", 1)[0].strip()
    if not lower:
        return None
    return PackageVersion.try_parse(lower)


@dataclass(frozen=True, eq=False)
class CandidateKey:
    """A (package, version) pair that ignores identifier case.

    Equality uses the parsed version value rather than its text, so ``1.0`` and
    ``1.0.0`` produce the same key.
    """

    package: str
    version: PackageVersion

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CandidateKey):
            return NotImplemented
        return (
            self.package.lower() == other.package.lower()
            and self.version == other.version
        )

    def __hash__(self) -> int:
        return hash((self.package.lower(), self.version))
