"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from propsbump.context import UpdateContext
from propsbump.models import Deprecation, PackageMetadata, PackageSource
from propsbump.versioning import PackageVersion

SOURCE = PackageSource("fake", "https://fake.test/v3/index.json")
OTHER_SOURCE = PackageSource("other", "https://other.test/v3/index.json")


class FakeRegistry:
    """In-memory stand-in for a registry client."""

    def __init__(self, url: str = SOURCE.url):
        self.url = url
        self.packages: dict[str, dict[PackageVersion, PackageMetadata]] = {}
        self.version_calls: list[str] = []
        self.metadata_calls: list[tuple[str, str]] = []
        self.error: Exception | None = None

    def add(
        self,
        package: str,
        *versions: str,
        listed: bool = True,
        deprecation: Deprecation | None = None,
    ) -> None:
        for text in versions:
            version = PackageVersion.parse(text)
            self.packages.setdefault(package.lower(), {})[version] = PackageMetadata(
                package=package,
                version=version,
                listed=listed,
                deprecation=deprecation,
                source=self.url,
            )

    async def get_all_versions(self, package: str) -> list[PackageVersion]:
        self.version_calls.append(package)
        if self.error is not None:
            raise self.error
        return list(self.packages.get(package.lower(), {}))

    async def get_metadata(self, package: str, version: PackageVersion) -> PackageMetadata | None:
        self.metadata_calls.append((package, str(version)))
        if self.error is not None:
            raise self.error
        return self.packages.get(package.lower(), {}).get(version)


class FakeClients:
    """Client cache handing out fake registries by source URL."""

    def __init__(self, registries: dict[str, FakeRegistry]):
        self.registries = registries
        self.requested: list[str] = []

    async def get(self, source: PackageSource) -> FakeRegistry:
        self.requested.append(source.url)
        return self.registries[source.url]

    async def aclose(self) -> None:
        pass


@pytest.fixture
def registry():
    """Registry behind the default source."""
    return FakeRegistry(SOURCE.url)


@pytest.fixture
def other_registry():
    """Registry behind a second source."""
    return FakeRegistry(OTHER_SOURCE.url)


@pytest.fixture
def sources():
    return [SOURCE]


@pytest.fixture
def both_sources():
    return [SOURCE, OTHER_SOURCE]


@pytest.fixture
def context(registry, other_registry):
    """Update context backed by the fake registries."""
    return UpdateContext(
        clients=FakeClients({SOURCE.url: registry, OTHER_SOURCE.url: other_registry})
    )


@pytest.fixture
def write_file(tmp_path):
    """Write raw text to a file under tmp_path without newline translation."""

    def write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path

    return write


@pytest.fixture
def sample_manifest():
    """A central package manifest with comments and a pinned entry."""
    return (
        "<Project>\n"
        "  <!-- Central versions -->\n"
        "  <PropertyGroup>\n"
        "    <ManagePackageVersionsCentrally>true</ManagePackageVersionsCentrally>\n"
        "  </PropertyGroup>\n"
        "  <ItemGroup>\n"
        '    <PackageVersion Include="Newtonsoft.Json" Version="12.0.1" />\n'
        '    <PackageVersion Include="NUnit" Version="3.13.0" Pinned="true" />\n'
        "  </ItemGroup>\n"
        "</Project>\n"
    )
