"""Tests for deprecated package migration."""

import logging

import pytest

from propsbump.deprecation import has_package, try_migrate
from propsbump.manifest import ManifestDocument
from propsbump.models import AlternatePackage, Deprecation, PackageEntry
from propsbump.versioning import PackageVersion

MANIFEST = (
    "<Project>\n"
    "  <ItemGroup>\n"
    '    <PackageVersion Include="Old.Package" Version="1.0.0" />\n'
    '    <PackageVersion Include="Other" Version="2.0.0" />\n'
    "  </ItemGroup>\n"
    "</Project>\n"
)


def deprecated(package: str | None = None, min_version: str | None = None) -> Deprecation:
    alternate = None
    if package is not None:
        alternate = AlternatePackage(
            package=package,
            min_version=PackageVersion.parse(min_version) if min_version else None,
        )
    return Deprecation(reasons=["Legacy"], message="Superseded", alternate=alternate)


def first_entry(document: ManifestDocument) -> PackageEntry:
    element = document.find("PackageVersion")[0]
    return PackageEntry(
        element=element,
        package=element.get("Include"),
        version=element.get("Version"),
    )


@pytest.fixture
def document():
    return ManifestDocument(MANIFEST.encode())


class TestHasPackage:
    """Test case-insensitive presence checks."""

    def test_present_in_any_case(self, document):
        assert has_package(document, "other")
        assert has_package(document, "OLD.PACKAGE")

    def test_absent(self, document):
        assert not has_package(document, "New.Package")


class TestTryMigrate:
    """Test migration decisions."""

    @pytest.mark.asyncio
    async def test_migrates_to_latest_alternative(self, registry, sources, context, document):
        registry.add("Old.Package", "1.0.0", deprecation=deprecated("New.Package"))
        registry.add("New.Package", "1.0.0", "2.1.0", "3.0.0-beta")
        entry = first_entry(document)

        migration = await try_migrate(entry, PackageVersion.parse("1.0.0"), sources, context, document)

        assert migration.old_package == "Old.Package"
        assert migration.new_package == "New.Package"
        assert migration.version == "2.1.0"
        assert entry.migrate_to == "New.Package"
        assert b'<PackageVersion Include="New.Package" Version="2.1.0" />' in document.serialize()

    @pytest.mark.asyncio
    async def test_uses_minimum_version_of_alternative_range(self, registry, sources, context, document):
        registry.add("Old.Package", "1.0.0", deprecation=deprecated("New.Package", "2.0.0"))
        registry.add("New.Package", "2.0.0", "2.5.0")

        migration = await try_migrate(
            first_entry(document), PackageVersion.parse("1.0.0"), sources, context, document
        )

        assert migration.version == "2.0.0"

    @pytest.mark.asyncio
    async def test_not_deprecated_returns_none(self, registry, sources, context, document):
        registry.add("Old.Package", "1.0.0")

        result = await try_migrate(
            first_entry(document), PackageVersion.parse("1.0.0"), sources, context, document
        )

        assert result is None
        assert not document.changed

    @pytest.mark.asyncio
    async def test_no_alternative_logs_warning(self, registry, sources, context, document, caplog):
        registry.add("Old.Package", "1.0.0", deprecation=deprecated())

        with caplog.at_level(logging.WARNING, logger="propsbump"):
            result = await try_migrate(
                first_entry(document), PackageVersion.parse("1.0.0"), sources, context, document
            )

        assert result is None
        assert not document.changed
        assert "no alternative package" in caplog.text

    @pytest.mark.asyncio
    async def test_alternative_already_present_is_skipped(self, registry, sources, context, document, caplog):
        registry.add("Old.Package", "1.0.0", deprecation=deprecated("other"))
        registry.add("Other", "5.0.0")

        with caplog.at_level(logging.WARNING, logger="propsbump"):
            result = await try_migrate(
                first_entry(document), PackageVersion.parse("1.0.0"), sources, context, document
            )

        assert result is None
        assert not document.changed
        assert "already present" in caplog.text

    @pytest.mark.asyncio
    async def test_unresolvable_alternative_is_skipped(self, registry, sources, context, document, caplog):
        registry.add("Old.Package", "1.0.0", deprecation=deprecated("Ghost.Package"))

        with caplog.at_level(logging.WARNING, logger="propsbump"):
            result = await try_migrate(
                first_entry(document), PackageVersion.parse("1.0.0"), sources, context, document
            )

        assert result is None
        assert not document.changed
        assert "Ghost.Package" in caplog.text

    @pytest.mark.asyncio
    async def test_never_writes_zero_version(self, registry, sources, context, document):
        registry.add("Old.Package", "1.0.0", deprecation=deprecated("New.Package", "0.0.0"))
        registry.add("New.Package", "1.4.0")

        migration = await try_migrate(
            first_entry(document), PackageVersion.parse("1.0.0"), sources, context, document
        )

        assert migration.version == "1.4.0"
        assert b'Version="0.0.0"' not in document.serialize()
