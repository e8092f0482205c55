"""Tests for latest-version selection."""

import pytest

from propsbump.models import PackageSource
from propsbump.registry import RegistryError
from propsbump.selector import find_latest, find_metadata, should_consider
from propsbump.versioning import ZERO, PackageVersion


def v(text: str) -> PackageVersion:
    return PackageVersion.parse(text)


class TestShouldConsider:
    """Test the stability policy."""

    def test_stable_to_newer_stable(self):
        assert should_consider(v("1.1.0"), v("1.0.0"))

    def test_stable_never_to_prerelease(self):
        assert not should_consider(v("2.0.0-beta"), v("1.0.0"))

    def test_prerelease_to_newer_prerelease_or_stable(self):
        assert should_consider(v("1.0.0-beta.2"), v("1.0.0-beta.1"))
        assert should_consider(v("1.0.0"), v("1.0.0-beta.1"))

    def test_older_or_equal_is_rejected(self):
        assert not should_consider(v("1.0.0"), v("1.0.0"))
        assert not should_consider(v("0.9.0"), v("1.0.0"))


class TestFindLatest:
    """Test selection across listed versions and sources."""

    @pytest.mark.asyncio
    async def test_picks_highest_listed_version(self, registry, sources, context):
        registry.add("Foo", "1.0.0", "1.2.0")
        registry.add("Foo", "1.1.0", listed=False)

        result = await find_latest("Foo", v("1.0.0"), sources, context)

        assert result.version == v("1.2.0")

    @pytest.mark.asyncio
    async def test_skips_unlisted_highest_version(self, registry, sources, context):
        registry.add("Foo", "1.0.0", "1.1.0")
        registry.add("Foo", "1.2.0", listed=False)

        result = await find_latest("Foo", v("1.0.0"), sources, context)

        assert result.version == v("1.1.0")

    @pytest.mark.asyncio
    async def test_stable_current_ignores_prerelease(self, registry, sources, context):
        registry.add("Foo", "1.0.0", "1.1.0", "2.0.0-preview.1")

        result = await find_latest("Foo", v("1.0.0"), sources, context)

        assert result.version == v("1.1.0")
        assert not result.version.is_prerelease

    @pytest.mark.asyncio
    async def test_prerelease_current_accepts_prerelease(self, registry, sources, context):
        registry.add("Foo", "1.0.0-beta.1", "1.0.0-beta.2")

        result = await find_latest("Foo", v("1.0.0-beta.1"), sources, context)

        assert result.version == v("1.0.0-beta.2")

    @pytest.mark.asyncio
    async def test_already_latest_returns_none(self, registry, sources, context):
        registry.add("Foo", "1.0.0")

        assert await find_latest("Foo", v("999.0.0"), sources, context) is None

    @pytest.mark.asyncio
    async def test_unknown_package_returns_none(self, sources, context):
        assert await find_latest("Missing", v("1.0.0"), sources, context) is None

    @pytest.mark.asyncio
    async def test_best_across_all_sources(self, registry, other_registry, both_sources, context):
        registry.add("Foo", "1.0.0", "1.1.0")
        other_registry.add("Foo", "1.0.0", "1.5.0")

        result = await find_latest("Foo", v("1.0.0"), both_sources, context)

        assert result.version == v("1.5.0")
        assert result.source == other_registry.url

    @pytest.mark.asyncio
    async def test_first_source_kept_when_higher(self, registry, other_registry, both_sources, context):
        registry.add("Foo", "2.0.0")
        other_registry.add("Foo", "1.5.0")

        result = await find_latest("Foo", v("1.0.0"), both_sources, context)

        assert result.version == v("2.0.0")
        assert ("Foo", "1.5.0") not in other_registry.metadata_calls

    @pytest.mark.asyncio
    async def test_disabled_sources_are_skipped(self, registry, other_registry, context):
        registry.add("Foo", "1.1.0")
        other_registry.add("Foo", "9.0.0")
        sources = [
            PackageSource("fake", registry.url),
            PackageSource("other", other_registry.url, enabled=False),
        ]

        result = await find_latest("Foo", v("1.0.0"), sources, context)

        assert result.version == v("1.1.0")
        assert other_registry.version_calls == []

    @pytest.mark.asyncio
    async def test_results_are_memoized(self, registry, sources, context):
        registry.add("Foo", "1.0.0", "1.1.0")

        first = await find_latest("Foo", v("1.0.0"), sources, context)
        second = await find_latest("foo", v("1.0"), sources, context)

        assert first is second
        assert len(registry.version_calls) == 1

    @pytest.mark.asyncio
    async def test_from_zero_finds_any_stable_version(self, registry, sources, context):
        registry.add("Bar", "0.1.0", "3.0.0", "4.0.0-rc.1")

        result = await find_latest("Bar", ZERO, sources, context)

        assert result.version == v("3.0.0")

    @pytest.mark.asyncio
    async def test_failing_source_is_skipped(self, registry, other_registry, both_sources, context, caplog):
        registry.error = RegistryError("HTTP 503", source=registry.url, package="Foo")
        other_registry.add("Foo", "1.0.0", "2.0.0")

        result = await find_latest("Foo", v("1.0.0"), both_sources, context)

        assert result.version == v("2.0.0")
        assert other_registry.version_calls == ["Foo"]
        assert registry.url in caplog.text

    @pytest.mark.asyncio
    async def test_all_sources_failing_raises(self, registry, other_registry, both_sources, context):
        registry.error = RegistryError("HTTP 503", source=registry.url)
        other_registry.error = RegistryError("HTTP 500", source=other_registry.url)

        with pytest.raises(RegistryError):
            await find_latest("Foo", v("1.0.0"), both_sources, context)


class TestFindMetadata:
    """Test exact-version metadata lookup."""

    @pytest.mark.asyncio
    async def test_returns_first_source_with_version(self, registry, other_registry, both_sources, context):
        other_registry.add("Foo", "1.0.0")

        metadata = await find_metadata("Foo", v("1.0.0"), both_sources, context)

        assert metadata.source == other_registry.url

    @pytest.mark.asyncio
    async def test_missing_version_returns_none(self, both_sources, context):
        assert await find_metadata("Foo", v("1.0.0"), both_sources, context) is None

    @pytest.mark.asyncio
    async def test_failing_source_is_skipped(self, registry, other_registry, both_sources, context):
        registry.error = RegistryError("HTTP 503", source=registry.url)
        other_registry.add("Foo", "1.0.0")

        metadata = await find_metadata("Foo", v("1.0.0"), both_sources, context)

        assert metadata.source == other_registry.url
