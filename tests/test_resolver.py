"""Tests for tiered package resolution."""

from unittest.mock import patch

from nupm.errors import NetworkError
from nupm.models import PackageIdentifier
from nupm.registry import InstalledPackageRegistry
from nupm.resolver import PackageResolver
from nupm.sources import LocalPackageSource


def make_resolver(tmp_path, sources, install_from_cache=True):
    registry = InstalledPackageRegistry(tmp_path / "repo")
    registry.rebuild()
    return PackageResolver(registry, sources, tmp_path / "cache", install_from_cache)


class TestTierOrdering:
    """Installed beats cached beats online."""

    def test_installed_tier_wins_for_range(self, tmp_path, feed, nupkg_factory):
        installed_path = nupkg_factory(tmp_path / "repo" / "Foo.1.0.0", "Foo", "1.0.0")
        nupkg_factory(feed, "Foo", "2.0.0")
        resolver = make_resolver(tmp_path, [LocalPackageSource("local", str(feed))])

        found = resolver.get_specific_package(PackageIdentifier("Foo", "[1.0,)"))

        assert found.version == "1.0.0"
        assert found.download_url == str(installed_path)

    def test_installed_out_of_range_falls_through(self, tmp_path, feed, nupkg_factory):
        nupkg_factory(tmp_path / "repo" / "Foo.1.0.0", "Foo", "1.0.0")
        nupkg_factory(feed, "Foo", "2.0.0")
        source = LocalPackageSource("local", str(feed))
        resolver = make_resolver(tmp_path, [source])

        found = resolver.get_specific_package(PackageIdentifier("Foo", "2.0.0"))

        assert found.version == "2.0.0"
        assert found.source is source

    def test_cache_tier_before_sources(self, tmp_path, feed, nupkg_factory):
        cached = nupkg_factory(tmp_path / "cache", "Foo", "1.0.0")
        nupkg_factory(feed, "Foo", "1.0.0")
        source = LocalPackageSource("local", str(feed))
        resolver = make_resolver(tmp_path, [source])

        with patch.object(source, "get_specific_package") as online:
            found = resolver.get_specific_package(PackageIdentifier("Foo", "1.0.0"))

        online.assert_not_called()
        assert found.download_url == str(cached)
        assert resolver.cached_archive_path(found) == cached

    def test_cache_requires_exact_version(self, tmp_path, feed, nupkg_factory):
        nupkg_factory(tmp_path / "cache", "Foo", "1.0.0")
        resolver = make_resolver(tmp_path, [LocalPackageSource("local", str(feed))])

        assert resolver.get_cached_package(PackageIdentifier("Foo", "[1.0,)")) is None
        assert resolver.get_cached_package(PackageIdentifier("Foo")) is None
        assert resolver.get_cached_package(PackageIdentifier("Foo", "1.0.0")) is not None

    def test_cache_disabled(self, tmp_path, feed, nupkg_factory):
        nupkg_factory(tmp_path / "cache", "Foo", "1.0.0")
        resolver = make_resolver(tmp_path, [], install_from_cache=False)
        assert resolver.get_specific_package(PackageIdentifier("Foo", "1.0.0")) is None

    def test_not_found(self, tmp_path, feed):
        resolver = make_resolver(tmp_path, [LocalPackageSource("local", str(feed))])
        assert resolver.get_specific_package(PackageIdentifier("Missing", "1.0")) is None


class TestOnlineTier:
    """Tests for combining several sources."""

    def test_exact_hit_on_first_source_wins(self, tmp_path, nupkg_factory):
        first = LocalPackageSource("first", str(tmp_path / "a"))
        second = LocalPackageSource("second", str(tmp_path / "b"))
        nupkg_factory(tmp_path / "a", "Foo", "2.0.0")
        nupkg_factory(tmp_path / "b", "Foo", "2.0.0")
        resolver = make_resolver(tmp_path, [first, second])

        with patch.object(second, "get_specific_package") as other:
            found = resolver.get_online_package(PackageIdentifier("Foo", "2.0.0"))

        other.assert_not_called()
        assert found.source is first

    def test_greatest_candidate_across_sources(self, tmp_path, nupkg_factory):
        nupkg_factory(tmp_path / "a", "Foo", "1.5.0")
        nupkg_factory(tmp_path / "b", "Foo", "1.2.0")
        nupkg_factory(tmp_path / "b", "Foo", "1.8.0")
        resolver = make_resolver(
            tmp_path,
            [LocalPackageSource("a", str(tmp_path / "a")), LocalPackageSource("b", str(tmp_path / "b"))],
        )

        assert resolver.get_online_package(PackageIdentifier("Foo", "[1.0,2.0)")).version == "1.8.0"
        assert resolver.get_online_package(PackageIdentifier("Foo", "1.1")).version == "1.5.0"

    def test_disabled_sources_skipped(self, tmp_path, nupkg_factory):
        nupkg_factory(tmp_path / "a", "Foo", "1.0.0")
        source = LocalPackageSource("a", str(tmp_path / "a"), enabled=False)
        resolver = make_resolver(tmp_path, [source])
        assert resolver.get_online_package(PackageIdentifier("Foo", "1.0.0")) is None

    def test_failing_source_skipped(self, tmp_path, nupkg_factory, caplog):
        nupkg_factory(tmp_path / "b", "Foo", "1.0.0")
        broken = LocalPackageSource("broken", str(tmp_path / "a"))
        working = LocalPackageSource("working", str(tmp_path / "b"))
        resolver = make_resolver(tmp_path, [broken, working])

        with patch.object(broken, "get_specific_package", side_effect=NetworkError("HTTP 500")):
            found = resolver.get_online_package(PackageIdentifier("Foo", "1.0.0"))

        assert found.source is working
        assert "Source 'broken' failed" in caplog.text


class TestSearchAndUpdates:
    def test_search_deduplicates(self, tmp_path, nupkg_factory):
        nupkg_factory(tmp_path / "a", "Foo", "1.0.0")
        nupkg_factory(tmp_path / "b", "Foo", "1.0.0")
        nupkg_factory(tmp_path / "b", "Bar", "1.0.0")
        resolver = make_resolver(
            tmp_path,
            [LocalPackageSource("a", str(tmp_path / "a")), LocalPackageSource("b", str(tmp_path / "b"))],
        )

        assert sorted(str(p) for p in resolver.search()) == ["Bar 1.0.0", "Foo 1.0.0"]

    def test_get_updates_for_installed(self, tmp_path, nupkg_factory):
        nupkg_factory(tmp_path / "repo" / "Foo.1.0.0", "Foo", "1.0.0")
        nupkg_factory(tmp_path / "a", "Foo", "1.5.0")
        nupkg_factory(tmp_path / "b", "Foo", "2.0.0")
        resolver = make_resolver(
            tmp_path,
            [LocalPackageSource("a", str(tmp_path / "a")), LocalPackageSource("b", str(tmp_path / "b"))],
        )

        assert [str(p) for p in resolver.get_updates()] == ["Foo 2.0.0"]
        assert [str(p) for p in resolver.get_updates(include_all_versions=True)] == [
            "Foo 1.5.0",
            "Foo 2.0.0",
        ]
