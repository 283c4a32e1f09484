"""Tests for local and remote package sources."""

from pathlib import Path

import pytest

from nupm.config import SourceConfig
from nupm.errors import NetworkError, PackageNotFoundError
from nupm.models import Package, PackageIdentifier
from nupm.sources import (
    LocalPackageSource,
    PackageSource,
    RemotePackageSource,
    create_source,
    is_local_path,
    select_package,
)

INDEX_URL = "https://feed.example.com/v3/index.json"
REGISTRATION_BASE = "https://feed.example.com/v3/registration/"
SEARCH_URL = "https://feed.example.com/v3/query"
CONTENT_BASE = "https://feed.example.com/v3/flat/"


class FakeHttp:
    """Serves canned JSON documents by URL."""

    def __init__(self, documents: dict):
        self.documents = documents
        self.requests: list[tuple[str, dict | None]] = []
        self.downloads: list[tuple[str, Path]] = []

    def get_json(self, url, source=None, params=None):
        self.requests.append((url, params))
        if url not in self.documents:
            raise NetworkError(f"HTTP 404 for {url}")
        return self.documents[url]

    def download(self, url, destination, source=None):
        self.downloads.append((url, Path(destination)))
        Path(destination).write_bytes(b"archive")
        return Path(destination)


def service_index():
    return {
        "version": "3.0.0",
        "resources": [
            {"@id": SEARCH_URL, "@type": "SearchQueryService"},
            {"@id": REGISTRATION_BASE, "@type": "RegistrationsBaseUrl/3.6.0"},
            {"@id": CONTENT_BASE, "@type": "PackageBaseAddress/3.0.0"},
        ],
    }


def leaf(package_id, version, listed=True, groups=None):
    return {
        "catalogEntry": {
            "id": package_id,
            "version": version,
            "listed": listed,
            "title": f"{package_id} title",
            "authors": ["Jane", "Joe"],
            "dependencyGroups": groups or [],
        },
        "packageContent": f"{CONTENT_BASE}{package_id.lower()}/{version}/{package_id.lower()}.{version}.nupkg",
    }


class TestIsLocalPath:
    def test_urls_are_remote(self):
        assert not is_local_path("https://api.nuget.org/v3/index.json")
        assert not is_local_path("HTTP://feed")

    def test_paths_are_local(self):
        assert is_local_path("/var/feed")
        assert is_local_path(r"C:\feed")
        assert is_local_path("~/feed")


class TestSelectPackage:
    """Tests for picking one version among a feed's candidates."""

    def candidates(self, *versions):
        return [Package(id="Foo", version=v) for v in versions]

    def test_exact_match(self):
        found = select_package(PackageIdentifier("foo", "1.0"), self.candidates("0.9", "1.0.0", "2.0"))
        assert found.version == "1.0.0"

    def test_bare_version_is_minimum(self):
        found = select_package(PackageIdentifier("Foo", "1.1"), self.candidates("1.0", "1.5", "2.0"))
        assert found.version == "1.5"

    def test_range_picks_newest(self):
        found = select_package(
            PackageIdentifier("Foo", "[1.0,2.0)"), self.candidates("1.0", "1.5", "2.0")
        )
        assert found.version == "1.5"

    def test_no_version_picks_newest(self):
        found = select_package(PackageIdentifier("Foo"), self.candidates("1.0", "3.0", "2.0"))
        assert found.version == "3.0"

    def test_prerelease_only_when_requested(self):
        candidates = self.candidates("1.0", "2.0-beta")
        assert select_package(PackageIdentifier("Foo"), candidates).version == "1.0"
        assert select_package(PackageIdentifier("Foo", "2.0-alpha"), candidates).version == "2.0-beta"

    def test_nothing_admissible(self):
        assert select_package(PackageIdentifier("Foo", "[3.0,)"), self.candidates("1.0")) is None
        assert select_package(PackageIdentifier("Bar"), self.candidates("1.0")) is None


class TestPackageSource:
    def test_is_abstract(self):
        with pytest.raises(TypeError):
            PackageSource("feed", "/packages")

    def test_subclass_must_implement_download(self):
        class SearchOnly(PackageSource):
            def search(self, term="", include_all_versions=False, include_prerelease=False, count=15, skip=0):
                return []

            def list_versions(self, package_id):
                return []

        with pytest.raises(TypeError):
            SearchOnly("feed", "/packages")


class TestLocalPackageSource:
    """Tests for directory-backed feeds."""

    def test_flat_layout(self, feed, nupkg_factory):
        nupkg_factory(feed, "Foo", "1.0.0")
        nupkg_factory(feed, "Foo", "2.0.0")
        nupkg_factory(feed, "FooBar", "1.0.0")
        source = LocalPackageSource("local", str(feed))

        versions = source.list_versions("foo")

        assert sorted(p.version for p in versions) == ["1.0.0", "2.0.0"]
        assert all(p.source is source for p in versions)

    def test_hierarchical_layout(self, feed, nupkg_factory):
        nupkg_factory(feed / "foo" / "1.0.0", "Foo", "1.0.0", file_name="foo.1.0.0.nupkg")
        source = LocalPackageSource("local", str(feed))

        found = source.get_specific_package(PackageIdentifier("Foo", "1.0.0"))

        assert found is not None
        assert found.download_url == str(feed / "foo" / "1.0.0" / "foo.1.0.0.nupkg")

    def test_missing_directory(self, tmp_path):
        source = LocalPackageSource("local", str(tmp_path / "nope"))
        assert source.list_versions("Foo") == []
        assert source.search() == []

    def test_unreadable_archives_skipped(self, feed, nupkg_factory):
        (feed / "Broken.1.0.0.nupkg").write_bytes(b"junk")
        nupkg_factory(feed, "Foo", "1.0.0")
        assert [p.id for p in LocalPackageSource("local", str(feed)).search()] == ["Foo"]

    def test_search(self, feed, nupkg_factory):
        nupkg_factory(feed, "Foo", "1.0.0")
        nupkg_factory(feed, "Foo", "1.1.0")
        nupkg_factory(feed, "Foo", "2.0.0-beta")
        nupkg_factory(feed, "Bar", "1.0.0", title="Foo helpers")
        nupkg_factory(feed, "Baz", "1.0.0")
        source = LocalPackageSource("local", str(feed))

        latest = source.search("foo")
        assert [str(p) for p in latest] == ["Bar 1.0.0", "Foo 1.1.0"]

        everything = source.search("foo", include_all_versions=True, include_prerelease=True)
        assert [str(p) for p in everything] == ["Bar 1.0.0", "Foo 1.0.0", "Foo 1.1.0", "Foo 2.0.0-beta"]

        assert len(source.search("", count=2)) == 2
        assert [p.id for p in source.search("", skip=2)] == ["Foo"]

    def test_download_copies_archive(self, feed, tmp_path, nupkg_factory):
        nupkg_factory(feed, "Foo", "1.0.0")
        source = LocalPackageSource("local", str(feed))
        package = source.get_specific_package(PackageIdentifier("Foo", "1.0.0"))

        target = source.download(package, tmp_path / "cache" / "Foo.1.0.0.nupkg")

        assert target.read_bytes() == (feed / "Foo.1.0.0.nupkg").read_bytes()

    def test_download_missing(self, feed, tmp_path):
        source = LocalPackageSource("local", str(feed))
        with pytest.raises(PackageNotFoundError):
            source.download(Package(id="Foo", version="1.0.0"), tmp_path / "x.nupkg")

    def test_get_updates(self, feed, nupkg_factory):
        for version in ("1.0.0", "1.5.0", "2.0.0", "3.0.0-rc"):
            nupkg_factory(feed, "Foo", version)
        source = LocalPackageSource("local", str(feed))
        installed = [PackageIdentifier("Foo", "1.0.0")]

        assert [p.version for p in source.get_updates(installed)] == ["2.0.0"]
        assert [p.version for p in source.get_updates(installed, include_prerelease=True)] == ["3.0.0-rc"]
        assert [p.version for p in source.get_updates(installed, include_all_versions=True)] == [
            "1.5.0",
            "2.0.0",
        ]
        constrained = source.get_updates(installed, constraints={"foo": "[1.0,2.0)"})
        assert [p.version for p in constrained] == ["1.5.0"]


class TestRemotePackageSource:
    """Tests for V3 feeds against canned responses."""

    def make_source(self, documents):
        documents = {INDEX_URL: service_index(), **documents}
        http = FakeHttp(documents)
        return RemotePackageSource("remote", INDEX_URL, http), http

    def test_list_versions_inlined(self):
        groups = [
            {
                "targetFramework": ".NETStandard2.0",
                "dependencies": [{"id": "Bar", "range": "[1.0.0, )"}],
            }
        ]
        source, _ = self.make_source(
            {
                f"{REGISTRATION_BASE}foo/index.json": {
                    "items": [{"items": [leaf("Foo", "1.0.0", groups=groups), leaf("Foo", "1.1.0", listed=False)]}]
                }
            }
        )

        versions = source.list_versions("Foo")

        assert [p.version for p in versions] == ["1.0.0"]
        package = versions[0]
        assert package.authors == "Jane, Joe"
        assert package.source is source
        assert package.dependencies[0].target_framework == "netstandard2.0"
        assert package.dependencies[0].dependencies[0].id == "Bar"
        assert package.download_url.endswith("foo.1.0.0.nupkg")

    def test_list_versions_paged(self):
        page_url = "https://feed.example.com/v3/registration/foo/page/1.0.0/2.0.0.json"
        source, http = self.make_source(
            {
                f"{REGISTRATION_BASE}foo/index.json": {"items": [{"@id": page_url}]},
                page_url: {"items": [leaf("Foo", "1.0.0"), leaf("Foo", "2.0.0")]},
            }
        )

        assert [p.version for p in source.list_versions("Foo")] == ["1.0.0", "2.0.0"]
        assert page_url in [url for url, _ in http.requests]

    def test_unknown_package(self):
        source, _ = self.make_source({})
        assert source.list_versions("Missing") == []
        assert source.get_specific_package(PackageIdentifier("Missing", "1.0")) is None

    def test_service_index_fetched_once(self):
        source, http = self.make_source({})
        source.list_versions("A")
        source.list_versions("B")
        assert [url for url, _ in http.requests].count(INDEX_URL) == 1

    def test_search(self):
        source, http = self.make_source(
            {
                SEARCH_URL: {
                    "data": [
                        {
                            "id": "Foo",
                            "version": "2.0.0",
                            "title": "Foo",
                            "authors": "Jane",
                            "versions": [{"version": "1.0.0"}, {"version": "2.0.0"}],
                        }
                    ]
                }
            }
        )

        assert [str(p) for p in source.search("foo")] == ["Foo 2.0.0"]
        everything = source.search("foo", include_all_versions=True, include_prerelease=True, count=5, skip=1)
        assert [p.version for p in everything] == ["1.0.0", "2.0.0"]

        _, params = http.requests[-1]
        assert params == {
            "q": "foo",
            "skip": 1,
            "take": 5,
            "prerelease": "true",
            "semVerLevel": "2.0.0",
        }

    def test_download_uses_flat_container_fallback(self, tmp_path):
        source, http = self.make_source({})
        destination = tmp_path / "Foo.1.0.0.nupkg"

        source.download(Package(id="Foo", version="1.0.0"), destination)

        assert http.downloads == [(f"{CONTENT_BASE}foo/1.0.0/foo.1.0.0.nupkg", destination)]

    def test_missing_resource(self):
        http = FakeHttp({INDEX_URL: {"resources": []}})
        source = RemotePackageSource("remote", INDEX_URL, http)
        with pytest.raises(NetworkError, match="does not provide"):
            source.search("foo")


class TestCreateSource:
    def test_local_and_remote(self):
        http = FakeHttp({})
        assert isinstance(create_source(SourceConfig("a", "/feed"), http), LocalPackageSource)
        remote = create_source(SourceConfig("b", INDEX_URL, enabled=False, username="u"), http)
        assert isinstance(remote, RemotePackageSource)
        assert remote.enabled is False
        assert remote.username == "u"
