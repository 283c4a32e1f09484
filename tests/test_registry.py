"""Tests for the installed package registry."""

import logging
import os
import stat

from nupm.models import Package
from nupm.registry import InstalledPackageRegistry, delete_directory, delete_file

from .conftest import build_nuspec


class TestInstalledPackageRegistry:
    """Tests for scanning the repository directory."""

    def test_rebuild_reads_archives_and_manifests(self, tmp_path, nupkg_factory):
        repo = tmp_path / "Packages"
        nupkg_factory(repo / "Foo.1.0.0", "Foo", "1.0.0")
        linked = repo / "Linked.2.0.0"
        linked.mkdir(parents=True)
        (linked / "Linked.nuspec").write_text(build_nuspec("Linked", "2.0.0"))
        registry = InstalledPackageRegistry(repo)

        registry.rebuild()

        assert [str(p) for p in registry.packages()] == ["Foo 1.0.0", "Linked 2.0.0"]
        assert "foo" in registry
        assert registry.get("LINKED").version == "2.0.0"

    def test_missing_repository(self, tmp_path):
        registry = InstalledPackageRegistry(tmp_path / "missing")
        registry.rebuild()
        assert len(registry) == 0

    def test_duplicate_id_logged(self, tmp_path, nupkg_factory, caplog):
        repo = tmp_path / "Packages"
        nupkg_factory(repo / "Foo.1.0.0", "Foo", "1.0.0")
        nupkg_factory(repo / "Foo.2.0.0", "Foo", "2.0.0")
        registry = InstalledPackageRegistry(repo)

        with caplog.at_level(logging.ERROR):
            registry.rebuild()

        assert len(registry) == 1
        assert registry.get("Foo").version == "1.0.0"
        assert "already in installed list" in caplog.text

    def test_rebuild_replaces_contents(self, tmp_path, nupkg_factory):
        repo = tmp_path / "Packages"
        nupkg_factory(repo / "Foo.1.0.0", "Foo", "1.0.0")
        registry = InstalledPackageRegistry(repo)
        registry.add(Package(id="Ghost", version="1.0"))

        registry.rebuild()

        assert "Ghost" not in registry
        assert "Foo" in registry

    def test_unreadable_files_ignored(self, tmp_path):
        repo = tmp_path / "Packages"
        repo.mkdir()
        (repo / "broken.nupkg").write_bytes(b"nope")
        (repo / "broken.nuspec").write_text("<package>")
        registry = InstalledPackageRegistry(repo)

        registry.rebuild()

        assert len(registry) == 0

    def test_add_remove_clear(self, tmp_path):
        registry = InstalledPackageRegistry(tmp_path)
        registry.add(Package(id="Foo", version="1.0"))
        registry.add(Package(id="foo", version="2.0"))

        assert len(registry) == 1
        assert registry.get("Foo").version == "2.0"
        assert registry.remove("FOO").version == "2.0"
        assert registry.remove("Foo") is None

        registry.add(Package(id="Bar", version="1.0"))
        registry.clear()
        assert list(registry) == []


class TestDelete:
    def test_delete_directory_with_read_only_files(self, tmp_path):
        folder = tmp_path / "pkg"
        (folder / "lib").mkdir(parents=True)
        target = folder / "lib" / "a.dll"
        target.write_bytes(b"x")
        os.chmod(target, stat.S_IREAD)

        delete_directory(folder)

        assert not folder.exists()
        delete_directory(folder)

    def test_delete_file(self, tmp_path):
        target = tmp_path / "a.meta"
        target.write_text("x")
        os.chmod(target, stat.S_IREAD)

        delete_file(target)

        assert not target.exists()
        delete_file(target)
