"""In-memory index of the packages installed in the repository directory."""

import logging
import os
import shutil
import stat
import time
from pathlib import Path
from typing import Iterator

from .archive import ARCHIVE_SUFFIX, MANIFEST_SUFFIX, load_manifest_file, read_archive
from .errors import ExtractionError
from .models import Package

_logging = logging.getLogger(__name__)


def delete_directory(path: Path) -> None:
    """Remove a directory tree, including read-only files."""
    path = Path(path)
    if not path.is_dir():
        return
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            file_path = os.path.join(dirpath, name)
            if not os.path.islink(file_path):
                os.chmod(file_path, stat.S_IWRITE | stat.S_IREAD)
    shutil.rmtree(path)


def delete_file(path: Path) -> None:
    path = Path(path)
    if path.exists():
        os.chmod(path, stat.S_IWRITE | stat.S_IREAD)
        path.unlink()


class InstalledPackageRegistry:
    """Maps package ids (case-insensitively) to the installed Package.

    At most one version per id is registered.
    """

    def __init__(self, repository_path: Path) -> None:
        self.repository_path = Path(repository_path)
        self._packages: dict[str, Package] = {}

    def rebuild(self) -> None:
        """Rescan the repository directory.

        Archives left next to extracted packages are read first, then loose
        manifests of packages linked into the repository by hand.
        """
        started = time.monotonic()
        packages: dict[str, Package] = {}

        if self.repository_path.is_dir():
            for nupkg in sorted(self.repository_path.rglob(f"*{ARCHIVE_SUFFIX}")):
                self._register(packages, nupkg, read_archive)
            for nuspec in sorted(self.repository_path.rglob(f"*{MANIFEST_SUFFIX}")):
                self._register(packages, nuspec, load_manifest_file)

        self._packages = packages
        elapsed = (time.monotonic() - started) * 1000
        _logging.debug(f"Getting installed packages took {elapsed:.0f} ms")

    @staticmethod
    def _register(packages: dict[str, Package], path: Path, reader) -> None:
        try:
            package = reader(path)
        except ExtractionError as e:
            _logging.warning(f"Ignoring unreadable package file {path}: {e}")
            return
        if package.key in packages:
            _logging.error(f"Package is already in installed list: {package.id}")
            return
        packages[package.key] = package

    def get(self, package_id: str) -> Package | None:
        return self._packages.get(package_id.lower())

    def add(self, package: Package) -> None:
        if package.key in self._packages:
            _logging.debug(f"Replacing installed entry {self._packages[package.key]} with {package}")
        self._packages[package.key] = package

    def remove(self, package_id: str) -> Package | None:
        return self._packages.pop(package_id.lower(), None)

    def clear(self) -> None:
        self._packages = {}

    def packages(self) -> list[Package]:
        return sorted(self._packages.values())

    def __contains__(self, package_id: object) -> bool:
        return isinstance(package_id, str) and package_id.lower() in self._packages

    def __iter__(self) -> Iterator[Package]:
        return iter(self.packages())

    def __len__(self) -> int:
        return len(self._packages)


__all__ = ["InstalledPackageRegistry", "delete_directory", "delete_file"]
