"""Package source backed by a directory of .nupkg files."""

import logging
import shutil
from pathlib import Path

from ..archive import ARCHIVE_SUFFIX, read_archive
from ..errors import ExtractionError, PackageNotFoundError
from ..models import Package
from .base import PackageSource, _version_key

_logging = logging.getLogger(__name__)


class LocalPackageSource(PackageSource):
    """Scans a directory for package archives.

    Both the flat layout (``{Id}.{Version}.nupkg``) and the hierarchical
    layout (``{id}/{version}/{id}.{version}.nupkg``) are recognised.
    """

    @property
    def root(self) -> Path:
        return Path(self.expanded_path)

    def _archive_paths(self, id_prefix: str = "") -> list[Path]:
        root = self.root
        if not root.is_dir():
            _logging.warning(f"Local source '{self.name}' does not exist: {root}")
            return []

        prefix = id_prefix.lower()
        paths = list(root.glob(f"*{ARCHIVE_SUFFIX}")) + list(root.glob(f"*/*/*{ARCHIVE_SUFFIX}"))
        return sorted(p for p in paths if p.name.lower().startswith(prefix))

    def _read_packages(self, id_prefix: str = "") -> list[Package]:
        packages = []
        for path in self._archive_paths(id_prefix):
            try:
                packages.append(read_archive(path).with_source(self, download_url=str(path)))
            except ExtractionError as e:
                _logging.warning(f"Skipping unreadable package {path}: {e}")
        return packages

    def list_versions(self, package_id: str) -> list[Package]:
        return [p for p in self._read_packages(package_id) if p.id.lower() == package_id.lower()]

    def search(
        self,
        term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        count: int = 15,
        skip: int = 0,
    ) -> list[Package]:
        needle = (term or "").lower()
        matches = [
            p
            for p in self._read_packages()
            if (include_prerelease or not p.is_prerelease)
            and (not needle or needle in p.id.lower() or needle in p.title.lower())
        ]

        if not include_all_versions:
            latest: dict[str, Package] = {}
            for package in matches:
                current = latest.get(package.key)
                if current is None or _version_key(package) > _version_key(current):
                    latest[package.key] = package
            matches = list(latest.values())

        matches.sort(key=lambda p: (p.key, _version_key(p)))
        return matches[skip : skip + count] if count else matches[skip:]

    def download(self, package: Package, destination: Path) -> Path:
        archive = Path(package.download_url) if package.download_url else None
        if archive is None or not archive.is_file():
            found = self.get_specific_package(package.identifier)
            if found is None or found != package.identifier:
                raise PackageNotFoundError(f"{package} is not available from {self.root}")
            archive = Path(found.download_url)

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        _logging.debug(f"Copying {archive} to {destination}")
        shutil.copyfile(archive, destination)
        return destination


__all__ = ["LocalPackageSource"]
