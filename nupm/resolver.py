"""Tiered package lookup: installed, then cached, then the active sources."""

import logging
from pathlib import Path
from typing import Iterable

from .archive import archive_file_name, read_archive
from .errors import ExtractionError, NetworkError
from .models import Package, PackageIdentifier
from .registry import InstalledPackageRegistry
from .sources import PackageSource

_logging = logging.getLogger(__name__)


def _dedupe(packages: Iterable[Package]) -> list[Package]:
    seen: set[tuple[str, str]] = set()
    unique: list[Package] = []
    for package in packages:
        marker = (package.key, package.parsed_version.normalized if package.parsed_version else package.version or "")
        if marker not in seen:
            seen.add(marker)
            unique.append(package)
    return unique


class PackageResolver:
    """Finds the single best package for a requested identifier."""

    def __init__(
        self,
        registry: InstalledPackageRegistry,
        sources: list[PackageSource],
        cache_dir: Path,
        install_from_cache: bool = True,
    ) -> None:
        self.registry = registry
        self.sources = sources
        self.cache_dir = Path(cache_dir)
        self.install_from_cache = install_from_cache

    @property
    def enabled_sources(self) -> list[PackageSource]:
        return [s for s in self.sources if s.enabled]

    def cached_archive_path(self, package: PackageIdentifier) -> Path:
        return self.cache_dir / archive_file_name(package)

    def get_installed_package(self, identifier: PackageIdentifier) -> Package | None:
        installed = self.registry.get(identifier.id)
        if installed is None:
            return None
        if installed == identifier:
            return installed
        if identifier.in_range(installed):
            _logging.debug(
                f"Requested {identifier.id} {identifier.version}, but {installed.version} "
                f"is already installed, so using that."
            )
            return installed
        _logging.debug(
            f"Requested {identifier.id} {identifier.version}. {installed.version} is "
            f"installed, but it is out of range."
        )
        return None

    def get_cached_package(self, identifier: PackageIdentifier) -> Package | None:
        if not self.install_from_cache or not identifier.version or identifier.has_version_range:
            return None
        path = self.cached_archive_path(identifier)
        if not path.is_file():
            return None
        try:
            package = read_archive(path)
        except ExtractionError as e:
            _logging.warning(f"Ignoring unreadable cached package {path}: {e}")
            return None
        _logging.debug(f"Found exact package in the cache: {path}")
        return package

    def get_online_package(self, identifier: PackageIdentifier) -> Package | None:
        """Ask every enabled source; an exact hit wins, else the greatest admissible one."""
        best: Package | None = None
        for source in self.enabled_sources:
            try:
                found = source.get_specific_package(identifier)
            except NetworkError as e:
                _logging.warning(f"Source '{source.name}' failed while looking up {identifier}: {e}")
                continue
            if found is None:
                continue
            if identifier.version and not identifier.has_version_range and found == identifier:
                _logging.debug(f"{identifier} found on '{source.name}'")
                return found
            if best is None or found > best:
                best = found
        return best

    def get_specific_package(self, identifier: PackageIdentifier) -> Package | None:
        """Resolve ``identifier`` through the installed, cache and source tiers.

        Returns None when no tier has a matching package.
        """
        package = self.get_installed_package(identifier)
        if package is None:
            package = self.get_cached_package(identifier)
        if package is None:
            package = self.get_online_package(identifier)
        if package is None:
            _logging.debug(f"No tier provides {identifier}")
        return package

    def search(
        self,
        term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        count: int = 15,
        skip: int = 0,
    ) -> list[Package]:
        """Combined search results of every enabled source."""
        packages: list[Package] = []
        for source in self.enabled_sources:
            try:
                packages.extend(
                    source.search(term, include_all_versions, include_prerelease, count, skip)
                )
            except NetworkError as e:
                _logging.warning(f"Search on '{source.name}' failed: {e}")
        return _dedupe(packages)

    def get_updates(
        self,
        installed: Iterable[PackageIdentifier] | None = None,
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        frameworks: list[str] | None = None,
        constraints: dict[str, str] | None = None,
    ) -> list[Package]:
        """Available updates for the installed packages across enabled sources."""
        installed = list(self.registry.packages() if installed is None else installed)
        updates: list[Package] = []
        for source in self.enabled_sources:
            try:
                updates.extend(
                    source.get_updates(
                        installed, include_prerelease, include_all_versions, frameworks, constraints
                    )
                )
            except NetworkError as e:
                _logging.warning(f"Update check on '{source.name}' failed: {e}")

        updates = _dedupe(updates)
        if include_all_versions:
            return sorted(updates)

        newest: dict[str, Package] = {}
        for package in updates:
            if package.key not in newest or package > newest[package.key]:
                newest[package.key] = package
        return sorted(newest.values())


__all__ = ["PackageResolver"]
