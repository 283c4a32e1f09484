"""Common behaviour of package sources (feeds)."""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from ..config import expand_password
from ..models import Package, PackageIdentifier
from ..versions import VersionRange

_logging = logging.getLogger(__name__)


def is_local_path(path: str) -> bool:
    return not path.strip().lower().startswith(("http://", "https://"))


def _version_key(package: Package):
    return package._order_key()


def select_package(identifier: PackageIdentifier, candidates: Iterable[Package]) -> Package | None:
    """Pick the package satisfying ``identifier`` among one id's versions.

    An exact version hit wins. Otherwise a range yields its newest member
    and a bare version the oldest version newer than the one requested.
    Pre-releases are only considered when the request itself is one.
    """
    matching = [c for c in candidates if c.key == identifier.key]
    if not matching:
        return None

    if identifier.version and not identifier.has_version_range:
        for candidate in matching:
            if candidate == identifier:
                return candidate

    allow_prerelease = identifier.is_prerelease
    admissible = [
        c
        for c in matching
        if identifier.accepts(c) and (allow_prerelease or not c.is_prerelease)
    ]
    if not admissible:
        return None

    if identifier.version and not identifier.has_version_range:
        return min(admissible, key=_version_key)
    return max(admissible, key=_version_key)


class PackageSource(ABC):
    """A feed that can be searched and queried for specific packages.

    Subclasses provide ``search``, ``list_versions`` and ``download``;
    exact lookups and update queries are derived from them.
    """

    def __init__(
        self,
        name: str,
        path: str,
        enabled: bool = True,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self.name = name
        self.path = path
        self.enabled = enabled
        self.username = username
        self.password = password

    @property
    def is_local_path(self) -> bool:
        return is_local_path(self.path)

    @property
    def expanded_path(self) -> str:
        return os.path.expandvars(os.path.expanduser(self.path))

    @property
    def resolved_password(self) -> str | None:
        return expand_password(self.password)

    @abstractmethod
    def search(
        self,
        term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        count: int = 15,
        skip: int = 0,
    ) -> list[Package]:
        pass

    @abstractmethod
    def list_versions(self, package_id: str) -> list[Package]:
        """Every version of ``package_id`` the source offers."""
        pass

    @abstractmethod
    def download(self, package: Package, destination: Path) -> Path:
        """Write the archive of ``package`` to ``destination``."""
        pass

    def get_specific_package(self, identifier: PackageIdentifier) -> Package | None:
        return select_package(identifier, self.list_versions(identifier.id))

    def get_updates(
        self,
        installed: Iterable[PackageIdentifier],
        include_prerelease: bool = False,
        include_all_versions: bool = False,
        frameworks: list[str] | None = None,
        constraints: dict[str, str] | None = None,
    ) -> list[Package]:
        """Newer versions of the installed packages.

        ``constraints`` maps package ids to version ranges that updates must
        stay within. Target frameworks are accepted for protocol parity; the
        framework choice happens at install time.
        """
        constraints = {k.lower(): v for k, v in (constraints or {}).items()}
        updates: list[Package] = []

        for current in installed:
            current_version = current.parsed_version
            allowed = VersionRange.parse(constraints.get(current.key))
            newer = [
                candidate
                for candidate in self.list_versions(current.id)
                if candidate.key == current.key
                and (current_version is None or (candidate.parsed_version or current_version) > current_version)
                and (include_prerelease or not candidate.is_prerelease)
                and allowed.contains(candidate.version)
            ]
            if not newer:
                continue
            newer.sort(key=_version_key)
            if include_all_versions:
                updates.extend(newer)
            else:
                updates.append(newer[-1])

        return updates

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, path={self.path!r})"


__all__ = ["PackageSource", "is_local_path", "select_package"]
