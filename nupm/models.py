"""Data models for package identities, packages and dependency groups."""

from __future__ import annotations

import dataclasses
import functools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .versions import NuGetVersion, VersionRange, parse_version, try_parse_version

if TYPE_CHECKING:
    from .sources.base import PackageSource


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class PackageIdentifier:
    """A package id plus an exact version or a version range.

    Ids compare case-insensitively. Equality holds only for the same id and
    the same exact version (``1.0`` equals ``1.0.0``); identifiers carrying a
    range are only equal to identifiers with the identical range text.
    Ordering sorts by id, then by version precedence (ranges sort by their
    lower bound).
    """

    id: str
    version: str | None = None

    def __post_init__(self) -> None:
        if not self.id or not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Package id must be a non-empty string")

    @property
    def key(self) -> str:
        return self.id.lower()

    @property
    def has_version_range(self) -> bool:
        return (self.version or "").strip()[:1] in ("[", "(")

    @property
    def version_range(self) -> VersionRange:
        return VersionRange.parse(self.version)

    @property
    def parsed_version(self) -> NuGetVersion | None:
        """The exact version, or the lower bound of a range."""
        if not (self.version or "").strip():
            return None
        if self.has_version_range:
            return self.version_range.min_version
        return try_parse_version(self.version)

    @property
    def is_prerelease(self) -> bool:
        parsed = self.parsed_version
        return parsed is not None and parsed.is_prerelease

    def in_range(self, other: PackageIdentifier | str | None) -> bool:
        """Check whether another package's version satisfies this identifier.

        A missing version on either side always satisfies; an exact
        version only admits itself.
        """
        other_version = other.version if isinstance(other, PackageIdentifier) else other
        if not (self.version or "").strip():
            return True
        if other_version is None or not other_version.strip():
            return True
        return self.version_range.contains(other_version)

    def accepts(self, other: PackageIdentifier) -> bool:
        """Check whether a feed candidate is usable for this request.

        Ranges admit what they contain. A bare version is a minimum: the
        version itself or anything newer is acceptable.
        """
        if self.in_range(other):
            return True
        if self.has_version_range:
            return False
        wanted = self.parsed_version
        found = other.parsed_version
        return wanted is not None and found is not None and found >= wanted

    def compare_version(self, other_version: str | None) -> int:
        """Locate another version relative to this identifier.

        Returns -1 when it is below, 1 when above and 0 when it matches
        (for a range: when the range contains it).
        """
        if not (self.version or "").strip() or not (other_version or "").strip():
            return 0
        return self.version_range.compare(parse_version(other_version))

    def _order_key(self) -> tuple:
        parsed = self.parsed_version
        return (0,) if parsed is None else (1, parsed)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageIdentifier):
            return NotImplemented
        if self.key != other.key:
            return False
        if self.has_version_range or other.has_version_range:
            return (self.version or "").strip() == (other.version or "").strip()
        mine, theirs = try_parse_version(self.version), try_parse_version(other.version)
        if mine is None or theirs is None:
            return (self.version or "") == (other.version or "")
        return mine == theirs

    def __lt__(self, other: PackageIdentifier) -> bool:
        if not isinstance(other, PackageIdentifier):
            return NotImplemented
        if self.key != other.key:
            return self.key < other.key
        return self._order_key() < other._order_key()

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.id} {self.version}" if self.version else self.id


@dataclass(frozen=True)
class DependencyGroup:
    """Dependencies declared for one target framework ("" = any)."""

    target_framework: str = ""
    dependencies: tuple[PackageIdentifier, ...] = ()


@dataclass(frozen=True, eq=False)
class Package(PackageIdentifier):
    """A concrete package version found on a tier (installed, cache, source)."""

    title: str = ""
    description: str = ""
    authors: str = ""
    dependencies: tuple[DependencyGroup, ...] = ()
    source: PackageSource | None = field(default=None, repr=False)
    download_url: str | None = None

    @property
    def identifier(self) -> PackageIdentifier:
        return PackageIdentifier(self.id, self.version)

    @property
    def target_frameworks(self) -> list[str]:
        return [group.target_framework for group in self.dependencies]

    def with_source(self, source: PackageSource | None, download_url: str | None = None) -> Package:
        return dataclasses.replace(
            self, source=source, download_url=download_url or self.download_url
        )


__all__ = [
    "PackageIdentifier",
    "DependencyGroup",
    "Package",
]
