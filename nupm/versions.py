"""Version parsing, precedence and range matching.

Versions follow NuGet conventions: up to four numeric release parts, an
optional dot-separated pre-release label after ``-`` and optional build
metadata after ``+``. The numeric release part is compared with
``packaging.version`` (so ``1.0`` and ``1.0.0`` are equal); pre-release
labels use SemVer 2 precedence and compare case-insensitively.

Ranges use the NuGet interval notation::

    1.0          exactly 1.0 (the singleton range)
    [1.0]        exactly 1.0
    [1.0,)       1.0 or newer
    (1.0,)       newer than 1.0
    (,2.0]       2.0 or older
    [1.0,2.0)    at least 1.0, below 2.0

An empty or missing range (and ``*``) matches every version.
"""

import functools
import re

from packaging import version as pkg_version

from .errors import InvalidVersionError

_VERSION_PATTERN = re.compile(
    r"^\s*v?(?P<release>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<prerelease>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<metadata>[0-9A-Za-z\-.]+))?\s*$"
)

ANY_VERSION = "*"


@functools.total_ordering
class NuGetVersion:
    """A parsed, comparable package version."""

    __slots__ = ("original", "release", "prerelease", "metadata")

    def __init__(self, text: str) -> None:
        match = _VERSION_PATTERN.match(text or "")
        if not match:
            raise InvalidVersionError(f"Invalid version: '{text}'")

        self.original = text.strip()
        self.release = pkg_version.Version(match.group("release"))
        label = match.group("prerelease")
        self.prerelease: tuple[str, ...] = tuple(label.split(".")) if label else ()
        self.metadata = match.group("metadata")

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def normalized(self) -> str:
        """Normalized form: three release parts minimum, no metadata."""
        parts = list(self.release.release)
        while len(parts) < 3:
            parts.append(0)
        if len(parts) == 4 and parts[3] == 0:
            parts = parts[:3]
        text = ".".join(str(p) for p in parts)
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text

    def _key(self) -> tuple:
        if not self.prerelease:
            return (self.release, 1, ())
        labels = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part.lower())
            for part in self.prerelease
        )
        return (self.release, 0, labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "NuGetVersion") -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"NuGetVersion('{self.original}')"

    def __str__(self) -> str:
        return self.original


def parse_version(text: str) -> NuGetVersion:
    """Parse a version string, raising InvalidVersionError when malformed."""
    return NuGetVersion(text)


def try_parse_version(text: str | None) -> NuGetVersion | None:
    """Parse a version string, returning None instead of raising."""
    if not text:
        return None
    try:
        return NuGetVersion(text)
    except InvalidVersionError:
        return None


def compare_versions(version1: str, version2: str) -> int:
    """Compare two version strings. Returns -1, 0, or 1.

    Unparseable versions fall back to a case-insensitive string comparison
    so that listings of odd feed data can still be sorted.
    """
    v1 = try_parse_version(version1)
    v2 = try_parse_version(version2)
    if v1 is not None and v2 is not None:
        if v1 < v2:
            return -1
        if v1 > v2:
            return 1
        return 0

    left, right = (version1 or "").lower(), (version2 or "").lower()
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


class VersionRange:
    """An interval of versions in NuGet range notation."""

    def __init__(
        self,
        min_version: NuGetVersion | None = None,
        max_version: NuGetVersion | None = None,
        min_inclusive: bool = True,
        max_inclusive: bool = True,
        is_range: bool = True,
        original: str = "",
    ) -> None:
        self.min_version = min_version
        self.max_version = max_version
        self.min_inclusive = min_inclusive
        self.max_inclusive = max_inclusive
        self.is_range = is_range
        self.original = original

    @classmethod
    def any(cls) -> "VersionRange":
        return cls(original="")

    @classmethod
    def exact(cls, version: NuGetVersion) -> "VersionRange":
        return cls(version, version, True, True, is_range=False, original=str(version))

    @classmethod
    def parse(cls, text: str | None) -> "VersionRange":
        if text is None or not text.strip() or text.strip() == ANY_VERSION:
            return cls.any()

        raw = text.strip()
        if raw[0] not in "[(":
            return cls.exact(parse_version(raw))

        if len(raw) < 3 or raw[-1] not in "])":
            raise InvalidVersionError(f"Invalid version range: '{text}'")

        min_inclusive = raw[0] == "["
        max_inclusive = raw[-1] == "]"
        body = raw[1:-1]

        if "," not in body:
            # [1.0] is the only valid single-value interval.
            if not (min_inclusive and max_inclusive) or not body.strip():
                raise InvalidVersionError(f"Invalid version range: '{text}'")
            version = parse_version(body.strip())
            return cls(version, version, True, True, is_range=True, original=raw)

        lower, _, upper = body.partition(",")
        if "," in upper:
            raise InvalidVersionError(f"Invalid version range: '{text}'")

        min_version = parse_version(lower.strip()) if lower.strip() else None
        max_version = parse_version(upper.strip()) if upper.strip() else None
        if min_version is None and max_version is None:
            raise InvalidVersionError(f"Invalid version range: '{text}'")
        if min_version is not None and max_version is not None:
            if min_version > max_version or (
                min_version == max_version and not (min_inclusive and max_inclusive)
            ):
                raise InvalidVersionError(f"Empty version range: '{text}'")

        return cls(
            min_version,
            max_version,
            min_inclusive if min_version is not None else False,
            max_inclusive if max_version is not None else False,
            is_range=True,
            original=raw,
        )

    @property
    def is_any(self) -> bool:
        return self.min_version is None and self.max_version is None

    def compare(self, version: NuGetVersion) -> int:
        """Locate a version relative to the range.

        Returns -1 when the version lies below the range, 1 when it lies
        above it and 0 when the range contains it.
        """
        if self.min_version is not None:
            if self.min_inclusive:
                if version < self.min_version:
                    return -1
            elif version <= self.min_version:
                return -1

        if self.max_version is not None:
            if self.max_inclusive:
                if version > self.max_version:
                    return 1
            elif version >= self.max_version:
                return 1

        return 0

    def contains(self, version: NuGetVersion | str | None) -> bool:
        if version is None or self.is_any:
            return True
        if isinstance(version, str):
            if not version.strip():
                return True
            version = parse_version(version)
        return self.compare(version) == 0

    def __contains__(self, version: NuGetVersion | str | None) -> bool:
        return self.contains(version)

    def __repr__(self) -> str:
        return f"VersionRange('{self.original}')"

    def __str__(self) -> str:
        return self.original


__all__ = [
    "ANY_VERSION",
    "NuGetVersion",
    "VersionRange",
    "parse_version",
    "try_parse_version",
    "compare_versions",
]
