"""Target framework selection.

Target framework monikers (TFMs) are opaque strings. The best one for the
active runtime profile is found with an explicit preference ladder: an
ordered list of framework groups, each an ordered list of acceptable TFMs.
A candidate's priority is ``group_index * 1000 + index_in_group``; the
lowest priority wins and candidates that appear in no group are never
selected.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from .models import DependencyGroup, Package

_logging = logging.getLogger(__name__)

UNITY_FRAMEWORKS = ("unity",)
NET_STANDARD_FRAMEWORKS = (
    "netstandard20",
    "netstandard16",
    "netstandard15",
    "netstandard14",
    "netstandard13",
    "netstandard12",
    "netstandard11",
    "netstandard10",
)
NET4_UNITY2018_FRAMEWORKS = ("net472", "net471", "net47")
NET4_UNITY2017_FRAMEWORKS = (
    "net462",
    "net461",
    "net46",
    "net452",
    "net451",
    "net45",
    "net403",
    "net40",
    "net4",
)
NET3_FRAMEWORKS = (
    "net35-unity full v3.5",
    "net35-unity subset v3.5",
    "net35",
    "net20",
    "net11",
)
NET4_UNITY2021_FRAMEWORKS = ("net48",)
NET_STANDARD_UNITY2021_FRAMEWORKS = ("netstandard21",)
DEFAULT_FRAMEWORKS = ("",)

# Library folders kept together when any one of them is the best match.
LEGACY_COMPATIBILITY_FAMILY = (
    "unity",
    "net35-unity full v3.5",
    "net35-unity subset v3.5",
)

_UNMATCHED = None
_HOST_VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)\.(\d+)([fpba])(\d+)")


class RuntimeProfile(Enum):
    """Scripting runtime the host project compiles against."""

    STANDARD = "standard"
    FRAMEWORK = "framework"
    LEGACY = "legacy"

    @classmethod
    def parse(cls, value: "str | RuntimeProfile") -> "RuntimeProfile":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown runtime profile '{value}'. "
                f"Expected one of: {', '.join(p.value for p in cls)}"
            ) from None


@dataclass(frozen=True, order=True)
class HostVersion:
    """Host application version such as ``2021.3.5f1``."""

    major: int
    minor: int = 0
    revision: int = 0
    release: str = "f"
    build: int = 0

    @classmethod
    def parse(cls, text: str) -> "HostVersion":
        match = _HOST_VERSION_PATTERN.search(text or "")
        if not match:
            raise ValueError(f"Invalid host version: '{text}'")
        return cls(
            major=int(match.group(1)),
            minor=int(match.group(2)),
            revision=int(match.group(3)),
            release=match.group(4),
            build=int(match.group(5)),
        )

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.revision}{self.release}{self.build}"


UNITY_2021_2 = HostVersion(2021, 2, 0, "f", 0)


class FrameworkResolver:
    """Ranks candidate TFMs for one runtime profile and host version.

    Without a host version every version-gated group is offered.
    """

    def __init__(
        self,
        profile: RuntimeProfile | str = RuntimeProfile.STANDARD,
        host_version: HostVersion | str | None = None,
    ) -> None:
        self.profile = RuntimeProfile.parse(profile)
        if isinstance(host_version, str):
            host_version = HostVersion.parse(host_version)
        self.host_version = host_version

    def _at_least(self, version: HostVersion) -> bool:
        return self.host_version is None or self.host_version >= version

    def _major_at_least(self, major: int) -> bool:
        return self.host_version is None or self.host_version.major >= major

    def framework_groups(self) -> list[Sequence[str]]:
        groups: list[Sequence[str]] = [UNITY_FRAMEWORKS]

        if self.profile is RuntimeProfile.STANDARD:
            if self._at_least(UNITY_2021_2):
                groups.append(NET_STANDARD_UNITY2021_FRAMEWORKS)
            groups.append(NET_STANDARD_FRAMEWORKS)
        elif self.profile is RuntimeProfile.FRAMEWORK:
            if self._at_least(UNITY_2021_2):
                groups.append(NET4_UNITY2021_FRAMEWORKS)
            if self._major_at_least(2018):
                groups.append(NET4_UNITY2018_FRAMEWORKS)
            if self._major_at_least(2017):
                groups.append(NET4_UNITY2017_FRAMEWORKS)
            groups.append(NET3_FRAMEWORKS)
            groups.append(NET_STANDARD_FRAMEWORKS)
            if self._at_least(UNITY_2021_2):
                groups.append(NET_STANDARD_UNITY2021_FRAMEWORKS)
        else:
            groups.append(NET3_FRAMEWORKS)

        groups.append(DEFAULT_FRAMEWORKS)
        return groups

    def priority(self, tfm: str | None) -> int | None:
        """Return the ladder priority of a TFM, or None when it is unsupported."""
        tfm = tfm or ""
        stripped = tfm.replace(".", "").lower()
        lowered = tfm.lower()
        for group_index, group in enumerate(self.framework_groups()):
            for index, entry in enumerate(group):
                if entry.lower() == lowered or entry.lower() == stripped:
                    return group_index * 1000 + index
        return _UNMATCHED

    def best_target_framework(self, candidates: Iterable[str | None]) -> str | None:
        """Select the best supported TFM among ``candidates``.

        Candidates sharing a priority keep their input order.
        """
        ranked = []
        for tfm in candidates:
            priority = self.priority(tfm)
            if priority is not _UNMATCHED:
                ranked.append((priority, tfm or ""))

        ranked.sort(key=lambda item: item[0])
        best = ranked[0][1] if ranked else None
        _logging.debug(f"Selecting {best!r} as the best target framework for {self.profile.value}")
        return best

    def best_dependency_group(self, package: Package) -> DependencyGroup:
        """Dependency group of ``package`` matching the best TFM.

        An empty group is returned when nothing matches.
        """
        best = self.best_target_framework(group.target_framework for group in package.dependencies)
        if best is None:
            return DependencyGroup()
        for group in package.dependencies:
            if group.target_framework.lower() == best.lower():
                return group
        return DependencyGroup()


def frameworks_equal(tfm1: str, tfm2: str) -> bool:
    return (tfm1 or "").lower() == (tfm2 or "").lower()


__all__ = [
    "LEGACY_COMPATIBILITY_FAMILY",
    "RuntimeProfile",
    "HostVersion",
    "FrameworkResolver",
    "frameworks_equal",
]
