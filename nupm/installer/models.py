"""Data models for install, clean and restore results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..errors import NupmError
from ..models import PackageIdentifier


class InstallState(Enum):
    """Where a package stands relative to the one requested."""

    ALREADY_IMPORTED_IN_HOST = "already-imported-in-host"
    NOT_INSTALLED = "not-installed"
    INSTALLED_OLDER = "installed-older"
    INSTALLED_NEWER = "installed-newer"
    INSTALLED_EXACT = "installed-exact"


class InstallStatus(Enum):
    INSTALLED = "installed"
    UPDATED = "updated"
    SKIPPED = "skipped"
    NOT_FOUND = "not-found"
    FAILED = "failed"


@dataclass
class RelocationFailure:
    source: Path
    destination: Path
    error: NupmError


@dataclass
class CleanReport:
    """What the post-extraction clean step did to one package directory."""

    package: PackageIdentifier
    removed: list[Path] = field(default_factory=list)
    best_framework: str | None = None
    kept_frameworks: list[str] = field(default_factory=list)
    relocated: list[tuple[Path, Path]] = field(default_factory=list)
    failures: list[RelocationFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


@dataclass
class InstallResult:
    package: PackageIdentifier
    status: InstallStatus
    state: InstallState | None = None
    error: NupmError | None = None
    clean: CleanReport | None = None
    dependencies: list[InstallResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (InstallStatus.INSTALLED, InstallStatus.UPDATED, InstallStatus.SKIPPED)

    @property
    def changed(self) -> bool:
        """True when the filesystem was modified."""
        return self.status in (InstallStatus.INSTALLED, InstallStatus.UPDATED)


@dataclass
class RestoreResult:
    results: list[InstallResult] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    error: NupmError | None = None

    @property
    def failed(self) -> list[InstallResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed


__all__ = [
    "InstallState",
    "InstallStatus",
    "RelocationFailure",
    "CleanReport",
    "InstallResult",
    "RestoreResult",
]
