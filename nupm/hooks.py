"""Interfaces the host environment supplies to the installer."""

import logging
from typing import Iterable

import click

from .models import PackageIdentifier

_logging = logging.getLogger(__name__)


class HostHooks:
    """Progress reporting and asset refresh notifications. No-ops by default."""

    def report_progress(self, title: str, info: str, fraction: float) -> None:
        pass

    def clear_progress(self) -> None:
        pass

    def refresh_assets(self) -> None:
        pass


class ClickHooks(HostHooks):
    """Reports progress on the terminal."""

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet
        self.refresh_count = 0

    def report_progress(self, title: str, info: str, fraction: float) -> None:
        if not self.quiet:
            click.echo(f"[{fraction:4.0%}] {title}: {info}")

    def refresh_assets(self) -> None:
        self.refresh_count += 1
        _logging.debug("Host assets refresh requested")


class AlreadyProvided:
    """Case-insensitive set of package ids the host already ships."""

    def __init__(self, package_ids: Iterable[str] = ()) -> None:
        self._ids = {package_id.lower() for package_id in package_ids}

    def __call__(self, package: PackageIdentifier | str) -> bool:
        package_id = package if isinstance(package, str) else package.id
        provided = package_id.lower() in self._ids
        if provided:
            _logging.debug(f"Package '{package_id}' is already imported in the host")
        return provided

    def add(self, package_id: str) -> None:
        self._ids.add(package_id.lower())


__all__ = ["HostHooks", "ClickHooks", "AlreadyProvided"]
