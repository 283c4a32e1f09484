"""Restoring a project to the state its dependency manifest describes."""

import logging
import time
from pathlib import Path

from ..archive import ARCHIVE_SUFFIX, read_archive
from ..errors import ExtractionError, NupmError
from ..registry import delete_directory, delete_file
from .installation import Installer
from .models import RestoreResult

_logging = logging.getLogger(__name__)


def check_for_unnecessary_packages(installer: Installer) -> list[Path]:
    """Delete package directories no manifest entry refers to.

    Directories without a readable ``{name}.nupkg`` are left alone.
    """
    repository = installer.layout.repository_path
    if not repository.is_dir():
        return []

    removed = []
    for folder in sorted(p for p in repository.iterdir() if p.is_dir()):
        archive = folder / f"{folder.name}{ARCHIVE_SUFFIX}"
        try:
            package = read_archive(archive)
        except ExtractionError as e:
            _logging.debug(f"Skipping {folder}: {e}")
            continue

        if any(entry == package for entry in installer.manifest):
            continue

        _logging.debug(f"---DELETE unnecessary package {folder}")
        delete_directory(folder)
        delete_file(folder.with_name(f"{folder.name}.meta"))
        if installer.registry.get(package.id) == package:
            installer.registry.remove(package.id)
        removed.append(folder)

    return removed


def restore(installer: Installer) -> RestoreResult:
    """Install every manifest entry that is missing, then drop strays."""
    installer.registry.rebuild()
    result = RestoreResult()
    started = time.monotonic()

    packages = list(installer.manifest)
    step = 1.0 / len(packages) if packages else 1.0
    _logging.debug(f"Restoring {len(packages)} packages.")

    try:
        for i, package in enumerate(packages):
            installer.hooks.report_progress(
                "Restoring NuGet Packages", f"Restoring {package.id} {package.version}", i * step
            )
            if installer.is_installed(package):
                _logging.debug(f"---Already installed: {package.id} {package.version}")
                continue
            _logging.debug(f"---Restoring {package.id} {package.version}")
            result.results.append(installer.install_identifier(package, refresh_assets=False))

        result.removed = check_for_unnecessary_packages(installer)
    except NupmError as e:
        _logging.error(f"Restore failed: {e}")
        result.error = e
    finally:
        elapsed = (time.monotonic() - started) * 1000
        _logging.debug(f"Restoring packages took {elapsed:.0f} ms")
        installer.hooks.refresh_assets()
        installer.hooks.clear_progress()

    return result


__all__ = ["restore", "check_for_unnecessary_packages"]
