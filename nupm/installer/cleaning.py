"""Post-extraction pruning of an installed package directory."""

import logging
import shutil
from pathlib import Path

from ..archive import install_directory_name
from ..errors import RelocationError
from ..frameworks import LEGACY_COMPATIBILITY_FAMILY, FrameworkResolver
from ..models import PackageIdentifier
from ..paths import HostLayout
from ..registry import delete_directory, delete_file
from .models import CleanReport, RelocationFailure

# Folders NuGet itself would never lay down in a project.
UNUSED_DIRECTORIES = ("_rels", "package", "build", "src", "runtimes", "docs", "ref")
UNUSED_FILES = ("[Content_Types].xml",)

_logging = logging.getLogger(__name__)


def fix_spaces(directory: Path) -> None:
    """Rename entries whose names carry an encoded space (``%20``)."""
    directory = Path(directory)
    if not directory.is_dir():
        return
    # Deepest entries first so parents are renamed after their children.
    for path in sorted(directory.rglob("*%20*"), key=lambda p: len(p.parts), reverse=True):
        target = path.with_name(path.name.replace("%20", " "))
        _logging.debug(f"Renaming {path} to {target}")
        path.rename(target)


def _remove(path: Path, report: CleanReport) -> None:
    if path.is_dir():
        delete_directory(path)
        report.removed.append(path)
    elif path.exists():
        delete_file(path)
        report.removed.append(path)


def _relocate(source: Path, destination: Path, report: CleanReport, copy: bool = False) -> None:
    """Move (or copy) one file or folder, recording a failure instead of raising."""
    try:
        _logging.debug(f"Moving {source} to {destination}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.is_dir():
            delete_directory(destination)
        elif destination.exists():
            delete_file(destination)
        if copy:
            shutil.copy2(source, destination)
        else:
            shutil.move(str(source), str(destination))
        report.relocated.append((source, destination))
    except OSError as e:
        _logging.warning(f"{destination} couldn't be moved. \n{e}")
        report.failures.append(
            RelocationFailure(
                source=source,
                destination=destination,
                error=RelocationError(f"{source} couldn't be moved to {destination}: {e}"),
            )
        )


def prune_library_folders(
    lib_dir: Path,
    frameworks: FrameworkResolver,
    report: CleanReport,
    already_provided: bool = False,
) -> None:
    """Keep only the library variant(s) matching the best target framework."""
    if not lib_dir.is_dir():
        return
    if already_provided:
        _logging.debug(f"{report.package.id} is provided by the host, keeping every library folder")
        return

    variants = sorted(p for p in lib_dir.iterdir() if p.is_dir())
    best = frameworks.best_target_framework(p.name.lower() for p in variants)
    report.best_framework = best
    if best is None:
        _logging.debug(f"No supported library folder in {report.package.id}, removing all of them")
        kept = set()
    elif best in LEGACY_COMPATIBILITY_FAMILY:
        kept = set(LEGACY_COMPATIBILITY_FAMILY)
    else:
        kept = {best}

    for variant in variants:
        if variant.name.lower() in kept:
            _logging.debug(f"Using {variant}")
            report.kept_frameworks.append(variant.name)
        else:
            _remove(variant, report)


def clean_package(
    package: PackageIdentifier,
    layout: HostLayout,
    frameworks: FrameworkResolver,
    already_provided: bool = False,
) -> CleanReport:
    """Strip packaging artifacts and move host-specific content into place.

    Relocation problems are collected on the returned report; they never
    abort the clean step.
    """
    name = install_directory_name(package)
    package_dir = layout.install_dir(name)
    report = CleanReport(package=package)
    _logging.debug(f"Cleaning {package_dir}")

    fix_spaces(package_dir)

    _remove(package_dir / f"{package.id}.nuspec.meta", report)
    _remove(package_dir / f"{package.id}.nuspec", report)
    for file_name in UNUSED_FILES:
        _remove(package_dir / file_name, report)
    for directory in UNUSED_DIRECTORIES:
        _remove(package_dir / directory, report)

    prune_library_folders(package_dir / "lib", frameworks, report, already_provided)

    tools_dir = package_dir / "tools"
    if tools_dir.is_dir():
        _relocate(tools_dir, layout.tools_dir(name) / "tools", report)

    for pdb in sorted(package_dir.rglob("*.pdb")):
        _remove(pdb, report)

    output_dir = package_dir / "output"
    if output_dir.is_dir():
        for item in sorted(p for p in output_dir.iterdir() if p.is_file()):
            _relocate(item, layout.native_output_dir / item.name, report)
        _remove(output_dir, report)

    plugin_dir = package_dir / "unityplugin"
    if plugin_dir.is_dir():
        for item in sorted(p for p in plugin_dir.rglob("*") if p.is_file()):
            target = layout.plugins_dir / item.relative_to(plugin_dir)
            _relocate(item, target, report, copy=True)
        _remove(plugin_dir, report)

    streaming_dir = package_dir / "StreamingAssets"
    if streaming_dir.is_dir():
        layout.streaming_assets_dir.mkdir(parents=True, exist_ok=True)
        for item in sorted(streaming_dir.iterdir()):
            _relocate(item, layout.streaming_assets_dir / item.name, report)
        _remove(streaming_dir, report)
        _remove(package_dir / "StreamingAssets.meta", report)

    return report


__all__ = ["clean_package", "fix_spaces", "prune_library_folders"]
