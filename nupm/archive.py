"""Package archive (.nupkg) and manifest (.nuspec) handling.

A package archive is a zip file whose root holds a ``{Id}.nuspec`` manifest
next to the package content tree (``lib/``, ``tools/``, ...). The rest of
nupm only relies on three operations from this module: list the entries,
extract them, and read the manifest fields.
"""

import logging
import os
import stat
import zipfile
from pathlib import Path
from xml.etree import ElementTree as ET

from .errors import ExtractionError
from .models import DependencyGroup, Package, PackageIdentifier

ARCHIVE_SUFFIX = ".nupkg"
MANIFEST_SUFFIX = ".nuspec"

_logging = logging.getLogger(__name__)


def archive_file_name(package: PackageIdentifier) -> str:
    """File name of a package archive: ``{Id}.{Version}.nupkg``."""
    return f"{package.id}.{package.version}{ARCHIVE_SUFFIX}"


def install_directory_name(package: PackageIdentifier) -> str:
    """Directory name a package is extracted into: ``{Id}.{Version}``."""
    return f"{package.id}.{package.version}"


def normalize_target_framework(name: str | None) -> str:
    """Convert a manifest framework name to its folder-style moniker.

    >>> normalize_target_framework(".NETStandard2.0")
    'netstandard2.0'
    >>> normalize_target_framework(".NETFramework4.5")
    'net45'
    """
    if not name:
        return ""
    tfm = name.strip().lower()
    tfm = tfm.replace(".netstandard", "netstandard").replace(".netframework", "net")
    if tfm.startswith("netstandard"):
        return tfm
    return tfm.replace(".", "")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _child_text(element: ET.Element, name: str) -> str:
    child = _child(element, name)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _parse_dependency(element: ET.Element) -> PackageIdentifier | None:
    dep_id = (element.get("id") or "").strip()
    if not dep_id:
        return None
    return PackageIdentifier(dep_id, (element.get("version") or "").strip() or None)


def _parse_dependency_groups(metadata: ET.Element) -> tuple[DependencyGroup, ...]:
    dependencies = _child(metadata, "dependencies")
    if dependencies is None:
        return ()

    groups: list[DependencyGroup] = []
    flat: list[PackageIdentifier] = []
    for element in dependencies:
        name = _local_name(element.tag)
        if name == "group":
            deps = [
                dep
                for dep in (_parse_dependency(child) for child in element)
                if dep is not None
            ]
            groups.append(
                DependencyGroup(
                    target_framework=normalize_target_framework(element.get("targetFramework")),
                    dependencies=tuple(deps),
                )
            )
        elif name == "dependency":
            dep = _parse_dependency(element)
            if dep is not None:
                flat.append(dep)

    if flat:
        groups.append(DependencyGroup(target_framework="", dependencies=tuple(flat)))
    return tuple(groups)


def parse_manifest(content: bytes | str) -> Package:
    """Parse the text of a .nuspec manifest into a Package.

    Raises:
        ExtractionError: If the XML is malformed or lacks id/version
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ExtractionError(f"Invalid package manifest: {e}") from e

    metadata = _child(root, "metadata")
    if metadata is None:
        raise ExtractionError("Package manifest has no <metadata> element")

    package_id = _child_text(metadata, "id")
    version = _child_text(metadata, "version")
    if not package_id or not version:
        raise ExtractionError("Package manifest must define both <id> and <version>")

    return Package(
        id=package_id,
        version=version,
        title=_child_text(metadata, "title"),
        description=_child_text(metadata, "description"),
        authors=_child_text(metadata, "authors"),
        dependencies=_parse_dependency_groups(metadata),
    )


def load_manifest_file(path: Path) -> Package:
    """Read a loose .nuspec file from disk."""
    try:
        return parse_manifest(Path(path).read_bytes())
    except OSError as e:
        raise ExtractionError(f"Cannot read package manifest {path}: {e}") from e


def _open_archive(path: Path) -> zipfile.ZipFile:
    if not Path(path).is_file():
        raise ExtractionError(f"Package archive not found: {path}")
    try:
        return zipfile.ZipFile(path)
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Package archive is corrupt: {path}") from e


def list_entries(path: Path) -> list[str]:
    """Return the entry names of a package archive."""
    with _open_archive(path) as archive:
        return archive.namelist()


def read_archive(path: Path) -> Package:
    """Read the manifest embedded at the root of a package archive."""
    with _open_archive(path) as archive:
        manifests = [
            name
            for name in archive.namelist()
            if name.lower().endswith(MANIFEST_SUFFIX) and "/" not in name
        ]
        if not manifests:
            raise ExtractionError(f"No {MANIFEST_SUFFIX} manifest found in {path}")
        package = parse_manifest(archive.read(manifests[0]))

    return package.with_source(None, download_url=str(path))


def _make_read_only(path: Path) -> None:
    mode = stat.S_IMODE(os.stat(path).st_mode)
    os.chmod(path, mode & ~(stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH))


def extract_archive(path: Path, destination: Path, read_only: bool = False) -> list[Path]:
    """Extract every file entry of an archive below ``destination``.

    Directory entries are skipped. Existing files are overwritten.

    Raises:
        ExtractionError: If the archive is missing, corrupt, or an entry
            would escape the destination directory
    """
    destination = Path(destination)
    root = destination.resolve()
    extracted: list[Path] = []

    with _open_archive(path) as archive:
        for entry in archive.infolist():
            if entry.is_dir():
                continue

            target = destination / entry.filename
            resolved = target.resolve()
            if resolved != root and root not in resolved.parents:
                raise ExtractionError(
                    f"Archive entry '{entry.filename}' escapes {destination}"
                )
            if target.is_dir():
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            if target.exists():
                os.chmod(target, stat.S_IMODE(os.stat(target).st_mode) | stat.S_IWUSR)
            try:
                with archive.open(entry) as src, open(target, "wb") as dst:
                    while chunk := src.read(64 * 1024):
                        dst.write(chunk)
            except (zipfile.BadZipFile, OSError) as e:
                raise ExtractionError(f"Failed to extract {entry.filename}: {e}") from e

            if read_only:
                _make_read_only(target)
            extracted.append(target)

    _logging.debug(f"Extracted {len(extracted)} files from {path} to {destination}")
    return extracted


__all__ = [
    "ARCHIVE_SUFFIX",
    "MANIFEST_SUFFIX",
    "archive_file_name",
    "install_directory_name",
    "normalize_target_framework",
    "parse_manifest",
    "load_manifest_file",
    "list_entries",
    "read_archive",
    "extract_archive",
]
