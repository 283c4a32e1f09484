"""The project's dependency manifest (``packages.config``)."""

import logging
import os
import stat
from functools import cmp_to_key
from pathlib import Path
from xml.etree import ElementTree as ET

from .errors import ConfigError
from .models import PackageIdentifier
from .versions import compare_versions

_logging = logging.getLogger(__name__)


class PackagesManifest:
    """Ordered list of the id/version pairs a project depends on."""

    def __init__(self, path: Path, packages: list[PackageIdentifier] | None = None) -> None:
        self.path = Path(path)
        self.packages: list[PackageIdentifier] = list(packages or [])

    @classmethod
    def load(cls, path: Path) -> "PackagesManifest":
        """Read the manifest, creating an empty one when the file is missing.

        Raises:
            ConfigError: If the file is not valid XML
        """
        manifest = cls(path)
        if not manifest.path.exists():
            _logging.info(f"No packages.config file found. Creating default at {manifest.path}")
            manifest.save()
            return manifest

        try:
            root = ET.parse(manifest.path).getroot()
        except ET.ParseError as e:
            raise ConfigError(f"Invalid packages.config {manifest.path}: {e}")

        for i, element in enumerate(root):
            package_id = element.get("id")
            if not package_id:
                raise ConfigError(f"packages[{i}].id is required")
            manifest.packages.append(PackageIdentifier(package_id, element.get("version")))
        return manifest

    def add(self, package: PackageIdentifier) -> None:
        """Add a package, keeping one entry per id (the newer one)."""
        identifier = PackageIdentifier(package.id, package.version)
        existing = self.find(package.id)
        if existing is None:
            self.packages.append(identifier)
        elif existing < identifier:
            _logging.warning(
                f"{existing.id} {existing.version} is already listed in the packages.config file. "
                f"Updating to {identifier.version}"
            )
            self.packages.remove(existing)
            self.packages.append(identifier)
        elif existing > identifier:
            _logging.warning(
                f"Trying to add {identifier.id} {identifier.version} to the packages.config file. "
                f"{existing.version} is already listed, so using that."
            )

    def remove(self, package: PackageIdentifier) -> None:
        """Remove every entry with the same id and version."""
        self.packages = [p for p in self.packages if p != package]

    def find(self, package_id: str) -> PackageIdentifier | None:
        key = package_id.lower()
        return next((p for p in self.packages if p.key == key), None)

    def _sorted(self) -> list[PackageIdentifier]:
        def compare(x: PackageIdentifier, y: PackageIdentifier) -> int:
            if x.id == y.id:
                return compare_versions(x.version or "", y.version or "")
            return -1 if x.id < y.id else 1

        return sorted(self.packages, key=cmp_to_key(compare))

    def save(self) -> None:
        """Write the manifest sorted by id, then version."""
        self.packages = self._sorted()

        root = ET.Element("packages")
        for package in self.packages:
            ET.SubElement(root, "package", {"id": package.id, "version": package.version or ""})
        tree = ET.ElementTree(root)
        ET.indent(tree, space="  ")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            os.chmod(self.path, stat.S_IMODE(os.stat(self.path).st_mode) | stat.S_IWUSR)
        tree.write(self.path, encoding="utf-8", xml_declaration=True)

    def __iter__(self):
        return iter(list(self.packages))

    def __len__(self) -> int:
        return len(self.packages)


__all__ = ["PackagesManifest"]
