"""Install, update and uninstall of packages in the host project."""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Callable, Iterable

from ..archive import archive_file_name, extract_archive, install_directory_name
from ..errors import (
    CircularDependencyError,
    DependencyInstallError,
    ExtractionError,
    NupmError,
    PackageNotFoundError,
)
from ..frameworks import FrameworkResolver
from ..hooks import HostHooks
from ..manifest import PackagesManifest
from ..models import Package, PackageIdentifier
from ..paths import HostLayout
from ..registry import InstalledPackageRegistry, delete_directory, delete_file
from ..resolver import PackageResolver
from .cleaning import clean_package
from .models import InstallResult, InstallState, InstallStatus

_logging = logging.getLogger(__name__)


def _never_provided(_package: PackageIdentifier) -> bool:
    return False


class Installer:
    """Drives the install state machine for packages and their dependencies.

    Operations are expected to be serialized by the caller; nothing here is
    safe against a second process working on the same repository.
    """

    def __init__(
        self,
        resolver: PackageResolver,
        registry: InstalledPackageRegistry,
        manifest: PackagesManifest,
        layout: HostLayout,
        frameworks: FrameworkResolver,
        already_provided: Callable[[PackageIdentifier], bool] | None = None,
        hooks: HostHooks | None = None,
        install_from_cache: bool = True,
        read_only_package_files: bool = False,
    ) -> None:
        self.resolver = resolver
        self.registry = registry
        self.manifest = manifest
        self.layout = layout
        self.frameworks = frameworks
        self.already_provided = already_provided or _never_provided
        self.hooks = hooks or HostHooks()
        self.install_from_cache = install_from_cache
        self.read_only_package_files = read_only_package_files

    def evaluate_state(self, package: PackageIdentifier) -> InstallState:
        if self.already_provided(package):
            return InstallState.ALREADY_IMPORTED_IN_HOST
        installed = self.registry.get(package.id)
        if installed is None:
            return InstallState.NOT_INSTALLED
        if installed < package:
            return InstallState.INSTALLED_OLDER
        if installed > package:
            return InstallState.INSTALLED_NEWER
        return InstallState.INSTALLED_EXACT

    def is_installed(self, package: PackageIdentifier) -> bool:
        """True when the host provides the package or a matching version is installed."""
        if self.already_provided(package):
            return True
        installed = self.registry.get(package.id)
        return installed is not None and package.compare_version(installed.version) == 0

    def install_identifier(
        self,
        identifier: PackageIdentifier,
        refresh_assets: bool = True,
        in_flight: list[str] | None = None,
    ) -> InstallResult:
        """Resolve ``identifier`` through the tiers and install the result."""
        if self.already_provided(identifier):
            _logging.debug(f"Package {identifier} is already imported in the host, skipping install.")
            return InstallResult(
                identifier, InstallStatus.SKIPPED, InstallState.ALREADY_IMPORTED_IN_HOST
            )

        found = self.resolver.get_specific_package(identifier)
        if found is None:
            message = f"Could not find {identifier} or greater."
            _logging.error(message)
            return InstallResult(
                identifier, InstallStatus.NOT_FOUND, error=PackageNotFoundError(message)
            )

        return self.install(found, refresh_assets=refresh_assets, in_flight=in_flight)

    def install(
        self,
        package: Package,
        refresh_assets: bool = True,
        in_flight: list[str] | None = None,
    ) -> InstallResult:
        """Install a resolved package and its dependencies.

        ``in_flight`` holds the ids currently being installed further up the
        dependency chain.

        Raises:
            CircularDependencyError: If ``package`` is already being installed
                further up the chain
        """
        in_flight = list(in_flight or [])
        state = self.evaluate_state(package)

        if state is InstallState.ALREADY_IMPORTED_IN_HOST:
            _logging.debug(f"Package {package} is already imported in the host, skipping install.")
            return InstallResult(package, InstallStatus.SKIPPED, state)

        if state is InstallState.INSTALLED_OLDER:
            installed = self.registry.get(package.id)
            _logging.debug(
                f"{installed.id} {installed.version} is installed, but need {package.version} "
                f"or greater. Updating to {package.version}"
            )
            result = self.update(installed, package, refresh_assets=False, in_flight=in_flight)
            result.state = state
            if result.status is InstallStatus.INSTALLED:
                result.status = InstallStatus.UPDATED
            return result

        if state is InstallState.INSTALLED_NEWER:
            installed = self.registry.get(package.id)
            _logging.debug(
                f"{installed.id} {installed.version} is installed. {package.version} or greater "
                f"is needed, so using installed version."
            )
            return InstallResult(package, InstallStatus.SKIPPED, state)

        if state is InstallState.INSTALLED_EXACT:
            _logging.debug(f"Already installed: {package.id} {package.version}")
            return InstallResult(package, InstallStatus.SKIPPED, state)

        if package.key in (package_id.lower() for package_id in in_flight):
            raise CircularDependencyError(package.id, in_flight)

        return self._install_new(package, refresh_assets, in_flight + [package.id])

    def _install_new(self, package: Package, refresh_assets: bool, chain: list[str]) -> InstallResult:
        title = f"Installing {package.id} {package.version}"
        result = InstallResult(package, InstallStatus.FAILED, InstallState.NOT_INSTALLED)
        _logging.debug(f"Installing: {package.id} {package.version}")

        try:
            if refresh_assets:
                self.hooks.report_progress(title, "Installing Dependencies", 0.1)
            result.dependencies = self._install_dependencies(package, chain)

            self.manifest.add(package)
            self.manifest.save()

            if refresh_assets:
                self.hooks.report_progress(title, "Downloading Package", 0.3)
            archive = self._obtain_archive(package)

            if refresh_assets:
                self.hooks.report_progress(title, "Extracting Package", 0.6)
            install_dir = self.layout.install_dir(install_directory_name(package))
            extract_archive(archive, install_dir, read_only=self.read_only_package_files)
            self._copy_archive(archive, install_dir / archive_file_name(package))

            if refresh_assets:
                self.hooks.report_progress(title, "Cleaning Package", 0.9)
            result.clean = clean_package(
                package,
                self.layout,
                self.frameworks,
                already_provided=self.already_provided(package),
            )

            self.registry.add(package)
            result.status = InstallStatus.INSTALLED
        except CircularDependencyError:
            raise
        except NupmError as e:
            _logging.error(f"Unable to install package {package.id} {package.version}\n{e}")
            result.error = e
        except OSError as e:
            _logging.error(f"Unable to install package {package.id} {package.version}\n{e}")
            result.error = ExtractionError(f"{package.id} {package.version}: {e}")
        finally:
            if refresh_assets:
                self.hooks.report_progress(title, "Importing Package", 0.95)
                self.hooks.refresh_assets()
                self.hooks.clear_progress()

        return result

    def _install_dependencies(self, package: Package, chain: list[str]) -> list[InstallResult]:
        group = self.frameworks.best_dependency_group(package)
        _logging.debug(f"Installing dependencies for TargetFramework: {group.target_framework}")

        results = []
        for dependency in group.dependencies:
            _logging.debug(f"Installing Dependency: {dependency.id} {dependency.version}")
            result = self.install_identifier(dependency, refresh_assets=False, in_flight=chain)
            results.append(result)
            if not result.ok:
                raise DependencyInstallError(
                    f"Failed to install dependency: {dependency.id} {dependency.version}."
                )
        return results

    def _obtain_archive(self, package: Package) -> Path:
        """Make sure the package archive is in the cache and return its path."""
        cached = self.resolver.cached_archive_path(package)

        if self.install_from_cache and cached.is_file():
            _logging.debug(f"Cached package found for {package.id} {package.version}")
        elif package.source is not None:
            if package.source.is_local_path:
                _logging.debug(f"Caching local package {package.id} {package.version}")
            else:
                _logging.debug(f"Downloading package {package.id} {package.version}")
            package.source.download(package, cached)
        elif package.download_url and Path(package.download_url).is_file():
            if Path(package.download_url).resolve() != cached.resolve():
                cached.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(package.download_url, cached)
        else:
            raise PackageNotFoundError(f"No source to download {package.id} {package.version} from")

        if not cached.is_file():
            raise ExtractionError(f"File not found: {cached}")
        return cached

    @staticmethod
    def _copy_archive(archive: Path, destination: Path) -> None:
        if destination.exists():
            os.chmod(destination, stat.S_IMODE(os.stat(destination).st_mode) | stat.S_IWUSR)
        shutil.copyfile(archive, destination)

    def uninstall(self, package: PackageIdentifier, refresh_assets: bool = True) -> None:
        """Remove a package from the manifest, the repository and the registry."""
        _logging.debug(f"Uninstalling: {package.id} {package.version}")

        self.manifest.remove(package)
        self.manifest.save()

        name = install_directory_name(package)
        delete_directory(self.layout.install_dir(name))
        delete_file(self.layout.repository_path / f"{name}.meta")
        delete_directory(self.layout.tools_dir(name))

        self.registry.remove(package.id)

        if refresh_assets:
            self.hooks.refresh_assets()

    def uninstall_all(self) -> list[PackageIdentifier]:
        removed = []
        for package in self.registry.packages():
            self.uninstall(package, refresh_assets=False)
            removed.append(package.identifier)
        self.hooks.refresh_assets()
        return removed

    def update(
        self,
        current: PackageIdentifier,
        new: PackageIdentifier,
        refresh_assets: bool = True,
        in_flight: list[str] | None = None,
    ) -> InstallResult:
        """Replace the installed ``current`` with ``new``."""
        _logging.debug(f"Updating {current.id} {current.version} to {new.version}")
        self.uninstall(current, refresh_assets=False)
        result = self.install_identifier(
            PackageIdentifier(new.id, new.version), refresh_assets=refresh_assets, in_flight=in_flight
        )
        if result.status is InstallStatus.INSTALLED:
            result.status = InstallStatus.UPDATED
        return result

    def update_all(
        self, updates: Iterable[Package], installed: Iterable[PackageIdentifier]
    ) -> list[InstallResult]:
        """Install every update in place of the installed version of the same id."""
        updates = list(updates)
        installed = list(installed)
        step = 1.0 / len(updates) if updates else 1.0
        results = []

        try:
            for i, update in enumerate(updates):
                self.hooks.report_progress(
                    f"Updating to {update.id} {update.version}", "Installing All Updates", i * step
                )
                current = next((p for p in installed if p.key == update.key), None)
                if current is None:
                    message = f"Trying to update {update.id} to {update.version}, but no version is installed!"
                    _logging.error(message)
                    results.append(
                        InstallResult(update, InstallStatus.NOT_FOUND, error=PackageNotFoundError(message))
                    )
                    continue
                results.append(self.update(current, update, refresh_assets=False))
        finally:
            self.hooks.refresh_assets()
            self.hooks.clear_progress()

        return results


__all__ = ["Installer"]
