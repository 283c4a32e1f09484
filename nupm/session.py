"""Explicit state for one nupm session.

A Session owns everything the resolver and installer share: the
configuration, the source list, the installed-package registry, the
dependency manifest and the credential cache. Nothing is kept in module
globals, so independent sessions (for example in tests) never interfere.
"""

import logging
from pathlib import Path

import requests

from .config import Config, load_config
from .credentials import CredentialBroker, default_provider_dirs
from .execution import ProcessRunner
from .frameworks import FrameworkResolver, RuntimeProfile
from .hooks import AlreadyProvided, HostHooks
from .http import HttpClient
from .installer import Installer, RestoreResult, restore
from .manifest import PackagesManifest
from .paths import HostLayout, get_cache_dir
from .registry import InstalledPackageRegistry
from .resolver import PackageResolver
from .sources import PackageSource, create_source

_logging = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        project_root: Path,
        config: Config,
        hooks: HostHooks | None = None,
        runner: ProcessRunner | None = None,
        http_session: requests.Session | None = None,
        cache_dir: Path | None = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.config = config
        self.hooks = hooks or HostHooks()
        self.layout = HostLayout.for_project(self.project_root, config.repository_path)
        self.cache_dir = Path(cache_dir) if cache_dir else get_cache_dir()

        self.frameworks = FrameworkResolver(
            RuntimeProfile.parse(config.runtime_profile), config.host_version
        )
        self.already_provided = AlreadyProvided(config.provided_packages)

        http_session = http_session or requests.Session()
        self.credentials = CredentialBroker(
            runner=runner or ProcessRunner(timeout=config.credential_provider_timeout),
            timeout=config.credential_provider_timeout,
            provider_dirs=lambda: default_provider_dirs(self.layout.tools_root),
            http_session=http_session,
        )
        self.http = HttpClient(
            credentials=self.credentials,
            session=http_session,
            timeout=config.request_timeout,
            profile=self.frameworks.profile,
        )
        self.sources: list[PackageSource] = [
            create_source(source, self.http) for source in config.active_sources
        ]

        self.registry = InstalledPackageRegistry(self.layout.repository_path)
        self.manifest = PackagesManifest(self.layout.manifest_path)
        self.resolver = PackageResolver(
            self.registry, self.sources, self.cache_dir, config.install_from_cache
        )
        self.installer = Installer(
            resolver=self.resolver,
            registry=self.registry,
            manifest=self.manifest,
            layout=self.layout,
            frameworks=self.frameworks,
            already_provided=self.already_provided,
            hooks=self.hooks,
            install_from_cache=config.install_from_cache,
            read_only_package_files=config.read_only_package_files,
        )

    @classmethod
    def open(
        cls,
        project_root: Path,
        config_path: Path | None = None,
        command_line_sources: list[str] | None = None,
        **kwargs,
    ) -> "Session":
        """Load configuration and manifest, then rebuild the registry from disk."""
        config = load_config(Path(project_root), config_path)
        if command_line_sources:
            config.use_command_line_sources(list(command_line_sources))
        session = cls(project_root, config, **kwargs)
        session.rebuild()
        return session

    def rebuild(self) -> None:
        """Re-read the manifest and rescan installed packages."""
        loaded = PackagesManifest.load(self.layout.manifest_path)
        self.manifest.packages = loaded.packages
        self.registry.rebuild()
        _logging.debug(
            f"Session ready: {len(self.registry)} installed, {len(self.manifest)} in manifest, "
            f"{len(self.sources)} active sources"
        )

    def reset(self) -> None:
        """Drop cached credentials and the in-memory registry."""
        self.credentials.clear()
        self.registry.clear()

    def restore(self) -> RestoreResult:
        return restore(self.installer)


__all__ = ["Session"]
