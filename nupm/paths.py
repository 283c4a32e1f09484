"""Filesystem locations used by nupm."""

import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "nupm.yaml"
MANIFEST_FILE_NAME = "packages.config"
CREDENTIAL_PROVIDERS_ENV = "NUGET_CREDENTIALPROVIDERS_PATH"


def get_local_data_dir() -> Path:
    """Return the per-user local application data directory.

    Priority:
    1. LOCALAPPDATA (Windows)
    2. XDG_DATA_HOME
    3. ~/.local/share
    """
    for variable in ("LOCALAPPDATA", "XDG_DATA_HOME"):
        value = os.environ.get(variable)
        if value:
            return Path(value)
    return Path.home() / ".local" / "share"


def get_cache_dir() -> Path:
    """Directory holding downloaded package archives."""
    return get_local_data_dir() / "NuGet" / "Cache"


def get_default_credential_provider_dir() -> Path:
    return get_local_data_dir() / "NuGet" / "CredentialProviders"


def get_credential_provider_env_dirs() -> list[Path]:
    """Directories listed (semicolon separated) in NUGET_CREDENTIALPROVIDERS_PATH."""
    raw = os.environ.get(CREDENTIAL_PROVIDERS_ENV, "")
    return [Path(part) for part in raw.split(";") if part.strip()]


def get_credential_provider_install_dir() -> Path:
    """Where downloaded credential provider bundles are unpacked."""
    env_dirs = get_credential_provider_env_dirs()
    if env_dirs:
        return env_dirs[0]
    return get_default_credential_provider_dir()


def get_config_path(project_root: Path) -> Path:
    """Return path to the project config file.

    Priority:
    1. NUPM_CONFIG environment variable (if set)
    2. <project_root>/nupm.yaml
    """
    if "NUPM_CONFIG" in os.environ:
        return Path(os.environ["NUPM_CONFIG"])
    return Path(project_root) / CONFIG_FILE_NAME


@dataclass(frozen=True)
class HostLayout:
    """Directories of the host project packages are installed into."""

    project_root: Path
    repository_path: Path

    @classmethod
    def for_project(cls, project_root: Path, repository_path: str | Path = "Assets/Packages") -> "HostLayout":
        root = Path(project_root).resolve()
        repo = Path(repository_path)
        if not repo.is_absolute():
            repo = root / repo
        return cls(project_root=root, repository_path=repo)

    @property
    def assets_dir(self) -> Path:
        return self.project_root / "Assets"

    @property
    def manifest_path(self) -> Path:
        return self.assets_dir / MANIFEST_FILE_NAME

    @property
    def tools_root(self) -> Path:
        """Project-level folder receiving package ``tools`` directories."""
        return self.project_root / "Packages"

    @property
    def plugins_dir(self) -> Path:
        return self.assets_dir / "Plugins"

    @property
    def streaming_assets_dir(self) -> Path:
        return self.assets_dir / "StreamingAssets"

    @property
    def native_output_dir(self) -> Path:
        return self.project_root

    def install_dir(self, directory_name: str) -> Path:
        return self.repository_path / directory_name

    def tools_dir(self, directory_name: str) -> Path:
        return self.tools_root / directory_name


__all__ = [
    "CONFIG_FILE_NAME",
    "MANIFEST_FILE_NAME",
    "CREDENTIAL_PROVIDERS_ENV",
    "HostLayout",
    "get_local_data_dir",
    "get_cache_dir",
    "get_default_credential_provider_dir",
    "get_credential_provider_env_dirs",
    "get_credential_provider_install_dir",
    "get_config_path",
]
