"""Configuration loading and validation.

The configuration lives in a YAML file (``nupm.yaml``) at the root of the
host project. Unknown keys are ignored so older files keep loading.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError
from .paths import get_config_path

AGGREGATE_SOURCE_NAME = "(Aggregate source)"
COMMAND_LINE_SOURCE_PREFIX = "CMD_LINE_SRC_"
DEFAULT_SOURCE_NAME = "nuget.org"
DEFAULT_SOURCE_URL = "https://api.nuget.org/v3/index.json"
DEFAULT_REPOSITORY_PATH = "Assets/Packages"
DEFAULT_CREDENTIAL_PROVIDER_TIMEOUT = 60
DEFAULT_REQUEST_TIMEOUT = 100

RUNTIME_PROFILES = ("standard", "framework", "legacy")

_ENV_REFERENCE = re.compile(r"^%(?P<win>[A-Za-z_][A-Za-z0-9_]*)%$|^\$(?P<posix>[A-Za-z_][A-Za-z0-9_]*)$")
_HOST_VERSION = re.compile(r"\d+\.\d+\.\d+[fpba]\d+")

_logging = logging.getLogger(__name__)


def expand_password(value: str | None) -> str | None:
    """Resolve ``%VAR%`` or ``$VAR`` references against the environment."""
    if not value:
        return value
    match = _ENV_REFERENCE.match(value.strip())
    if not match:
        return value
    name = match.group("win") or match.group("posix")
    return os.environ.get(name, "")


@dataclass
class SourceConfig:
    """One configured package feed."""
    name: str
    path: str
    enabled: bool = True
    username: str | None = None
    password: str | None = None

    def __post_init__(self):
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be a non-empty string")
        if not self.path or not isinstance(self.path, str):
            raise ValueError("path must be a non-empty string")

    @property
    def resolved_password(self) -> str | None:
        return expand_password(self.password)


@dataclass
class Config:
    """Root configuration of a host project."""
    sources: list[SourceConfig] = field(default_factory=list)
    repository_path: str = DEFAULT_REPOSITORY_PATH
    install_from_cache: bool = True
    read_only_package_files: bool = False
    verbose: bool = False
    active_source: str = AGGREGATE_SOURCE_NAME
    runtime_profile: str = "standard"
    host_version: str | None = None
    provided_packages: list[str] = field(default_factory=list)
    credential_provider_timeout: int = DEFAULT_CREDENTIAL_PROVIDER_TIMEOUT
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self):
        if not isinstance(self.sources, list):
            raise ValueError("sources must be a list")
        for i, source in enumerate(self.sources):
            if not isinstance(source, SourceConfig):
                raise ValueError(f"sources[{i}] must be a SourceConfig instance")
        if self.runtime_profile not in RUNTIME_PROFILES:
            raise ValueError(
                f"runtime_profile must be one of {', '.join(RUNTIME_PROFILES)}"
            )

    @property
    def active_sources(self) -> list[SourceConfig]:
        """Enabled sources selected by ``active_source``."""
        enabled = [s for s in self.sources if s.enabled]
        if not self.active_source or self.active_source == AGGREGATE_SOURCE_NAME:
            return enabled
        return [s for s in enabled if s.name == self.active_source]

    def use_command_line_sources(self, paths: list[str]) -> None:
        """Replace configured sources with ones given on the command line."""
        self.sources = [
            SourceConfig(name=f"{COMMAND_LINE_SOURCE_PREFIX}{i}", path=path)
            for i, path in enumerate(paths)
        ]
        self.active_source = AGGREGATE_SOURCE_NAME
        self.install_from_cache = False

    def to_dict(self) -> dict:
        sources = []
        for source in self.sources:
            entry: dict = {"name": source.name, "path": source.path, "enabled": source.enabled}
            if source.username:
                entry["username"] = source.username
            if source.password:
                entry["password"] = source.password
            sources.append(entry)
        data: dict = {
            "repository_path": self.repository_path,
            "install_from_cache": self.install_from_cache,
            "read_only_package_files": self.read_only_package_files,
            "verbose": self.verbose,
            "active_source": self.active_source,
            "runtime_profile": self.runtime_profile,
            "provided_packages": list(self.provided_packages),
            "credential_provider_timeout": self.credential_provider_timeout,
            "request_timeout": self.request_timeout,
            "sources": sources,
        }
        if self.host_version:
            data["host_version"] = self.host_version
        return data


def default_config() -> Config:
    return Config(sources=[SourceConfig(name=DEFAULT_SOURCE_NAME, path=DEFAULT_SOURCE_URL)])


_BOOL_FIELDS = ["install_from_cache", "read_only_package_files", "verbose"]
_INT_FIELDS = ["credential_provider_timeout", "request_timeout"]
_STR_FIELDS = ["repository_path", "active_source", "runtime_profile", "host_version"]


def _validate_source(i: int, source_data) -> SourceConfig:
    if not isinstance(source_data, dict):
        raise ConfigError(f"sources[{i}] must be an object, got {type(source_data).__name__}")

    for field_name in ("name", "path"):
        if field_name not in source_data:
            raise ConfigError(f"sources[{i}].{field_name} is required")
        if not isinstance(source_data[field_name], str):
            raise ConfigError(
                f"sources[{i}].{field_name} must be a string, "
                f"got {type(source_data[field_name]).__name__}"
            )

    enabled = source_data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"sources[{i}].enabled must be a boolean, got {type(enabled).__name__}")

    for field_name in ("username", "password"):
        value = source_data.get(field_name)
        if value is not None and not isinstance(value, str):
            raise ConfigError(
                f"sources[{i}].{field_name} must be a string or null, "
                f"got {type(value).__name__}"
            )

    try:
        return SourceConfig(
            name=source_data["name"],
            path=source_data["path"],
            enabled=enabled,
            username=source_data.get("username"),
            password=source_data.get("password"),
        )
    except ValueError as e:
        raise ConfigError(f"sources[{i}]: {e}")


def validate_config(data: dict) -> Config:
    """Validate and convert a raw dict to a Config dataclass.

    Args:
        data: Raw dict from yaml.safe_load() containing config data

    Returns:
        Config object with validated SourceConfig instances

    Raises:
        ConfigError: If validation fails with clear field path errors
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping, got {type(data).__name__}")

    sources_data = data.get("sources", [])
    if not isinstance(sources_data, list):
        raise ConfigError(f"sources must be a list, got {type(sources_data).__name__}")
    sources = [_validate_source(i, s) for i, s in enumerate(sources_data)]

    kwargs: dict = {}
    for field_name in _BOOL_FIELDS:
        if field_name in data:
            if not isinstance(data[field_name], bool):
                raise ConfigError(
                    f"{field_name} must be a boolean, got {type(data[field_name]).__name__}"
                )
            kwargs[field_name] = data[field_name]

    for field_name in _INT_FIELDS:
        if field_name in data:
            value = data[field_name]
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{field_name} must be a positive integer")
            kwargs[field_name] = value

    for field_name in _STR_FIELDS:
        value = data.get(field_name)
        if value is None:
            continue
        if field_name == "host_version" and isinstance(value, (int, float)):
            value = str(value)
        if not isinstance(value, str):
            raise ConfigError(f"{field_name} must be a string, got {type(value).__name__}")
        kwargs[field_name] = value

    provided = data.get("provided_packages", [])
    if not isinstance(provided, list) or not all(isinstance(p, str) for p in provided):
        raise ConfigError("provided_packages must be a list of strings")
    kwargs["provided_packages"] = list(provided)

    if "runtime_profile" in kwargs:
        kwargs["runtime_profile"] = kwargs["runtime_profile"].lower()
    if "host_version" in kwargs and not _HOST_VERSION.search(kwargs["host_version"]):
        raise ConfigError("host_version must look like 2021.3.5f1")

    try:
        return Config(sources=sources, **kwargs)
    except ValueError as e:
        raise ConfigError(str(e))


def save_config(config: Config, path: Path) -> None:
    """Write the configuration as YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(project_root: Path, config_path: Path | None = None, create: bool = True) -> Config:
    """Load the project configuration, creating a default one when missing.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML or fails
            validation
    """
    path = Path(config_path) if config_path else get_config_path(project_root)

    if not path.exists():
        config = default_config()
        if create:
            save_config(config, path)
            _logging.info(f"Created default configuration at {path}")
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")

    return validate_config(data)


__all__ = [
    "AGGREGATE_SOURCE_NAME",
    "COMMAND_LINE_SOURCE_PREFIX",
    "DEFAULT_SOURCE_NAME",
    "DEFAULT_SOURCE_URL",
    "RUNTIME_PROFILES",
    "Config",
    "SourceConfig",
    "default_config",
    "expand_password",
    "validate_config",
    "load_config",
    "save_config",
]
