"""nupm: a NuGet package manager for host projects."""

import logging

from .config import Config, ConfigError, SourceConfig, load_config, save_config
from .errors import (
    AuthenticationFormatError,
    CircularDependencyError,
    DependencyInstallError,
    ExtractionError,
    InvalidVersionError,
    NetworkError,
    NupmError,
    PackageNotFoundError,
    RelocationError,
    format_error,
    format_field_error,
    format_suggestion,
)
from .models import DependencyGroup, Package, PackageIdentifier
from .session import Session
from .versions import NuGetVersion, VersionRange, compare_versions, parse_version

__version__ = "0.1.0"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False) -> None:
    """Configure the root logger for a CLI invocation."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


__all__ = [
    "__version__",
    "setup_logging",
    "Config",
    "ConfigError",
    "SourceConfig",
    "load_config",
    "save_config",
    "NupmError",
    "InvalidVersionError",
    "PackageNotFoundError",
    "DependencyInstallError",
    "CircularDependencyError",
    "NetworkError",
    "AuthenticationFormatError",
    "ExtractionError",
    "RelocationError",
    "format_error",
    "format_field_error",
    "format_suggestion",
    "PackageIdentifier",
    "Package",
    "DependencyGroup",
    "NuGetVersion",
    "VersionRange",
    "parse_version",
    "compare_versions",
    "Session",
]
