"""Package sources: local directories and remote V3 feeds."""

from ..config import SourceConfig
from ..http import HttpClient
from .base import PackageSource, is_local_path, select_package
from .local import LocalPackageSource
from .remote import RemotePackageSource


def create_source(config: SourceConfig, http: HttpClient) -> PackageSource:
    """Build the source implementation matching the configured path."""
    options = {
        "enabled": config.enabled,
        "username": config.username,
        "password": config.password,
    }
    if is_local_path(config.path):
        return LocalPackageSource(config.name, config.path, **options)
    return RemotePackageSource(config.name, config.path, http, **options)


__all__ = [
    "PackageSource",
    "LocalPackageSource",
    "RemotePackageSource",
    "create_source",
    "is_local_path",
    "select_package",
]
