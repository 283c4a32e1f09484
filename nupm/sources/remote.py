"""Package source speaking the NuGet V3 feed protocol."""

import logging
import urllib.parse
from pathlib import Path
from typing import Any

from ..archive import normalize_target_framework
from ..errors import NetworkError
from ..http import HttpClient
from ..models import DependencyGroup, Package, PackageIdentifier
from .base import PackageSource

SEARCH_RESOURCE = "SearchQueryService"
REGISTRATION_RESOURCE = "RegistrationsBaseUrl"
PACKAGE_BASE_RESOURCE = "PackageBaseAddress/3.0.0"

_logging = logging.getLogger(__name__)


def _authors(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value or "")


def _parse_dependency_groups(entry: dict) -> tuple[DependencyGroup, ...]:
    groups = []
    for group in entry.get("dependencyGroups") or []:
        dependencies = tuple(
            PackageIdentifier(dep["id"], (dep.get("range") or "").strip() or None)
            for dep in group.get("dependencies") or []
            if dep.get("id")
        )
        groups.append(
            DependencyGroup(
                target_framework=normalize_target_framework(group.get("targetFramework")),
                dependencies=dependencies,
            )
        )
    return tuple(groups)


class RemotePackageSource(PackageSource):
    """A feed reached over HTTP through its V3 service index."""

    def __init__(self, name: str, path: str, http: HttpClient, **kwargs) -> None:
        super().__init__(name, path, **kwargs)
        self.http = http
        self._resources: dict[str, str] | None = None

    def _service_index(self) -> dict[str, str]:
        if self._resources is None:
            index = self.http.get_json(self.path, source=self)
            resources: dict[str, str] = {}
            for resource in index.get("resources", []):
                types = resource.get("@type")
                for resource_type in types if isinstance(types, list) else [types]:
                    if resource_type and resource.get("@id"):
                        resources.setdefault(resource_type, resource["@id"])
            self._resources = resources
        return self._resources

    def _resource(self, prefix: str) -> str:
        resources = self._service_index()
        for resource_type in sorted(resources, reverse=True):
            if resource_type.startswith(prefix):
                return resources[resource_type]
        raise NetworkError(f"Source '{self.name}' does not provide {prefix}")

    def _content_url(self, package_id: str, version: str) -> str:
        base = self._resource(PACKAGE_BASE_RESOURCE).rstrip("/")
        lower_id = package_id.lower()
        lower_version = version.lower()
        return f"{base}/{lower_id}/{lower_version}/{lower_id}.{lower_version}.nupkg"

    def search(
        self,
        term: str = "",
        include_all_versions: bool = False,
        include_prerelease: bool = False,
        count: int = 15,
        skip: int = 0,
    ) -> list[Package]:
        params = {
            "q": term or "",
            "skip": skip,
            "take": count,
            "prerelease": str(include_prerelease).lower(),
            "semVerLevel": "2.0.0",
        }
        data = self.http.get_json(self._resource(SEARCH_RESOURCE), source=self, params=params)

        packages: list[Package] = []
        for item in data.get("data", []):
            common = {
                "title": item.get("title") or "",
                "description": item.get("description") or "",
                "authors": _authors(item.get("authors")),
                "source": self,
            }
            if include_all_versions and item.get("versions"):
                for entry in item["versions"]:
                    packages.append(Package(id=item["id"], version=entry["version"], **common))
            else:
                packages.append(Package(id=item["id"], version=item["version"], **common))
        return packages

    def _registration_leaves(self, package_id: str) -> list[dict]:
        base = self._resource(REGISTRATION_RESOURCE)
        if not base.endswith("/"):
            base += "/"
        url = f"{base}{urllib.parse.quote(package_id.lower(), safe='')}/index.json"
        try:
            index = self.http.get_json(url, source=self)
        except NetworkError as e:
            _logging.debug(f"No registration for {package_id} on '{self.name}': {e}")
            return []

        leaves: list[dict] = []
        for page in index.get("items", []):
            items = page.get("items")
            if items is None and page.get("@id"):
                items = self.http.get_json(page["@id"], source=self).get("items", [])
            leaves.extend(items or [])
        return leaves

    def list_versions(self, package_id: str) -> list[Package]:
        packages = []
        for leaf in self._registration_leaves(package_id):
            entry = leaf.get("catalogEntry") or {}
            if not entry.get("version") or entry.get("listed") is False:
                continue
            packages.append(
                Package(
                    id=entry.get("id") or package_id,
                    version=entry["version"],
                    title=entry.get("title") or "",
                    description=entry.get("description") or "",
                    authors=_authors(entry.get("authors")),
                    dependencies=_parse_dependency_groups(entry),
                    source=self,
                    download_url=leaf.get("packageContent"),
                )
            )
        return packages

    def download(self, package: Package, destination: Path) -> Path:
        url = package.download_url or self._content_url(package.id, package.version)
        return self.http.download(url, destination, source=self)


__all__ = ["RemotePackageSource"]
