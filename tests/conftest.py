"""Pytest fixtures and utilities for nupm tests."""

import zipfile
from pathlib import Path
from typing import Callable

import pytest

from nupm.config import Config, SourceConfig
from nupm.execution import ProcessResult
from nupm.hooks import AlreadyProvided, HostHooks
from nupm.session import Session

NUSPEC_NAMESPACE = "http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd"


def build_nuspec(
    package_id: str,
    version: str,
    dependencies: dict[str, list[tuple[str, str | None]]] | None = None,
    title: str = "",
    namespace: str | None = NUSPEC_NAMESPACE,
) -> str:
    """Render a .nuspec document.

    ``dependencies`` maps a targetFramework attribute ("" for a flat list)
    to (id, version) pairs.
    """
    groups = []
    for tfm, deps in (dependencies or {}).items():
        entries = "".join(
            f'<dependency id="{dep_id}"' + (f' version="{dep_version}"' if dep_version else "") + " />"
            for dep_id, dep_version in deps
        )
        if tfm:
            groups.append(f'<group targetFramework="{tfm}">{entries}</group>')
        else:
            groups.append(entries)
    deps_xml = f"<dependencies>{''.join(groups)}</dependencies>" if dependencies else ""
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f"<package{xmlns}><metadata>"
        f"<id>{package_id}</id><version>{version}</version>"
        f"<title>{title}</title><authors>nupm tests</authors>"
        f"<description>{package_id} test package</description>"
        f"{deps_xml}</metadata></package>"
    )


def build_nupkg(
    directory: Path,
    package_id: str,
    version: str,
    files: dict[str, bytes | str] | None = None,
    dependencies: dict[str, list[tuple[str, str | None]]] | None = None,
    title: str = "",
    file_name: str | None = None,
) -> Path:
    """Write a real package archive and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (file_name or f"{package_id}.{version}.nupkg")
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(f"{package_id}.nuspec", build_nuspec(package_id, version, dependencies, title))
        archive.writestr("[Content_Types].xml", "<Types />")
        archive.writestr("_rels/.rels", "<Relationships />")
        archive.writestr("package/services/metadata/core-properties/x.psmdcp", "<x />")
        for name, content in (files or {}).items():
            archive.writestr(name, content)
    return path


@pytest.fixture
def nupkg_factory() -> Callable[..., Path]:
    return build_nupkg


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty host project with an Assets folder."""
    root = tmp_path / "project"
    (root / "Assets").mkdir(parents=True)
    return root


@pytest.fixture
def feed(tmp_path: Path) -> Path:
    """Directory used as a local package source."""
    path = tmp_path / "feed"
    path.mkdir()
    return path


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path: Path, monkeypatch) -> Path:
    """Keep caches and credential providers out of the real home directory."""
    data_dir = tmp_path / "local-data"
    monkeypatch.delenv("LOCALAPPDATA", raising=False)
    monkeypatch.delenv("NUGET_CREDENTIALPROVIDERS_PATH", raising=False)
    monkeypatch.delenv("NUPM_CONFIG", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    return data_dir


class RecordingHooks(HostHooks):
    def __init__(self):
        self.progress: list[tuple[str, str, float]] = []
        self.refreshes = 0

    def report_progress(self, title, info, fraction):
        self.progress.append((title, info, fraction))

    def refresh_assets(self):
        self.refreshes += 1


@pytest.fixture
def make_session(project: Path, feed: Path, cache_dir: Path):
    """Build a session over the local feed, rebuilt from disk."""

    def _make(
        sources: list[SourceConfig] | None = None,
        provided: list[str] | None = None,
        runtime_profile: str = "standard",
        host_version: str | None = None,
        install_from_cache: bool = True,
        read_only: bool = False,
    ) -> Session:
        config = Config(
            sources=sources if sources is not None else [SourceConfig(name="local", path=str(feed))],
            runtime_profile=runtime_profile,
            host_version=host_version,
            provided_packages=list(provided or []),
            install_from_cache=install_from_cache,
            read_only_package_files=read_only,
        )
        session = Session(project, config, hooks=RecordingHooks(), cache_dir=cache_dir)
        session.rebuild()
        return session

    return _make


@pytest.fixture
def recording_hooks() -> RecordingHooks:
    return RecordingHooks()


class FakeRunner:
    """Process runner returning canned results keyed by executable name."""

    def __init__(self, results: dict[str, ProcessResult] | None = None):
        self.results = dict(results or {})
        self.calls: list[list[str]] = []

    def run(self, args, timeout=None):
        self.calls.append(list(args))
        return self.results.get(Path(args[0]).name, ProcessResult(1, "", ""))

    @property
    def invoked(self) -> list[str]:
        return [Path(call[0]).name for call in self.calls]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def always_provided() -> AlreadyProvided:
    return AlreadyProvided()
