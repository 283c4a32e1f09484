"""Feed credential acquisition through external credential providers.

A credential provider is an executable named ``credentialprovider*.exe``.
It is invoked as ``<provider> -uri "<feed>"`` and answers with its exit
code:

    0  success, stdout holds ``{"Username": ..., "Password": ...}``
    1  provider not applicable to this feed, try the next one
    2  provider applicable but failed, stop looking

Results (including "no credential") are cached per truncated feed URI for
the lifetime of the broker.
"""

import fnmatch
import json
import logging
import os
import re
import stat
import tempfile
import urllib.parse
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

import requests

from .execution import DEFAULT_TIMEOUT, ProcessRunner
from .paths import (
    get_credential_provider_env_dirs,
    get_credential_provider_install_dir,
    get_default_credential_provider_dir,
)

PROVIDER_FILE_PATTERN = "credentialprovider*.exe"
PROVIDER_ENTRY_PATTERN = re.compile(r"^credentialprovider.+\.exe$", re.IGNORECASE)

EXIT_SUCCESS = 0
EXIT_NOT_APPLICABLE = 1
EXIT_FAILURE = 2

_logging = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    username: str
    password: str


@dataclass(frozen=True)
class AuthenticatedFeed:
    """A feed host known to publish a credential provider bundle."""

    account_pattern: re.Pattern
    provider_url_template: str

    def get_account(self, url: str) -> str | None:
        match = self.account_pattern.match(url)
        return match.group("account") if match else None

    def get_provider_url(self, account: str) -> str:
        return self.provider_url_template.format(account=account)


KNOWN_AUTHENTICATED_FEEDS = [
    AuthenticatedFeed(
        re.compile(r"^https://(?P<account>[-a-zA-Z0-9]+)\.pkgs\.visualstudio\.com"),
        "https://{account}.pkgs.visualstudio.com/_apis/public/nuget/client/CredentialProviderBundle.zip",
    ),
    AuthenticatedFeed(
        re.compile(r"^https://pkgs\.dev\.azure\.com/(?P<account>[-a-zA-Z0-9]+)/"),
        "https://pkgs.dev.azure.com/{account}/_apis/public/nuget/client/CredentialProviderBundle.zip",
    ),
]


def truncate_feed_uri(uri: str) -> str:
    """Reduce a request URI to the feed it belongs to.

    Query and fragment are dropped, as is a trailing method segment such
    as ``/FindPackagesById()``.

    >>> truncate_feed_uri("https://host/feed/FindPackagesById()?id='a'")
    'https://host/feed'
    """
    parts = urllib.parse.urlsplit(uri)
    truncated = urllib.parse.urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    if truncated.endswith(")"):
        separator = truncated.rfind("/")
        if separator != -1:
            truncated = truncated[:separator]
    return truncated


def default_provider_dirs(tools_root: Path | None = None) -> list[Path]:
    """Directories searched for provider executables, in search order."""
    dirs = [get_default_credential_provider_dir()]
    dirs.extend(get_credential_provider_env_dirs())
    if tools_root is not None:
        dirs.append(Path(tools_root))
    return dirs


def find_provider_executables(directories: Iterable[Path]) -> list[Path]:
    found: list[Path] = []
    seen: set[str] = set()
    for directory in directories:
        directory = Path(directory)
        if not directory.is_dir():
            continue
        for candidate in sorted(directory.rglob("*")):
            if not candidate.is_file():
                continue
            if not fnmatch.fnmatch(candidate.name.lower(), PROVIDER_FILE_PATTERN):
                continue
            key = str(candidate.resolve())
            if key not in seen:
                seen.add(key)
                found.append(candidate)
    return found


def parse_provider_response(output: str) -> Credential | None:
    """Parse the JSON a provider prints on success."""
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    username = data.get("Username", data.get("username"))
    password = data.get("Password", data.get("password"))
    if password is None:
        return None
    return Credential(username=username or "", password=password)


class CredentialBroker:
    """Resolves and caches credentials for feed URIs."""

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        provider_dirs: Callable[[], list[Path]] | None = None,
        install_dir: Callable[[], Path] | None = None,
        http_session: requests.Session | None = None,
        known_feeds: list[AuthenticatedFeed] | None = None,
    ) -> None:
        self.runner = runner or ProcessRunner(timeout=timeout)
        self.timeout = timeout
        self._provider_dirs = provider_dirs or default_provider_dirs
        self._install_dir = install_dir or get_credential_provider_install_dir
        self._http_session = http_session
        self.known_feeds = KNOWN_AUTHENTICATED_FEEDS if known_feeds is None else known_feeds
        self._cache: dict[str, Credential | None] = {}

    def get_credential(self, feed_uri: str) -> Credential | None:
        """Credential for the feed ``feed_uri`` belongs to, or None for anonymous access."""
        key = truncate_feed_uri(feed_uri)
        if key in self._cache:
            return self._cache[key]

        credential = self._resolve(key, download_if_missing=True)
        self._cache[key] = credential
        return credential

    def clear(self) -> None:
        """Forget every cached credential."""
        self._cache.clear()

    def _resolve(self, feed_uri: str, download_if_missing: bool) -> Credential | None:
        _logging.debug(f"Getting credential for {feed_uri}")

        for provider in find_provider_executables(self._provider_dirs()):
            result = self.runner.run([str(provider), "-uri", feed_uri], timeout=self.timeout)

            if result.exit_code == EXIT_SUCCESS:
                credential = parse_provider_response(result.stdout)
                if credential is not None:
                    return credential
                _logging.warning(f"Credential provider {provider} returned an unreadable response")
            elif result.exit_code == EXIT_NOT_APPLICABLE:
                continue
            elif result.exit_code == EXIT_FAILURE:
                _logging.error(
                    f"Failed to get credentials from {provider}!\n"
                    f"\tOutput\n\t{result.stdout}\n\tErrors\n\t{result.stderr}"
                )
                return None
            else:
                _logging.warning(
                    f"Unrecognized exit code {result.exit_code} from {provider} -uri \"{feed_uri}\""
                )

        if download_if_missing:
            self.download_providers(feed_uri)
            return self._resolve(feed_uri, download_if_missing=False)

        return None

    def download_providers(self, feed_uri: str) -> list[Path]:
        """Fetch provider bundles for known authenticated feeds matching ``feed_uri``."""
        extracted: list[Path] = []
        for feed in self.known_feeds:
            account = feed.get_account(feed_uri)
            if not account:
                continue

            provider_url = feed.get_provider_url(account)
            try:
                extracted.extend(self._download_bundle(provider_url))
            except (requests.RequestException, zipfile.BadZipFile, OSError) as e:
                _logging.error(f"Failed to download credential provider from {provider_url}: {e}")
        return extracted

    def _download_bundle(self, provider_url: str) -> list[Path]:
        destination = Path(self._install_dir())
        extracted: list[Path] = []

        fd, temp_name = tempfile.mkstemp(suffix=".zip")
        os.close(fd)
        temp_path = Path(temp_name)
        try:
            _logging.debug(f"Writing {provider_url} to {temp_path}")
            if self._http_session is not None:
                self._fetch(self._http_session, provider_url, temp_path)
            else:
                with requests.Session() as session:
                    self._fetch(session, provider_url, temp_path)

            with zipfile.ZipFile(temp_path) as bundle:
                for entry in bundle.infolist():
                    if entry.is_dir() or not PROVIDER_ENTRY_PATTERN.match(entry.filename):
                        continue
                    target = destination / entry.filename
                    _logging.debug(f"Extracting {entry.filename} to {destination}")
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with bundle.open(entry) as src, open(target, "wb") as dst:
                        dst.write(src.read())
                    target.chmod(target.stat().st_mode | stat.S_IXUSR)
                    extracted.append(target)
        finally:
            temp_path.unlink(missing_ok=True)

        return extracted

    def _fetch(self, session: requests.Session, url: str, target: Path) -> None:
        with session.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            with open(target, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)


__all__ = [
    "Credential",
    "AuthenticatedFeed",
    "KNOWN_AUTHENTICATED_FEEDS",
    "CredentialBroker",
    "truncate_feed_uri",
    "default_provider_dirs",
    "find_provider_executables",
    "parse_provider_response",
]
