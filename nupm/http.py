"""Authenticated HTTP access to remote feeds."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests

from .credentials import CredentialBroker
from .errors import AuthenticationFormatError, NetworkError
from .frameworks import RuntimeProfile

if TYPE_CHECKING:
    from .sources.base import PackageSource

DEFAULT_REQUEST_TIMEOUT = 100
CHUNK_SIZE = 8192

AUTH_FORMAT_MESSAGE = "Authentication information is not given in the correct format"
AUTH_FORMAT_HINT = (
    "Authentication failed. This can occur due to a known issue with the legacy "
    "runtime profile. Set runtime_profile to 'framework' or 'standard' in nupm.yaml."
)

HEADERS_JSON = {"Accept": "application/json"}

_logging = logging.getLogger(__name__)


class HttpClient:
    """Issues GET requests with feed credentials attached.

    Credentials come from the source configuration when it carries a
    password, otherwise from the credential broker.
    """

    def __init__(
        self,
        credentials: CredentialBroker | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        profile: RuntimeProfile = RuntimeProfile.STANDARD,
    ) -> None:
        self.credentials = credentials
        self.session = session or requests.Session()
        self.timeout = timeout
        self.profile = profile

    def _auth(self, url: str, source: "PackageSource | None") -> tuple[str, str] | None:
        username = source.username if source else None
        password = source.resolved_password if source else None

        if not password and self.credentials is not None:
            credential = self.credentials.get_credential(url)
            if credential is not None:
                username, password = credential.username, credential.password

        if password is None:
            return None
        return (username or "", password)

    def _check(self, response: requests.Response, url: str) -> None:
        if response.status_code == 400 and AUTH_FORMAT_MESSAGE in (response.text or response.reason or ""):
            if self.profile is RuntimeProfile.LEGACY:
                _logging.error(AUTH_FORMAT_HINT)
                raise AuthenticationFormatError(AUTH_FORMAT_HINT)
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise NetworkError(f"HTTP {response.status_code} for {url}") from e

    def get(self, url: str, source: "PackageSource | None" = None, **kwargs) -> requests.Response:
        _logging.debug(f"HTTP GET {url}")
        try:
            response = self.session.get(
                url, auth=self._auth(url, source), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e
        self._check(response, url)
        return response

    def get_json(
        self, url: str, source: "PackageSource | None" = None, params: dict | None = None
    ) -> Any:
        response = self.get(url, source, params=params, headers=HEADERS_JSON)
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON returned by {url}") from e

    def download(self, url: str, destination: Path, source: "PackageSource | None" = None) -> Path:
        """Stream ``url`` into ``destination``."""
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        _logging.debug(f"Downloading {url} to {destination}")
        response = self.get(url, source, stream=True)
        try:
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as e:
            raise NetworkError(f"Download of {url} failed: {e}") from e
        finally:
            response.close()
        return destination


__all__ = [
    "DEFAULT_REQUEST_TIMEOUT",
    "AUTH_FORMAT_MESSAGE",
    "AUTH_FORMAT_HINT",
    "HttpClient",
]
