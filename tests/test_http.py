"""Tests for the authenticated HTTP client."""

from unittest.mock import MagicMock

import pytest
import requests

from nupm.credentials import Credential
from nupm.errors import AuthenticationFormatError, NetworkError
from nupm.frameworks import RuntimeProfile
from nupm.http import AUTH_FORMAT_MESSAGE, HttpClient
from nupm.sources import LocalPackageSource

URL = "https://feed.example.com/v3/index.json"


def make_response(status=200, text="", json_data=None, chunks=()):
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.text = text
    response.reason = "Bad Request" if status == 400 else "OK"
    response.json.return_value = json_data
    response.iter_content.return_value = list(chunks)
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status}")
    return response


class TestHttpClient:
    def test_source_password_used(self, monkeypatch):
        monkeypatch.setenv("FEED_TOKEN", "s3cret")
        session = MagicMock()
        session.get.return_value = make_response(json_data={"ok": True})
        broker = MagicMock()
        source = LocalPackageSource("feed", URL, username="me", password="%FEED_TOKEN%")

        data = HttpClient(broker, session).get_json(URL, source=source)

        assert data == {"ok": True}
        assert session.get.call_args.kwargs["auth"] == ("me", "s3cret")
        broker.get_credential.assert_not_called()

    def test_broker_credential_used(self):
        session = MagicMock()
        session.get.return_value = make_response(json_data={})
        broker = MagicMock()
        broker.get_credential.return_value = Credential("vss", "token")

        HttpClient(broker, session).get_json(URL)

        assert session.get.call_args.kwargs["auth"] == ("vss", "token")
        broker.get_credential.assert_called_once_with(URL)

    def test_anonymous(self):
        session = MagicMock()
        session.get.return_value = make_response(json_data={})
        broker = MagicMock()
        broker.get_credential.return_value = None

        HttpClient(broker, session, timeout=5).get_json(URL, params={"q": "x"})

        kwargs = session.get.call_args.kwargs
        assert kwargs["auth"] is None
        assert kwargs["timeout"] == 5
        assert kwargs["params"] == {"q": "x"}

    def test_http_error(self):
        session = MagicMock()
        session.get.return_value = make_response(status=404)

        with pytest.raises(NetworkError, match="HTTP 404"):
            HttpClient(None, session).get(URL)

    def test_connection_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")

        with pytest.raises(NetworkError, match="failed"):
            HttpClient(None, session).get(URL)

    def test_invalid_json(self):
        session = MagicMock()
        response = make_response()
        response.json.side_effect = ValueError("no json")
        session.get.return_value = response

        with pytest.raises(NetworkError, match="Invalid JSON"):
            HttpClient(None, session).get_json(URL)

    def test_auth_format_error_on_legacy_profile(self, caplog):
        session = MagicMock()
        session.get.return_value = make_response(status=400, text=AUTH_FORMAT_MESSAGE)

        with pytest.raises(AuthenticationFormatError, match="runtime_profile"):
            HttpClient(None, session, profile=RuntimeProfile.LEGACY).get(URL)
        assert "legacy" in caplog.text

    def test_auth_format_error_other_profiles(self):
        session = MagicMock()
        session.get.return_value = make_response(status=400, text=AUTH_FORMAT_MESSAGE)

        with pytest.raises(NetworkError) as exc_info:
            HttpClient(None, session, profile=RuntimeProfile.STANDARD).get(URL)
        assert not isinstance(exc_info.value, AuthenticationFormatError)

    def test_download(self, tmp_path):
        session = MagicMock()
        response = make_response(chunks=[b"abc", b"", b"def"])
        session.get.return_value = response
        destination = tmp_path / "cache" / "Foo.1.0.0.nupkg"

        HttpClient(None, session).download(URL, destination)

        assert destination.read_bytes() == b"abcdef"
        assert session.get.call_args.kwargs["stream"] is True
        response.close.assert_called_once()
