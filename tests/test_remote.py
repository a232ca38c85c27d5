"""
Tests for the remote service client, with the HTTP session mocked.
"""
import json
from unittest.mock import MagicMock

import pytest
import requests

from pdfdesk.core.errors import RemoteServiceError
from pdfdesk.core.remote import RemoteServiceClient
from pdfdesk.core.security import ProtectionPermissions


def response(ok=True, status_code=200, content=b"", payload=None):
    mock = MagicMock(ok=ok, status_code=status_code, content=content, reason="Error")
    if payload is None:
        mock.json.side_effect = ValueError("no json")
    else:
        mock.json.return_value = payload
    return mock


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session, headers={})


@pytest.fixture
def client(http):
    return RemoteServiceClient("http://pdf.example/api/", timeout=5, session=http)


class TestRemoteServiceClient:

    def test_convert(self, client, http):
        http.post.return_value = response(content=b"DOCX")
        assert client.convert(b"%PDF", "docx") == b"DOCX"

        url = http.post.call_args.args[0]
        kwargs = http.post.call_args.kwargs
        assert url == "http://pdf.example/api/convert-pdf"
        assert kwargs["data"] == {"format": "docx"}
        assert kwargs["files"]["file"][1] == b"%PDF"
        assert kwargs["timeout"] == 5

    def test_convert_rejects_unknown_format(self, client, http):
        with pytest.raises(ValueError):
            client.convert(b"%PDF", "odt")
        http.post.assert_not_called()

    def test_protect_sends_permissions(self, client, http):
        http.post.return_value = response(content=b"%PDF-protected")
        client.protect(b"%PDF", "secret", ProtectionPermissions(printing=False))
        data = http.post.call_args.kwargs["data"]
        assert data["password"] == "secret"
        assert json.loads(data["permissions"]) == {
            "printing": False, "copying": True, "modifying": False,
        }

    def test_unlock(self, client, http):
        http.post.return_value = response(content=b"%PDF-open")
        assert client.unlock(b"%PDF", "pw") == b"%PDF-open"
        assert http.post.call_args.args[0].endswith("/unlock-pdf")

    def test_compare_returns_json(self, client, http):
        http.post.return_value = response(payload={"summary": "identical"})
        assert client.compare(b"1", b"2") == {"summary": "identical"}
        assert set(http.post.call_args.kwargs["files"]) == {"file1", "file2"}

    def test_compare_invalid_json(self, client, http):
        http.post.return_value = response()
        with pytest.raises(RemoteServiceError):
            client.compare(b"1", b"2")

    def test_service_error_message(self, client, http):
        http.post.return_value = response(ok=False, status_code=500,
                                          payload={"error": "Conversion failed"})
        with pytest.raises(RemoteServiceError) as excinfo:
            client.convert(b"%PDF", "xlsx")
        assert excinfo.value.status_code == 500
        assert "Conversion failed" in str(excinfo.value)

    def test_plain_http_error(self, client, http):
        http.post.return_value = response(ok=False, status_code=502)
        with pytest.raises(RemoteServiceError, match="HTTP 502"):
            client.unlock(b"%PDF", "pw")

    def test_unreachable(self, client, http):
        http.post.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(RemoteServiceError, match="unreachable"):
            client.convert(b"%PDF", "pptx")

    def test_api_key_header(self, http):
        RemoteServiceClient("http://x", api_key="k", session=http)
        assert http.headers["Authorization"] == "Bearer k"
