"""Tests for core.client.DocumentServerClient with a mocked requests.Session."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from docsync.core.client import DocumentServerClient, UploadEntry
from docsync.exceptions import AssetError, AuthenticationError, ServerError


def make_response(status=200, json_data=None, content=b"", text="", reason="OK"):
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.ok = status < 400
    response.reason = reason
    response.content = content
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def client(mock_config):
    client = DocumentServerClient(mock_config)
    yield client
    client.close()


@pytest.fixture
def mock_request():
    with patch.object(requests.Session, "request") as mocked:
        yield mocked


class TestSession:
    def test_auth_header_and_verify(self, client, mock_config):
        session = client.session
        assert session.headers["Authorization"] == f"Basic {mock_config.auth}"
        assert session.verify is True

    def test_insecure_disables_verify(self, mock_config):
        mock_config.insecure = True
        client = DocumentServerClient(mock_config)
        assert client.session.verify is False
        client.close()

    def test_session_reused_per_thread(self, client):
        assert client.session is client.session


class TestDocumentUrl:
    def test_nested_path(self, client):
        assert (
            client.document_url("notes/intro", "settings.json")
            == "https://docs.example.com/notes/intro/settings.json"
        )

    def test_root_path_has_no_prefix(self, client):
        assert client.document_url("", "archive.tar.gz") == (
            "https://docs.example.com/archive.tar.gz"
        )


class TestSettingsAndManifest:
    def test_get_settings(self, client, mock_request):
        mock_request.return_value = make_response(json_data={"path": "/notes"})
        assert client.get_settings("notes") == {"path": "/notes"}
        method, url = mock_request.call_args[0]
        assert (method, url) == ("GET", "https://docs.example.com/notes/settings.json")
        assert mock_request.call_args[1]["timeout"] == 60.0

    def test_get_settings_404(self, client, mock_request):
        mock_request.return_value = make_response(status=404)
        assert client.get_settings("notes") is None

    def test_get_settings_server_error(self, client, mock_request):
        mock_request.return_value = make_response(status=500, text="boom")
        with pytest.raises(ServerError, match="500"):
            client.get_settings("notes")

    def test_manifest(self, client, mock_request):
        mock_request.return_value = make_response(
            json_data=[{"name": "a.png", "hash": "sha256:abc"}]
        )
        assert client.get_upload_manifest("notes") == [
            UploadEntry(name="a.png", hash="sha256:abc")
        ]

    @pytest.mark.parametrize(
        "response",
        [
            make_response(status=404),
            make_response(json_data=ValueError("bad json")),
            make_response(json_data=[{"name": "a.png"}]),
        ],
    )
    def test_manifest_failures_are_empty(self, client, mock_request, response):
        mock_request.return_value = response
        assert client.get_upload_manifest("notes") == []

    def test_manifest_network_error_is_empty(self, client, mock_request):
        mock_request.side_effect = requests.ConnectionError("refused")
        assert client.get_upload_manifest("notes") == []


class TestArchives:
    def test_download_archive(self, client, mock_request):
        mock_request.return_value = make_response(content=b"tgz")
        assert client.download_archive("notes") == b"tgz"

    def test_download_archive_404(self, client, mock_request):
        mock_request.return_value = make_response(status=404)
        assert client.download_archive("notes") is None

    def test_upload_archive(self, client, mock_request):
        mock_request.return_value = make_response()
        client.upload_archive("notes", b"tgz")
        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://docs.example.com/notes/edit?update=true")
        assert kwargs["data"] == b"tgz"
        assert kwargs["headers"] == {"Content-Type": "application/gzip"}

    def test_upload_archive_401(self, client, mock_request):
        mock_request.return_value = make_response(status=401)
        with pytest.raises(AuthenticationError, match="Authentication failed"):
            client.upload_archive("notes", b"tgz")

    def test_network_error_is_server_error(self, client, mock_request):
        mock_request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ServerError, match="no response"):
            client.upload_archive("notes", b"tgz")


class TestUploads:
    def test_download_upload_quotes_name(self, client, mock_request):
        mock_request.return_value = make_response(content=b"img")
        assert client.download_upload("notes", "my file.png") == b"img"
        assert mock_request.call_args[0][1] == (
            "https://docs.example.com/notes/uploads/my%20file.png"
        )

    def test_download_upload_404(self, client, mock_request):
        mock_request.return_value = make_response(status=404)
        with pytest.raises(AssetError, match="File not found"):
            client.download_upload("notes", "a.png")

    def test_upload_file_success(self, client, mock_request):
        mock_request.return_value = make_response(json_data={"success": True})
        client.upload_file("notes", "a.png", b"img")
        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://docs.example.com/notes/edit?upload=true")
        assert kwargs["files"] == {"file": ("a.png", b"img")}

    def test_upload_file_not_confirmed(self, client, mock_request):
        mock_request.return_value = make_response(
            json_data={"success": False, "error": "quota"}
        )
        with pytest.raises(AssetError, match="quota") as excinfo:
            client.upload_file("notes", "a.png", b"img")
        assert excinfo.value.name == "a.png"

    def test_delete_upload(self, client, mock_request):
        mock_request.return_value = make_response()
        client.delete_upload("notes", "a b.png")
        assert mock_request.call_args[0] == (
            "DELETE",
            "https://docs.example.com/notes/edit?upload=a%20b.png",
        )

    def test_delete_upload_failure(self, client, mock_request):
        mock_request.return_value = make_response(status=403, reason="Forbidden")
        with pytest.raises(AssetError, match="403 Forbidden"):
            client.delete_upload("notes", "a.png")
