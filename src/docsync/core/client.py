import logging
import threading
from typing import Any
from urllib.parse import quote

import requests
from pydantic import BaseModel, ValidationError

from ..config import Config
from ..exceptions import AssetError, AuthenticationError, ServerError

logger = logging.getLogger(__name__)


class UploadEntry(BaseModel):
    """One row of a document's ``uploads.json`` manifest."""

    name: str
    hash: str

    model_config = {"frozen": True}


class DocumentServerClient:
    """Blocking HTTP client for the document server endpoints.

    Every request carries ``Authorization: Basic <token>``.  Paths are
    *normalized* document paths (no leading slash, ``""`` for the root).
    """

    def __init__(self, config: Config):
        self.config = config
        self.server_url = config.server_url.rstrip("/")
        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Session of the current thread."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = self._create_session()
            self._thread_local.session = session
            with self._lock:
                self._sessions.append(session)
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["Authorization"] = f"Basic {self.config.auth}"
        session.verify = not self.config.insecure
        return session

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def document_url(self, normalized_path: str, suffix: str = "") -> str:
        """``{server}/{path}/{suffix}``; the root path adds no segment."""
        base = (
            f"{self.server_url}/{normalized_path}"
            if normalized_path
            else self.server_url
        )
        if not suffix:
            return base
        return f"{base}/{suffix}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send a request and log ``METHOD URL STATUS`` at DEBUG."""
        kwargs.setdefault("timeout", self.config.timeout)
        try:
            response = self._get_session().request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.debug("%s %s FAILED", method, url)
            raise ServerError(method, url, None, str(e)) from e
        logger.debug("%s %s %s", method, url, response.status_code)
        return response

    # ------------------------------------------------------------------
    # Settings and manifests
    # ------------------------------------------------------------------

    def get_settings(self, normalized_path: str) -> dict[str, Any] | None:
        """
        Fetch the server-side ``settings.json``; None when it does not exist.
        """
        url = self.document_url(normalized_path, "settings.json")
        response = self._request("GET", url)
        if response.status_code == 404:
            return None
        if not response.ok:
            raise ServerError("GET", url, response.status_code, response.text[:200])
        try:
            data = response.json()
        except ValueError:
            raise ServerError("GET", url, response.status_code, "invalid JSON") from None
        return data if isinstance(data, dict) else None

    def get_upload_manifest(self, normalized_path: str) -> list[UploadEntry]:
        """
        Fetch ``uploads.json``.  A 404 or any failure yields an empty list.
        """
        url = self.document_url(normalized_path, "uploads.json")
        try:
            response = self._request("GET", url)
            if not response.ok:
                return []
            return [UploadEntry.model_validate(item) for item in response.json()]
        except (ServerError, ValueError, TypeError, ValidationError) as e:
            logger.debug("Ignoring unusable upload manifest at %s: %s", url, e)
            return []

    # ------------------------------------------------------------------
    # Archives
    # ------------------------------------------------------------------

    def download_archive(self, normalized_path: str) -> bytes | None:
        """
        Download ``archive.tar.gz``; None when the document does not exist.
        """
        url = self.document_url(normalized_path, "archive.tar.gz")
        response = self._request("GET", url)
        if response.status_code == 404:
            return None
        if response.status_code == 401:
            raise AuthenticationError("Authentication failed")
        if not response.ok:
            raise ServerError("GET", url, response.status_code, response.text[:200])
        return response.content

    def upload_archive(self, normalized_path: str, data: bytes) -> None:
        """
        Replace the document with the gzip'd tar in *data*.
        """
        url = self.document_url(normalized_path, "edit?update=true")
        response = self._request(
            "POST",
            url,
            data=data,
            headers={"Content-Type": "application/gzip"},
        )
        if response.status_code == 401:
            raise AuthenticationError("Authentication failed")
        if not response.ok:
            raise ServerError("POST", url, response.status_code, response.text[:200])

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def download_upload(self, normalized_path: str, name: str) -> bytes:
        url = self.document_url(normalized_path, f"uploads/{quote(name)}")
        try:
            response = self._request("GET", url)
        except ServerError as e:
            raise AssetError(name, str(e)) from e
        if response.status_code == 404:
            raise AssetError(name, f"File not found: {url}")
        if not response.ok:
            raise AssetError(
                name, f"Failed to download {name}: {response.status_code} {response.reason}"
            )
        return response.content

    def upload_file(self, normalized_path: str, name: str, data: bytes) -> None:
        """
        POST one upload as multipart field ``file``.  The server must
        answer ``{"success": true}``.
        """
        url = self.document_url(normalized_path, "edit?upload=true")
        try:
            response = self._request("POST", url, files={"file": (name, data)})
        except ServerError as e:
            raise AssetError(name, str(e)) from e
        if not response.ok:
            raise AssetError(
                name, f"Failed to upload {name}: {response.status_code} {response.reason}"
            )
        try:
            result = response.json()
        except ValueError:
            raise AssetError(name, f"Unexpected server response for {name}") from None
        if not isinstance(result, dict) or not result.get("success"):
            error = result.get("error") if isinstance(result, dict) else None
            raise AssetError(
                name, f"Server did not confirm upload: {error or 'unknown error'}"
            )

    def delete_upload(self, normalized_path: str, name: str) -> None:
        url = self.document_url(normalized_path, f"edit?upload={quote(name, safe='')}")
        try:
            response = self._request("DELETE", url)
        except ServerError as e:
            raise AssetError(name, str(e)) from e
        if not response.ok:
            raise AssetError(
                name, f"Failed to delete {name}: {response.status_code} {response.reason}"
            )
