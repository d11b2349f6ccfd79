"""ImageKit storage provider over the ImageKit REST API.

All calls authenticate with HTTP Basic auth: the private key is the user
name and the password is empty.

Endpoints
---------
::

    POST   https://upload.imagekit.io/api/v1/files/upload      (multipart)
    DELETE https://api.imagekit.io/v1/files/{fileId}            -> 204
    GET    https://api.imagekit.io/v1/files/{fileId}/details

Error bodies look like ``{"message": "...", "help": "..."}``; the message is
what ends up in the ``details`` field of our own error responses.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from .errors import (
    ImageKitAuthError,
    ImageKitError,
    ImageKitNetworkError,
    ImageKitResponseError,
)
from .provider import StorageProvider

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"
DEFAULT_API_URL    = "https://api.imagekit.io/v1/files"


class ImageKitProvider(StorageProvider):
    """Storage provider backed by ImageKit.

    The public key and URL endpoint are not needed by the REST calls; the
    returned file URLs already carry the endpoint.

    Args:
        private_key:     ImageKit private key, used for Basic auth.
        upload_url:      Upload API endpoint.
        api_url:         Media management API base URL.
        timeout_seconds: Request timeout.  ``None`` keeps the httpx default.
        client:          Pre-built ``httpx.Client`` (tests pass one with a
                         ``MockTransport``).
    """

    def __init__(
        self,
        private_key: Optional[str],
        upload_url: str = DEFAULT_UPLOAD_URL,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._private_key = private_key
        self._upload_url  = upload_url
        self._api_url     = api_url.rstrip("/")
        if client is None:
            kwargs: dict = {}
            if timeout_seconds is not None:
                kwargs["timeout"] = timeout_seconds
            client = httpx.Client(**kwargs)
        self._client = client

    @property
    def name(self) -> str:
        return "ImageKit"

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _file_url(self, file_id: str, suffix: str = "") -> str:
        return f"{self._api_url}/{quote(file_id, safe='')}{suffix}"

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return resp.text.strip() or f"HTTP {resp.status_code}"

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue a request and translate failures into ImageKitError."""
        try:
            resp = self._client.request(
                method, url, auth=(self._private_key or "", ""), **kwargs
            )
        except httpx.TransportError as exc:
            raise ImageKitNetworkError(f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code in (401, 403):
            raise ImageKitAuthError(self._error_message(resp), resp.status_code)
        if resp.status_code >= 400:
            raise ImageKitError(self._error_message(resp), resp.status_code)
        return resp

    @staticmethod
    def _json_object(resp: httpx.Response) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise ImageKitResponseError(
                f"Expected a JSON body from ImageKit, got: {resp.text[:200]!r}",
                resp.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise ImageKitResponseError(
                f"Expected a JSON object from ImageKit, got {type(data).__name__}",
                resp.status_code,
            )
        return data

    # -----------------------------------------------------------------------
    # StorageProvider implementation
    # -----------------------------------------------------------------------

    def upload(
        self,
        content: bytes,
        file_name: str,
        folder: str,
        use_unique_file_name: bool = False,
        overwrite_file: bool = False,
    ) -> Dict[str, Any]:
        logger.debug(
            "[imagekit] upload file_name=%s folder=%s bytes=%d",
            file_name, folder, len(content),
        )
        resp = self._send(
            "POST",
            self._upload_url,
            data={
                "fileName":          file_name,
                "folder":            folder,
                "useUniqueFileName": "true" if use_unique_file_name else "false",
                "overwriteFile":     "true" if overwrite_file else "false",
            },
            files={"file": (file_name, content)},
        )
        return self._json_object(resp)

    def delete(self, file_id: str) -> None:
        logger.debug("[imagekit] delete file_id=%s", file_id)
        self._send("DELETE", self._file_url(file_id))

    def get_details(self, file_id: str) -> Dict[str, Any]:
        logger.debug("[imagekit] details file_id=%s", file_id)
        resp = self._send("GET", self._file_url(file_id, "/details"))
        return self._json_object(resp)

    def close(self) -> None:
        self._client.close()
