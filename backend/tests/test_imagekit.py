"""Tests for the ImageKit REST client.

Requests are served by ``httpx.MockTransport`` so nothing leaves the process.
"""
import base64
import json
from typing import Callable, List

import httpx
import pytest

from app.imagekit import (
    ImageKitAuthError,
    ImageKitError,
    ImageKitNetworkError,
    ImageKitProvider,
    ImageKitResponseError,
)

UPLOAD_RESPONSE = {
    "fileId": "598821f949c0a938d57563bd",
    "name": "1718000000000-notes.txt",
    "url": "https://ik.imagekit.io/demo/filesync/room1/1718000000000-notes.txt",
    "size": 12,
    "filePath": "/filesync/room1/1718000000000-notes.txt",
}


def _provider(handler: Callable[[httpx.Request], httpx.Response]) -> ImageKitProvider:
    return ImageKitProvider(
        private_key="private_test",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _recording(response: httpx.Response, seen: List[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        seen.append(request)
        return response
    return handler


class TestImageKitUpload:
    def test_posts_multipart_to_upload_endpoint(self):
        seen: List[httpx.Request] = []
        p = _provider(_recording(httpx.Response(200, json=UPLOAD_RESPONSE), seen))

        result = p.upload(b"hello world!", file_name="room1/1718000000000-notes.txt", folder="filesync")

        assert result == UPLOAD_RESPONSE
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://upload.imagekit.io/api/v1/files/upload"
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.content
        assert b'name="fileName"' in body
        assert b"room1/1718000000000-notes.txt" in body
        assert b'name="folder"' in body
        assert b"filesync" in body
        assert b'name="useUniqueFileName"\r\n\r\nfalse' in body
        assert b'name="overwriteFile"\r\n\r\nfalse' in body
        assert b"hello world!" in body

    def test_uses_private_key_basic_auth(self):
        seen: List[httpx.Request] = []
        p = _provider(_recording(httpx.Response(200, json=UPLOAD_RESPONSE), seen))

        p.upload(b"x", file_name="k", folder="filesync")

        expected = base64.b64encode(b"private_test:").decode()
        assert seen[0].headers["authorization"] == f"Basic {expected}"

    def test_overwrite_flag_forwarded(self):
        seen: List[httpx.Request] = []
        p = _provider(_recording(httpx.Response(200, json=UPLOAD_RESPONSE), seen))

        p.upload(b"x", file_name="k", folder="filesync", overwrite_file=True)

        assert b'name="overwriteFile"\r\n\r\ntrue' in seen[0].content

    def test_non_json_body_is_malformed(self):
        p = _provider(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        with pytest.raises(ImageKitResponseError) as exc_info:
            p.upload(b"x", file_name="k", folder="filesync")
        assert exc_info.value.kind == "malformed"

    def test_json_array_body_is_malformed(self):
        p = _provider(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(ImageKitResponseError, match="JSON object"):
            p.upload(b"x", file_name="k", folder="filesync")


class TestImageKitErrors:
    def test_401_raises_auth_error_with_message(self):
        body = {"message": "Your account cannot be authenticated.", "help": "For support..."}
        p = _provider(lambda request: httpx.Response(401, json=body))

        with pytest.raises(ImageKitAuthError) as exc_info:
            p.upload(b"x", file_name="k", folder="filesync")

        assert exc_info.value.message == "Your account cannot be authenticated."
        assert exc_info.value.status_code == 401
        assert exc_info.value.kind == "auth"

    def test_other_error_status_is_upstream(self):
        body = {"message": "The requested file does not exist."}
        p = _provider(lambda request: httpx.Response(404, json=body))

        with pytest.raises(ImageKitError) as exc_info:
            p.delete("missing")

        assert not isinstance(exc_info.value, ImageKitAuthError)
        assert exc_info.value.kind == "upstream"
        assert str(exc_info.value) == "The requested file does not exist."

    def test_error_without_json_body_uses_text(self):
        p = _provider(lambda request: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(ImageKitError, match="Bad Gateway"):
            p.get_details("abc")

    def test_empty_error_body_uses_status(self):
        p = _provider(lambda request: httpx.Response(500))
        with pytest.raises(ImageKitError, match="HTTP 500"):
            p.get_details("abc")

    def test_transport_error_is_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        p = _provider(handler)
        with pytest.raises(ImageKitNetworkError, match="connection refused") as exc_info:
            p.get_details("abc")
        assert exc_info.value.kind == "network"


class TestImageKitDeleteAndDetails:
    def test_delete_sends_delete(self):
        seen: List[httpx.Request] = []
        p = _provider(_recording(httpx.Response(204), seen))

        assert p.delete("598821f949c0a938d57563bd") is None
        assert seen[0].method == "DELETE"
        assert str(seen[0].url) == "https://api.imagekit.io/v1/files/598821f949c0a938d57563bd"

    def test_details_returns_metadata(self):
        details = {"fileId": "abc", "name": "notes.txt", "tags": None, "isPrivateFile": False}
        seen: List[httpx.Request] = []
        p = _provider(_recording(httpx.Response(200, content=json.dumps(details)), seen))

        assert p.get_details("abc") == details
        assert seen[0].method == "GET"
        assert str(seen[0].url) == "https://api.imagekit.io/v1/files/abc/details"

    def test_custom_api_url(self):
        seen: List[httpx.Request] = []
        p = ImageKitProvider(
            private_key="sk",
            api_url="https://imagekit.internal/v1/files/",
            client=httpx.Client(transport=httpx.MockTransport(_recording(httpx.Response(204), seen))),
        )
        p.delete("abc")
        assert str(seen[0].url) == "https://imagekit.internal/v1/files/abc"

    def test_name(self):
        assert _provider(lambda request: httpx.Response(204)).name == "ImageKit"


class TestImageKitClientLifecycle:
    def test_client_built_at_construction(self):
        p = ImageKitProvider(private_key="sk", timeout_seconds=3.0)
        assert isinstance(p._client, httpx.Client)
        assert p._client.timeout == httpx.Timeout(3.0)
        p.close()

    def test_requests_reuse_one_client(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(204)))
        p = ImageKitProvider(private_key="sk", client=client)
        p.delete("abc")
        p.delete("def")
        assert p._client is client

    def test_close_closes_http_client(self):
        p = _provider(lambda request: httpx.Response(204))
        assert not p._client.is_closed
        p.close()
        assert p._client.is_closed
