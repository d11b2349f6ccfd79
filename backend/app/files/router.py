"""FastAPI router for the file relay endpoints.

Endpoints:
    POST   /api/upload            - Relay a multipart upload to the provider
    DELETE /api/delete/{file_id}  - Delete a stored file
    GET    /api/file/{file_id}    - Return the provider's metadata for a file

Every failure is returned as ``{"error": "...", "details": "..."}``:
- 400 for missing file, fields or file ID (no provider call is made)
- 413 when the file part exceeds the configured size limit
- 500 when the provider call fails or returns an unusable response
- 503 when the relay service has not been initialised
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from app.config import get_config

from .schemas import DeleteResponse, ErrorResponse, FileInfo
from .service import (
    ClientInputError,
    FileRelayService,
    UploadForm,
    get_file_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["files"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)


def _service_unavailable() -> JSONResponse:
    logger.warning("[files] No file relay service configured")
    return _error(503, "File service not available")


async def read_upload_form(
    file: Optional[UploadFile] = File(None),
    roomCode: Optional[str] = Form(None),
    senderId: Optional[str] = Form(None),
    senderName: Optional[str] = Form(None),
) -> UploadForm:
    """Decode the multipart body into an UploadForm, enforcing the size cap.

    Raises:
        HTTPException 413: If the file part exceeds ``uploads.max_file_size_bytes``.
    """
    content = None
    if file is not None:
        limit = get_config().uploads.max_file_size_bytes
        # The part is already spooled by Starlette; reading one byte past the
        # limit is enough to tell an oversized file without copying all of it.
        content = await file.read(limit + 1)
        if len(content) > limit:
            raise HTTPException(
                status_code=413,
                detail=f"File size exceeds limit of {limit} bytes",
            )

    return UploadForm(
        content=content,
        original_name=file.filename if file is not None else None,
        mime_type=file.content_type if file is not None else None,
        room_code=roomCode,
        sender_id=senderId,
        sender_name=senderName,
    )


@router.post("/upload", response_model=FileInfo, responses=_ERROR_RESPONSES)
def upload_file(form: UploadForm = Depends(read_upload_form)):
    """Upload a file to the storage provider.

    Multipart fields:
        file: The file to upload (max 5MB by default)
        roomCode: Room the file belongs to; used as the key prefix
        senderId: User ID of the uploader
        senderName: Display name of the uploader

    Returns:
        FileInfo with the provider file ID and URL.

    Example::

        POST /api/upload  (file=notes.txt, roomCode=room1, senderId=u1, senderName=Alice)

        200 OK
        {
            "id": "6512f0...", "name": "notes.txt", "url": "https://ik.imagekit.io/...",
            "size": 12, "type": "text/plain", "senderId": "u1", "senderName": "Alice",
            "timestamp": 1718000000000, "providerFileId": "6512f0..."
        }
    """
    service: Optional[FileRelayService] = get_file_service()
    if service is None:
        return _service_unavailable()

    try:
        result = service.upload(form)
    except ClientInputError as e:
        return _error(400, str(e))

    if result.success:
        return result.data

    if result.kind == "malformed":
        return _error(500, f"Invalid response from {service.provider_name} upload", result.error)
    return _error(500, f"Failed to upload file to {service.provider_name}", result.error)


@router.delete("/delete/{file_id}", response_model=DeleteResponse, responses=_ERROR_RESPONSES)
def delete_file(file_id: str):
    """Delete a file from the storage provider.

    The ID is forwarded as-is; ownership is not checked.
    """
    service = get_file_service()
    if service is None:
        return _service_unavailable()

    try:
        result = service.delete(file_id)
    except ClientInputError as e:
        return _error(400, str(e))

    if not result.success:
        return _error(500, "Failed to delete file", result.error)
    return DeleteResponse(message="File deleted successfully")


@router.get("/file/{file_id}", responses=_ERROR_RESPONSES)
def get_file_details(file_id: str):
    """Return the provider's metadata object for a file, unmodified."""
    service = get_file_service()
    if service is None:
        return _service_unavailable()

    try:
        result = service.get_details(file_id)
    except ClientInputError as e:
        return _error(400, str(e))

    if not result.success:
        return _error(500, "Failed to get file details", result.error)
    return result.data


@router.delete("/delete/", include_in_schema=False)
@router.get("/file/", include_in_schema=False)
def missing_file_id():
    """Trailing-slash requests with no ID at all."""
    return _error(400, "File ID is required")
