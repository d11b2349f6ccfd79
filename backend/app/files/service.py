"""File relay service for FileSync.

Validates upload/delete/lookup requests and forwards them to the configured
StorageProvider.  Provider exceptions never escape this layer: every call
returns a ``ProviderCallResult`` the router can branch on.

Uploaded files are stored at the provider as:
    {folder}/{roomCode}/{timestampMillis}-{originalName}
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from app.imagekit.errors import ImageKitError
from app.imagekit.provider import StorageProvider

from .schemas import FileInfo

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "filesync"
DEFAULT_MIME_TYPE = "application/octet-stream"

REQUIRED_FIELDS_MESSAGE = "Missing required fields: roomCode, senderId, senderName"


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_service: Optional["FileRelayService"] = None


def get_file_service() -> Optional["FileRelayService"]:
    """Return the global FileRelayService, or None if not yet initialised."""
    return _service


def set_file_service(service: Optional["FileRelayService"]) -> None:
    """Set (or replace) the global FileRelayService instance."""
    global _service
    _service = service


# ---------------------------------------------------------------------------
# Request / result types
# ---------------------------------------------------------------------------

class ClientInputError(ValueError):
    """Raised when a request is rejected before any provider call."""


@dataclass(frozen=True)
class UploadForm:
    """A decoded multipart upload.

    Attributes:
        content: Raw file bytes, or None when no ``file`` part was sent.
        original_name: Filename from the part's Content-Disposition.
        mime_type: Content-Type of the file part.
        room_code: Namespace grouping uploads (e.g. a chat room code).
        sender_id: ID of the uploading user.
        sender_name: Display name of the uploading user.
    """
    content: Optional[bytes]
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    room_code: Optional[str] = None
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None


@dataclass
class ProviderCallResult:
    """Result of a provider call.

    Attributes:
        success: Whether the call succeeded.
        data: FileInfo for uploads, the metadata dict for lookups, None for deletes.
        error: Provider error detail if the call failed.
        kind: Failure category: network, auth, upstream or malformed.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    kind: Optional[str] = None

    @classmethod
    def failed(cls, exc: Exception) -> "ProviderCallResult":
        if isinstance(exc, ImageKitError):
            return cls(success=False, error=exc.message, kind=exc.kind)
        return cls(success=False, error=str(exc), kind="upstream")


def build_storage_key(room_code: str, timestamp: int, original_name: str) -> str:
    """Derive the provider file name for an upload."""
    return f"{room_code}/{timestamp}-{original_name}"


def _now_millis() -> int:
    return int(time.time() * 1000)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class FileRelayService:
    """Validates requests and relays them to a StorageProvider.

    Args:
        provider: Concrete storage provider to use.
        folder: Provider folder every upload is placed in.
        overwrite_existing: Whether an upload may replace a file with the same key.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        provider: StorageProvider,
        folder: str = DEFAULT_FOLDER,
        overwrite_existing: bool = False,
        clock: Callable[[], int] = _now_millis,
    ) -> None:
        self._provider = provider
        self._folder = folder
        self._overwrite_existing = overwrite_existing
        self._clock = clock

    @property
    def provider_name(self) -> str:
        return self._provider.name

    def close(self) -> None:
        self._provider.close()

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------

    @staticmethod
    def validate_upload(form: UploadForm) -> None:
        """Raise ClientInputError if the file or any required field is missing."""
        if form.content is None:
            raise ClientInputError("No file provided")
        if _blank(form.room_code) or _blank(form.sender_id) or _blank(form.sender_name):
            raise ClientInputError(REQUIRED_FIELDS_MESSAGE)

    @staticmethod
    def validate_file_id(file_id: Optional[str]) -> str:
        if _blank(file_id):
            raise ClientInputError("File ID is required")
        return file_id

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def upload(self, form: UploadForm) -> ProviderCallResult:
        """Upload a validated file and build its FileInfo.

        Raises:
            ClientInputError: If the file or a required field is missing.
        """
        self.validate_upload(form)

        original_name = form.original_name or "unnamed"
        timestamp = self._clock()
        storage_key = build_storage_key(form.room_code, timestamp, original_name)

        logger.info("Uploading file to %s: %s", self.provider_name, storage_key)
        try:
            response = self._provider.upload(
                form.content,
                file_name=storage_key,
                folder=self._folder,
                use_unique_file_name=False,
                overwrite_file=self._overwrite_existing,
            )
        except Exception as exc:
            logger.exception("%s upload error for %s: %s", self.provider_name, storage_key, exc)
            return ProviderCallResult.failed(exc)

        file_id = response.get("fileId") if isinstance(response, dict) else None
        if not file_id:
            logger.error("Invalid upload response for %s: %r", storage_key, response)
            return ProviderCallResult(
                success=False,
                error="Upload response did not include a fileId",
                kind="malformed",
            )

        info = FileInfo(
            id=file_id,
            name=original_name,
            url=response.get("url"),
            size=len(form.content),
            type=form.mime_type or DEFAULT_MIME_TYPE,
            senderId=form.sender_id,
            senderName=form.sender_name,
            timestamp=timestamp,
            providerFileId=file_id,
        )
        logger.info("File uploaded successfully: %s (%d bytes)", info.id, info.size)
        return ProviderCallResult(success=True, data=info)

    def delete(self, file_id: Optional[str]) -> ProviderCallResult:
        """Delete a file at the provider.  No ownership check is made."""
        file_id = self.validate_file_id(file_id)

        logger.info("Deleting file from %s: %s", self.provider_name, file_id)
        try:
            self._provider.delete(file_id)
        except Exception as exc:
            logger.exception("%s delete error for %s: %s", self.provider_name, file_id, exc)
            return ProviderCallResult.failed(exc)

        logger.info("File deleted successfully: %s", file_id)
        return ProviderCallResult(success=True)

    def get_details(self, file_id: Optional[str]) -> ProviderCallResult:
        """Fetch the provider's metadata for a file, unmodified."""
        file_id = self.validate_file_id(file_id)

        logger.info("Getting file details from %s: %s", self.provider_name, file_id)
        try:
            details = self._provider.get_details(file_id)
        except Exception as exc:
            logger.exception("%s details error for %s: %s", self.provider_name, file_id, exc)
            return ProviderCallResult.failed(exc)

        logger.debug("File details retrieved for %s", file_id)
        return ProviderCallResult(success=True, data=details)
