"""Abstract StorageProvider interface.

The relay service only talks to this interface, so ImageKit can be swapped
for another media store (or a MagicMock in tests) without touching the
handlers.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict


class StorageProvider(ABC):
    """Abstract base class for remote media-storage providers.

    Implementations must be thread-safe: FastAPI runs the sync route
    functions that call them from its thread-pool executor.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (used in error messages and logs)."""

    @abstractmethod
    def upload(
        self,
        content: bytes,
        file_name: str,
        folder: str,
        use_unique_file_name: bool = False,
        overwrite_file: bool = False,
    ) -> Dict[str, Any]:
        """Store ``content`` under ``folder/file_name``.

        Returns:
            The provider's raw response; ImageKit includes ``fileId`` and ``url``.

        Raises:
            ImageKitError: On provider error (network, auth, quota, …).
        """

    @abstractmethod
    def delete(self, file_id: str) -> None:
        """Delete a stored file by its provider-assigned id."""

    @abstractmethod
    def get_details(self, file_id: str) -> Dict[str, Any]:
        """Return the provider's metadata object for a stored file."""

    def close(self) -> None:
        """Release network resources.  Default: nothing to release."""
