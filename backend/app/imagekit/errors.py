"""Exception hierarchy for ImageKit API failures.

Every failure carries a ``kind`` so the relay service can fold it into a
``ProviderCallResult`` without inspecting exception types:

- ``network``:   the request never produced an HTTP response
- ``auth``:      ImageKit rejected the credentials (401/403)
- ``upstream``:  any other error status returned by ImageKit
- ``malformed``: a success status with a body we cannot use
"""
from typing import Optional


class ImageKitError(Exception):
    """Base exception for ImageKit API errors."""

    kind = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ImageKitAuthError(ImageKitError):
    """Raised when ImageKit rejects the private key."""

    kind = "auth"


class ImageKitNetworkError(ImageKitError):
    """Raised on connection failures and timeouts."""

    kind = "network"


class ImageKitResponseError(ImageKitError):
    """Raised when ImageKit answers with an unusable body."""

    kind = "malformed"
