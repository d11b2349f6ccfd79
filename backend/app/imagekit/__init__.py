"""ImageKit media-storage provider.

Provides the StorageProvider abstraction used by the file relay and its
ImageKit implementation over the ImageKit REST API.
"""
from .client import ImageKitProvider
from .errors import (
    ImageKitAuthError,
    ImageKitError,
    ImageKitNetworkError,
    ImageKitResponseError,
)
from .provider import StorageProvider

__all__ = [
    "StorageProvider",
    "ImageKitProvider",
    "ImageKitError",
    "ImageKitAuthError",
    "ImageKitNetworkError",
    "ImageKitResponseError",
]
