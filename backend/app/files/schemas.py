"""Pydantic schemas for the file relay endpoints.

This module defines the data models returned to FileSync clients:
- FileInfo: metadata for one successfully relayed upload
- DeleteResponse: confirmation body for DELETE /api/delete/{fileId}
- ErrorResponse: shape of every 4xx/5xx body this service produces

Field names are camelCase because the browser client consumes them as-is.
"""
from typing import Optional

from pydantic import BaseModel, Field


class FileInfo(BaseModel):
    """Metadata for a file stored at the provider.

    ``size`` is the number of bytes actually received, never a value the
    client claims.  ``timestamp`` is the same millisecond value embedded in
    the storage key.  The caller (the room service) is responsible for
    persisting this record; the relay never stores it.
    """
    id: str = Field(..., description="Provider-assigned file ID")
    name: str = Field(..., description="Original filename")
    url: Optional[str] = Field(None, description="URL the provider serves the file from")
    size: int = Field(..., description="File size in bytes")
    type: str = Field(..., description="MIME type of the uploaded part")
    senderId: str = Field(..., description="User ID of the uploader")
    senderName: str = Field(..., description="Display name of the uploader")
    timestamp: int = Field(..., description="Upload time in epoch milliseconds")
    providerFileId: str = Field(..., description="Provider file ID (same as id)")


class DeleteResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
