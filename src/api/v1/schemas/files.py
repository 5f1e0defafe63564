"""Schemas for the file endpoints."""

from pydantic import BaseModel


class FileInfoResponse(BaseModel):
    """Media type and size of a stored file."""

    path: str
    mime_type: str
    size_bytes: int
    size_display: str
    locale: str
