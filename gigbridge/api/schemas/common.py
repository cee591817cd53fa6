"""
Shared pydantic v2 building blocks for the GigBridge API.

Request bodies accept both snake_case and camelCase keys (the web client
sends camelCase). Responses are always snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


def _to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase."""
    parts = name.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


class CamelRequest(BaseModel):
    """Base for request bodies: accepts snake_case or camelCase keys."""

    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class FileMetadata(CamelRequest):
    """Stored-file metadata produced by the upload service."""

    url: str = Field(min_length=1, description="Public URL of the stored file")
    file_name: str = Field(min_length=1, max_length=255)
    file_type: str | None = Field(default=None, max_length=100)
    file_size: int | None = Field(default=None, ge=0, description="Size in bytes")


class FileMetadataOut(BaseModel):
    url: str
    file_name: str
    file_type: str | None = None
    file_size: int | None = None


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    message: str = Field(description="Human-readable error message")
    error: str | None = Field(default=None, description="Machine-readable error code")
