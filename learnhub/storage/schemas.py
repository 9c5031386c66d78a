"""Pydantic schemas for storage operations."""

from pydantic import BaseModel, Field


class StorageUploadResponse(BaseModel):
    public_url: str = Field(..., description="Public URL of the uploaded file")
    bucket: str
    path: str
    content_type: str
    file_size: int = Field(..., description="File size in bytes")


class StorageConfigResponse(BaseModel):
    configured: bool = Field(..., description="Whether storage is configured")
    buckets: list[str]
    max_file_size_mb: int
    allowed_types: list[str]
