"""Router for storage endpoints (admin uploads)."""

from typing import Annotated

import structlog
from fastapi import APIRouter, File, Form, UploadFile

from learnhub.auth.dependencies import AdminSession
from learnhub.core.exceptions import LearnHubError, handle_domain_error
from learnhub.storage.dependencies import StorageServiceDep
from learnhub.storage.schemas import StorageConfigResponse, StorageUploadResponse
from learnhub.storage.service import BUCKETS


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/storage", tags=["storage"])


@router.get("/config", response_model=StorageConfigResponse)
async def get_storage_config(
    ctx: AdminSession, storage: StorageServiceDep
) -> StorageConfigResponse:
    return StorageConfigResponse(
        configured=storage.is_configured,
        buckets=sorted(BUCKETS),
        max_file_size_mb=storage.settings.upload_max_file_size_mb,
        allowed_types=storage.allowed_types,
    )


@router.post(
    "/upload",
    response_model=StorageUploadResponse,
    responses={
        400: {"description": "Invalid bucket or path"},
        413: {"description": "File too large"},
        415: {"description": "Unsupported media type"},
        502: {"description": "Upload failed"},
        503: {"description": "Storage not configured"},
    },
)
async def upload_file(
    ctx: AdminSession,
    storage: StorageServiceDep,
    file: Annotated[UploadFile, File(description="File to upload")],
    bucket: Annotated[str, Form(description="Logical bucket")],
    path: Annotated[str, Form(min_length=1, max_length=500)],
) -> StorageUploadResponse:
    """Upload a file and return its public URL."""
    content = await file.read()
    content_type = file.content_type or "application/octet-stream"

    try:
        public_url = await storage.upload(bucket, path, content, content_type)
    except LearnHubError as e:
        logger.warning("upload_rejected", bucket=bucket, code=e.code)
        raise handle_domain_error(e) from e

    return StorageUploadResponse(
        public_url=public_url,
        bucket=bucket,
        path=path,
        content_type=content_type,
        file_size=len(content),
    )
