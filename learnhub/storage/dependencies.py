"""Dependencies for storage module."""

from typing import Annotated

from fastapi import Depends, Request

from learnhub.config.settings import get_settings
from learnhub.storage.service import FirebaseStorageService


def get_storage_service(request: Request) -> FirebaseStorageService:
    """Storage service from app state, created on first use."""
    service = getattr(request.app.state, "storage_service", None)
    if service is None:
        service = FirebaseStorageService(get_settings())
        request.app.state.storage_service = service
    return service


StorageServiceDep = Annotated[FirebaseStorageService, Depends(get_storage_service)]
