"""Firebase Storage uploads for thumbnails, lesson videos and materials.

Logical buckets map to folders inside the single configured Firebase
bucket: ``learnhub/{bucket}/{path}``.
"""

from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import quote

import structlog
from starlette.concurrency import run_in_threadpool

from learnhub.config.settings import Settings
from learnhub.core.exceptions import StorageFailureError, ValidationFailedError


if TYPE_CHECKING:
    from google.cloud.storage import Bucket


logger = structlog.get_logger(__name__)


# Logical buckets accepted by upload()
BUCKETS = frozenset({"course-thumbnails", "course-materials", "course-videos", "avatars"})


class StorageNotConfiguredError(StorageFailureError):
    def __init__(self, message: str = "File storage is not configured") -> None:
        super().__init__(message, "storage_not_configured")


class StorageUploadError(StorageFailureError):
    def __init__(self, message: str = "Failed to upload file") -> None:
        super().__init__(message, "storage_upload_failed")


class FileTooLargeError(ValidationFailedError):
    def __init__(self, size: int, max_size: int) -> None:
        message = (
            f"File size ({size / 1024 / 1024:.2f} MB) exceeds "
            f"maximum allowed ({max_size / 1024 / 1024:.2f} MB)"
        )
        super().__init__(message, "file_too_large")


class InvalidContentTypeError(ValidationFailedError):
    def __init__(self, content_type: str, allowed: list[str]) -> None:
        message = (
            f"Content type '{content_type}' is not allowed. "
            f"Allowed: {', '.join(allowed)}"
        )
        super().__init__(message, "invalid_content_type")


class InvalidStoragePathError(ValidationFailedError):
    def __init__(self, message: str = "Invalid bucket or path") -> None:
        super().__init__(message, "invalid_storage_path")


# Firebase app singleton
_firebase_app = None


def _init_firebase(settings: Settings) -> "Bucket":
    """Initialize the Firebase Admin SDK once and return the storage bucket.

    Raises:
        StorageNotConfiguredError: Missing settings or credentials file
    """
    global _firebase_app  # noqa: PLW0603

    if not settings.firebase_configured:
        raise StorageNotConfiguredError

    # Lazy import to avoid loading the Firebase SDK unless uploads are used
    import firebase_admin  # noqa: PLC0415
    from firebase_admin import credentials, storage  # noqa: PLC0415

    creds_path = settings.firebase_credentials_path
    if not creds_path or not Path(creds_path).exists():
        raise StorageNotConfiguredError(
            f"Firebase credentials file not found: {creds_path}"
        )

    try:
        if _firebase_app is None:
            _firebase_app = firebase_admin.initialize_app(
                credentials.Certificate(creds_path),
                {
                    "storageBucket": settings.firebase_storage_bucket,
                    "projectId": settings.firebase_project_id,
                },
            )
            logger.info("firebase_initialized", bucket=settings.firebase_storage_bucket)
        return storage.bucket()
    except (ValueError, OSError) as e:
        logger.exception("firebase_init_failed", error=str(e))
        raise StorageNotConfiguredError(f"Failed to initialize Firebase: {e}") from e


def build_object_path(bucket: str, path: str) -> str:
    """Validate a logical bucket and relative path and join them.

    Raises:
        InvalidStoragePathError: Unknown bucket, absolute path or ``..`` segment
    """
    if bucket not in BUCKETS:
        raise InvalidStoragePathError(f"Unknown bucket '{bucket}'")
    parts = [p for p in path.strip().split("/") if p]
    if not parts or path.startswith("/") or any(p in (".", "..") for p in parts):
        raise InvalidStoragePathError(f"Invalid path '{path}'")
    return "/".join(["learnhub", bucket, *parts])


class FirebaseStorageService:
    """Uploads files and returns their public URL."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._bucket: Bucket | None = None

    @property
    def is_configured(self) -> bool:
        return self.settings.firebase_configured

    @property
    def max_file_size(self) -> int:
        """Maximum file size in bytes."""
        return self.settings.upload_max_file_size_mb * 1024 * 1024

    @property
    def allowed_types(self) -> list[str]:
        return self.settings.upload_allowed_types

    def _get_bucket(self) -> "Bucket":
        if self._bucket is None:
            self._bucket = _init_firebase(self.settings)
        return self._bucket

    def public_url(self, object_path: str) -> str:
        encoded = "/".join(quote(part, safe="") for part in object_path.split("/"))
        return f"https://storage.googleapis.com/{self.settings.firebase_storage_bucket}/{encoded}"

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
    ) -> str:
        """Store ``content`` under ``bucket/path`` and return its public URL.

        Raises:
            StorageNotConfiguredError: Firebase is not configured (503)
            FileTooLargeError: Content exceeds the configured size (413)
            InvalidContentTypeError: MIME type not allowed (415)
            InvalidStoragePathError: Bad bucket or path (400)
            StorageUploadError: Firebase rejected the upload (502)
        """
        if not self.is_configured:
            raise StorageNotConfiguredError

        object_path = build_object_path(bucket, path)
        if len(content) > self.max_file_size:
            raise FileTooLargeError(len(content), self.max_file_size)
        if content_type not in self.allowed_types:
            raise InvalidContentTypeError(content_type, self.allowed_types)

        storage_bucket = self._get_bucket()

        def _put() -> None:
            blob = storage_bucket.blob(object_path)
            blob.cache_control = "public, max-age=31536000, immutable"
            blob.upload_from_string(content, content_type=content_type)
            blob.make_public()

        try:
            await run_in_threadpool(_put)
        except Exception as e:
            logger.exception("upload_failed", object_path=object_path, error=str(e))
            raise StorageUploadError from e

        logger.info(
            "file_uploaded",
            object_path=object_path,
            content_type=content_type,
            file_size=len(content),
        )
        return self.public_url(object_path)
