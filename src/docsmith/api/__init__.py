"""Client for the remote document service (upload, edit, convert)."""

from .client import ClientSettings, DocumentApiClient, UploadSource
from .errors import (
    ApplicationError,
    DocumentServiceError,
    DownloadError,
    EmptyResponseError,
    ServerUnreachableError,
    ValidationError,
)
from .models import (
    DEFAULT_LANGUAGE,
    BinaryPayload,
    Document,
    DocumentMetadata,
    DocumentType,
    EditResult,
    ExportFormat,
    UploadResult,
)

__all__ = [
    "ClientSettings",
    "DocumentApiClient",
    "UploadSource",
    "ApplicationError",
    "DocumentServiceError",
    "DownloadError",
    "EmptyResponseError",
    "ServerUnreachableError",
    "ValidationError",
    "DEFAULT_LANGUAGE",
    "BinaryPayload",
    "Document",
    "DocumentMetadata",
    "DocumentType",
    "EditResult",
    "ExportFormat",
    "UploadResult",
]
