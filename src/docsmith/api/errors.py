"""Exception hierarchy raised by :mod:`docsmith.api.client`."""

from __future__ import annotations

__all__ = [
    "DocumentServiceError",
    "ValidationError",
    "ServerUnreachableError",
    "ApplicationError",
    "EmptyResponseError",
    "DownloadError",
]


class DocumentServiceError(Exception):
    """Base class for failures surfaced by the document service client.

    ``message`` is always safe to show to the user as-is.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DocumentServiceError, ValueError):
    """Required input was missing or malformed; no request was sent."""


class ServerUnreachableError(DocumentServiceError):
    """The backend could not be reached at the transport level."""


class ApplicationError(DocumentServiceError):
    """The backend answered with a non-success status or a failure flag."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResponseError(DocumentServiceError):
    """The backend reported success but returned nothing usable."""


class DownloadError(DocumentServiceError):
    """Writing an exported payload to local storage failed."""
