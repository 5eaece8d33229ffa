"""Async HTTP client for the document upload, edit and conversion service."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Mapping, Union

import httpx

from ..utils import file_io
from .errors import (
    ApplicationError,
    DownloadError,
    EmptyResponseError,
    ServerUnreachableError,
    ValidationError,
)
from .models import DEFAULT_LANGUAGE, BinaryPayload, EditResult, ExportFormat, UploadResult

__all__ = ["ClientSettings", "DocumentApiClient", "UploadSource"]

LOGGER = logging.getLogger(__name__)

UploadSource = Union[str, os.PathLike, IO[bytes]]

_UPLOAD_FIELD = "document"
_DEFAULT_CONTENT_TYPE = "application/octet-stream"
_INVALID_RESPONSE = "Invalid response from server"


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the document service client."""

    base_url: str
    request_timeout: float | None = None
    default_headers: Mapping[str, str] | None = None


@dataclass(slots=True, frozen=True)
class _Endpoint:
    path: str
    failure_message: str
    unreachable_message: str


_UPLOAD = _Endpoint(
    path="/documents/upload",
    failure_message="Upload failed",
    unreachable_message="Unable to connect to server. Please check if the backend is running.",
)
_EDIT = _Endpoint(
    path="/documents/edit",
    failure_message="Edit failed",
    unreachable_message=(
        "Unable to connect to server for editing. Please check if the backend is running."
    ),
)
_CONVERT = _Endpoint(
    path="/conversion/convert",
    failure_message="Conversion failed",
    unreachable_message=(
        "Unable to connect to server for conversion. Please check if the backend is running."
    ),
)


class DocumentApiClient:
    """Stateless wrapper around the three remote document operations.

    Every call is independent: no retries, no caching. Failures are raised
    as :class:`~docsmith.api.errors.DocumentServiceError` subclasses whose
    ``message`` is ready for display.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def __aenter__(self) -> "DocumentApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def upload(self, file: UploadSource | None) -> UploadResult:
        """Send ``file`` to the backend for parsing into markup."""

        if file is None:
            raise ValidationError("No file provided")
        filename, content = await self._read_upload(file)
        content_type = mimetypes.guess_type(filename)[0] or _DEFAULT_CONTENT_TYPE
        LOGGER.debug("Uploading %s (%d bytes, %s)", filename, len(content), content_type)

        response = await self._post(
            _UPLOAD,
            files={_UPLOAD_FIELD: (filename, content, content_type)},
        )
        result = UploadResult.from_payload(self._json_object(response))
        LOGGER.debug(
            "Upload finished: success=%s document_id=%s",
            result.success,
            result.document.id if result.document else None,
        )
        return result

    async def edit(
        self,
        instruction: str,
        html: str,
        language: str = DEFAULT_LANGUAGE,
        document_id: str | None = None,
    ) -> EditResult:
        """Ask the backend to apply a natural-language ``instruction`` to ``html``.

        ``document_id`` may be ``None`` when the document has no backend
        identity yet.
        """

        if not instruction or not html:
            raise ValidationError("Instruction and HTML content are required")
        body = {
            "documentId": document_id,
            "instruction": instruction,
            "html": html,
            "language": language or DEFAULT_LANGUAGE,
        }
        LOGGER.debug(
            "Requesting edit for document %s (instruction_length=%d, html_length=%d)",
            document_id,
            len(instruction),
            len(html),
        )
        response = await self._post(_EDIT, json=body)
        return EditResult.from_payload(self._json_object(response))

    async def convert(
        self,
        html: str,
        format: ExportFormat | str,
        filename: str | None = None,
    ) -> BinaryPayload:
        """Convert ``html`` into ``format`` and return the produced bytes."""

        if not html or not format:
            raise ValidationError("HTML content and format are required")
        export_format = ExportFormat.parse(format)
        body = {"html": html, "format": export_format.value, "filename": filename}
        LOGGER.debug("Requesting %s conversion (%s)", export_format.value, filename)

        response = await self._post(_CONVERT, json=body)
        data = response.content
        if not data:
            LOGGER.warning("Conversion to %s returned an empty body", export_format.value)
            raise EmptyResponseError("Received empty file from server")
        return BinaryPayload(data=data, content_type=response.headers.get("content-type"))

    def save_locally(
        self,
        payload: BinaryPayload | bytes,
        filename: str | None,
        directory: Path | str | None = None,
    ) -> Path:
        """Write ``payload`` into the download folder and return its path."""

        data = payload.data if isinstance(payload, BinaryPayload) else bytes(payload)
        try:
            target = file_io.resolve_download_dir(directory) / file_io.safe_filename(filename)
            file_io.write_bytes(target, data)
        except OSError as exc:
            LOGGER.error("Download error for %s: %s", filename, exc)
            raise DownloadError("Failed to download file") from exc
        LOGGER.info("Saved %d bytes to %s", len(data), target)
        return target

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""

        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_client(self, settings: ClientSettings) -> httpx.AsyncClient:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return httpx.AsyncClient(
            timeout=settings.request_timeout,
            headers=headers,
            follow_redirects=True,
        )

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url.rstrip('/')}{path}"

    async def _post(self, endpoint: _Endpoint, **kwargs: Any) -> httpx.Response:
        url = self._url(endpoint.path)
        try:
            response = await self._client.post(url, **kwargs)
        except httpx.TransportError as exc:
            LOGGER.warning("POST %s failed before a response arrived: %s", url, exc)
            raise ServerUnreachableError(endpoint.unreachable_message) from exc

        LOGGER.debug("POST %s -> %s", url, response.status_code)
        if not response.is_success:
            message = _error_message(response, endpoint.failure_message)
            LOGGER.warning("POST %s rejected (%s): %s", url, response.status_code, message)
            raise ApplicationError(message, status_code=response.status_code)
        return response

    @staticmethod
    def _json_object(response: httpx.Response) -> Mapping[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise EmptyResponseError(_INVALID_RESPONSE) from exc
        if not isinstance(payload, Mapping):
            raise EmptyResponseError(_INVALID_RESPONSE)
        return payload

    @staticmethod
    async def _read_upload(file: UploadSource) -> tuple[str, bytes]:
        if isinstance(file, (str, os.PathLike)):
            path = Path(file)
            try:
                content = await asyncio.to_thread(path.read_bytes)
            except OSError as exc:
                raise ValidationError(f"Unable to read {path.name or path}") from exc
            return path.name, content

        read = getattr(file, "read", None)
        if read is None:
            raise ValidationError("No file provided")
        name = Path(str(getattr(file, "name", "") or "upload")).name
        try:
            content = await asyncio.to_thread(read)
        except OSError as exc:
            raise ValidationError(f"Unable to read {name}") from exc
        if isinstance(content, str):
            content = content.encode("utf-8")
        return name, bytes(content)


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Pick the most helpful message from a failed response."""

    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.reason_phrase}"
    if isinstance(payload, Mapping):
        for key in ("error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return fallback
