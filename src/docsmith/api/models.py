"""Typed entities and result objects exchanged with the document service.

Response payloads are validated here, at the client boundary, so the rest
of the application never touches raw JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from .errors import EmptyResponseError, ValidationError

__all__ = [
    "DEFAULT_LANGUAGE",
    "DocumentType",
    "DocumentMetadata",
    "Document",
    "ExportFormat",
    "UploadResult",
    "EditResult",
    "BinaryPayload",
]

DEFAULT_LANGUAGE = "en"
_NOT_AVAILABLE = "N/A"


class DocumentType(Enum):
    """Coarse document categories reported by the backend.

    Values:
        PDF: Portable document format uploads.
        IMAGE: Scanned or photographed pages (JPG, PNG).
        DOCX: Word documents.
        TEXT: Plain text files.
        OTHER: Anything the backend labels differently.
    """

    PDF = "pdf"
    IMAGE = "image"
    DOCX = "docx"
    TEXT = "text"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _DOCUMENT_TYPE_LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> "DocumentType":
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.OTHER


_DOCUMENT_TYPE_LABELS: dict[DocumentType, str] = {
    DocumentType.PDF: "PDF",
    DocumentType.IMAGE: "Image",
    DocumentType.DOCX: "Word",
    DocumentType.TEXT: "Text",
    DocumentType.OTHER: "File",
}


@dataclass(slots=True, frozen=True)
class DocumentMetadata:
    """Display-only statistics about an uploaded document."""

    file_size: int | None = None
    word_count: int | None = None

    @property
    def file_size_label(self) -> str:
        if not self.file_size:
            return _NOT_AVAILABLE
        return f"{round(self.file_size / 1024)} KB"

    @property
    def word_count_label(self) -> str:
        if not self.word_count:
            return _NOT_AVAILABLE
        return str(self.word_count)

    @classmethod
    def from_payload(cls, payload: Any) -> "DocumentMetadata":
        if not isinstance(payload, Mapping):
            return cls()
        return cls(
            file_size=_optional_int(payload.get("fileSize")),
            word_count=_optional_int(payload.get("wordCount")),
        )


@dataclass(slots=True, frozen=True)
class Document:
    """A backend-processed upload together with its rendered markup.

    Attributes:
        id: Opaque identifier assigned by the backend, passed to later edits.
        original_name: Filename the user uploaded; export names derive from it.
        type: Coarse category used for labels and icons.
        language: Language code used when interpreting edit instructions.
        html: Markup produced by the backend at upload time.
        metadata: Optional display statistics.
    """

    id: str | None
    original_name: str
    type: DocumentType = DocumentType.OTHER
    language: str = DEFAULT_LANGUAGE
    html: str = ""
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)

    @classmethod
    def from_payload(cls, payload: Any) -> "Document":
        """Build a document from the ``document`` object of an upload response."""

        if not isinstance(payload, Mapping):
            raise EmptyResponseError("Invalid response from server")
        raw_id = payload.get("id")
        return cls(
            id=str(raw_id) if raw_id not in (None, "") else None,
            original_name=str(payload.get("originalName") or ""),
            type=DocumentType.parse(payload.get("type")),
            language=str(payload.get("language") or DEFAULT_LANGUAGE),
            html=str(payload.get("html") or ""),
            metadata=DocumentMetadata.from_payload(payload.get("metadata")),
        )


class ExportFormat(Enum):
    """File formats the conversion endpoint can produce."""

    HTML = "html"
    PDF = "pdf"
    DOCX = "docx"
    PNG = "png"

    @property
    def label(self) -> str:
        return _EXPORT_FORMAT_LABELS[self]

    @classmethod
    def parse(cls, value: "ExportFormat | str | None") -> "ExportFormat":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower().lstrip(".")
        if not normalized:
            raise ValidationError("HTML content and format are required")
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(f"Unsupported export format: {value}")


_EXPORT_FORMAT_LABELS: dict[ExportFormat, str] = {
    ExportFormat.HTML: "HTML",
    ExportFormat.PDF: "PDF",
    ExportFormat.DOCX: "Word Document",
    ExportFormat.PNG: "PNG Image",
}


@dataclass(slots=True, frozen=True)
class UploadResult:
    """Outcome of ``POST /documents/upload``."""

    success: bool
    document: Document | None = None
    error: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UploadResult":
        success = bool(payload.get("success"))
        raw_document = payload.get("document")
        document = Document.from_payload(raw_document) if raw_document is not None else None
        return cls(success=success, document=document, error=_optional_text(payload.get("error")))


@dataclass(slots=True, frozen=True)
class EditResult:
    """Outcome of ``POST /documents/edit``."""

    success: bool
    modified_html: str | None = None
    explanation: str | None = None
    error: str | None = None

    @property
    def is_usable(self) -> bool:
        """True when the backend succeeded and returned replacement markup."""
        return self.success and bool(self.modified_html)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "EditResult":
        return cls(
            success=bool(payload.get("success")),
            modified_html=_optional_text(payload.get("modifiedHTML")),
            explanation=_optional_text(payload.get("explanation")),
            error=_optional_text(payload.get("error")),
        )


@dataclass(slots=True, frozen=True)
class BinaryPayload:
    """Raw bytes returned by the conversion endpoint."""

    data: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
