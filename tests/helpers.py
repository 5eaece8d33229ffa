"""Shared test helpers and stub classes.

Import from here instead of duplicating stubs in individual test files.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from docsmith.api.models import BinaryPayload, Document, EditResult, UploadResult


def make_document(**overrides: Any) -> Document:
    values: dict[str, Any] = {
        "id": "d1",
        "original_name": "a.txt",
        "html": "<p>hi</p>",
    }
    values.update(overrides)
    return Document(**values)


class FakeDocumentService:
    """In-memory stand-in for :class:`docsmith.api.client.DocumentApiClient`.

    Each operation returns the configured result, or raises the configured
    exception. Calls are recorded for assertions. Set ``gate`` to an
    :class:`asyncio.Event` to hold requests open until the test releases it.
    """

    def __init__(self) -> None:
        self.upload_result: UploadResult | Exception = UploadResult(success=True, document=make_document())
        self.edit_result: EditResult | Exception = EditResult(
            success=True, modified_html="<p>edited</p>", explanation="Edited"
        )
        self.convert_result: BinaryPayload | Exception = BinaryPayload(b"%PDF-1.7", "application/pdf")
        self.save_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.upload_calls: list[Any] = []
        self.edit_calls: list[tuple[str, str, str, str | None]] = []
        self.convert_calls: list[tuple[str, Any, str | None]] = []
        self.saved: list[tuple[bytes, str | None, Any]] = []

    async def upload(self, file: Any) -> UploadResult:
        self.upload_calls.append(file)
        return await self._respond(self.upload_result)

    async def edit(
        self,
        instruction: str,
        html: str,
        language: str = "en",
        document_id: str | None = None,
    ) -> EditResult:
        self.edit_calls.append((instruction, html, language, document_id))
        return await self._respond(self.edit_result)

    async def convert(self, html: str, format: Any, filename: str | None = None) -> BinaryPayload:
        self.convert_calls.append((html, format, filename))
        return await self._respond(self.convert_result)

    def save_locally(self, payload: Any, filename: str | None, directory: Any = None) -> Path:
        if self.save_error is not None:
            raise self.save_error
        data = payload.data if isinstance(payload, BinaryPayload) else bytes(payload)
        self.saved.append((data, filename, directory))
        return Path(str(directory or "downloads")) / (filename or "download")

    async def _respond(self, outcome: Any) -> Any:
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


__all__ = ["FakeDocumentService", "make_document"]
