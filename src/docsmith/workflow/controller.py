"""Workflow controller: the upload → preview → edit → export state machine.

The controller is the single writer of :class:`WorkflowState`. Every user
intent goes through one of its entry points, which validate preconditions,
delegate I/O to the document service and commit the outcome as one new
immutable snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Protocol

from ..api.errors import ApplicationError, DocumentServiceError, EmptyResponseError, ValidationError
from ..api.models import DEFAULT_LANGUAGE, ExportFormat
from ..utils import file_io
from .events import (
    DocumentExported,
    DocumentUploaded,
    EditApplied,
    Event,
    EventBus,
    OperationFailed,
    WorkflowReset,
    WorkflowStateChanged,
)
from .models import EditRecord, WorkflowState, WorkflowStep

if TYPE_CHECKING:  # pragma: no cover
    from ..api.client import UploadSource
    from ..api.models import BinaryPayload, EditResult, UploadResult

LOGGER = logging.getLogger(__name__)

_DEFAULT_EXPLANATION = "Changes applied successfully"


class WorkflowBusyError(RuntimeError):
    """Raised when an I/O entry point is called while another is outstanding."""


class DocumentService(Protocol):
    """Operations the controller needs from the remote document service."""

    async def upload(self, file: UploadSource | None) -> UploadResult:
        ...

    async def edit(
        self,
        instruction: str,
        html: str,
        language: str = DEFAULT_LANGUAGE,
        document_id: str | None = None,
    ) -> EditResult:
        ...

    async def convert(
        self,
        html: str,
        format: ExportFormat | str,
        filename: str | None = None,
    ) -> BinaryPayload:
        ...

    def save_locally(
        self,
        payload: BinaryPayload | bytes,
        filename: str | None,
        directory: Path | str | None = None,
    ) -> Path:
        ...


class WorkflowController:
    """Owns the document lifecycle and its observable state.

    Concurrency: I/O entry points (:meth:`upload`, :meth:`submit_edit`,
    :meth:`export`) refuse to start while ``is_processing`` is set and raise
    :class:`WorkflowBusyError` instead. :meth:`reset` is always allowed; a
    request still in flight when the workflow is reset has its outcome
    discarded.

    Events Emitted:
        - WorkflowStateChanged: After every committed transition
        - DocumentUploaded: After a successful upload
        - EditApplied: After a successful edit
        - DocumentExported: After an export was saved locally
        - OperationFailed: When an entry point ends with an error message
        - WorkflowReset: After :meth:`reset`
    """

    def __init__(
        self,
        api: DocumentService,
        event_bus: EventBus | None = None,
        *,
        download_dir: Path | str | None = None,
    ) -> None:
        self._api = api
        self._bus = event_bus or EventBus()
        self._download_dir = download_dir
        self._state = WorkflowState.initial()
        self._generation = 0

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    def subscribe(self, handler: Callable[[WorkflowStateChanged], None]) -> Callable[[], None]:
        """Subscribe ``handler`` to state changes and return an unsubscribe callback."""

        self._bus.subscribe(WorkflowStateChanged, handler)
        return lambda: self._bus.unsubscribe(WorkflowStateChanged, handler)

    # ------------------------------------------------------------------
    # Navigation and local input
    # ------------------------------------------------------------------

    def start_editing(self) -> bool:
        if self._state.document is None:
            LOGGER.debug("start_editing ignored: no document loaded")
            return False
        self._commit(step=WorkflowStep.EDIT)
        return True

    def back_to_preview(self) -> bool:
        if self._state.document is None:
            LOGGER.debug("back_to_preview ignored: no document loaded")
            return False
        self._commit(step=WorkflowStep.PREVIEW)
        return True

    def set_instruction(self, text: str) -> None:
        self._commit(instruction=text or "")

    def dismiss_error(self) -> None:
        self._commit(error=None)

    def reset(self) -> None:
        """Return to the upload step and forget everything about the document."""

        self._generation += 1
        LOGGER.info("Resetting workflow")
        self._apply(WorkflowState.initial())
        self._bus.publish(WorkflowReset())

    # ------------------------------------------------------------------
    # I/O entry points
    # ------------------------------------------------------------------

    async def upload(self, file: UploadSource | None) -> bool:
        """Upload ``file`` and move to the preview step on success.

        Only valid on the upload step; once a document is loaded the
        workflow has to be :meth:`reset` first.
        """

        self._ensure_idle("upload")
        if self._state.step is not WorkflowStep.UPLOAD:
            return self._reject("upload", "Start over before uploading another document")
        if file is None:
            return self._reject("upload", "No file provided")
        if isinstance(file, (str, os.PathLike)):
            for warning in file_io.check_upload_candidate(file):
                LOGGER.warning("Upload may be rejected by the backend: %s", warning)

        generation = self._begin("upload")
        changes: dict[str, Any] = {}
        follow_up: Event | None = None
        committed = False
        try:
            result = await self._api.upload(file)
            document = result.document
            if not result.success or document is None:
                raise ApplicationError(result.error or "Invalid response from server")
            changes = {
                "step": WorkflowStep.PREVIEW,
                "document": document,
                "html_content": document.html or "",
                "language": document.language or DEFAULT_LANGUAGE,
            }
            follow_up = DocumentUploaded(document_id=document.id, original_name=document.original_name)
        except DocumentServiceError as exc:
            changes = {"error": exc.message}
        except Exception:
            LOGGER.exception("Unexpected error while uploading")
            changes = {"error": "Upload failed. Please try again."}
        finally:
            committed = self._finish(generation, "upload", changes, follow_up)
        return committed and follow_up is not None

    async def submit_edit(self, instruction: str | None = None) -> bool:
        """Apply ``instruction`` (or the pending draft) to the working content."""

        self._ensure_idle("edit")
        text = self._state.instruction if instruction is None else instruction
        if not (text or "").strip():
            return self._reject("edit", "Please enter an instruction")
        if not self._state.html_content:
            return self._reject("edit", "No document content to edit")

        snapshot = self._state
        document_id = snapshot.document.id if snapshot.document else None
        generation = self._begin("edit")
        changes: dict[str, Any] = {}
        follow_up: Event | None = None
        committed = False
        try:
            result = await self._api.edit(text, snapshot.html_content, snapshot.language, document_id)
            if not result.is_usable:
                raise ApplicationError(result.error or "Edit failed")
            record = EditRecord(instruction=text, explanation=result.explanation or _DEFAULT_EXPLANATION)
            history = self._state.edit_history + (record,)
            changes = {
                "html_content": result.modified_html,
                "edit_history": history,
                "instruction": "",
            }
            follow_up = EditApplied(
                instruction=text,
                explanation=record.explanation,
                history_length=len(history),
            )
        except DocumentServiceError as exc:
            changes = {"error": exc.message}
        except Exception:
            LOGGER.exception("Unexpected error while editing")
            changes = {"error": "Failed to process edit instruction. Please try again."}
        finally:
            committed = self._finish(generation, "edit", changes, follow_up)
        return committed and follow_up is not None

    async def export(
        self,
        format: ExportFormat | str,
        directory: Path | str | None = None,
    ) -> Path | None:
        """Convert the working content to ``format`` and save it locally.

        Returns the saved path, or ``None`` when the export failed.
        """

        self._ensure_idle("export")
        if not self._state.html_content:
            self._reject("export", "No document content to download")
            return None
        try:
            export_format = ExportFormat.parse(format)
        except ValidationError as exc:
            self._reject("export", exc.message)
            return None

        document = self._state.document
        filename = file_io.export_filename(
            document.original_name if document else None,
            export_format.value,
        )
        html = self._state.html_content
        target_dir = directory or self._download_dir
        generation = self._begin("export")
        changes: dict[str, Any] = {}
        follow_up: Event | None = None
        committed = False
        saved: Path | None = None
        try:
            payload = await self._api.convert(html, export_format, filename)
            if payload is None or payload.size == 0:
                raise EmptyResponseError("Failed to generate download file")
            saved = await asyncio.to_thread(self._api.save_locally, payload, filename, target_dir)
            follow_up = DocumentExported(format=export_format.value, path=str(saved), size=payload.size)
        except DocumentServiceError as exc:
            changes = {"error": exc.message}
        except Exception:
            LOGGER.exception("Unexpected error while exporting %s", export_format.value)
            changes = {
                "error": f"Failed to download {export_format.value.upper()} file. Please try again."
            }
        finally:
            committed = self._finish(generation, "export", changes, follow_up)
        return saved if committed and follow_up is not None else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_idle(self, operation: str) -> None:
        if self._state.is_processing:
            raise WorkflowBusyError(
                f"Cannot start {operation} while another operation is in progress"
            )

    def _begin(self, operation: str) -> int:
        LOGGER.debug("Starting %s", operation)
        self._commit(is_processing=True, error=None)
        return self._generation

    def _finish(
        self,
        generation: int,
        operation: str,
        changes: dict[str, Any],
        follow_up: Event | None,
    ) -> bool:
        if generation != self._generation:
            LOGGER.info("Discarding %s outcome: workflow was reset while it ran", operation)
            return False
        self._commit(is_processing=False, **changes)
        error = changes.get("error")
        if error:
            LOGGER.warning("%s failed: %s", operation.capitalize(), error)
            self._bus.publish(OperationFailed(operation=operation, error=error))
        elif follow_up is not None:
            LOGGER.info("%s finished", operation.capitalize())
            self._bus.publish(follow_up)
        return True

    def _reject(self, operation: str, message: str) -> bool:
        LOGGER.debug("Rejected %s before any request: %s", operation, message)
        self._commit(error=message)
        self._bus.publish(OperationFailed(operation=operation, error=message))
        return False

    def _commit(self, **changes: Any) -> WorkflowState:
        return self._apply(replace(self._state, **changes))

    def _apply(self, state: WorkflowState) -> WorkflowState:
        previous = self._state
        if state == previous:
            return previous
        self._state = state
        self._bus.publish(WorkflowStateChanged(state=state, previous=previous))
        return state


__all__ = ["DocumentService", "WorkflowBusyError", "WorkflowController"]
