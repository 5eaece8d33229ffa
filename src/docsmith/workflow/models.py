"""Workflow state models.

These dataclasses and enums describe the observable state of the document
workflow. They are produced only by :class:`WorkflowController` and are
immutable, so observers can hold on to a snapshot safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from ..api.models import DEFAULT_LANGUAGE, Document

__all__ = [
    "RECENT_EDIT_LIMIT",
    "WorkflowStep",
    "EditRecord",
    "WorkflowState",
]

RECENT_EDIT_LIMIT = 5
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utcnow() -> datetime:
    """Return current UTC time."""
    return datetime.now(timezone.utc)


class WorkflowStep(Enum):
    """Coarse stage of the workflow gating which actions are valid.

    Values:
        UPLOAD: No document yet; waiting for a file.
        PREVIEW: A document is loaded and shown read-only.
        EDIT: A document is loaded and accepting edit instructions.
    """

    UPLOAD = "upload"
    PREVIEW = "preview"
    EDIT = "edit"

    @property
    def number(self) -> int:
        """1-based position for "Step N of 3" indicators."""
        return list(WorkflowStep).index(self) + 1


@dataclass(slots=True, frozen=True)
class EditRecord:
    """One applied instruction in the session's edit history.

    Attributes:
        instruction: The instruction text exactly as submitted.
        explanation: Backend summary of what changed.
        timestamp: When the edit was applied (timezone-aware UTC).
    """

    instruction: str
    explanation: str
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def display_timestamp(self) -> str:
        """The timestamp rendered in the local timezone."""
        return self.timestamp.astimezone().strftime(_TIMESTAMP_FORMAT)


@dataclass(slots=True, frozen=True)
class WorkflowState:
    """Snapshot of everything a presentation layer needs to render.

    Attributes:
        step: Current workflow stage.
        document: The uploaded document, if any.
        html_content: Working copy of the markup, updated by each edit.
        edit_history: Every applied edit in chronological order.
        language: Language code used for edit instructions.
        is_processing: True while a network operation is outstanding.
        error: Last user-visible error message.
        instruction: Pending edit instruction typed by the user.
    """

    step: WorkflowStep = WorkflowStep.UPLOAD
    document: Document | None = None
    html_content: str = ""
    edit_history: tuple[EditRecord, ...] = ()
    language: str = DEFAULT_LANGUAGE
    is_processing: bool = False
    error: str | None = None
    instruction: str = ""

    @classmethod
    def initial(cls) -> "WorkflowState":
        return cls()

    @property
    def has_content(self) -> bool:
        return bool(self.html_content)

    @property
    def recent_edits(self) -> tuple[EditRecord, ...]:
        """The most recent edits surfaced to the user, oldest first."""
        return self.edit_history[-RECENT_EDIT_LIMIT:]

    @property
    def history_truncated(self) -> bool:
        return len(self.edit_history) > RECENT_EDIT_LIMIT
