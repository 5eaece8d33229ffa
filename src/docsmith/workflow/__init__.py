"""Document workflow engine.

- WorkflowController: upload → preview → edit state machine and export
- WorkflowState / EditRecord / WorkflowStep: immutable observable state
- EventBus and workflow events: the observer mechanism

The controller receives its document service through constructor
injection and has no dependency on any presentation toolkit.
"""

from __future__ import annotations

from .controller import DocumentService, WorkflowBusyError, WorkflowController
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
from .models import RECENT_EDIT_LIMIT, EditRecord, WorkflowState, WorkflowStep

__all__: list[str] = [
    "DocumentService",
    "WorkflowBusyError",
    "WorkflowController",
    "DocumentExported",
    "DocumentUploaded",
    "EditApplied",
    "Event",
    "EventBus",
    "OperationFailed",
    "WorkflowReset",
    "WorkflowStateChanged",
    "RECENT_EDIT_LIMIT",
    "EditRecord",
    "WorkflowState",
    "WorkflowStep",
]
