"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from docsmith.workflow import EventBus, WorkflowController

from tests.helpers import FakeDocumentService


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def fake_service() -> FakeDocumentService:
    return FakeDocumentService()


@pytest.fixture
def controller(fake_service: FakeDocumentService, event_bus: EventBus) -> WorkflowController:
    return WorkflowController(fake_service, event_bus)
