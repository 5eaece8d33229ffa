"""Unit tests for :mod:`docsmith.workflow.events`."""

from __future__ import annotations

import gc
from dataclasses import dataclass

from docsmith.workflow.events import (
    DocumentUploaded,
    Event,
    EventBus,
    OperationFailed,
    WorkflowReset,
)


class _View:
    """Subscriber holding a bound-method handler."""

    def __init__(self) -> None:
        self.received: list[Event] = []

    def on_event(self, event: Event) -> None:
        self.received.append(event)


class TestEventBusSubscription:
    """Tests for subscribing and unsubscribing handlers."""

    def test_subscribe_counts_handlers(self) -> None:
        bus: EventBus[Event] = EventBus()

        bus.subscribe(WorkflowReset, lambda event: None)
        bus.subscribe(OperationFailed, lambda event: None)
        bus.subscribe(OperationFailed, lambda event: None)

        assert bus.handler_count(WorkflowReset) == 1
        assert bus.handler_count(OperationFailed) == 2
        assert bus.handler_count() == 3

    def test_unsubscribe_removes_first_registration(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[Event] = []

        def handler(event: Event) -> None:
            received.append(event)

        bus.subscribe(WorkflowReset, handler)
        bus.subscribe(WorkflowReset, handler)
        bus.unsubscribe(WorkflowReset, handler)
        bus.publish(WorkflowReset())

        assert bus.handler_count(WorkflowReset) == 1
        assert len(received) == 1

    def test_unsubscribe_unknown_handler_is_ignored(self) -> None:
        bus: EventBus[Event] = EventBus()

        bus.unsubscribe(WorkflowReset, lambda event: None)

        assert bus.handler_count() == 0

    def test_clear_drops_everything(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.subscribe(WorkflowReset, lambda event: None)

        bus.clear()

        assert bus.handler_count() == 0


class TestEventBusPublish:
    """Tests for event delivery."""

    def test_publish_delivers_only_matching_type(self) -> None:
        bus: EventBus[Event] = EventBus()
        uploads: list[Event] = []
        failures: list[Event] = []
        bus.subscribe(DocumentUploaded, uploads.append)
        bus.subscribe(OperationFailed, failures.append)

        event = DocumentUploaded(document_id="d1", original_name="a.txt")
        bus.publish(event)

        assert uploads == [event]
        assert failures == []

    def test_publish_without_handlers_is_noop(self) -> None:
        EventBus().publish(WorkflowReset())

    def test_handlers_run_in_subscription_order(self) -> None:
        bus: EventBus[Event] = EventBus()
        order: list[str] = []
        bus.subscribe(WorkflowReset, lambda event: order.append("first"))
        bus.subscribe(WorkflowReset, lambda event: order.append("second"))

        bus.publish(WorkflowReset())

        assert order == ["first", "second"]

    def test_failing_handler_does_not_stop_others(self, caplog) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[Event] = []

        def broken(event: Event) -> None:
            raise RuntimeError("view crashed")

        bus.subscribe(WorkflowReset, broken)
        bus.subscribe(WorkflowReset, received.append)

        with caplog.at_level("ERROR", logger="docsmith.workflow.events"):
            bus.publish(WorkflowReset())

        assert len(received) == 1
        assert "broken raised while handling WorkflowReset" in caplog.text

    def test_handler_may_unsubscribe_itself(self) -> None:
        bus: EventBus[Event] = EventBus()
        calls: list[Event] = []

        def once(event: Event) -> None:
            calls.append(event)
            bus.unsubscribe(WorkflowReset, once)

        bus.subscribe(WorkflowReset, once)
        bus.publish(WorkflowReset())
        bus.publish(WorkflowReset())

        assert len(calls) == 1


class TestWeakReferences:
    """Bound-method handlers must not keep their owner alive."""

    def test_bound_method_receives_events_while_alive(self) -> None:
        bus: EventBus[Event] = EventBus()
        view = _View()
        bus.subscribe(WorkflowReset, view.on_event)

        bus.publish(WorkflowReset())

        assert len(view.received) == 1

    def test_dead_subscriber_is_pruned_on_publish(self) -> None:
        bus: EventBus[Event] = EventBus()
        view = _View()
        bus.subscribe(WorkflowReset, view.on_event)

        del view
        gc.collect()
        bus.publish(WorkflowReset())

        assert bus.handler_count(WorkflowReset) == 0

    def test_bound_method_can_be_unsubscribed(self) -> None:
        bus: EventBus[Event] = EventBus()
        view = _View()
        bus.subscribe(WorkflowReset, view.on_event)

        bus.unsubscribe(WorkflowReset, view.on_event)
        bus.publish(WorkflowReset())

        assert view.received == []

    def test_count_includes_dead_references_until_publish(self) -> None:
        bus: EventBus[Event] = EventBus()
        view = _View()
        bus.subscribe(WorkflowReset, view.on_event)

        del view
        gc.collect()

        assert bus.handler_count(WorkflowReset) == 1
        bus.publish(WorkflowReset())
        assert bus.handler_count(WorkflowReset) == 0


def test_subclass_events_are_not_delivered_to_base_handlers() -> None:
    @dataclass(slots=True)
    class LoudReset(WorkflowReset):
        pass

    bus: EventBus[Event] = EventBus()
    received: list[Event] = []
    bus.subscribe(WorkflowReset, received.append)

    bus.publish(LoudReset())

    assert received == []
