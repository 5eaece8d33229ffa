"""Event bus used to observe the document workflow.

The controller is the only publisher; presentation code subscribes to the
events it cares about instead of polling shared state.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, TypeVar
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

    from .models import WorkflowState

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for workflow events.

    Subclasses are slotted dataclasses::

        @dataclass(slots=True)
        class DocumentUploaded(Event):
            document_id: str | None
            original_name: str
    """


@dataclass(slots=True)
class WorkflowStateChanged(Event):
    """Emitted once per committed transition.

    Attributes:
        state: The new snapshot.
        previous: The snapshot it replaced.
    """

    state: WorkflowState
    previous: WorkflowState


@dataclass(slots=True)
class DocumentUploaded(Event):
    """Emitted after an upload produced a document."""

    document_id: str | None
    original_name: str


@dataclass(slots=True)
class EditApplied(Event):
    """Emitted after the backend returned modified markup.

    Attributes:
        instruction: The submitted instruction.
        explanation: Backend (or fallback) description of the change.
        history_length: Number of edit records after this edit.
    """

    instruction: str
    explanation: str
    history_length: int


@dataclass(slots=True)
class DocumentExported(Event):
    """Emitted after an exported file was written locally."""

    format: str
    path: str
    size: int


@dataclass(slots=True)
class OperationFailed(Event):
    """Emitted whenever an entry point ends with a user-visible error.

    Attributes:
        operation: One of ``upload``, ``edit`` or ``export``.
        error: The message stored in the workflow state.
    """

    operation: str
    error: str


@dataclass(slots=True)
class WorkflowReset(Event):
    """Emitted when the workflow returned to its initial state."""


class EventBus(Generic[E]):
    """Typed publish/subscribe bus connecting the controller to its observers.

    A presentation layer subscribes to the events it renders; the
    :class:`~docsmith.workflow.controller.WorkflowController` publishes them
    after each committed transition.

    Example::

        bus = EventBus()
        controller = WorkflowController(api, bus)

        def show_banner(event: OperationFailed) -> None:
            print(f"{event.operation}: {event.error}")

        bus.subscribe(OperationFailed, show_banner)

    Thread Safety:
        Not thread-safe. Subscribe and publish from the event loop thread
        that drives the controller.

    Attributes:
        _handlers: Event type to registered handler references, in
            subscription order.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``.

        Bound methods are held through a weak reference, so a discarded
        view stops receiving events without unsubscribing. Plain functions
        and lambdas are held strongly.

        Args:
            event_type: Event class to listen for. Subclasses are not
                delivered to handlers of their base class.
            handler: Callable invoked with each published event.

        Note:
            Subscribing the same handler twice delivers each event twice.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler`` for ``event_type``.

        Args:
            event_type: Event class the handler was registered for.
            handler: The handler passed to :meth:`subscribe`.

        Note:
            Unknown handlers are ignored, so this is safe to call twice.
        """
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                logger.debug("Unsubscribed %s from %s", _handler_name(handler), event_type.__name__)
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` to every live handler of its type.

        Handlers run synchronously in subscription order. A handler that
        raises is logged and skipped; the rest still run. References whose
        owner was garbage collected are pruned afterwards.

        Args:
            event: The event instance to deliver.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return

        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))
        dead_indices: list[int] = []
        # Iterate over a copy: a handler may unsubscribe itself.
        for index, handler_ref in enumerate(list(handlers)):
            handler = handler_ref.resolve()
            if handler is None:
                dead_indices.append(index)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised while handling %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for index in reversed(dead_indices):
            if index < len(handlers) and handlers[index].resolve() is None:
                handlers.pop(index)

    def clear(self) -> None:
        """Drop every subscription, for example when tearing a view down."""
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return how many handlers are registered.

        Args:
            event_type: Count only this event class; ``None`` counts all.

        Returns:
            Number of registrations, including dead weak references not yet
            pruned by :meth:`publish`.
        """
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Handler holder: weak for bound methods, strong for everything else.

    Builtin methods such as ``list.append`` have no ``__func__`` and cannot
    be weakly referenced through :class:`WeakMethod`, so they are kept
    strongly like functions.
    """

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> "_HandlerRef":
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        """Return the live handler, or ``None`` once its owner is gone."""
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    """``Owner.method`` for bound methods, the callable's name otherwise."""
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "WorkflowStateChanged",
    "DocumentUploaded",
    "EditApplied",
    "DocumentExported",
    "OperationFailed",
    "WorkflowReset",
]
