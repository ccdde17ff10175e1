"""Typed publish/subscribe bus carrying file-lifecycle and panel events.

The application controller owns one :class:`EventBus`. Panels subscribe
bound methods, which the bus holds through weak references, so registering
a listener never keeps the listener alive.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, ClassVar, Generic, TypeVar
from weakref import WeakMethod

from .structure.model import StructureModel

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for everything published on the bus."""


class FileEventKind(str, Enum):
    """The closed set of file-lifecycle notifications."""

    OPENED = "opened"
    EDITED = "edited"
    CLOSED = "closed"


# =============================================================================
# File lifecycle
# =============================================================================


@dataclass(slots=True)
class FileEvent(Event):
    """Common shape of the lifecycle events.

    Attributes:
        source_id: Opaque identity of the file (usually its path).
    """

    source_id: str
    kind: ClassVar[FileEventKind]


@dataclass(slots=True)
class FileOpened(FileEvent):
    """A file became the active document."""

    kind: ClassVar[FileEventKind] = FileEventKind.OPENED


@dataclass(slots=True)
class FileEdited(FileEvent):
    """The text of an open file changed."""

    kind: ClassVar[FileEventKind] = FileEventKind.EDITED


@dataclass(slots=True)
class FileClosed(FileEvent):
    """A file was closed."""

    kind: ClassVar[FileEventKind] = FileEventKind.CLOSED


# =============================================================================
# Structure panel
# =============================================================================


@dataclass(slots=True)
class StructureReady(Event):
    """The analysis collaborator finished a model.

    Attributes:
        model: The freshly built snapshot.
    """

    model: StructureModel


@dataclass(slots=True)
class StructureRendered(Event):
    """The structure panel displayed a new revision."""

    source_id: str
    revision: int
    line_count: int


@dataclass(slots=True)
class StructureErrorReported(Event):
    """A malformed model was reported on the error channel."""

    source_id: str
    message: str


@dataclass(slots=True)
class StructureUnavailable(Event):
    """Analysis of ``source_id`` failed for ``revision``; no model will follow."""

    source_id: str
    revision: int
    message: str


@dataclass(slots=True)
class NavigationRequested(Event):
    """The user picked a structure entry; the editor should move its caret."""

    source_id: str
    offset: int


_FILE_EVENTS: dict[FileEventKind, type[FileEvent]] = {
    FileEventKind.OPENED: FileOpened,
    FileEventKind.EDITED: FileEdited,
    FileEventKind.CLOSED: FileClosed,
}


def file_event(source_id: str, kind: FileEventKind | str) -> FileEvent:
    """Build the lifecycle event matching ``kind``."""

    return _FILE_EVENTS[FileEventKind(kind)](source_id=source_id)


class EventBus(Generic[E]):
    """Synchronous, typed event bus.

    Handlers run in registration order on the publishing thread. A handler
    that raises is logged and the remaining handlers still run. The bus is not
    thread-safe; publish from the UI thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``.

        Bound methods are stored weakly and vanish with their owner; plain
        functions and lambdas are stored strongly.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        LOGGER.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                LOGGER.debug("Unsubscribed %s from %s", _handler_name(handler), event_type.__name__)
                return

    def publish(self, event: E) -> None:
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            LOGGER.debug("No handlers for %s", event_type.__name__)
            return

        dead: list[_HandlerRef] = []
        # Copy so handlers may (un)subscribe while we iterate.
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                LOGGER.exception(
                    "Handler %s raised while handling %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Number of live registrations, for one event type or overall."""
        if event_type is not None:
            return sum(1 for ref in self._handlers.get(event_type, []) if ref.resolve() is not None)
        return sum(self.handler_count(kind) for kind in list(self._handlers))


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "FileEventKind",
    "FileEvent",
    "FileOpened",
    "FileEdited",
    "FileClosed",
    "StructureReady",
    "StructureRendered",
    "StructureErrorReported",
    "StructureUnavailable",
    "NavigationRequested",
    "file_event",
]
