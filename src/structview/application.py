"""Application-wide controller surface consumed by the structure panel.

The real host (editor window, tab manager) owns file lifecycle and caret
movement. :class:`ApplicationController` is a small reference host that does
just enough of that job to drive the panel: it publishes lifecycle events,
forwards navigation to an editor callback and collects error reports.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

from .events import (
    EventBus,
    FileClosed,
    FileEdited,
    FileOpened,
    NavigationRequested,
    StructureErrorReported,
    StructureReady,
    StructureUnavailable,
)
from .structure.model import StructureModel

LOGGER = logging.getLogger(__name__)

Navigator = Callable[[str, int], None]
MAX_ERROR_REPORTS = 200


@runtime_checkable
class ApplicationControllerProtocol(Protocol):
    """What the structure controller needs from its host."""

    @property
    def events(self) -> EventBus: ...

    def navigate_to_position(self, source_id: str, offset: int) -> None: ...

    def report_error(self, source_id: str, message: str) -> None: ...


@dataclass(slots=True, frozen=True)
class ErrorReport:
    source_id: str
    message: str


class ApplicationController:
    """Reference host controller wiring files, navigation and errors together."""

    def __init__(
        self,
        *,
        navigator: Navigator | None = None,
        event_bus: EventBus | None = None,
        max_error_reports: int = MAX_ERROR_REPORTS,
    ) -> None:
        self._events = event_bus or EventBus()
        self._navigator = navigator
        self._open_files: list[str] = []
        self._error_reports: deque[ErrorReport] = deque(maxlen=max_error_reports)

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def open_files(self) -> tuple[str, ...]:
        return tuple(self._open_files)

    @property
    def error_reports(self) -> tuple[ErrorReport, ...]:
        """The most recent reports, oldest first."""

        return tuple(self._error_reports)

    def set_navigator(self, navigator: Navigator | None) -> None:
        self._navigator = navigator

    # ------------------------------------------------------------------
    # File lifecycle
    # ------------------------------------------------------------------
    def open_file(self, source_id: str) -> None:
        if source_id not in self._open_files:
            self._open_files.append(source_id)
        self._events.publish(FileOpened(source_id=source_id))

    def edit_file(self, source_id: str) -> None:
        if source_id not in self._open_files:
            LOGGER.debug("Edit notification for %s which is not open; ignoring", source_id)
            return
        self._events.publish(FileEdited(source_id=source_id))

    def close_file(self, source_id: str) -> None:
        if source_id not in self._open_files:
            return
        self._open_files.remove(source_id)
        self._events.publish(FileClosed(source_id=source_id))

    def deliver_structure(self, model: StructureModel) -> None:
        """Hand a finished model to whichever panel is listening."""

        self._events.publish(StructureReady(model=model))

    def structure_unavailable(self, source_id: str, revision: int, message: str) -> None:
        """Tell listeners that analysis of ``source_id`` failed for ``revision``."""

        self._events.publish(StructureUnavailable(source_id=source_id, revision=revision, message=message))

    # ------------------------------------------------------------------
    # Calls made by panels
    # ------------------------------------------------------------------
    def navigate_to_position(self, source_id: str, offset: int) -> None:
        LOGGER.debug("Navigate to %s @ %s", source_id, offset)
        if self._navigator is not None:
            self._navigator(source_id, offset)
        self._events.publish(NavigationRequested(source_id=source_id, offset=offset))

    def report_error(self, source_id: str, message: str) -> None:
        LOGGER.warning("Structure error for %s: %s", source_id, message)
        self._error_reports.append(ErrorReport(source_id=source_id, message=message))
        self._events.publish(StructureErrorReported(source_id=source_id, message=message))


__all__ = ["MAX_ERROR_REPORTS", "ApplicationController", "ApplicationControllerProtocol", "ErrorReport", "Navigator"]
