"""Controller deciding when the structure panel refreshes and what it shows."""

from __future__ import annotations

import logging
import weakref
from enum import Enum
from typing import Any, Callable, Sequence

from ..analysis import StructureProvider
from ..application import ApplicationControllerProtocol
from ..config import PanelSettings
from ..errors import AlreadyAttachedError, DisposedViewError, MalformedModelError, NotAttachedError
from ..events import (
    EventBus,
    FileClosed,
    FileEdited,
    FileOpened,
    StructureReady,
    StructureRendered,
    StructureUnavailable,
)
from ..structure.formatting import diagnostic_placeholder, format_structure
from ..structure.model import StructureModel
from ..views.structure_output_view import StructureOutputView

LOGGER = logging.getLogger(__name__)


class ControllerState(str, Enum):
    UNATTACHED = "unattached"
    ATTACHED = "attached"
    DETACHED = "detached"


class StructureOutputController:
    """Mediates between the application controller and one structure view.

    The controller owns its view and tears it down on :meth:`detach`. It only
    observes the application controller: the back-reference is weak where the
    object allows it, and event subscriptions are weak bound methods.
    """

    def __init__(
        self,
        *,
        view: StructureOutputView | None = None,
        provider: StructureProvider | None = None,
        settings: PanelSettings | None = None,
    ) -> None:
        self._settings = settings or PanelSettings()
        if view is None:
            view = StructureOutputView(self._settings)
            view.initialize()
        self._view = view
        self._provider = provider
        self._state = ControllerState.UNATTACHED
        self._app_ref: Callable[[], ApplicationControllerProtocol | None] = lambda: None
        self._bus: EventBus | None = None
        self._source_id: str | None = None
        self._source_from_host = False
        self._has_model = False
        self._rendered_revisions: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def view(self) -> StructureOutputView:
        return self._view

    @property
    def application_controller(self) -> ApplicationControllerProtocol | None:
        return self._app_ref()

    @property
    def source_id(self) -> str | None:
        return self._source_id

    @property
    def has_model(self) -> bool:
        return self._has_model

    def last_revision(self, source_id: str) -> int | None:
        return self._rendered_revisions.get(source_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def attach(self, application_controller: ApplicationControllerProtocol) -> None:
        """Start listening to ``application_controller``. Allowed once."""

        if self._state is not ControllerState.UNATTACHED:
            raise AlreadyAttachedError("Structure controller was already attached")
        self._app_ref = _weak_or_strong(application_controller)
        bus = application_controller.events
        bus.subscribe(FileOpened, self._handle_file_opened)
        bus.subscribe(FileEdited, self._handle_file_edited)
        bus.subscribe(FileClosed, self._handle_file_closed)
        bus.subscribe(StructureReady, self._handle_structure_ready)
        bus.subscribe(StructureUnavailable, self._handle_structure_unavailable)
        self._bus = bus
        self._view.on_interaction(_weak_callback(self.on_interaction))
        self._state = ControllerState.ATTACHED
        LOGGER.debug("Structure controller attached")

    def detach(self) -> None:
        """Stop listening and tear down the view. Safe to call repeatedly."""

        if self._state is ControllerState.DETACHED:
            return
        bus, self._bus = self._bus, None
        if bus is not None:
            bus.unsubscribe(FileOpened, self._handle_file_opened)
            bus.unsubscribe(FileEdited, self._handle_file_edited)
            bus.unsubscribe(FileClosed, self._handle_file_closed)
            bus.unsubscribe(StructureReady, self._handle_structure_ready)
            bus.unsubscribe(StructureUnavailable, self._handle_structure_unavailable)
        self._state = ControllerState.DETACHED
        self._app_ref = lambda: None
        self._has_model = False
        try:
            self._view.on_interaction(None)
        finally:
            self._view.teardown()
        LOGGER.debug("Structure controller detached")

    def __enter__(self) -> StructureOutputController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.detach()

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------
    def on_file_changed(self, model: StructureModel) -> None:
        """Render ``model`` unless it is stale, foreign or arrives after detach."""

        if self._state is ControllerState.DETACHED:
            LOGGER.debug("Dropping structure for %s: controller detached", model.source_id)
            return
        if self._state is ControllerState.UNATTACHED:
            raise NotAttachedError("attach() must be called before structure can be delivered")
        if not self._accepts(model.source_id, model.revision):
            return

        self._source_id = model.source_id
        try:
            formatted = format_structure(
                model,
                indent_unit=self._settings.indent_unit,
                no_structure_text=self._settings.no_structure_text,
            )
        except MalformedModelError as exc:
            self._handle_malformed(model, exc)
            return

        if not self._render(model.revision, formatted.text, formatted.line_offsets):
            return
        self._rendered_revisions[model.source_id] = model.revision
        self._has_model = True
        if self._bus is not None:
            self._bus.publish(
                StructureRendered(
                    source_id=model.source_id,
                    revision=model.revision,
                    line_count=formatted.line_count,
                )
            )

    def show_unavailable(self, source_id: str, revision: int, message: str) -> None:
        """Replace the outline of ``source_id`` with a diagnostic for a failed analysis.

        The same staleness rules as :meth:`on_file_changed` apply. Nothing is
        reported on the error channel here.
        """

        if self._state is not ControllerState.ATTACHED or not self._accepts(source_id, revision):
            return
        self._source_id = source_id
        self._has_model = False
        if self._render(revision, diagnostic_placeholder(message)):
            self._rendered_revisions[source_id] = revision

    def on_interaction(self, position: int) -> None:
        """Forward a selection in the view to the editor, unchanged."""

        if self._state is not ControllerState.ATTACHED or not self._has_model or self._source_id is None:
            return
        application = self._app_ref()
        if application is None:
            LOGGER.debug("Application controller is gone; ignoring interaction")
            return
        application.navigate_to_position(self._source_id, position)

    def refresh(self) -> None:
        """Ask the provider for fresh structure of the displayed source."""

        if self._state is not ControllerState.ATTACHED or self._source_id is None:
            return
        self._request_structure(self._source_id)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _handle_file_opened(self, event: FileOpened) -> None:
        if event.source_id != self._source_id:
            self._source_id = event.source_id
            self._has_model = False
            self._clear_view()
        self._source_from_host = True
        self._request_structure(event.source_id)

    def _handle_file_edited(self, event: FileEdited) -> None:
        if event.source_id == self._source_id:
            self._request_structure(event.source_id)

    def _handle_file_closed(self, event: FileClosed) -> None:
        if event.source_id != self._source_id:
            return
        self._source_id = None
        self._source_from_host = False
        self._has_model = False
        self._clear_view()

    def _handle_structure_ready(self, event: StructureReady) -> None:
        self.on_file_changed(event.model)

    def _handle_structure_unavailable(self, event: StructureUnavailable) -> None:
        self.show_unavailable(event.source_id, event.revision, event.message)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _accepts(self, source_id: str, revision: int) -> bool:
        if self._source_id is not None and source_id != self._source_id:
            if self._source_from_host:
                LOGGER.debug("Dropping structure for %s: %s is the open file", source_id, self._source_id)
                return False
            shown = self._rendered_revisions.get(self._source_id)
            if shown is not None and revision <= shown:
                LOGGER.debug(
                    "Dropping structure for %s (revision %s <= %s shown for %s)",
                    source_id,
                    revision,
                    shown,
                    self._source_id,
                )
                return False
        last = self._rendered_revisions.get(source_id)
        if last is not None and revision <= last:
            LOGGER.debug("Dropping stale structure for %s (revision %s <= %s)", source_id, revision, last)
            return False
        return True

    def _request_structure(self, source_id: str) -> None:
        provider = self._provider
        if provider is None:
            return
        model = provider.request_structure(source_id)
        if model is not None:
            self.on_file_changed(model)

    def _handle_malformed(self, model: StructureModel, exc: MalformedModelError) -> None:
        message = str(exc)
        LOGGER.warning("Malformed structure for %s (revision %s): %s", model.source_id, model.revision, message)
        if self._render(model.revision, diagnostic_placeholder(message)):
            self._rendered_revisions[model.source_id] = model.revision
        self._has_model = False
        application = self._app_ref()
        if application is not None:
            application.report_error(model.source_id, message)

    def _render(self, revision: int, text: str, line_offsets: Sequence[int | None] | None = None) -> bool:
        try:
            self._view.render(revision, text, line_offsets=line_offsets)
        except DisposedViewError:
            if self._settings.strict:
                raise
            LOGGER.warning("Structure view already disposed; render of revision %s ignored", revision)
            return False
        return True

    def _clear_view(self) -> None:
        try:
            self._view.clear()
        except DisposedViewError:
            if self._settings.strict:
                raise
            LOGGER.warning("Structure view already disposed; clear ignored")


def _weak_or_strong(target: Any) -> Callable[[], Any]:
    try:
        return weakref.ref(target)
    except TypeError:
        return lambda: target


def _weak_callback(method: Callable[[int], None]) -> Callable[[int], None]:
    ref = weakref.WeakMethod(method)

    def _forward(position: int) -> None:
        target = ref()
        if target is not None:
            target(position)

    return _forward


__all__ = ["ControllerState", "StructureOutputController"]
