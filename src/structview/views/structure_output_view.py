"""Read-only Qt text surface that shows a formatted structure outline.

The view is passive: it displays whatever its controller renders into it and
reports line selections upward as source offsets. It knows nothing about
structure models.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtGui import QFont, QTextCursor
from PySide6.QtWidgets import QApplication, QPlainTextEdit

from ..config import PanelSettings
from ..errors import DisposedViewError, ViewInitializationError
from ..structure.formatting import EMPTY_STATE_TEXT

LOGGER = logging.getLogger(__name__)

InteractionCallback = Callable[[int], None]


class StructureOutputView:
    """Owns one read-only ``QPlainTextEdit`` and the text displayed in it."""

    OBJECT_NAME = "structure-output"

    def __init__(self, settings: PanelSettings | None = None, *, parent: Any | None = None) -> None:
        self._settings = settings or PanelSettings()
        self._parent = parent
        self._widget: Any | None = None
        self._text: str = EMPTY_STATE_TEXT
        self._revision: int | None = None
        self._line_offsets: tuple[int | None, ...] = ()
        self._callback: InteractionCallback | None = None
        self._last_line: int | None = None
        self._pointer_down = False
        self._pointer_filter: _PointerFilter | None = None
        self._initialized = False
        self._disposed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Create the widget. Must be called exactly once, with a QApplication running."""

        if self._disposed:
            raise DisposedViewError("Structure output view was torn down")
        if self._initialized:
            raise ViewInitializationError("Structure output view is already initialized")
        if QApplication.instance() is None:
            raise ViewInitializationError("A QApplication must exist before the structure view is initialized")

        widget = QPlainTextEdit(self._parent)
        try:
            widget.setObjectName(self.OBJECT_NAME)
            widget.setReadOnly(True)
            widget.setUndoRedoEnabled(False)
            widget.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
            font = QFont(self._settings.font_family, self._settings.font_size)
            font.setStyleHint(QFont.StyleHint.Monospace)
            widget.setFont(font)
            widget.setPlainText(self._text)
            widget.cursorPositionChanged.connect(self._handle_cursor_moved)
            pointer_filter = _PointerFilter(self._handle_pointer, widget)
            widget.viewport().installEventFilter(pointer_filter)
        except Exception:
            widget.deleteLater()
            raise
        self._pointer_filter = pointer_filter
        self._widget = widget
        self._initialized = True
        LOGGER.debug("Structure output view initialized")

    def teardown(self) -> None:
        """Release the widget; repeated calls do nothing."""

        if self._disposed:
            return
        self._disposed = True
        self._callback = None
        widget, self._widget = self._widget, None
        pointer_filter, self._pointer_filter = self._pointer_filter, None
        if widget is not None:
            if pointer_filter is not None:
                widget.viewport().removeEventFilter(pointer_filter)
            widget.blockSignals(True)
            widget.deleteLater()
        LOGGER.debug("Structure output view torn down")

    def __enter__(self) -> StructureOutputView:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.teardown()

    # ------------------------------------------------------------------
    # Render contract
    # ------------------------------------------------------------------
    def render(self, revision: int, text: str, *, line_offsets: Sequence[int | None] | None = None) -> None:
        """Replace the displayed text.

        ``line_offsets`` maps each display line to a source offset; lines
        mapped to ``None`` (or beyond the sequence) are not navigable.
        """

        widget = self._require_widget()
        self._swap_text(widget, text)
        self._text = text
        self._revision = revision
        self._line_offsets = tuple(line_offsets) if line_offsets is not None else ()

    def clear(self) -> None:
        """Go back to the empty state shown before the first render."""

        widget = self._require_widget()
        self._swap_text(widget, EMPTY_STATE_TEXT)
        self._text = EMPTY_STATE_TEXT
        self._revision = None
        self._line_offsets = ()

    @property
    def displayed_text(self) -> str:
        return self._text

    @property
    def revision(self) -> int | None:
        return self._revision

    @property
    def line_count(self) -> int:
        return len(self._text.split("\n")) if self._text else 0

    @property
    def widget(self) -> Any | None:
        """The Qt widget for embedding in the host layout."""

        return self._widget

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------
    def on_interaction(self, callback: InteractionCallback | None) -> None:
        """Register the single selection listener; the last registration wins."""

        self._callback = callback

    def select_line(self, line: int) -> None:
        """Select a display line as if the user had clicked it."""

        widget = self._require_widget()
        block = widget.document().findBlockByNumber(line)
        if not block.isValid():
            LOGGER.debug("Ignoring selection of missing line %s", line)
            return
        blocked = widget.blockSignals(True)
        try:
            widget.setTextCursor(QTextCursor(block))
        finally:
            widget.blockSignals(blocked)
        self._last_line = line
        self._emit_line(line)

    def _handle_cursor_moved(self) -> None:
        # Keyboard navigation; clicks are reported on button release instead.
        widget = self._widget
        if widget is None:
            return
        line = widget.textCursor().blockNumber()
        if line == self._last_line:
            return
        self._last_line = line
        if not self._pointer_down:
            self._emit_line(line)

    def _handle_pointer(self, pressed: bool, pos: Any) -> None:
        widget = self._widget
        if widget is None:
            return
        if pressed:
            self._pointer_down = True
            return
        self._pointer_down = False
        line = widget.cursorForPosition(pos).blockNumber()
        self._last_line = line
        self._emit_line(line)

    def _emit_line(self, line: int) -> None:
        callback = self._callback
        if callback is None or not 0 <= line < len(self._line_offsets):
            return
        offset = self._line_offsets[line]
        if offset is None:
            return
        callback(offset)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_widget(self) -> Any:
        if self._disposed:
            raise DisposedViewError("Structure output view was torn down")
        if self._widget is None:
            raise ViewInitializationError("Structure output view has not been initialized")
        return self._widget

    def _swap_text(self, widget: Any, text: str) -> None:
        blocked = widget.blockSignals(True)
        try:
            widget.setPlainText(text)
        finally:
            widget.blockSignals(blocked)
        self._last_line = None


class _PointerFilter(QObject):
    """Reports left-button presses and releases on the editor viewport."""

    def __init__(self, handler: Callable[[bool, Any], None], parent: QObject) -> None:
        super().__init__(parent)
        self._handler = handler

    def eventFilter(self, obj: Any, event: Any) -> bool:  # type: ignore[override]
        event_type = event.type()
        if event_type in (QEvent.Type.MouseButtonPress, QEvent.Type.MouseButtonRelease):
            if event.button() == Qt.MouseButton.LeftButton:
                self._handler(event_type == QEvent.Type.MouseButtonPress, event.position().toPoint())
        return False


__all__ = ["InteractionCallback", "StructureOutputView"]
