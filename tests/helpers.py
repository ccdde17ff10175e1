"""Shared test helpers and stub collaborators."""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QTextCursor

from structview.events import EventBus
from structview.structure.model import NodeKind, SourcePosition, StructureModel, StructureNode


def node(label: str, kind: NodeKind, depth: int, offset: int, *children: StructureNode) -> StructureNode:
    return StructureNode(
        label=label,
        kind=kind,
        depth=depth,
        position=SourcePosition(offset=offset),
        children=tuple(children),
    )


def empty_model(source_id: str = "A", revision: int = 2) -> StructureModel:
    return StructureModel(source_id=source_id, revision=revision, nodes=())


class RecordingApplication:
    """Application controller stub capturing navigation and error reports."""

    def __init__(self) -> None:
        self.events: EventBus = EventBus()
        self.navigations: list[tuple[str, int]] = []
        self.errors: list[tuple[str, str]] = []

    def navigate_to_position(self, source_id: str, offset: int) -> None:
        self.navigations.append((source_id, offset))

    def report_error(self, source_id: str, message: str) -> None:
        self.errors.append((source_id, message))


class RecordingProvider:
    """Structure provider answering synchronously from a queue of models."""

    def __init__(self, *models: StructureModel) -> None:
        self.requests: list[str] = []
        self._models = list(models)

    def queue(self, model: StructureModel) -> None:
        self._models.append(model)

    def request_structure(self, source_id: str) -> StructureModel | None:
        self.requests.append(source_id)
        if self._models:
            return self._models.pop(0)
        return None


def show_view(qtbot, view) -> None:
    """Show the view's widget so mouse events land on laid-out lines."""

    widget = view.widget
    widget.resize(320, 200)
    with qtbot.waitExposed(widget):
        widget.show()


def click_line(qtbot, view, line: int) -> None:
    """Left-click the start of display ``line`` in ``view``."""

    widget = view.widget
    block = widget.document().findBlockByNumber(line)
    point = widget.cursorRect(QTextCursor(block)).center()
    qtbot.mouseClick(widget.viewport(), Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier, point)
