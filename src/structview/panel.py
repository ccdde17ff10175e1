"""Scoped construction of a structure panel."""

from __future__ import annotations

import contextlib
from typing import Any, Iterator

from .analysis import StructureProvider
from .application import ApplicationControllerProtocol
from .config import PanelSettings
from .controllers.structure_output_controller import StructureOutputController
from .views.structure_output_view import StructureOutputView


@contextlib.contextmanager
def open_structure_panel(
    application_controller: ApplicationControllerProtocol,
    *,
    provider: StructureProvider | None = None,
    settings: PanelSettings | None = None,
    parent: Any | None = None,
) -> Iterator[StructureOutputController]:
    """Build, attach and always detach a structure panel.

    The widget is released on every exit path, including a failing ``attach``.
    """

    view = StructureOutputView(settings, parent=parent)
    view.initialize()
    try:
        controller = StructureOutputController(view=view, provider=provider, settings=settings)
    except Exception:
        view.teardown()
        raise
    try:
        controller.attach(application_controller)
        yield controller
    finally:
        controller.detach()


__all__ = ["open_structure_panel"]
