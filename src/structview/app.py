"""Standalone structure viewer and the bootstrap helpers it shares with hosts.

``structview OUTLINE.json`` shows a precomputed outline (the JSON form of
:class:`StructureModel`, or a bare list of nodes) in a window of its own and
reloads it on ``F5``. Hosts embedding the panel reuse :func:`configure_logging`,
:func:`load_settings`, :func:`create_qapp` and :func:`drain_event_loop`.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence, cast

from PySide6.QtCore import QtMsgType, qInstallMessageHandler
from PySide6.QtGui import QKeySequence, QShortcut
from PySide6.QtWidgets import QApplication, QMainWindow
from qasync import QEventLoop

from .analysis import StructureAnalysisRunner
from .application import ApplicationController
from .config import PanelSettings, SettingsStore, coerce_setting
from .panel import open_structure_panel
from .structure.model import StructureModel, StructureNode
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, log_dir: Path | str | None = None, force: bool = False) -> Path:
    """Configure logging and route Qt's own messages into it.

    Without ``debug`` the level comes from ``STRUCTVIEW_LOG_LEVEL`` (INFO by default).
    """

    options = logging_utils.LoggingOptions.from_env(
        level=logging.DEBUG if debug else None,
        log_dir=Path(log_dir) if log_dir is not None else None,
    )
    log_path = logging_utils.setup_logging(options, force=force)
    _LOGGER.debug("Logging to %s (level=%s)", log_path, logging.getLevelName(options.level))
    install_qt_message_handler()
    return log_path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PanelSettings:
    """Load panel settings, falling back to defaults if anything goes wrong."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except Exception as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return PanelSettings()


def create_qapp(application_name: str = "structview") -> QtRuntime:
    """Return the QApplication (creating it if needed) driven by a qasync loop."""

    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName(application_name)
    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    return QtRuntime(app=app, loop=loop)


def drain_event_loop(loop: asyncio.AbstractEventLoop, *closers: Callable[[], Awaitable[None]]) -> None:
    """Run ``closers`` (e.g. ``runner.aclose``), then cancel whatever is still pending.

    Does nothing for a closed loop; ``loop`` itself is left open.
    """

    if loop.is_closed():
        return

    async def _shutdown() -> None:
        for close in closers:
            try:
                await close()
            except Exception:
                _LOGGER.exception("Shutdown step %r failed", close)
        this_task = asyncio.current_task()
        leftovers = [task for task in asyncio.all_tasks() if task is not this_task and not task.done()]
        for task in leftovers:
            task.cancel()
        if leftovers:
            _LOGGER.debug("Cancelled %s task(s) still pending at shutdown", len(leftovers))
            await asyncio.gather(*leftovers, return_exceptions=True)
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_shutdown())
    except RuntimeError as exc:
        _LOGGER.debug("Event loop could not be drained: %s", exc)


def install_qt_message_handler() -> None:
    """Send Qt's diagnostics to the ``PySide6`` logger."""

    qInstallMessageHandler(_forward_qt_message)


def _forward_qt_message(mode, context, message) -> None:  # type: ignore[no-untyped-def]
    logging.getLogger("PySide6").log(_QT_LEVELS.get(mode, logging.INFO), message)


def load_outline(source_id: str) -> tuple[StructureNode, ...]:
    """Analyzer for the standalone viewer: read nodes from a JSON outline file."""

    payload = json.loads(Path(source_id).read_text(encoding="utf-8"))
    if isinstance(payload, list):
        payload = {"nodes": payload}
    if not isinstance(payload, dict):
        raise ValueError(f"{source_id} does not contain an outline")
    return StructureModel.from_dict(payload).nodes


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``structview`` console script."""

    args = _parse_cli_args(argv)
    debug = args.debug or os.environ.get("STRUCTVIEW_DEBUG", "").strip().lower() in _TRUE_VALUES
    configure_logging(debug)
    try:
        overrides = _parse_overrides(args.overrides)
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2
    settings = load_settings(args.settings_path, overrides=overrides or None)

    runtime = create_qapp()
    host = ApplicationController(navigator=_log_navigation)
    runner = StructureAnalysisRunner.for_application(host, load_outline, loop=runtime.loop)
    window = QMainWindow()
    window.setWindowTitle("structview")
    window.resize(480, 640)
    try:
        with open_structure_panel(host, provider=runner, settings=settings, parent=window) as panel:
            window.setCentralWidget(panel.view.widget)
            refresh = QShortcut(QKeySequence("F5"), window)
            refresh.activated.connect(panel.refresh)
            window.show()
            if args.outline is not None:
                host.open_file(str(args.outline.expanduser()))
            runtime.loop.run_forever()
    except KeyboardInterrupt:
        _LOGGER.info("Shutdown requested by user.")
    finally:
        drain_event_loop(runtime.loop, runner.aclose)
        runtime.loop.close()
    return 0


def _log_navigation(source_id: str, offset: int) -> None:
    _LOGGER.info("Selected %s @ %s", source_id, offset)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="structview", description="Show a structure outline in its own window.")
    parser.add_argument("outline", nargs="?", type=Path, help="JSON outline to display.")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level.")
    parser.add_argument(
        "--settings-path",
        type=Path,
        metavar="PATH",
        help="Read settings from PATH instead of ~/.structview/settings.json.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a panel setting (repeatable).",
    )
    return parser.parse_args(argv)


def _parse_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, sep, raw_value = entry.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"'{entry}' must use KEY=VALUE syntax")
        try:
            overrides[key] = coerce_setting(key, raw_value)
        except KeyError:
            raise ValueError(f"unknown setting '{key}'") from None
    return overrides


__all__ = [
    "QtRuntime",
    "configure_logging",
    "create_qapp",
    "drain_event_loop",
    "install_qt_message_handler",
    "load_outline",
    "load_settings",
    "main",
]
