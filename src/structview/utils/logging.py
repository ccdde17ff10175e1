"""Logging setup shared by the panel and its host."""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

__all__ = ["LOG_FORMAT", "LoggingOptions", "get_log_path", "setup_logging"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FILE_NAME = "structview.log"
_DEFAULT_LOG_DIR = Path.home() / ".structview" / "logs"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_LOG_PATH: Path | None = None


@dataclass(frozen=True, slots=True)
class LoggingOptions:
    """Where and how much the panel logs.

    ``from_env`` honours ``STRUCTVIEW_LOG_LEVEL`` (a level name or number) and
    ``STRUCTVIEW_LOG_DIR``.
    """

    level: int = logging.INFO
    log_dir: Path = field(default_factory=lambda: _DEFAULT_LOG_DIR)
    console: bool = True
    max_bytes: int = 1_000_000
    backup_count: int = 3

    @classmethod
    def from_env(cls, **overrides: object) -> LoggingOptions:
        options = cls()
        level = os.environ.get("STRUCTVIEW_LOG_LEVEL")
        if level:
            options = replace(options, level=parse_level(level))
        log_dir = os.environ.get("STRUCTVIEW_LOG_DIR")
        if log_dir:
            options = replace(options, log_dir=Path(log_dir).expanduser())
        present = {key: value for key, value in overrides.items() if value is not None}
        return replace(options, **present) if present else options

    @property
    def log_path(self) -> Path:
        return Path(self.log_dir).expanduser() / LOG_FILE_NAME


def parse_level(value: int | str) -> int:
    """Map ``"debug"``/``"10"``/``10`` to a logging level; unknown names mean INFO."""

    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(options: LoggingOptions | None = None, *, force: bool = False) -> Path:
    """Route the root logger to a rotating ``structview.log`` (plus stderr).

    Later calls return the active log file unchanged unless ``force`` is set.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    options = options or LoggingOptions.from_env()
    log_path = options.log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers = _build_handlers(options, log_path)
    logging.basicConfig(level=options.level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    quiet_level = max(logging.WARNING, options.level)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, if logging was configured."""

    return _LOG_PATH


def _build_handlers(options: LoggingOptions, log_path: Path) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=options.max_bytes,
            backupCount=options.backup_count,
            encoding="utf-8",
        )
    ]
    if options.console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(options.level)
        handler.setFormatter(formatter)
    return handlers
