"""Panel settings loaded from JSON with environment overrides."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, get_type_hints

from .structure.formatting import DEFAULT_INDENT_UNIT, DEFAULT_NO_STRUCTURE_TEXT

__all__ = ["PanelSettings", "SettingsStore", "coerce_setting"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".structview"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_ENV_OVERRIDES: Mapping[str, str] = {
    "STRUCTVIEW_INDENT_UNIT": "indent_unit",
    "STRUCTVIEW_NO_STRUCTURE_TEXT": "no_structure_text",
    "STRUCTVIEW_FONT_FAMILY": "font_family",
    "STRUCTVIEW_FONT_SIZE": "font_size",
    "STRUCTVIEW_STRICT": "strict",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "release"}


@dataclass(slots=True)
class PanelSettings:
    """User-tunable knobs for the structure panel.

    ``strict`` turns use of a disposed view into a hard error, which is what
    debug builds want; release builds log and carry on.
    """

    indent_unit: str = DEFAULT_INDENT_UNIT
    no_structure_text: str = DEFAULT_NO_STRUCTURE_TEXT
    font_family: str = "JetBrains Mono"
    font_size: int = 11
    strict: bool = False


_FIELD_TYPES: Dict[str, Any] = get_type_hints(PanelSettings)


class SettingsStore:
    """Read-only loader for :class:`PanelSettings`.

    Every value, whether it comes from the JSON file, the environment or the
    caller, is coerced to the field's type; values that do not fit are
    dropped with a warning and the default (or earlier layer) stays in place.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> PanelSettings:
        """Load settings from disk, then apply environment and explicit overrides."""

        settings = PanelSettings(**_coerce_fields(self._read_payload(), origin=str(self._path)))
        settings = self._apply_env_overrides(settings)
        if overrides:
            settings = _apply(settings, _coerce_fields(overrides, origin="overrides"))
        LOGGER.debug("Panel settings loaded from %s: %s", self._path, settings)
        return settings

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_env_overrides(self, settings: PanelSettings) -> PanelSettings:
        raw = {
            field_name: os.environ[env_name]
            for env_name, field_name in _ENV_OVERRIDES.items()
            if env_name in os.environ
        }
        return _apply(settings, _coerce_fields(raw, origin="environment"))


def coerce_setting(name: str, value: Any) -> Any:
    """Return ``value`` converted to the type of field ``name``.

    Strings are parsed for numeric and boolean fields (``"14"``, ``"yes"``);
    anything else must already have the right type. Raises ``KeyError`` for
    unknown fields and ``ValueError`` for values that do not fit.
    """

    target = _FIELD_TYPES[name]
    if target is bool:
        result = _coerce_bool(value)
    elif target is int:
        result = _coerce_int(value)
    elif isinstance(value, str):
        result = value
    else:
        raise ValueError(f"expected text, got {type(value).__name__}")

    if name == "indent_unit" and (not result or "\n" in result or "\r" in result):
        raise ValueError("indent unit must be a non-empty single-line string")
    if name == "font_size" and result <= 0:
        raise ValueError("font size must be positive")
    return result


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ValueError(f"cannot coerce {value!r} to a boolean")


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"cannot coerce {value!r} to an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip(), 10)
    raise ValueError(f"cannot coerce {value!r} to an integer")


def _coerce_fields(payload: Mapping[str, Any], *, origin: str) -> Dict[str, Any]:
    coerced: Dict[str, Any] = {}
    for key, value in payload.items():
        if key not in _FIELD_TYPES or value is None:
            continue
        try:
            coerced[key] = coerce_setting(key, value)
        except ValueError as exc:
            LOGGER.warning("Ignoring setting %s=%r from %s: %s", key, value, origin, exc)
    return coerced


def _apply(settings: PanelSettings, values: Mapping[str, Any]) -> PanelSettings:
    return replace(settings, **values) if values else settings
