"""Tests for the panel settings loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from structview.config import PanelSettings, SettingsStore, coerce_setting

_ENV_NAMES = (
    "STRUCTVIEW_INDENT_UNIT",
    "STRUCTVIEW_FONT_FAMILY",
    "STRUCTVIEW_NO_STRUCTURE_TEXT",
    "STRUCTVIEW_STRICT",
    "STRUCTVIEW_FONT_SIZE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    assert SettingsStore(tmp_path / "settings.json").load() == PanelSettings()


def test_load_reads_known_fields_and_ignores_unknown(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"indent_unit": "    ", "font_size": 14, "window": "left"}), encoding="utf-8")

    settings = SettingsStore(path).load()

    assert settings.indent_unit == "    "
    assert settings.font_size == 14
    assert settings.strict is False


def test_invalid_json_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == PanelSettings()
    assert "not valid JSON" in caplog.text


def test_non_object_payload_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert SettingsStore(path).load() == PanelSettings()


def test_env_overrides_apply(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRUCTVIEW_INDENT_UNIT", "\t")
    monkeypatch.setenv("STRUCTVIEW_STRICT", "yes")
    monkeypatch.setenv("STRUCTVIEW_FONT_SIZE", "16")

    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.indent_unit == "\t"
    assert settings.strict is True
    assert settings.font_size == 16


def test_invalid_integer_env_override_is_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRUCTVIEW_FONT_SIZE", "large")

    assert SettingsStore(tmp_path / "settings.json").load().font_size == PanelSettings().font_size


def test_explicit_overrides_win_over_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRUCTVIEW_STRICT", "1")

    settings = SettingsStore(tmp_path / "settings.json").load(
        overrides={"strict": False, "font_family": None, "bogus": 1}
    )

    assert settings.strict is False
    assert settings.font_family == PanelSettings().font_family


def test_json_values_of_the_wrong_type_are_dropped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"indent_unit": 3, "font_size": "big", "strict": "maybe", "font_family": "Iosevka"}),
        encoding="utf-8",
    )

    settings = SettingsStore(path).load()

    assert settings == PanelSettings(font_family="Iosevka")
    assert "indent_unit" in caplog.text
    assert "font_size" in caplog.text


def test_numeric_and_boolean_strings_are_coerced(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"font_size": "14", "strict": "on"}), encoding="utf-8")

    settings = SettingsStore(path).load(overrides={"font_size": "18"})

    assert settings.font_size == 18
    assert settings.strict is True


@pytest.mark.parametrize(
    ("name", "value"),
    [("indent_unit", ""), ("indent_unit", "\n"), ("font_size", 0), ("font_size", True), ("strict", 2)],
)
def test_unusable_values_are_rejected(name: str, value: object) -> None:
    with pytest.raises(ValueError):
        coerce_setting(name, value)


def test_invalid_override_keeps_earlier_value(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRUCTVIEW_FONT_SIZE", "16")

    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"font_size": "big", "indent_unit": 3})

    assert settings.font_size == 16
    assert settings.indent_unit == PanelSettings().indent_unit


def test_load_never_writes(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"

    SettingsStore(path).load()

    assert not path.exists()
