from __future__ import annotations

import json
from pathlib import Path

from baseline_config.user_settings import SettingsStore, UserSettings


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load()
    assert settings == UserSettings()
    assert settings.unmount_delay_seconds > 0


def test_saved_settings_are_reloaded(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "nested" / "settings.json")
    store.save(UserSettings(log_path=r"C:\Logs\run.log", unmount_delay_seconds=2, skipped_steps=["Taskbar"]))

    loaded = store.load()

    assert loaded.log_path == r"C:\Logs\run.log"
    assert loaded.unmount_delay_seconds == 2.0
    assert loaded.is_skipped("TASKBAR")
    assert not loaded.is_skipped("Telemetry")


def test_unknown_keys_and_bad_json_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"output_directory": "D:\\out", "legacy_option": True}), encoding="utf-8")
    assert SettingsStore(path).load().output_directory == "D:\\out"

    path.write_text("{not json", encoding="utf-8")
    assert SettingsStore(path).load() == UserSettings()

    path.write_text("[]", encoding="utf-8")
    assert SettingsStore(path).load() == UserSettings()
