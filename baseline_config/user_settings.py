"""Operator-adjustable run options persisted as JSON."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

from baseline_config.constants import IMMUTABLE_CONFIG
from baseline_config.paths import get_application_directory

SETTINGS_FILE_NAME = "settings.json"

_LOGGER = logging.getLogger(__name__)


@dataclass
class UserSettings:
    log_path: str = ""
    output_directory: str = ""
    checklist_path: str = ""
    unmount_delay_seconds: float = IMMUTABLE_CONFIG.mount.unmount_settle_seconds
    skipped_steps: list[str] = field(default_factory=list)

    def is_skipped(self, title: str) -> bool:
        return title.lower() in {name.lower() for name in self.skipped_steps}


class SettingsStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or get_application_directory() / SETTINGS_FILE_NAME

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UserSettings:
        if not self._path.exists():
            return UserSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            _LOGGER.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
            return UserSettings()
        if not isinstance(data, dict):
            _LOGGER.warning("Ignoring settings file %s: expected a JSON object", self._path)
            return UserSettings()
        known = {item.name for item in fields(UserSettings)}
        settings = UserSettings(**{key: value for key, value in data.items() if key in known})
        settings.unmount_delay_seconds = float(settings.unmount_delay_seconds)
        settings.skipped_steps = [str(name) for name in settings.skipped_steps or []]
        return settings

    def save(self, settings: UserSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(asdict(settings), indent=2), encoding="utf-8")
