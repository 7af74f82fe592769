"""Checklist of registry settings applied to the image, grouped by step."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Tuple, Union

from baseline_config.registry_types import EditAction, SettingScope, ValueType

EntryValue = Union[int, str, bytes, Tuple[str, ...], None]

HKCU_EXPLORER_ADVANCED = r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Explorer\Advanced"
HKCU_CONTENT_DELIVERY = r"HKCU:\Software\Microsoft\Windows\CurrentVersion\ContentDeliveryManager"
HKCU_SEARCH = r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Search"
HKCU_DESKTOP = r"HKCU:\Control Panel\Desktop"
HKLM_DATA_COLLECTION = r"HKLM:\SOFTWARE\Policies\Microsoft\Windows\DataCollection"
HKLM_CLOUD_CONTENT = r"HKLM:\SOFTWARE\Policies\Microsoft\Windows\CloudContent"


@dataclass(frozen=True)
class SettingEntry:
    label: str
    path: str
    name: str
    value: EntryValue = None
    value_type: ValueType | None = None
    action: EditAction = EditAction.UPDATE
    scope: SettingScope = SettingScope.MACHINE


@dataclass(frozen=True)
class ChecklistStep:
    title: str
    description: str
    entries: Tuple[SettingEntry, ...]


def _user(label: str, path: str, name: str, value: EntryValue, value_type: ValueType = ValueType.DWORD) -> SettingEntry:
    return SettingEntry(label, path, name, value, value_type, EditAction.UPDATE, SettingScope.ALL_USERS)


def _machine(label: str, path: str, name: str, value: EntryValue, value_type: ValueType = ValueType.DWORD) -> SettingEntry:
    return SettingEntry(label, path, name, value, value_type, EditAction.UPDATE, SettingScope.MACHINE)


CHECKLIST: Tuple[ChecklistStep, ...] = (
    ChecklistStep(
        "Telemetry",
        "Limit diagnostic data and feedback prompts",
        (
            _machine("Diagnostic data: required only", HKLM_DATA_COLLECTION, "AllowTelemetry", 1),
            _machine("No feedback notifications", HKLM_DATA_COLLECTION, "DoNotShowFeedbackNotifications", 1),
            _user("Feedback frequency: never", r"HKCU:\Software\Microsoft\Siuf\Rules", "NumberOfSIUFInPeriod", 0),
            _user(
                "Tailored experiences off",
                r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Privacy",
                "TailoredExperiencesWithDiagnosticDataEnabled",
                0,
            ),
        ),
    ),
    ChecklistStep(
        "Consumer Features",
        "Stop Windows from installing suggested apps",
        (
            _machine("Disable consumer features", HKLM_CLOUD_CONTENT, "DisableWindowsConsumerFeatures", 1),
            _user("Silent app installs off", HKCU_CONTENT_DELIVERY, "SilentInstalledAppsEnabled", 0),
            _user("Preinstalled apps off", HKCU_CONTENT_DELIVERY, "PreInstalledAppsEnabled", 0),
            _user("OEM preinstalled apps off", HKCU_CONTENT_DELIVERY, "OemPreInstalledAppsEnabled", 0),
        ),
    ),
    ChecklistStep(
        "App Suggestions",
        "Hide suggestions in Start, Settings and the lock screen",
        (
            _user("Start suggestions off", HKCU_CONTENT_DELIVERY, "SystemPaneSuggestionsEnabled", 0),
            _user("Suggested content in Settings off", HKCU_CONTENT_DELIVERY, "SubscribedContent-338393Enabled", 0),
            _user("Tips and tricks off", HKCU_CONTENT_DELIVERY, "SubscribedContent-338389Enabled", 0),
            _user("Welcome experience off", HKCU_CONTENT_DELIVERY, "SubscribedContent-310093Enabled", 0),
            _user("Lock screen fun facts off", HKCU_CONTENT_DELIVERY, "RotatingLockScreenOverlayEnabled", 0),
        ),
    ),
    ChecklistStep(
        "Explorer",
        "File Explorer defaults",
        (
            _user("Show file extensions", HKCU_EXPLORER_ADVANCED, "HideFileExt", 0),
            _user("Open File Explorer to This PC", HKCU_EXPLORER_ADVANCED, "LaunchTo", 1),
            _user("Show desktop icons", HKCU_EXPLORER_ADVANCED, "HideIcons", 0),
            _user(
                "Show This PC on desktop",
                r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Explorer\HideDesktopIcons\NewStartPanel",
                "{20D04FE0-3AEA-1069-A2D8-08002B30309D}",
                0,
            ),
        ),
    ),
    ChecklistStep(
        "Taskbar",
        "Taskbar layout for new and existing users",
        (
            _user("Align taskbar left", HKCU_EXPLORER_ADVANCED, "TaskbarAl", 0),
            _user("Hide Task View button", HKCU_EXPLORER_ADVANCED, "ShowTaskViewButton", 0),
            _user("Hide Widgets button", HKCU_EXPLORER_ADVANCED, "TaskbarDa", 0),
            _user("Search box as icon", HKCU_SEARCH, "SearchboxTaskbarMode", 1),
        ),
    ),
    ChecklistStep(
        "Web Search",
        "Keep Start menu search local",
        (
            _user("Bing search in Start off", HKCU_SEARCH, "BingSearchEnabled", 0),
            _user(
                "Search box suggestions off",
                r"HKCU:\Software\Policies\Microsoft\Windows\Explorer",
                "DisableSearchBoxSuggestions",
                1,
            ),
        ),
    ),
    ChecklistStep(
        "First Logon",
        "Shorten the first sign-in experience",
        (
            _machine(
                "First logon animation off",
                r"HKLM:\SOFTWARE\Microsoft\Windows\CurrentVersion\Policies\System",
                "EnableFirstLogonAnimation",
                0,
            ),
            _machine("Privacy experience off", r"HKLM:\SOFTWARE\Policies\Microsoft\Windows\OOBE", "DisablePrivacyExperience", 1),
        ),
    ),
    ChecklistStep(
        "Fast Boot",
        "Disable hybrid shutdown",
        (
            _machine(
                "Fast startup off",
                r"HKLM:\SYSTEM\CurrentControlSet\Control\Session Manager\Power",
                "HiberbootEnabled",
                0,
            ),
        ),
    ),
    ChecklistStep(
        "Screen Saver Lock",
        "Password-protected screen saver after 15 minutes",
        (
            _user("Screen saver enabled", HKCU_DESKTOP, "ScreenSaveActive", "1", ValueType.STRING),
            _user("Screen saver requires password", HKCU_DESKTOP, "ScreenSaverIsSecure", "1", ValueType.STRING),
            _user("Screen saver timeout", HKCU_DESKTOP, "ScreenSaveTimeOut", "900", ValueType.STRING),
            _user("Blank screen saver", HKCU_DESKTOP, "SCRNSAVE.EXE", r"%SystemRoot%\System32\scrnsave.scr", ValueType.EXPAND_STRING),
        ),
    ),
    ChecklistStep(
        "Date Format",
        "Regional short date for every profile",
        (
            _user("Short date dd/MM/yyyy", r"HKCU:\Control Panel\International", "sShortDate", "dd/MM/yyyy", ValueType.STRING),
            _user("Date separator", r"HKCU:\Control Panel\International", "sDate", "/", ValueType.STRING),
        ),
    ),
    ChecklistStep(
        "OneDrive Autostart",
        "Remove the per-user OneDrive setup launcher",
        (
            SettingEntry(
                "Remove OneDriveSetup run entry",
                r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Run",
                "OneDriveSetup",
                action=EditAction.REMOVE,
                scope=SettingScope.ALL_USERS,
            ),
        ),
    ),
    ChecklistStep(
        "Edge First Run",
        "Skip the Edge first run wizard",
        (
            _machine("Hide first run experience", r"HKLM:\SOFTWARE\Policies\Microsoft\Edge", "HideFirstRunExperience", 1),
        ),
    ),
)


def find_step(title: str, steps: Sequence[ChecklistStep] = CHECKLIST) -> ChecklistStep:
    for step in steps:
        if step.title.lower() == title.strip().lower():
            return step
    raise KeyError(f"Unknown checklist step: {title}")


def load_checklist_file(path: str | Path) -> Tuple[ChecklistStep, ...]:
    """Read extra checklist steps from JSON.

    The file holds a list of ``{"title", "description", "entries": [...]}``
    objects. Each entry carries ``label``, ``path``, ``name``, ``value``,
    ``type``, ``action`` and ``scope``; binary values are hex strings.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of checklist steps")
    steps: list[ChecklistStep] = []
    for index, raw_step in enumerate(data):
        if not isinstance(raw_step, dict):
            raise ValueError(f"{path}: step {index} is not an object")
        raw_entries = raw_step.get("entries", [])
        if not isinstance(raw_entries, list) or not all(isinstance(raw, dict) for raw in raw_entries):
            raise ValueError(f"{path}: entries of step {index} must be a list of objects")
        entries = tuple(_parse_entry(raw) for raw in raw_entries)
        steps.append(ChecklistStep(str(raw_step["title"]), str(raw_step.get("description", "")), entries))
    return tuple(steps)


def _parse_entry(raw: dict[str, Any]) -> SettingEntry:
    action = EditAction.parse(str(raw.get("action", "update")))
    type_name = raw.get("type")
    value_type = ValueType.parse(str(type_name)) if type_name else None
    value = raw.get("value")
    if value_type is ValueType.BINARY and isinstance(value, str):
        value = bytes.fromhex(value)
    elif value_type is ValueType.MULTI_STRING and isinstance(value, list):
        value = tuple(value)
    return SettingEntry(
        label=str(raw.get("label") or raw.get("name") or raw.get("path", "")),
        path=str(raw.get("path", "")),
        name=raw.get("name", ""),
        value=value,
        value_type=value_type,
        action=action,
        scope=SettingScope.parse(str(raw.get("scope", "machine"))),
    )
