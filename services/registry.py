"""Registry access and idempotent single-value edits."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Protocol, Sequence, Union

from baseline_config.registry_types import EditAction, ValueType

try:  # Windows-only dependency, optional for test doubles
    import winreg  # type: ignore
except ImportError:  # pragma: no cover - not available on Linux runners
    winreg = None  # type: ignore

_LOGGER = logging.getLogger(__name__)

HKCU_PREFIX = "HKCU:\\"
DRIVE_MARKER = ":\\"

RegistryData = Union[int, str, bytes, Sequence[str]]


_INT_RANGES = {
    ValueType.DWORD: 0xFFFFFFFF,
    ValueType.QWORD: 0xFFFFFFFFFFFFFFFF,
}


def normalize_value(value: object, value_type: ValueType) -> RegistryData:
    """Check that ``value`` can be stored as ``value_type`` and return its stored form."""
    if value_type in _INT_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{value_type.value} requires an integer, got {value!r}")
        if not 0 <= value <= _INT_RANGES[value_type]:
            raise ValueError(f"{value!r} is out of range for {value_type.value}")
        return value
    if value_type in (ValueType.STRING, ValueType.EXPAND_STRING):
        if not isinstance(value, str):
            raise ValueError(f"{value_type.value} requires a string, got {value!r}")
        return value
    if value_type is ValueType.BINARY:
        if not isinstance(value, (bytes, bytearray)):
            raise ValueError(f"REG_BINARY requires bytes, got {value!r}")
        return bytes(value)
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise ValueError(f"REG_MULTI_SZ requires a list of strings, got {value!r}")
    if not all(isinstance(item, str) for item in value):
        raise ValueError(f"REG_MULTI_SZ entries must be strings, got {value!r}")
    return list(value)


@dataclass(frozen=True)
class SettingEdit:
    """One create-or-update/remove of a (path, name) pair.

    An empty ``name`` addresses the unnamed default value of ``path``.
    """

    path: str
    name: str
    value: RegistryData | None = None
    value_type: ValueType | None = None
    action: EditAction = EditAction.UPDATE

    def __post_init__(self) -> None:
        if not self.path or not self.path.strip("\\ "):
            raise ValueError("Registry path must not be empty")
        if self.name is None:
            raise ValueError("Value name must be a string; use '' for the default value")
        if not isinstance(self.action, EditAction):
            raise ValueError(f"Unsupported action: {self.action!r}")
        if self.action is EditAction.REMOVE:
            return
        if self.value_type is None:
            raise ValueError(f"{self.describe()}: value type is required for {self.action.value}")
        object.__setattr__(self, "value", normalize_value(self.value, self.value_type))

    def relocated(self, path: str) -> "SettingEdit":
        return replace(self, path=path)

    def describe(self) -> str:
        name = self.name or "(Default)"
        return f"{self.path}\\{name}"


@dataclass
class EditResult:
    edit: SettingEdit
    success: bool
    changed: bool
    detail: str = ""


class RegistryAccessor(Protocol):
    def key_exists(self, path: str) -> bool:  # pragma: no cover - protocol
        ...

    def create_key(self, path: str) -> None:  # pragma: no cover - protocol
        ...

    def list_subkeys(self, path: str) -> list[str]:  # pragma: no cover - protocol
        ...

    def read_value(self, path: str, value_name: str) -> tuple[RegistryData, ValueType] | None:  # pragma: no cover - protocol
        ...

    def get_value(self, path: str, value_name: str) -> RegistryData | None:  # pragma: no cover - protocol
        ...

    def set_value(
        self,
        path: str,
        value_name: str,
        value: RegistryData,
        value_type: ValueType | None = None,
    ) -> None:  # pragma: no cover - protocol
        ...

    def delete_value(self, path: str, value_name: str) -> bool:  # pragma: no cover - protocol
        ...


class WindowsRegistryAccessor:
    """Registry helper backed by winreg."""

    def __init__(self) -> None:
        if winreg is None:
            raise RuntimeError("winreg not available on this platform")

    def key_exists(self, path: str) -> bool:
        hive, subkey = self._split_path(path)
        try:
            with winreg.OpenKey(hive, subkey):  # type: ignore[arg-type]
                return True
        except FileNotFoundError:
            return False

    def create_key(self, path: str) -> None:
        hive, subkey = self._split_path(path)
        # CreateKeyEx opens an existing key and creates missing parents.
        with winreg.CreateKeyEx(hive, subkey, 0, winreg.KEY_WRITE):  # type: ignore[arg-type]
            pass

    def list_subkeys(self, path: str) -> list[str]:
        hive, subkey = self._split_path(path)
        names: list[str] = []
        with winreg.OpenKey(hive, subkey) as key:  # type: ignore[arg-type]
            count, _values, _modified = winreg.QueryInfoKey(key)
            for index in range(count):
                names.append(winreg.EnumKey(key, index))
        return names

    def read_value(self, path: str, value_name: str) -> tuple[RegistryData, ValueType] | None:
        hive, subkey = self._split_path(path)
        try:
            with winreg.OpenKey(hive, subkey) as key:  # type: ignore[arg-type]
                value, raw_type = winreg.QueryValueEx(key, value_name)
        except FileNotFoundError:
            return None
        return value, self._from_winreg_type(raw_type)

    def get_value(self, path: str, value_name: str) -> RegistryData | None:
        current = self.read_value(path, value_name)
        return None if current is None else current[0]

    def set_value(
        self,
        path: str,
        value_name: str,
        value: RegistryData,
        value_type: ValueType | None = None,
    ) -> None:
        hive, subkey = self._split_path(path)
        kind = value_type or (ValueType.DWORD if isinstance(value, int) else ValueType.STRING)
        with winreg.CreateKeyEx(hive, subkey, 0, winreg.KEY_WRITE) as key:  # type: ignore[arg-type]
            winreg.SetValueEx(key, value_name, 0, getattr(winreg, kind.value), value)

    def delete_value(self, path: str, value_name: str) -> bool:
        hive, subkey = self._split_path(path)
        with winreg.OpenKey(hive, subkey, 0, winreg.KEY_SET_VALUE) as key:  # type: ignore[arg-type]
            try:
                winreg.DeleteValue(key, value_name)
            except FileNotFoundError:
                return False
        return True

    def _from_winreg_type(self, raw_type: int) -> ValueType:
        for member in ValueType:
            if getattr(winreg, member.value) == raw_type:
                return member
        # REG_NONE, REG_LINK and friends are surfaced as raw bytes.
        return ValueType.BINARY

    def _split_path(self, path: str) -> tuple[object, str]:
        hive_name, subkey = split_registry_path(path)
        hive_map = {
            "HKLM": winreg.HKEY_LOCAL_MACHINE,
            "HKCU": winreg.HKEY_CURRENT_USER,
            "HKCR": winreg.HKEY_CLASSES_ROOT,
            "HKU": winreg.HKEY_USERS,
            "HKCC": winreg.HKEY_CURRENT_CONFIG,
        }
        try:
            hive = hive_map[hive_name]
        except KeyError as exc:  # pragma: no cover - invalid input handled upstream
            raise ValueError(f"Unsupported hive: {hive_name}") from exc
        return hive, subkey


def split_registry_path(path: str) -> tuple[str, str]:
    cleaned = path.replace("/", "\\")
    if DRIVE_MARKER not in cleaned:
        raise ValueError(f"Invalid registry path: {path}")
    hive_name, subkey = cleaned.split(DRIVE_MARKER, 1)
    return hive_name.upper(), subkey.strip("\\")


def user_relative_path(path: str) -> str:
    """Strip an ``HKCU:\\`` drive so the path can be re-rooted under a loaded hive."""
    cleaned = path.replace("/", "\\")
    if cleaned.upper().startswith(HKCU_PREFIX):
        return cleaned[len(HKCU_PREFIX) :].strip("\\")
    if DRIVE_MARKER in cleaned:
        raise ValueError(f"Expected HKCU or hive-relative path, got: {path}")
    return cleaned.strip("\\")


def read_setting(registry: RegistryAccessor, path: str, name: str) -> tuple[RegistryData, ValueType] | None:
    if not registry.key_exists(path):
        return None
    return registry.read_value(path, name)


def apply_edit(
    registry: RegistryAccessor,
    edit: SettingEdit,
    *,
    logger: logging.Logger | None = None,
) -> EditResult:
    """Apply ``edit`` to ``registry``.

    Raises ``OSError`` when the store cannot be reached; every other outcome
    is reported through the returned ``EditResult``.
    """
    logger = logger or _LOGGER
    if edit.action is EditAction.REMOVE:
        return _remove(registry, edit, logger)

    if not registry.key_exists(edit.path):
        registry.create_key(edit.path)
        logger.debug("Created key %s", edit.path)
    elif registry.read_value(edit.path, edit.name) == (edit.value, edit.value_type):
        return EditResult(edit, True, False, "already set")

    registry.set_value(edit.path, edit.name, edit.value, edit.value_type)  # type: ignore[arg-type]
    logger.debug("Set %s = %r (%s)", edit.describe(), edit.value, edit.value_type.value)  # type: ignore[union-attr]
    return EditResult(edit, True, True, f"set to {edit.value!r}")


def apply_setting(
    registry: RegistryAccessor,
    path: str,
    name: str,
    value: RegistryData | None,
    value_type: ValueType | None,
    action: EditAction,
    *,
    logger: logging.Logger | None = None,
) -> EditResult:
    return apply_edit(registry, SettingEdit(path, name, value, value_type, action), logger=logger)


def _remove(registry: RegistryAccessor, edit: SettingEdit, logger: logging.Logger) -> EditResult:
    if not registry.key_exists(edit.path):
        logger.warning("Nothing to remove: key %s does not exist", edit.path)
        return EditResult(edit, True, False, "key not found")
    if not registry.delete_value(edit.path, edit.name):
        logger.warning("Nothing to remove: %s is not set", edit.describe())
        return EditResult(edit, True, False, "value not present")
    logger.debug("Removed %s", edit.describe())
    return EditResult(edit, True, True, "removed")
