from __future__ import annotations

import logging

import pytest

from baseline_config.registry_types import EditAction, ValueType
from fakes import FakeRegistry
from services.registry import (
    SettingEdit,
    apply_edit,
    apply_setting,
    read_setting,
    user_relative_path,
)

EXAMPLE_PATH = r"HKCU:\Software\Example"


def test_update_twice_leaves_store_unchanged() -> None:
    registry = FakeRegistry()
    first = apply_setting(registry, EXAMPLE_PATH, "Flag", 1, ValueType.DWORD, EditAction.UPDATE)
    snapshot = registry.export_subtree("HKCU:")
    second = apply_setting(registry, EXAMPLE_PATH, "Flag", 1, ValueType.DWORD, EditAction.UPDATE)

    assert first.success and first.changed
    assert second.success and not second.changed
    assert registry.export_subtree("HKCU:") == snapshot
    assert registry.writes == [(EXAMPLE_PATH, "Flag")]


def test_add_and_update_behave_the_same() -> None:
    added = FakeRegistry()
    updated = FakeRegistry()
    apply_setting(added, EXAMPLE_PATH, "Mode", "on", ValueType.STRING, EditAction.ADD)
    apply_setting(updated, EXAMPLE_PATH, "Mode", "on", ValueType.STRING, EditAction.UPDATE)
    assert added.export_subtree("HKCU:") == updated.export_subtree("HKCU:")


def test_update_overwrites_value_and_type() -> None:
    registry = FakeRegistry()
    registry.set_value(EXAMPLE_PATH, "Flag", "1", ValueType.STRING)
    result = apply_setting(registry, EXAMPLE_PATH, "Flag", 1, ValueType.DWORD, EditAction.UPDATE)
    assert result.changed
    assert registry.read_value(EXAMPLE_PATH, "Flag") == (1, ValueType.DWORD)


def test_missing_intermediate_keys_are_created() -> None:
    registry = FakeRegistry()
    deep = r"HKCU:\Software\Vendor\Product\Settings\Deep"
    apply_setting(registry, deep, "Level", 3, ValueType.DWORD, EditAction.ADD)

    assert registry.key_exists(r"HKCU:\Software\Vendor")
    assert registry.key_exists(r"HKCU:\Software\Vendor\Product\Settings")
    assert read_setting(registry, deep, "Level") == (3, ValueType.DWORD)


def test_remove_missing_key_warns_and_succeeds(caplog: pytest.LogCaptureFixture) -> None:
    registry = FakeRegistry()
    with caplog.at_level(logging.WARNING):
        first = apply_setting(registry, EXAMPLE_PATH, "Flag", None, None, EditAction.REMOVE)
        second = apply_setting(registry, EXAMPLE_PATH, "Flag", None, None, EditAction.REMOVE)

    assert first.success and not first.changed
    assert second.success and not second.changed
    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert "Software\\Example" in warnings[0].getMessage()


def test_remove_absent_name_is_noop() -> None:
    registry = FakeRegistry()
    registry.set_value(EXAMPLE_PATH, "Other", 5, ValueType.DWORD)
    result = apply_setting(registry, EXAMPLE_PATH, "Flag", None, None, EditAction.REMOVE)
    assert result.success and not result.changed
    assert registry.get_value(EXAMPLE_PATH, "Other") == 5


def test_second_remove_of_same_value_warns(caplog: pytest.LogCaptureFixture) -> None:
    registry = FakeRegistry()
    registry.set_value(EXAMPLE_PATH, "Flag", 1, ValueType.DWORD)
    with caplog.at_level(logging.DEBUG):
        first = apply_setting(registry, EXAMPLE_PATH, "Flag", None, None, EditAction.REMOVE)
    assert first.changed
    assert not [record for record in caplog.records if record.levelno == logging.WARNING]

    caplog.clear()
    with caplog.at_level(logging.DEBUG):
        second = apply_setting(registry, EXAMPLE_PATH, "Flag", None, None, EditAction.REMOVE)

    assert second.success and not second.changed
    warnings = [record.getMessage() for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "Flag" in warnings[0]


def test_remove_deletes_value_but_keeps_key() -> None:
    registry = FakeRegistry()
    registry.set_value(EXAMPLE_PATH, "Flag", 1, ValueType.DWORD)
    result = apply_setting(registry, EXAMPLE_PATH, "Flag", None, None, EditAction.REMOVE)
    assert result.changed
    assert registry.key_exists(EXAMPLE_PATH)
    assert registry.get_value(EXAMPLE_PATH, "Flag") is None


def test_default_value_uses_empty_name() -> None:
    registry = FakeRegistry()
    edit = SettingEdit(r"HKCU:\Software\Classes\.baseline", "", "BaselineFile", ValueType.STRING)
    apply_edit(registry, edit)
    assert registry.get_value(r"HKCU:\Software\Classes\.baseline", "") == "BaselineFile"
    assert edit.describe().endswith("(Default)")


def test_multi_string_and_binary_values_are_stored() -> None:
    registry = FakeRegistry()
    apply_setting(registry, EXAMPLE_PATH, "Hosts", ("a", "b"), ValueType.MULTI_STRING, EditAction.UPDATE)
    apply_setting(registry, EXAMPLE_PATH, "Blob", bytearray(b"\x01\x02"), ValueType.BINARY, EditAction.UPDATE)
    assert registry.read_value(EXAMPLE_PATH, "Hosts") == (["a", "b"], ValueType.MULTI_STRING)
    assert registry.read_value(EXAMPLE_PATH, "Blob") == (b"\x01\x02", ValueType.BINARY)
    again = apply_setting(registry, EXAMPLE_PATH, "Hosts", ["a", "b"], ValueType.MULTI_STRING, EditAction.UPDATE)
    assert not again.changed


@pytest.mark.parametrize(
    ("value", "value_type"),
    [
        ("1", ValueType.DWORD),
        (True, ValueType.DWORD),
        (-1, ValueType.DWORD),
        (2**32, ValueType.DWORD),
        (7, ValueType.STRING),
        ("00ff", ValueType.BINARY),
        ("single", ValueType.MULTI_STRING),
    ],
)
def test_inconsistent_value_and_type_rejected(value: object, value_type: ValueType) -> None:
    with pytest.raises(ValueError):
        SettingEdit(EXAMPLE_PATH, "Flag", value, value_type, EditAction.UPDATE)


def test_empty_path_rejected() -> None:
    with pytest.raises(ValueError):
        SettingEdit("", "Flag", 1, ValueType.DWORD)


def test_access_denied_surfaces_as_os_error() -> None:
    registry = FakeRegistry()
    registry.denied.add(r"HKCU:\Software")
    with pytest.raises(PermissionError):
        apply_setting(registry, EXAMPLE_PATH, "Flag", 1, ValueType.DWORD, EditAction.UPDATE)


def test_user_relative_path() -> None:
    assert user_relative_path(r"HKCU:\Software\Example") == r"Software\Example"
    assert user_relative_path("Software\\Example\\") == r"Software\Example"
    with pytest.raises(ValueError):
        user_relative_path(r"HKLM:\SOFTWARE\Example")


def test_value_type_parsing() -> None:
    assert ValueType.parse("dword") is ValueType.DWORD
    assert ValueType.parse("REG_EXPAND_SZ") is ValueType.EXPAND_STRING
    assert EditAction.parse("Remove") is EditAction.REMOVE
    with pytest.raises(ValueError):
        ValueType.parse("REG_LINK")
