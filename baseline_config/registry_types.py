"""Registry value kinds and edit actions used by checklist tables."""
from __future__ import annotations

from enum import Enum


class ValueType(Enum):
    DWORD = "REG_DWORD"
    QWORD = "REG_QWORD"
    STRING = "REG_SZ"
    EXPAND_STRING = "REG_EXPAND_SZ"
    BINARY = "REG_BINARY"
    MULTI_STRING = "REG_MULTI_SZ"

    @classmethod
    def parse(cls, text: str) -> "ValueType":
        key = text.strip().upper()
        aliases = {
            "DWORD": cls.DWORD,
            "INTEGER": cls.DWORD,
            "QWORD": cls.QWORD,
            "STRING": cls.STRING,
            "EXPANDSTRING": cls.EXPAND_STRING,
            "BINARY": cls.BINARY,
            "MULTISTRING": cls.MULTI_STRING,
        }
        if key in aliases:
            return aliases[key]
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown registry value type: {text}")


class EditAction(Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"

    @classmethod
    def parse(cls, text: str) -> "EditAction":
        try:
            return cls(text.strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown edit action: {text}") from exc


class SettingScope(Enum):
    MACHINE = "machine"
    ALL_USERS = "all_users"

    @classmethod
    def parse(cls, text: str) -> "SettingScope":
        try:
            return cls(text.strip().lower().replace("-", "_"))
        except ValueError as exc:
            raise ValueError(f"Unknown setting scope: {text}") from exc
