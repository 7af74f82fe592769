"""Admin privilege helpers for Windows.

Loading another user's hive (reg load) and writing HKLM policies both need an
elevated process.
"""
from __future__ import annotations

import ctypes
import subprocess
import sys
from typing import Final, Sequence

# ShellExecuteW returns a value greater than 32 when the launch succeeded.
SHELLEXECUTE_MIN_SUCCESS: Final[int] = 32


def is_admin() -> bool:
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except AttributeError:
        return False


def relaunch_as_admin(arguments: Sequence[str] | None = None) -> bool:
    args = list(sys.argv[1:] if arguments is None else arguments)
    params = subprocess.list2cmdline([sys.argv[0], *args])
    try:
        result = ctypes.windll.shell32.ShellExecuteW(None, "runas", sys.executable, params, None, 1)  # type: ignore[attr-defined]
    except AttributeError:
        return False
    return int(result) > SHELLEXECUTE_MIN_SUCCESS
