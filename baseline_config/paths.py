"""Locations used for persisted settings and run output."""
from __future__ import annotations

import os
import sys
from pathlib import Path

APP_DIRECTORY_NAME = "BaselineConfigurator"


def get_application_directory() -> Path:
    """Return (and create) the per-machine data directory."""
    program_data = os.environ.get("ProgramData")
    if program_data:
        base = Path(program_data)
    elif getattr(sys, "frozen", False):
        base = Path(sys.executable).resolve().parent
    else:
        base = Path.home() / ".local" / "share"
    path = base / APP_DIRECTORY_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path
