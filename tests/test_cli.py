from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest

import main
from fakes import FakeHiveRunner, FakeRegistry
from services.logging_utils import reset_logging

FAST_BOOT_PATH = r"HKLM:\SYSTEM\CurrentControlSet\Control\Session Manager\Power"


@pytest.fixture(autouse=True)
def clean_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    reset_logging()
    yield
    reset_logging()
    root.setLevel(level)


def base_args(tmp_path: Path) -> list[str]:
    return [
        "--no-elevate",
        "--settings",
        str(tmp_path / "settings.json"),
        "--log-path",
        str(tmp_path / "run.log"),
    ]


def test_list_prints_steps(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main.main(["--list", "--settings", str(tmp_path / "settings.json")]) == 0
    out = capsys.readouterr().out
    assert "Fast Boot: Disable hybrid shutdown (1 setting(s))" in out
    assert "Taskbar:" in out


def test_list_includes_extra_checklist(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    extra = tmp_path / "extra.json"
    extra.write_text(json.dumps([{"title": "Extra Step", "description": "More", "entries": []}]), encoding="utf-8")
    assert main.main(["--list", "--settings", str(tmp_path / "settings.json"), "--checklist", str(extra)]) == 0
    assert "Extra Step: More (0 setting(s))" in capsys.readouterr().out


def test_bad_checklist_file_exits_with_error(tmp_path: Path) -> None:
    assert main.main(["--list", "--settings", str(tmp_path / "s.json"), "--checklist", str(tmp_path / "missing.json")]) == 2


def test_check_then_apply_single_step(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    registry = FakeRegistry()
    runner = FakeHiveRunner(registry)
    args = base_args(tmp_path) + ["--step", "Fast Boot"]

    assert main.main(["--check", *args], registry=registry, command_runner=runner) == 1
    assert "[DIFFERS] Fast Boot" in capsys.readouterr().out

    assert main.main(args, registry=registry, command_runner=runner) == 0
    assert registry.get_value(FAST_BOOT_PATH, "HiberbootEnabled") == 0
    assert runner.commands == []

    assert main.main(["--check", *args], registry=registry, command_runner=runner) == 0
    assert "[OK] Fast Boot: 1/1 compliant" in capsys.readouterr().out
    assert "[Step 1] Fast Boot: Finished" in (tmp_path / "run.log").read_text(encoding="utf-8")


def test_apply_with_unloadable_default_profile_still_exits_zero(tmp_path: Path) -> None:
    registry = FakeRegistry()
    runner = FakeHiveRunner(registry)
    assert main.main(base_args(tmp_path) + ["--step", "Taskbar"], registry=registry, command_runner=runner) == 0
    log_text = (tmp_path / "run.log").read_text(encoding="utf-8")
    assert "ERROR: Loading hive for .DEFAULT" in log_text
    assert "FAILED" in log_text
