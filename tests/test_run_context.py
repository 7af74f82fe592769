from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

import pytest

from services.logging_utils import CallbackHandler, configure_logging, reset_logging
from services.run_context import RunContext

LINE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\S* (INFO|WARNING|ERROR): .+$")


@pytest.fixture(autouse=True)
def clean_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    reset_logging()
    yield
    reset_logging()
    root.setLevel(level)


def test_log_file_lines_use_timestamp_level_message(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "run.log"
    context = RunContext.create(log_path, console=False)
    with context.step("Telemetry"):
        context.warning("value missing")
    context.error("outside any step")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert lines
    assert all(LINE_PATTERN.match(line) for line in lines)
    assert lines[-4].endswith("INFO: [Step 1] Telemetry: Started")
    assert lines[-3].endswith("WARNING: [Step 1] Telemetry: value missing")
    assert lines[-2].endswith("INFO: [Step 1] Telemetry: Finished")
    assert lines[-1].endswith("ERROR: outside any step")
    assert context.output_dir == log_path.parent


def test_log_file_is_appended_not_truncated(tmp_path: Path) -> None:
    log_path = tmp_path / "run.log"
    log_path.write_text("2024-01-01T00:00:00+0000 INFO: earlier run\n", encoding="utf-8")
    configure_logging(log_path, also_console=False)
    logging.getLogger("baseline.run").info("later run")
    for handler in logging.getLogger().handlers:
        handler.flush()
    text = log_path.read_text(encoding="utf-8")
    assert text.startswith("2024-01-01T00:00:00+0000 INFO: earlier run")
    assert text.rstrip().endswith("INFO: later run")


def test_configure_logging_is_idempotent(tmp_path: Path) -> None:
    first = configure_logging(tmp_path / "a.log", also_console=False)
    handler_count = len(logging.getLogger().handlers)
    second = configure_logging(tmp_path / "b.log", also_console=False)
    assert first == second == tmp_path / "a.log"
    assert len(logging.getLogger().handlers) == handler_count


def test_step_counter_survives_failing_step(tmp_path: Path) -> None:
    context = RunContext(log_path=tmp_path / "run.log", output_dir=tmp_path)
    with pytest.raises(RuntimeError):
        with context.step("First"):
            raise RuntimeError("boom")
    with context.step("Second"):
        assert context.step_number == 2
    assert context.current_step is None


def test_output_directory_is_created(tmp_path: Path) -> None:
    output = tmp_path / "out" / "nested"
    context = RunContext.create(tmp_path / "run.log", output, console=False)
    assert output.is_dir()
    assert context.output_dir == output


def test_callback_handler_forwards_formatted_records() -> None:
    received: list[str] = []
    logger = logging.getLogger("baseline.test.callback")
    handler = CallbackHandler(received.append)
    logger.addHandler(handler)
    try:
        logger.warning("hive stuck")
    finally:
        logger.removeHandler(handler)
    assert len(received) == 1
    assert received[0].endswith("WARNING: hive stuck")
