"""Per-run state shared by every checklist step."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from services.logging_utils import configure_logging

RUN_LOGGER_NAME = "baseline.run"


@dataclass
class RunContext:
    """Step counter, log sink and output directory for one checklist run.

    Built once at the start of a run and handed to every operation; the step
    counter advances once per checklist step, never per registry edit.
    """

    log_path: Path
    output_dir: Path
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(RUN_LOGGER_NAME))
    step_number: int = 0
    current_step: str | None = None

    @classmethod
    def create(
        cls,
        log_path: str | Path | None = None,
        output_dir: str | Path | None = None,
        *,
        console: bool = True,
    ) -> "RunContext":
        chosen = configure_logging(log_path, also_console=console)
        output = Path(output_dir) if output_dir else chosen.parent
        output.mkdir(parents=True, exist_ok=True)
        return cls(log_path=chosen, output_dir=output)

    @contextmanager
    def step(self, title: str) -> Iterator["RunContext"]:
        self.step_number += 1
        self.current_step = title
        self.info("Started")
        try:
            yield self
        finally:
            self.info("Finished")
            self.current_step = None

    def info(self, message: str) -> None:
        self.logger.info(self._prefix(message))

    def warning(self, message: str) -> None:
        self.logger.warning(self._prefix(message))

    def error(self, message: str) -> None:
        self.logger.error(self._prefix(message))

    def _prefix(self, message: str) -> str:
        if self.current_step is None:
            return message
        return f"[Step {self.step_number}] {self.current_step}: {message}"
