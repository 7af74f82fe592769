"""Run log configuration: one file per run, echoed to the console."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from baseline_config.constants import IMMUTABLE_CONFIG, default_log_path

_CONFIGURED_FLAG = "_baseline_configured"
_PATH_ATTR = "_baseline_log_path"
_HANDLERS_ATTR = "_baseline_handlers"


def build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt=IMMUTABLE_CONFIG.logging.line_format,
        datefmt=IMMUTABLE_CONFIG.logging.date_format,
    )


def configure_logging(
    log_path: str | Path | None = None,
    level: int = logging.INFO,
    also_console: bool = True,
) -> Path:
    """Attach the run log file (append mode) and a console echo to the root logger.

    When the requested file cannot be opened the log is written next to the
    working directory instead. Returns the path actually in use. Calling this
    again reuses the handlers from the first call.
    """
    logger = logging.getLogger()
    logger.setLevel(level)
    if getattr(logger, _CONFIGURED_FLAG, False):
        return getattr(logger, _PATH_ATTR)

    requested = Path(log_path) if log_path else default_log_path()
    formatter = build_formatter()
    try:
        requested.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(requested, mode="a", encoding="utf-8")
        chosen = requested
    except OSError:
        chosen = Path.cwd() / IMMUTABLE_CONFIG.logging.log_file_name
        file_handler = logging.FileHandler(chosen, mode="a", encoding="utf-8")
    file_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [file_handler]

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    for handler in handlers:
        logger.addHandler(handler)
    setattr(logger, _HANDLERS_ATTR, handlers)

    setattr(logger, _CONFIGURED_FLAG, True)
    setattr(logger, _PATH_ATTR, chosen)
    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", requested, chosen)
    return chosen


def reset_logging() -> None:
    logger = logging.getLogger()
    if not getattr(logger, _CONFIGURED_FLAG, False):
        return
    for handler in getattr(logger, _HANDLERS_ATTR, []):
        logger.removeHandler(handler)
        handler.close()
    setattr(logger, _HANDLERS_ATTR, [])
    setattr(logger, _CONFIGURED_FLAG, False)


class CallbackHandler(logging.Handler):
    """Forwards formatted records to a UI log callback."""

    def __init__(self, callback: Callable[[str], None], level: int = logging.INFO) -> None:
        super().__init__(level)
        self._callback = callback
        self.setFormatter(build_formatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._callback(self.format(record))
        except Exception:  # pragma: no cover - mirrors logging.Handler contract
            self.handleError(record)
