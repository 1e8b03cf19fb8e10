"""SearchHelper logging utilities.

All modules log through the package logger ``log``. Messages about one
request batch go through ``batch_log`` so that interleaved batches can be
told apart in the output::

    10-18 12:00:01 [DEBG] [batch 3] dispatched requests=4
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Final, MutableMapping


_LEVEL_ABBREV: Final[dict[int, str]] = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "ERRO",
}

# Loggers of the HTTP stack mirrored to our handlers when wire logging is on.
_HTTP_LOGGERS: Final[tuple[str, ...]] = ("urllib3",)


class _AbbrevLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - record is stdlib name
        record.levelabbr = _LEVEL_ABBREV.get(record.levelno, record.levelname[:4])
        return super().format(record)


class BatchLogAdapter(logging.LoggerAdapter):
    """Prefix messages with the sequence id of the batch they concern."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[batch {self.extra['sequence_id']}] {msg}", kwargs


log = logging.getLogger("SearchHelper")


def batch_log(sequence_id: int) -> BatchLogAdapter:
    """Return a logger bound to one request batch."""
    return BatchLogAdapter(log, {"sequence_id": sequence_id})


def _file_handler(action: str, log_dir: str) -> logging.FileHandler:
    timestamp = datetime.now().strftime("%m%d%H%M%S")
    action_dir = Path(log_dir or "log") / action
    action_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(action_dir / f"{action}_{timestamp}.log", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    return handler


def configure_logging(
    *,
    level: str = "INFO",
    action: str | None = None,
    log_to_file: bool = True,
    log_dir: str = "log",
    http_debug: bool = False,
) -> None:
    """Configure the SearchHelper logger.

    Uses format: mm-dd HH:MM:SS [<LVL>] <message>
    where LVL is one of: DEBG/INFO/WARN/ERRO.

    Args:
        level: Console logging level (e.g., INFO, DEBUG).
        action: CLI action name used to create the log file path.
        log_to_file: Whether to mirror logs to a file (always at DEBUG).
        log_dir: Base directory for log files.
        http_debug: Also route the HTTP client's connection logs to the
            same handlers.
    """
    resolved_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    formatter = _AbbrevLevelFormatter(
        fmt="%(asctime)s [%(levelabbr)s] %(message)s",
        datefmt="%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(resolved_level)
    handlers: list[logging.Handler] = [stream_handler]
    if log_to_file and action:
        handlers.append(_file_handler(action, log_dir))
    for handler in handlers:
        handler.setFormatter(formatter)

    log.handlers.clear()
    for handler in handlers:
        log.addHandler(handler)
    log.setLevel(min(logging.DEBUG, resolved_level))
    log.propagate = False

    for name in _HTTP_LOGGERS:
        http_logger = logging.getLogger(name)
        http_logger.handlers.clear()
        if http_debug:
            for handler in handlers:
                http_logger.addHandler(handler)
            http_logger.setLevel(logging.DEBUG)
            http_logger.propagate = False
        else:
            http_logger.setLevel(logging.WARNING)
            http_logger.propagate = True
