"""Logging configuration (``log`` section)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchHelper.config.common import (
    expect_bool,
    expect_str,
    get_required_value,
    get_section,
)

_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Validated logging settings.

    Attributes:
        level: Console level, upper-cased.
        to_file: Mirror logs to ``dir/<action>/``.
        dir: Log directory.
        http_debug: Route the HTTP client's connection logs too.
    """

    level: str
    to_file: bool
    dir: str
    http_debug: bool = False


def load_runtime(raw: Mapping[str, Any]) -> RuntimeConfig:
    """Load the ``log`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "log", required=True)
    level = expect_str(get_required_value(section, "level", "log.level"), "log.level")
    return RuntimeConfig(
        level=level.strip().upper(),
        to_file=expect_bool(get_required_value(section, "to_file", "log.to_file"), "log.to_file"),
        dir=expect_str(section.get("dir", "log"), "log.dir"),
        http_debug=expect_bool(section.get("http_debug", False), "log.http_debug"),
    )


def check_runtime(config: RuntimeConfig) -> None:
    """Reject unknown levels, and an empty directory when file logging is on."""
    if config.level not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log.level must be one of {sorted(_ALLOWED_LOG_LEVELS)}")
    if config.to_file and not config.dir.strip():
        raise ValueError("log.dir must not be empty when log.to_file=true")
