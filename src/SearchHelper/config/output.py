"""Output configuration (``output`` section): where and how results are written."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchHelper.config.common import (
    expect_str,
    expect_str_list,
    get_required_value,
    get_section,
)

_ALLOWED_FORMATS = {"console", "json"}


@dataclass(frozen=True, slots=True)
class OutputConfig:
    """Validated output settings.

    Attributes:
        base_dir: Root directory of file outputs; JSON dumps go to ``base_dir/json``.
        formats: Enabled writers, lower-cased (``console``, ``json``).
    """

    base_dir: str
    formats: tuple[str, ...]


def load_output(raw: Mapping[str, Any]) -> OutputConfig:
    """Load the ``output`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "output", required=True)
    formats = tuple(
        item.lower() for item in expect_str_list(get_required_value(section, "formats", "output.formats"), "output.formats")
    )
    return OutputConfig(
        base_dir=expect_str(get_required_value(section, "base_dir", "output.base_dir"), "output.base_dir"),
        formats=formats,
    )


def check_output(config: OutputConfig) -> None:
    """Require at least one known format, and a directory for JSON dumps.

    Raises:
        ValueError: If formats are empty or unknown, or ``base_dir`` is blank
            while JSON output is on.
    """
    if not config.formats:
        raise ValueError("output.formats must not be empty")
    invalid = set(config.formats) - _ALLOWED_FORMATS
    if invalid:
        raise ValueError(f"Invalid output.formats values: {sorted(invalid)}")
    if "json" in config.formats and not config.base_dir.strip():
        raise ValueError("output.base_dir must not be empty when json output is enabled")
