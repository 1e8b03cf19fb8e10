"""Shared helpers for configuration loading and validation.

Every helper takes the full key path (``helper.facets[2]``) so that error
messages point at the offending entry.
"""

from __future__ import annotations

from typing import Any, Mapping


def get_section(raw: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    """Return the ``key`` section of the root mapping.

    Optional missing sections come back as an empty mapping.

    Raises:
        ValueError: If a required section is missing.
        TypeError: If the section is not a mapping.
    """
    section = raw.get(key)
    if section is None:
        if required:
            raise ValueError(f"Missing required config: {key}")
        return {}
    if not isinstance(section, Mapping):
        raise TypeError(f"{key} must be an object")
    return section


def get_required_value(section: Mapping[str, Any], field: str, config_key: str) -> Any:
    """Return ``section[field]``, reporting ``config_key`` when missing."""
    if field not in section:
        raise ValueError(f"Missing required config: {config_key}")
    return section[field]


def expect_str(value: Any, config_key: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{config_key} must be a string")
    return value


def expect_optional_str(value: Any, config_key: str) -> str | None:
    """Validate a string that may be null; blank strings become ``None``."""
    if value is None:
        return None
    return expect_str(value, config_key).strip() or None


def expect_bool(value: Any, config_key: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{config_key} must be a boolean")
    return value


def expect_int(value: Any, config_key: str) -> int:
    """Validate an integer; booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{config_key} must be an integer")
    return value


def expect_optional_int(value: Any, config_key: str) -> int | None:
    return None if value is None else expect_int(value, config_key)


def expect_float(value: Any, config_key: str) -> float:
    """Validate a number (int or float, not bool) and return it as float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{config_key} must be a number")
    return float(value)


def _expect_list(value: Any, config_key: str, item_type: type, item_label: str) -> list[Any]:
    if not isinstance(value, list):
        raise TypeError(f"{config_key} must be a list")
    for idx, item in enumerate(value):
        if not isinstance(item, item_type):
            raise TypeError(f"{config_key}[{idx}] must be {item_label}")
    return list(value)


def expect_str_list(value: Any, config_key: str) -> list[str]:
    return _expect_list(value, config_key, str, "a string")


def expect_mapping_list(value: Any, config_key: str) -> list[Mapping[str, Any]]:
    return _expect_list(value, config_key, Mapping, "an object")
