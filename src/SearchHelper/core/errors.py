"""Error types raised by search state validation."""

from __future__ import annotations

from typing import Any, Sequence


class SearchHelperError(Exception):
    """Root of the SearchHelper error hierarchy.

    Attributes:
        message: Human-readable description.
        code: Machine-readable slug identifying the violated rule.
        detail: Extra context, safe to log.
    """

    default_code = "search_helper_error"

    def __init__(self, message: str, *, code: str | None = None, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.detail: dict[str, Any] = detail or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class SchemaViolation(SearchHelperError, ValueError):
    """Raised when unknown parameter keys are passed to a setter."""

    default_code = "schema_violation"

    def __init__(self, unknown_keys: Sequence[str]) -> None:
        keys = tuple(unknown_keys)
        if len(keys) == 1:
            message = f"Property {keys[0]} is not defined on SearchParameters"
        else:
            message = f"Properties {' '.join(keys)} are not defined on SearchParameters"
        super().__init__(message, detail={"unknown_keys": list(keys)})
        self.unknown_keys = keys


class TagModeConflict(SearchHelperError, ValueError):
    """Raised when raw tag filters and managed tag refinements would coexist."""

    default_code = "tag_mode_conflict"


__all__ = ["SearchHelperError", "SchemaViolation", "TagModeConflict"]
