"""Helpers for attribute -> ordered refinement values mappings.

Every function treats its input mapping as read-only and returns a new
read-only mapping, or the very same object when nothing changes so callers
can short-circuit on identity.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Union

RefinementMap = Mapping[str, tuple[str, ...]]

# Predicate signature: (value, attribute, kind) -> should clear
ClearCallback = Callable[[Any, str, str], bool]

_EMPTY: RefinementMap = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ClearAll:
    """Clear every refinement."""


@dataclass(frozen=True, slots=True)
class ClearAttribute:
    """Clear all refinements of one attribute."""

    name: str


@dataclass(frozen=True, slots=True)
class ClearPredicate:
    """Clear each refinement for which ``fn(value, attribute, kind)`` is true."""

    fn: ClearCallback


ClearSelector = Union[ClearAll, ClearAttribute, ClearPredicate]


def as_clear_selector(selector: ClearSelector | str | ClearCallback | None) -> ClearSelector:
    """Coerce the loose selector forms into a ``ClearSelector``.

    Args:
        selector: ``None`` for everything, an attribute name, a predicate,
            or an already built selector.

    Returns:
        The matching selector value.

    Raises:
        TypeError: If the selector has an unsupported type.
    """
    if selector is None:
        return ClearAll()
    if isinstance(selector, (ClearAll, ClearAttribute, ClearPredicate)):
        return selector
    if isinstance(selector, str):
        return ClearAttribute(selector)
    if callable(selector):
        return ClearPredicate(selector)
    raise TypeError(f"Unsupported clear selector: {selector!r}")


def freeze_refinements(mapping: Mapping[str, Any] | None) -> RefinementMap:
    """Return a read-only copy with tuple values, dropping empty entries."""
    if not mapping:
        return _EMPTY
    frozen: dict[str, tuple[str, ...]] = {}
    for attribute, values in mapping.items():
        if isinstance(values, str):
            values = (values,)
        items = tuple(dict.fromkeys(values))
        if items:
            frozen[str(attribute)] = items
    return MappingProxyType(frozen)


def add_refinement(mapping: RefinementMap, attribute: str, value: str) -> RefinementMap:
    """Append ``value`` to the attribute's refinements unless already there."""
    if is_refined(mapping, attribute, value):
        return mapping
    updated = dict(mapping)
    updated[attribute] = tuple(mapping.get(attribute, ())) + (value,)
    return MappingProxyType(updated)


def remove_refinement(mapping: RefinementMap, attribute: str, value: str) -> RefinementMap:
    """Drop ``value`` from the attribute's refinements if present."""
    if not is_refined(mapping, attribute, value):
        return mapping
    updated = dict(mapping)
    remaining = tuple(v for v in mapping[attribute] if v != value)
    if remaining:
        updated[attribute] = remaining
    else:
        del updated[attribute]
    return MappingProxyType(updated)


def toggle_refinement(mapping: RefinementMap, attribute: str, value: str) -> RefinementMap:
    """Remove ``value`` when refined, add it otherwise."""
    if is_refined(mapping, attribute, value):
        return remove_refinement(mapping, attribute, value)
    return add_refinement(mapping, attribute, value)


def is_refined(mapping: RefinementMap, attribute: str, value: str | None = None) -> bool:
    """Test refinement membership.

    Args:
        mapping: Refinement mapping.
        attribute: Attribute name.
        value: Optional value. When omitted, tests that the attribute has
            at least one refinement.

    Returns:
        True if refined.
    """
    values = mapping.get(attribute)
    if not values:
        return False
    if value is None:
        return True
    return value in values


def clear_refinements(
    mapping: RefinementMap,
    selector: ClearSelector | str | ClearCallback | None,
    kind: str,
) -> RefinementMap:
    """Clear refinements matching ``selector``.

    Args:
        mapping: Refinement mapping.
        selector: Which refinements to clear, see ``as_clear_selector``.
        kind: Label passed to predicates, e.g. ``"conjunctiveFacet"``.

    Returns:
        The cleared mapping, or ``mapping`` itself when nothing was removed.
    """
    resolved = as_clear_selector(selector)
    if isinstance(resolved, ClearAll):
        return _EMPTY if mapping else mapping
    if isinstance(resolved, ClearAttribute):
        if resolved.name not in mapping:
            return mapping
        return MappingProxyType({k: v for k, v in mapping.items() if k != resolved.name})

    changed = False
    kept: dict[str, tuple[str, ...]] = {}
    for attribute, values in mapping.items():
        remaining = tuple(v for v in values if not resolved.fn(v, attribute, kind))
        if len(remaining) != len(values):
            changed = True
        if remaining:
            kept[attribute] = remaining
    if not changed:
        return mapping
    return MappingProxyType(kept)


__all__ = [
    "ClearAll",
    "ClearAttribute",
    "ClearCallback",
    "ClearPredicate",
    "ClearSelector",
    "RefinementMap",
    "add_refinement",
    "as_clear_selector",
    "clear_refinements",
    "freeze_refinements",
    "is_refined",
    "remove_refinement",
    "toggle_refinement",
]
