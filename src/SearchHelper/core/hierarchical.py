"""Hierarchical facet trees rebuilt from flat per-level facet counts.

A hierarchical facet is a logical category attribute spread over several
real attributes, one per depth (``categories.lvl0``, ``categories.lvl1``...).
Each level value is the full path from the root, joined by a separator:
``"beers"``, ``"beers > IPA"``. The remote service only returns flat counts
per attribute, so the tree is rebuilt client side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from SearchHelper.utils.log import log

if TYPE_CHECKING:
    from SearchHelper.core.parameters import SearchParameters

DEFAULT_SEPARATOR = " > "


@dataclass(frozen=True, slots=True)
class HierarchicalFacetConfig:
    """Definition of one hierarchical facet.

    Attributes:
        name: Logical facet name used for refinements.
        attributes: One real facet attribute per level, root first.
        separator: Joins parent and child names into a path.
        root_path: Optional path restricting the tree to a subtree.
        show_parent_level: Keep the siblings of the refined path's ancestors.
    """

    name: str
    attributes: tuple[str, ...]
    separator: str = DEFAULT_SEPARATOR
    root_path: str | None = None
    show_parent_level: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", tuple(self.attributes))
        if not self.name:
            raise ValueError("hierarchical facet name must not be empty")
        if not self.attributes:
            raise ValueError(f"hierarchical facet {self.name} must declare at least one attribute")
        if not self.separator:
            raise ValueError(f"hierarchical facet {self.name} separator must not be empty")

    @classmethod
    def coerce(cls, value: HierarchicalFacetConfig | Mapping[str, Any]) -> HierarchicalFacetConfig:
        """Build a config from a mapping; camelCase keys are accepted too."""
        if isinstance(value, HierarchicalFacetConfig):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"hierarchical facet must be a mapping, got {type(value).__name__}")
        return cls(
            name=value["name"],
            attributes=tuple(value["attributes"]),
            separator=value.get("separator", DEFAULT_SEPARATOR),
            root_path=value.get("root_path", value.get("rootPath")),
            show_parent_level=value.get("show_parent_level", value.get("showParentLevel", True)),
        )

    def depth_of(self, path: str) -> int:
        """Return the zero-based level of ``path``."""
        return len(path.split(self.separator)) - 1

    def ancestor_at(self, path: str, level: int) -> str:
        """Return the prefix of ``path`` down to ``level``."""
        return self.separator.join(path.split(self.separator)[: level + 1])


@dataclass(frozen=True, slots=True)
class FacetTreeNode:
    """One category of a hierarchical facet tree."""

    name: str
    path: str
    count: int
    is_refined: bool
    data: tuple[FacetTreeNode, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "count": self.count,
            "isRefined": self.is_refined,
            "data": [child.to_dict() for child in self.data] if self.data is not None else None,
        }


@dataclass(frozen=True, slots=True)
class HierarchicalFacetResult:
    """Top-level envelope for one hierarchical facet.

    The envelope is not a category: ``count`` and ``path`` are always
    ``None``, and ``is_refined`` tells whether the facet has an active
    selection.
    """

    name: str
    is_refined: bool
    data: tuple[FacetTreeNode, ...] = ()
    count: None = None
    path: None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "isRefined": self.is_refined,
            "path": self.path,
            "data": [child.to_dict() for child in self.data],
        }


def get_refined_path(config: HierarchicalFacetConfig, state: SearchParameters) -> str | None:
    """Return the selected path of a hierarchical facet, if any.

    The facet's own refinement wins. Otherwise the deepest level attribute
    carrying a disjunctive refinement supplies it.
    """
    selected = state.get_hierarchical_refinement(config.name)
    if selected:
        return selected[0]
    for attribute in reversed(config.attributes):
        values = state.get_disjunctive_refinements(attribute)
        if values:
            return values[-1]
    return None


def build_facet_tree(
    config: HierarchicalFacetConfig,
    state: SearchParameters,
    level_counts: Sequence[Mapping[str, int] | None],
) -> HierarchicalFacetResult:
    """Rebuild the category tree of a hierarchical facet.

    Args:
        config: Hierarchical facet definition.
        state: Parameters the counts were computed for.
        level_counts: One flat ``path -> count`` map per requested level,
            root level first. Missing levels may be ``None``.

    Returns:
        The facet envelope holding the top-level nodes.
    """
    separator = config.separator
    refined_path = get_refined_path(config, state)
    counts = _index_counts(config, level_counts)

    children: dict[str | None, list[str]] = {}
    for path in counts:
        segments = path.split(separator)
        parent = separator.join(segments[:-1]) if len(segments) > 1 else None
        children.setdefault(parent, []).append(path)

    if config.root_path:
        top_level = [config.root_path] if config.root_path in counts else []
    else:
        top_level = children.get(None, [])

    def is_refined(path: str) -> bool:
        if refined_path is None:
            return False
        return refined_path == path or refined_path.startswith(path + separator)

    # Without parent levels, only the refined path and the selected node's
    # direct children survive.
    prune = not config.show_parent_level and refined_path is not None

    def leaf(path: str) -> FacetTreeNode:
        return FacetTreeNode(_last_segment(path, separator), path, counts[path], is_refined(path))

    def build(path: str) -> FacetTreeNode:
        if prune and path == refined_path:
            kids = [leaf(kid) for kid in children.get(path, [])]
        else:
            kids = [build(kid) for kid in children.get(path, []) if not prune or is_refined(kid)]
        return FacetTreeNode(
            name=_last_segment(path, separator),
            path=path,
            count=counts[path],
            is_refined=is_refined(path),
            data=tuple(kids) if kids else None,
        )

    nodes = tuple(build(path) for path in top_level if not prune or is_refined(path))
    if prune:
        log.debug("Pruned hierarchical facet %s to refined path %s", config.name, refined_path)
    return HierarchicalFacetResult(name=config.name, is_refined=refined_path is not None, data=nodes)


class FacetTreeBuilder:
    """Build trees for one hierarchical facet configuration."""

    def __init__(self, config: HierarchicalFacetConfig) -> None:
        self.config = config

    def build(
        self,
        state: SearchParameters,
        level_counts: Sequence[Mapping[str, int] | None],
    ) -> HierarchicalFacetResult:
        return build_facet_tree(self.config, state, level_counts)


def _index_counts(
    config: HierarchicalFacetConfig,
    level_counts: Sequence[Mapping[str, int] | None],
) -> dict[str, int]:
    """Merge the per-level maps into one ordered ``path -> count`` index.

    A level only contributes paths of its own depth, so a path echoed by a
    deeper level keeps the count of the shallowest level reporting it.
    Malformed entries and paths whose parent is missing are skipped.
    """
    separator = config.separator
    index: dict[str, int] = {}
    for level, counts in enumerate(level_counts):
        if not isinstance(counts, Mapping):
            continue
        for path, count in counts.items():
            if not isinstance(path, str) or isinstance(count, bool) or not isinstance(count, int) or count < 0:
                log.debug("Skipping malformed facet entry level=%d path=%r count=%r", level, path, count)
                continue
            if any(not segment for segment in path.split(separator)):
                log.debug("Skipping facet path with empty segment level=%d path=%r", level, path)
                continue
            if config.depth_of(path) != level:
                log.debug("Skipping facet path at wrong depth level=%d path=%r", level, path)
                continue
            if config.root_path and not (path == config.root_path or path.startswith(config.root_path + separator)):
                continue
            index.setdefault(path, count)

    # Parents come first, so dropping a path also drops its descendants.
    kept: dict[str, int] = {}
    for path in sorted(index, key=config.depth_of):
        if config.depth_of(path) > 0 and path != config.root_path and _parent_of(path, separator) not in kept:
            log.debug("Skipping facet path without parent: %s", path)
            continue
        kept[path] = index[path]
    return kept


def _parent_of(path: str, separator: str) -> str | None:
    segments = path.split(separator)
    return separator.join(segments[:-1]) if len(segments) > 1 else None


def _last_segment(path: str, separator: str) -> str:
    return path.split(separator)[-1]


__all__ = [
    "DEFAULT_SEPARATOR",
    "FacetTreeBuilder",
    "FacetTreeNode",
    "HierarchicalFacetConfig",
    "HierarchicalFacetResult",
    "build_facet_tree",
    "get_refined_path",
]
