"""Initial search state configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from SearchHelper.config.common import (
    expect_bool,
    expect_int,
    expect_mapping_list,
    expect_optional_int,
    expect_optional_str,
    expect_str,
    expect_str_list,
    get_required_value,
    get_section,
)
from SearchHelper.core.hierarchical import DEFAULT_SEPARATOR, HierarchicalFacetConfig
from SearchHelper.core.parameters import SearchParameters


@dataclass(frozen=True, slots=True)
class HelperConfig:
    """Facet declarations and defaults for the first query."""

    query: str
    hits_per_page: int | None
    facets: tuple[str, ...]
    disjunctive_facets: tuple[str, ...]
    hierarchical_facets: tuple[HierarchicalFacetConfig, ...]


def load_helper(raw: Mapping[str, Any]) -> HelperConfig:
    """Load the optional ``helper`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If a hierarchical facet misses ``name`` or ``attributes``.
    """
    section = get_section(raw, "helper", required=False)
    hierarchical = tuple(
        _load_hierarchical(item, f"helper.hierarchical_facets[{idx}]")
        for idx, item in enumerate(
            expect_mapping_list(section.get("hierarchical_facets", []), "helper.hierarchical_facets")
        )
    )
    return HelperConfig(
        query=expect_optional_str(section.get("query"), "helper.query") or "",
        hits_per_page=expect_optional_int(section.get("hits_per_page"), "helper.hits_per_page"),
        facets=tuple(expect_str_list(section.get("facets", []), "helper.facets")),
        disjunctive_facets=tuple(
            expect_str_list(section.get("disjunctive_facets", []), "helper.disjunctive_facets")
        ),
        hierarchical_facets=hierarchical,
    )


def _load_hierarchical(item: Mapping[str, Any], key: str) -> HierarchicalFacetConfig:
    attributes = expect_str_list(get_required_value(item, "attributes", f"{key}.attributes"), f"{key}.attributes")
    return HierarchicalFacetConfig(
        name=expect_str(get_required_value(item, "name", f"{key}.name"), f"{key}.name"),
        attributes=tuple(attributes),
        separator=expect_str(item.get("separator", DEFAULT_SEPARATOR), f"{key}.separator"),
        root_path=expect_optional_str(item.get("root_path"), f"{key}.root_path"),
        show_parent_level=expect_bool(item.get("show_parent_level", True), f"{key}.show_parent_level"),
    )


def check_helper(config: HelperConfig) -> None:
    """Validate helper constraints.

    Raises:
        ValueError: If facet declarations overlap.
    """
    if config.hits_per_page is not None and config.hits_per_page <= 0:
        raise ValueError("helper.hits_per_page must be positive")
    overlap = set(config.facets) & set(config.disjunctive_facets)
    if overlap:
        raise ValueError(f"helper facets declared both conjunctive and disjunctive: {sorted(overlap)}")
    names: set[str] = set()
    for facet in config.hierarchical_facets:
        if facet.name in names:
            raise ValueError(f"hierarchical facet {facet.name!r} declared twice")
        names.add(facet.name)


def build_initial_state(config: HelperConfig, query: str | None = None) -> SearchParameters:
    """Create the starting ``SearchParameters`` from config.

    Args:
        config: Validated helper config.
        query: Overrides ``helper.query`` when given.
    """
    return SearchParameters.make(
        query=config.query if query is None else query,
        hits_per_page=config.hits_per_page,
        facets=config.facets,
        disjunctive_facets=config.disjunctive_facets,
        hierarchical_facets=config.hierarchical_facets,
    )
