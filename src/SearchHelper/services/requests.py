"""Derivation of the physical requests for one search.

A single search fans out into several requests sent together:

- the main request, with every refinement applied;
- one request per refined disjunctive facet, without the facet's own
  refinements, so that its other values keep meaningful counts;
- one request per level of each hierarchical facet, filtered on the
  ancestor of the selected path, to rebuild the category tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Collection, Literal

from SearchHelper.core.hierarchical import HierarchicalFacetConfig, get_refined_path
from SearchHelper.core.models import SearchRequest
from SearchHelper.core.parameters import SearchParameters

RoleKind = Literal["main", "disjunctive", "hierarchical"]

# Parameter name on the wire for each passthrough option.
_WIRE_NAMES: dict[str, str] = {
    "query": "query",
    "page": "page",
    "hits_per_page": "hitsPerPage",
    "tag_filters": "tagFilters",
    "max_values_per_facet": "maxValuesPerFacet",
    "query_type": "queryType",
    "typo_tolerance": "typoTolerance",
    "min_word_size_for_1_typo": "minWordSizefor1Typo",
    "min_word_size_for_2_typos": "minWordSizefor2Typos",
    "allow_typos_on_numeric_tokens": "allowTyposOnNumericTokens",
    "ignore_plurals": "ignorePlurals",
    "restrict_searchable_attributes": "restrictSearchableAttributes",
    "advanced_syntax": "advancedSyntax",
    "analytics": "analytics",
    "analytics_tags": "analyticsTags",
    "synonyms": "synonyms",
    "replace_synonyms_in_highlight": "replaceSynonymsInHighlight",
    "optional_words": "optionalWords",
    "remove_words_if_no_results": "removeWordsIfNoResults",
    "attributes_to_retrieve": "attributesToRetrieve",
    "attributes_to_highlight": "attributesToHighlight",
    "highlight_pre_tag": "highlightPreTag",
    "highlight_post_tag": "highlightPostTag",
    "attributes_to_snippet": "attributesToSnippet",
    "get_ranking_info": "getRankingInfo",
    "distinct": "distinct",
    "around_lat_lng": "aroundLatLng",
    "around_lat_lng_via_ip": "aroundLatLngViaIP",
    "around_radius": "aroundRadius",
    "around_precision": "aroundPrecision",
    "inside_bounding_box": "insideBoundingBox",
}

# Counting requests only need facet counts, not records.
_COUNT_ONLY_PARAMS: dict[str, Any] = {
    "hitsPerPage": 1,
    "page": 0,
    "attributesToRetrieve": [],
    "attributesToHighlight": [],
    "attributesToSnippet": [],
    "analytics": False,
}


@dataclass(frozen=True, slots=True)
class RequestRole:
    """What a request of the plan is computing.

    Attributes:
        kind: ``main``, ``disjunctive`` or ``hierarchical``.
        attribute: Facet attribute counted by the request, if any.
        facet_name: Hierarchical facet name for hierarchical requests.
        level: Hierarchical level for hierarchical requests.
    """

    kind: RoleKind
    attribute: str | None = None
    facet_name: str | None = None
    level: int | None = None


@dataclass(frozen=True, slots=True)
class RequestPlan:
    """Ordered requests of one batch and the role of each of them."""

    requests: tuple[SearchRequest, ...]
    roles: tuple[RequestRole, ...]

    def __len__(self) -> int:
        return len(self.requests)

    def payload(self) -> list[dict[str, Any]]:
        return [request.to_payload() for request in self.requests]


def to_wire_params(state: SearchParameters) -> dict[str, Any]:
    """Translate the passthrough parameters of ``state`` to wire names."""
    return {_WIRE_NAMES.get(name, name): value for name, value in state.get_query_params().items()}


def build_requests(index_name: str, state: SearchParameters) -> RequestPlan:
    """Build every request needed to display the results of ``state``.

    Args:
        index_name: Target index.
        state: Search parameters.

    Returns:
        The ordered request plan, main request first.
    """
    requests = [SearchRequest(index_name, _main_params(state))]
    roles = [RequestRole("main")]

    for attribute in state.get_refined_disjunctive_facets():
        requests.append(SearchRequest(index_name, _disjunctive_params(state, attribute)))
        roles.append(RequestRole("disjunctive", attribute=attribute))

    for config in state.hierarchical_facets:
        for level in hierarchical_levels(config, state):
            requests.append(SearchRequest(index_name, _hierarchical_params(state, config, level)))
            roles.append(
                RequestRole("hierarchical", attribute=config.attributes[level], facet_name=config.name, level=level)
            )

    return RequestPlan(requests=tuple(requests), roles=tuple(roles))


def hierarchical_levels(config: HierarchicalFacetConfig, state: SearchParameters) -> range:
    """Return the levels to request: down to the child level of the selection.

    Without a selection, a configured ``root_path`` stands in for it so that
    the children of the subtree root are fetched too.
    """
    anchor = _anchor_path(config, state)
    depth = config.depth_of(anchor) if anchor else -1
    return range(min(depth + 1, len(config.attributes) - 1) + 1)


def _anchor_path(config: HierarchicalFacetConfig, state: SearchParameters) -> str | None:
    return get_refined_path(config, state) or config.root_path


def _main_params(state: SearchParameters) -> dict[str, Any]:
    params = to_wire_params(state)
    hierarchical_attributes = [attr for config in state.hierarchical_facets for attr in config.attributes]
    params["facets"] = list(dict.fromkeys([*state.facets, *state.disjunctive_facets, *hierarchical_attributes]))
    _apply_filters(params, state)
    return params


def _disjunctive_params(state: SearchParameters, attribute: str) -> dict[str, Any]:
    params = to_wire_params(state)
    params.update(_COUNT_ONLY_PARAMS)
    params["facets"] = [attribute]
    _apply_filters(params, state, skip_attributes={attribute})
    return params


def _hierarchical_params(state: SearchParameters, config: HierarchicalFacetConfig, level: int) -> dict[str, Any]:
    params = to_wire_params(state)
    params.update(_COUNT_ONLY_PARAMS)
    params["facets"] = [config.attributes[level]]
    extra_filters: list[str | list[str]] = []
    if level > 0:
        anchor = _anchor_path(config, state)
        if anchor:
            parent_attribute = config.attributes[level - 1]
            extra_filters.append(f"{parent_attribute}:{config.ancestor_at(anchor, level - 1)}")
    _apply_filters(
        params,
        state,
        skip_attributes=set(config.attributes),
        skip_hierarchical=config.name,
        extra_filters=extra_filters,
    )
    return params


def _apply_filters(
    params: dict[str, Any],
    state: SearchParameters,
    *,
    skip_attributes: Collection[str] = (),
    skip_hierarchical: str | None = None,
    extra_filters: list[str | list[str]] | None = None,
) -> None:
    facet_filters = _facet_filters(state, skip_attributes=skip_attributes, skip_hierarchical=skip_hierarchical)
    facet_filters.extend(extra_filters or [])
    if facet_filters:
        params["facetFilters"] = facet_filters

    numeric_filters = _numeric_filters(state, skip_attributes=skip_attributes)
    if numeric_filters:
        params["numericFilters"] = numeric_filters

    if state.tag_refinements:
        params["tagFilters"] = ",".join(state.tag_refinements)


def _facet_filters(
    state: SearchParameters,
    *,
    skip_attributes: Collection[str],
    skip_hierarchical: str | None,
) -> list[str | list[str]]:
    filters: list[str | list[str]] = []
    for attribute, values in state.facets_refinements.items():
        filters.extend(f"{attribute}:{value}" for value in values)
    for attribute, values in state.facets_excludes.items():
        filters.extend(f"{attribute}:-{value}" for value in values)
    for attribute, values in state.disjunctive_facets_refinements.items():
        if attribute in skip_attributes:
            continue
        filters.append([f"{attribute}:{value}" for value in values])
    for config in state.hierarchical_facets:
        if config.name == skip_hierarchical:
            continue
        selected = state.get_hierarchical_refinement(config.name)
        if not selected:
            continue
        depth = config.depth_of(selected[0])
        if depth < len(config.attributes):
            filters.append(f"{config.attributes[depth]}:{selected[0]}")
    return filters


def _numeric_filters(state: SearchParameters, *, skip_attributes: Collection[str]) -> list[str]:
    filters: list[str] = []
    for attribute, operators in state.numeric_refinements.items():
        if attribute in skip_attributes:
            continue
        filters.extend(f"{attribute}{operator}{value}" for operator, value in operators.items())
    return filters


__all__ = ["RequestPlan", "RequestRole", "build_requests", "hierarchical_levels", "to_wire_params"]
