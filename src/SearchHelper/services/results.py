"""Merge the responses of a request batch into ``SearchResults``."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Sequence

from SearchHelper.core.hierarchical import HierarchicalFacetResult, build_facet_tree
from SearchHelper.core.models import FacetCounts, SearchResponse, SearchResults
from SearchHelper.core.parameters import SearchParameters
from SearchHelper.services.requests import RequestPlan


def merge_responses(
    state: SearchParameters,
    plan: RequestPlan,
    responses: Sequence[SearchResponse],
) -> SearchResults:
    """Merge positionally aligned responses into a single result view.

    Args:
        state: Parameters the plan was built from.
        plan: Request plan of the batch.
        responses: One response per request of ``plan``.

    Returns:
        The merged results.

    Raises:
        ValueError: If the number of responses does not match the plan.
    """
    if len(responses) != len(plan):
        raise ValueError(f"expected {len(plan)} responses, got {len(responses)}")

    main = responses[0]
    facets: dict[str, FacetCounts] = {}
    disjunctive: dict[str, FacetCounts] = {}
    for attribute, counts in main.facets.items():
        if state.is_disjunctive_facet(attribute):
            disjunctive[attribute] = counts
        elif state.is_conjunctive_facet(attribute):
            facets[attribute] = counts

    level_counts: dict[str, dict[int, FacetCounts]] = {}
    borrowed: dict[str, dict[int, FacetCounts]] = {}
    for role, response in zip(plan.roles, responses):
        if role.kind == "disjunctive" and role.attribute is not None:
            counts = dict(response.facets.get(role.attribute, {}))
            # Selected values stay listed even when the service omits them.
            for value in state.get_disjunctive_refinements(role.attribute):
                counts.setdefault(value, 0)
            disjunctive[role.attribute] = MappingProxyType(counts)
        elif role.kind == "hierarchical" and role.facet_name is not None and role.level is not None:
            _collect_levels(state, role.facet_name, role.level, response, level_counts, borrowed)

    processing_times = [r.processing_time_ms for r in responses if r.processing_time_ms is not None]
    return SearchResults(
        query=main.query,
        hits=main.hits,
        nb_hits=main.nb_hits,
        page=main.page,
        nb_pages=main.nb_pages,
        hits_per_page=main.hits_per_page,
        processing_time_ms=sum(processing_times) if processing_times else None,
        facets=MappingProxyType(facets),
        disjunctive_facets=MappingProxyType(disjunctive),
        hierarchical_facets=tuple(_build_hierarchical(state, level_counts, borrowed)),
    )


def _collect_levels(
    state: SearchParameters,
    facet_name: str,
    own_level: int,
    response: SearchResponse,
    level_counts: dict[str, dict[int, FacetCounts]],
    borrowed: dict[str, dict[int, FacetCounts]],
) -> None:
    """Record every level attribute of ``facet_name`` found in ``response``.

    A request's own level is authoritative. Other level attributes the
    service happened to return are kept as fallbacks, the first response
    carrying them winning.
    """
    config = state.get_hierarchical_facet_by_name(facet_name)
    for level, attribute in enumerate(config.attributes):
        counts = response.facets.get(attribute)
        if counts is None:
            continue
        if level == own_level:
            level_counts.setdefault(facet_name, {})[level] = counts
        else:
            borrowed.setdefault(facet_name, {}).setdefault(level, counts)


def _build_hierarchical(
    state: SearchParameters,
    level_counts: Mapping[str, Mapping[int, FacetCounts]],
    borrowed: Mapping[str, Mapping[int, FacetCounts]],
) -> list[HierarchicalFacetResult]:
    trees: list[HierarchicalFacetResult] = []
    for config in state.hierarchical_facets:
        by_level = {**borrowed.get(config.name, {}), **level_counts.get(config.name, {})}
        levels = [by_level.get(level) for level in range(max(by_level, default=-1) + 1)]
        trees.append(build_facet_tree(config, state, levels))
    return trees


__all__ = ["merge_responses"]
