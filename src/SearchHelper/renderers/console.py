"""Console text output renderers.

Renders merged search results into human-friendly text and writes it
through the logger.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from SearchHelper.core.hierarchical import FacetTreeNode
from SearchHelper.core.models import SearchResults
from SearchHelper.core.parameters import SearchParameters
from SearchHelper.renderers.base import OutputWriter
from SearchHelper.utils.log import log

_TITLE_KEYS = ("title", "name")


def _hit_title(hit: Mapping[str, Any]) -> str:
    for key in _TITLE_KEYS:
        value = hit.get(key)
        if isinstance(value, str) and value:
            return value
    object_id = hit.get("objectID")
    return str(object_id) if object_id is not None else "-"


def _render_counts(title: str, facets: Mapping[str, Mapping[str, int]], refined: Any) -> list[str]:
    lines: list[str] = []
    for attribute, counts in facets.items():
        lines.append(f"{title} {attribute}:")
        for value, count in counts.items():
            marker = "*" if refined(attribute, value) else " "
            lines.append(f"  {marker} {value} ({count})")
    return lines


def _render_tree(nodes: Iterable[FacetTreeNode], depth: int = 1) -> list[str]:
    lines: list[str] = []
    for node in nodes:
        marker = "*" if node.is_refined else " "
        lines.append(f"{'  ' * depth}{marker} {node.name} ({node.count})")
        if node.data:
            lines.extend(_render_tree(node.data, depth + 1))
    return lines


def render_text(results: SearchResults, state: SearchParameters) -> str:
    """Render results into a human-readable text block.

    Refined facet values are marked with ``*``.

    Args:
        results: Merged results of one batch.
        state: Search state the results were computed for.

    Returns:
        A formatted string ready to be printed.
    """
    lines = [
        f"query={results.query!r} hits={results.nb_hits} page={results.page + 1}/{max(results.nb_pages, 1)}"
    ]
    first = results.page * results.hits_per_page
    for idx, hit in enumerate(results.hits, start=first + 1):
        lines.append(f"{idx}. {_hit_title(hit)}")

    lines.extend(_render_counts("Facet", results.facets, state.is_facet_refined))
    lines.extend(_render_counts("Disjunctive facet", results.disjunctive_facets, state.is_disjunctive_facet_refined))
    for facet in results.hierarchical_facets:
        lines.append(f"Hierarchical facet {facet.name}:")
        lines.extend(_render_tree(facet.data))
    return "\n".join(lines).rstrip() + "\n"


class ConsoleOutputWriter(OutputWriter):
    """Write results to console via logging."""

    def write_results(self, results: SearchResults, state: SearchParameters) -> None:
        for line in render_text(results, state).splitlines():
            log.info(line)

    def finalize(self, action: str) -> None:
        """No-op for console output."""
