"""Search service JSON payload parser."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from SearchHelper.core.models import SearchResponse
from SearchHelper.utils.log import log

_KNOWN_KEYS = frozenset(
    {"hits", "nbHits", "page", "nbPages", "hitsPerPage", "facets", "query", "processingTimeMS"}
)


def parse_search_response(payload: Mapping[str, Any]) -> SearchResponse:
    """Parse one result object of the service into a ``SearchResponse``.

    Unexpected shapes are skipped rather than rejected: the payload is owned
    by the remote service.
    """
    if not isinstance(payload, Mapping):
        raise TypeError(f"search response must be an object, got {type(payload).__name__}")

    hits_raw = payload.get("hits")
    hits = [hit for hit in hits_raw if isinstance(hit, Mapping)] if isinstance(hits_raw, list) else []

    return SearchResponse(
        hits=hits,
        nb_hits=_safe_int(payload.get("nbHits"), default=len(hits)),
        page=_safe_int(payload.get("page")),
        nb_pages=_safe_int(payload.get("nbPages")),
        hits_per_page=_safe_int(payload.get("hitsPerPage")),
        facets=_parse_facets(payload.get("facets")),
        query=payload.get("query") if isinstance(payload.get("query"), str) else "",
        processing_time_ms=_safe_int(payload.get("processingTimeMS"), default=None),
        extra={k: v for k, v in payload.items() if k not in _KNOWN_KEYS},
    )


def parse_multi_response(payload: Mapping[str, Any], *, expected: int) -> list[SearchResponse]:
    """Parse a multi-query payload ``{"results": [...]}``.

    Raises:
        ValueError: If the number of results does not match ``expected``.
    """
    results = payload.get("results") if isinstance(payload, Mapping) else None
    if not isinstance(results, Sequence) or isinstance(results, (str, bytes)):
        raise ValueError("search payload has no results list")
    if len(results) != expected:
        raise ValueError(f"expected {expected} results, got {len(results)}")
    return [parse_search_response(item) for item in results]


def _parse_facets(raw: Any) -> dict[str, dict[str, int]]:
    """Keep only ``attribute -> value -> int`` entries."""
    if not isinstance(raw, Mapping):
        return {}
    facets: dict[str, dict[str, int]] = {}
    for attribute, counts in raw.items():
        if not isinstance(attribute, str) or not isinstance(counts, Mapping):
            log.debug("Skipping malformed facet counts for %r", attribute)
            continue
        facets[attribute] = {
            str(value): count
            for value, count in counts.items()
            if isinstance(count, int) and not isinstance(count, bool)
        }
    return facets


def _safe_int(value: Any, default: int | None = 0) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value
