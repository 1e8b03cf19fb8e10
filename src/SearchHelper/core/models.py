from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from SearchHelper.core.hierarchical import HierarchicalFacetResult

FacetCounts = Mapping[str, int]


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """One physical request sent to the search service.

    Attributes:
        index_name: Target index.
        params: Wire-level search parameters (camelCase keys).
    """

    index_name: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def to_payload(self) -> dict[str, Any]:
        return {"indexName": self.index_name, "params": dict(self.params)}


@dataclass(frozen=True, slots=True)
class SearchResponse:
    """Normalized response for a single request.

    Attributes:
        hits: Matching records of the requested page.
        nb_hits: Total number of matching records.
        page: Page returned.
        nb_pages: Number of pages available.
        hits_per_page: Page size used.
        facets: ``attribute -> value -> count`` for each requested facet.
        query: Query text echoed by the service.
        processing_time_ms: Server processing time if reported.
        extra: Any other fields of the payload, kept read-only.
    """

    hits: Sequence[Mapping[str, Any]] = ()
    nb_hits: int = 0
    page: int = 0
    nb_pages: int = 0
    hits_per_page: int = 0
    facets: Mapping[str, FacetCounts] = field(default_factory=dict)
    query: str = ""
    processing_time_ms: int | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "hits", tuple(self.hits))
        object.__setattr__(
            self,
            "facets",
            MappingProxyType({name: MappingProxyType(dict(counts)) for name, counts in self.facets.items()}),
        )
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))


@dataclass(frozen=True, slots=True)
class SearchResults:
    """Merged view of all the responses of one request batch.

    Attributes:
        query: Query text of the main request.
        hits: Records of the requested page.
        nb_hits: Total number of matching records.
        page: Current page.
        nb_pages: Number of pages.
        hits_per_page: Page size.
        processing_time_ms: Sum of the processing times of the batch.
        facets: Counts of the conjunctive facets.
        disjunctive_facets: Counts of the disjunctive facets, computed
            without the facet's own refinements when it is refined.
        hierarchical_facets: One tree envelope per hierarchical facet.
    """

    query: str
    hits: Sequence[Mapping[str, Any]]
    nb_hits: int
    page: int
    nb_pages: int
    hits_per_page: int
    processing_time_ms: int | None
    facets: Mapping[str, FacetCounts]
    disjunctive_facets: Mapping[str, FacetCounts]
    hierarchical_facets: Sequence[HierarchicalFacetResult] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "hits": [dict(hit) for hit in self.hits],
            "nbHits": self.nb_hits,
            "page": self.page,
            "nbPages": self.nb_pages,
            "hitsPerPage": self.hits_per_page,
            "processingTimeMS": self.processing_time_ms,
            "facets": {name: dict(counts) for name, counts in self.facets.items()},
            "disjunctiveFacets": {name: dict(counts) for name, counts in self.disjunctive_facets.items()},
            "hierarchicalFacets": [facet.to_dict() for facet in self.hierarchical_facets],
        }
