"""Immutable search parameter state.

``SearchParameters`` holds everything needed to build a request to the
remote search service. It never changes after construction: each mutator
returns a new instance, or the same instance when the mutation would not
change anything, so callers can compare states by identity.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple, Sequence

from SearchHelper.core import refinements as rl
from SearchHelper.core.errors import SchemaViolation, TagModeConflict
from SearchHelper.core.hierarchical import HierarchicalFacetConfig
from SearchHelper.core.refinements import ClearAll, ClearAttribute, ClearCallback, ClearSelector, RefinementMap

NUMERIC_OPERATORS = frozenset({"=", ">", ">=", "<", "<=", "!="})

# Parameters handled by the helper itself rather than passed through as-is.
_MANAGED_PARAMETERS = frozenset(
    {
        "facets",
        "disjunctive_facets",
        "hierarchical_facets",
        "facets_refinements",
        "facets_excludes",
        "disjunctive_facets_refinements",
        "hierarchical_facets_refinements",
        "numeric_refinements",
        "tag_refinements",
        "extra_options",
    }
)


class NumericFilter(NamedTuple):
    """One (operator, value) numeric condition, as seen by clear predicates."""

    operator: str
    value: float


@dataclass(frozen=True, slots=True)
class SearchParameters:
    """All the parameters of a search.

    Attributes:
        query: Full-text query.
        page: Zero-based result page.
        hits_per_page: Page size, ``None`` for the service default.
        facets: Attributes usable for conjunctive facetting.
        disjunctive_facets: Attributes usable for disjunctive facetting.
        hierarchical_facets: Hierarchical facet definitions.
        facets_refinements: Conjunctive selections per attribute.
        facets_excludes: Negative selections per attribute.
        disjunctive_facets_refinements: Disjunctive selections per attribute.
        hierarchical_facets_refinements: Selected path per hierarchical facet name.
        numeric_refinements: attribute -> operator -> value.
        tag_refinements: Managed tag list, exclusive with ``tag_filters``.
        tag_filters: Raw tag filter expression, exclusive with ``tag_refinements``.
        extra_options: Open-ended options forwarded verbatim to requests.

    The remaining attributes are optional passthrough search options.
    """

    query: str = ""
    page: int = 0
    hits_per_page: int | None = None

    facets: tuple[str, ...] = ()
    disjunctive_facets: tuple[str, ...] = ()
    hierarchical_facets: tuple[HierarchicalFacetConfig, ...] = ()

    facets_refinements: RefinementMap = field(default_factory=dict)
    facets_excludes: RefinementMap = field(default_factory=dict)
    disjunctive_facets_refinements: RefinementMap = field(default_factory=dict)
    hierarchical_facets_refinements: RefinementMap = field(default_factory=dict)
    numeric_refinements: Mapping[str, Mapping[str, float]] = field(default_factory=dict)

    tag_refinements: tuple[str, ...] = ()
    tag_filters: str | None = None

    max_values_per_facet: int | None = None
    query_type: str | None = None
    typo_tolerance: str | None = None
    min_word_size_for_1_typo: int | None = None
    min_word_size_for_2_typos: int | None = None
    allow_typos_on_numeric_tokens: bool | None = None
    ignore_plurals: bool | None = None
    restrict_searchable_attributes: str | None = None
    advanced_syntax: bool | None = None
    analytics: bool | None = None
    analytics_tags: str | None = None
    synonyms: bool | None = None
    replace_synonyms_in_highlight: bool | None = None
    optional_words: str | None = None
    remove_words_if_no_results: str | None = None
    attributes_to_retrieve: str | None = None
    attributes_to_highlight: str | None = None
    highlight_pre_tag: str | None = None
    highlight_post_tag: str | None = None
    attributes_to_snippet: str | None = None
    get_ranking_info: int | None = None
    distinct: bool | None = None
    around_lat_lng: str | None = None
    around_lat_lng_via_ip: bool | None = None
    around_radius: int | None = None
    around_precision: int | None = None
    inside_bounding_box: str | None = None

    extra_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze every container so that the state cannot be altered behind
        # the mutation API.
        object.__setattr__(self, "facets", _as_tuple(self.facets))
        object.__setattr__(self, "disjunctive_facets", _as_tuple(self.disjunctive_facets))
        object.__setattr__(
            self,
            "hierarchical_facets",
            tuple(HierarchicalFacetConfig.coerce(item) for item in self.hierarchical_facets),
        )
        object.__setattr__(self, "facets_refinements", rl.freeze_refinements(self.facets_refinements))
        object.__setattr__(self, "facets_excludes", rl.freeze_refinements(self.facets_excludes))
        object.__setattr__(
            self,
            "disjunctive_facets_refinements",
            rl.freeze_refinements(self.disjunctive_facets_refinements),
        )
        object.__setattr__(
            self,
            "hierarchical_facets_refinements",
            rl.freeze_refinements(self.hierarchical_facets_refinements),
        )
        object.__setattr__(self, "numeric_refinements", _freeze_numeric(self.numeric_refinements))
        object.__setattr__(self, "tag_refinements", _as_tuple(self.tag_refinements))
        object.__setattr__(self, "extra_options", MappingProxyType(dict(self.extra_options or {})))

        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 0:
            raise ValueError(f"page must be a non-negative integer, got {self.page!r}")
        if self.tag_filters and self.tag_refinements:
            raise TagModeConflict("[Tags] tag_filters and tag_refinements can't be set together")

    # ------------------------------------------------------------------
    # Construction and validation

    @classmethod
    def make(cls, params: Mapping[str, Any] | SearchParameters | None = None, **overrides: Any) -> SearchParameters:
        """Build a frozen instance, applying defaults for missing keys.

        Args:
            params: Partial mapping of parameters, or an existing instance.
            **overrides: Parameters applied on top of ``params``.

        Returns:
            A new ``SearchParameters``.

        Raises:
            SchemaViolation: If any key is not a known parameter.
        """
        if isinstance(params, SearchParameters):
            return params.set_query_parameters(overrides) if overrides else params
        merged = {**dict(params or {}), **overrides}
        unknown = [key for key in merged if key not in _FIELD_NAMES]
        if unknown:
            raise SchemaViolation(unknown)
        return cls(**merged)

    @staticmethod
    def validate(current: SearchParameters, changes: Mapping[str, Any]) -> None:
        """Check that ``changes`` can be applied on ``current``.

        Raises:
            SchemaViolation: If some keys are not known parameters.
            TagModeConflict: If the change would mix both tag filtering modes.
        """
        unknown = [key for key in changes if key not in _FIELD_NAMES]
        if unknown:
            raise SchemaViolation(unknown)

        if current.tag_filters and changes.get("tag_refinements"):
            raise TagModeConflict(
                "[Tags] Can't switch from the advanced tag API to the managed API. "
                "If this is intended, clear the tags first with clear_tags."
            )
        if current.tag_refinements and changes.get("tag_filters"):
            raise TagModeConflict(
                "[Tags] Can't switch from the managed tag API to the advanced API. "
                "If this is intended, clear the tags first with clear_tags."
            )

    def set_query_parameters(self, params: Mapping[str, Any]) -> SearchParameters:
        """Set any number of parameters at once.

        Unknown keys are rejected, custom properties can't be defined.

        Returns:
            A new updated instance.
        """
        SearchParameters.validate(self, params)
        return dataclasses.replace(self, **dict(params))

    def set_query_parameter(self, name: str, value: Any) -> SearchParameters:
        """Set a single parameter, returning ``self`` if the value is unchanged."""
        if name not in _FIELD_NAMES:
            raise SchemaViolation([name])
        if getattr(self, name) == value:
            return self
        return self.set_query_parameters({name: value})

    def get_query_parameter(self, name: str) -> Any:
        """Return the value of a parameter by name."""
        if name not in _FIELD_NAMES:
            raise SchemaViolation([name])
        return getattr(self, name)

    def get_query_params(self) -> dict[str, Any]:
        """Return the passthrough parameters that are set.

        Managed parameters (facets and refinements) are excluded; they are
        translated into filters by the request builder.
        """
        params: dict[str, Any] = {}
        for name in _FIELD_NAMES:
            if name in _MANAGED_PARAMETERS:
                continue
            value = getattr(self, name)
            if value is not None:
                params[name] = value
        params.update(self.extra_options)
        return params

    # ------------------------------------------------------------------
    # Simple setters

    def set_query(self, query: str) -> SearchParameters:
        if query == self.query:
            return self
        return self.set_query_parameters({"query": query, "page": 0})

    def set_page(self, page: int) -> SearchParameters:
        if page == self.page:
            return self
        return self.set_query_parameters({"page": page})

    def set_hits_per_page(self, hits_per_page: int | None) -> SearchParameters:
        if hits_per_page == self.hits_per_page:
            return self
        return self.set_query_parameters({"hits_per_page": hits_per_page, "page": 0})

    def set_typo_tolerance(self, typo_tolerance: str | None) -> SearchParameters:
        if typo_tolerance == self.typo_tolerance:
            return self
        return self.set_query_parameters({"typo_tolerance": typo_tolerance, "page": 0})

    def set_facets(self, facets: Sequence[str]) -> SearchParameters:
        return self.set_query_parameters({"facets": facets})

    def set_disjunctive_facets(self, facets: Sequence[str]) -> SearchParameters:
        return self.set_query_parameters({"disjunctive_facets": facets})

    # ------------------------------------------------------------------
    # Conjunctive, exclude and disjunctive refinements

    def add_facet_refinement(self, facet: str, value: str) -> SearchParameters:
        if rl.is_refined(self.facets_refinements, facet, value):
            return self
        return self.set_query_parameters(
            {"page": 0, "facets_refinements": rl.add_refinement(self.facets_refinements, facet, value)}
        )

    def add_exclude_refinement(self, facet: str, value: str) -> SearchParameters:
        if rl.is_refined(self.facets_excludes, facet, value):
            return self
        return self.set_query_parameters(
            {"page": 0, "facets_excludes": rl.add_refinement(self.facets_excludes, facet, value)}
        )

    def add_disjunctive_facet_refinement(self, facet: str, value: str) -> SearchParameters:
        if rl.is_refined(self.disjunctive_facets_refinements, facet, value):
            return self
        return self.set_query_parameters(
            {
                "page": 0,
                "disjunctive_facets_refinements": rl.add_refinement(
                    self.disjunctive_facets_refinements, facet, value
                ),
            }
        )

    def remove_facet_refinement(self, facet: str, value: str) -> SearchParameters:
        if not rl.is_refined(self.facets_refinements, facet, value):
            return self
        return self.set_query_parameters(
            {"page": 0, "facets_refinements": rl.remove_refinement(self.facets_refinements, facet, value)}
        )

    def remove_exclude_refinement(self, facet: str, value: str) -> SearchParameters:
        if not rl.is_refined(self.facets_excludes, facet, value):
            return self
        return self.set_query_parameters(
            {"page": 0, "facets_excludes": rl.remove_refinement(self.facets_excludes, facet, value)}
        )

    def remove_disjunctive_facet_refinement(self, facet: str, value: str) -> SearchParameters:
        if not rl.is_refined(self.disjunctive_facets_refinements, facet, value):
            return self
        return self.set_query_parameters(
            {
                "page": 0,
                "disjunctive_facets_refinements": rl.remove_refinement(
                    self.disjunctive_facets_refinements, facet, value
                ),
            }
        )

    def toggle_facet_refinement(self, facet: str, value: str) -> SearchParameters:
        return self.set_query_parameters(
            {"page": 0, "facets_refinements": rl.toggle_refinement(self.facets_refinements, facet, value)}
        )

    def toggle_exclude_facet_refinement(self, facet: str, value: str) -> SearchParameters:
        return self.set_query_parameters(
            {"page": 0, "facets_excludes": rl.toggle_refinement(self.facets_excludes, facet, value)}
        )

    def toggle_disjunctive_facet_refinement(self, facet: str, value: str) -> SearchParameters:
        return self.set_query_parameters(
            {
                "page": 0,
                "disjunctive_facets_refinements": rl.toggle_refinement(
                    self.disjunctive_facets_refinements, facet, value
                ),
            }
        )

    def is_facet_refined(self, facet: str, value: str | None = None) -> bool:
        return rl.is_refined(self.facets_refinements, facet, value)

    def is_exclude_refined(self, facet: str, value: str | None = None) -> bool:
        return rl.is_refined(self.facets_excludes, facet, value)

    def is_disjunctive_facet_refined(self, facet: str, value: str | None = None) -> bool:
        return rl.is_refined(self.disjunctive_facets_refinements, facet, value)

    def get_conjunctive_refinements(self, facet: str) -> tuple[str, ...]:
        return self.facets_refinements.get(facet, ())

    def get_exclude_refinements(self, facet: str) -> tuple[str, ...]:
        return self.facets_excludes.get(facet, ())

    def get_disjunctive_refinements(self, facet: str) -> tuple[str, ...]:
        return self.disjunctive_facets_refinements.get(facet, ())

    def is_conjunctive_facet(self, facet: str) -> bool:
        return facet in self.facets

    def is_disjunctive_facet(self, facet: str) -> bool:
        return facet in self.disjunctive_facets

    def get_refined_disjunctive_facets(self) -> list[str]:
        """Return every disjunctive facet that is refined.

        Attributes used for numeric filters behave as disjunctive facets too
        when they are declared as such.
        """
        numeric_disjunctive = [name for name in self.numeric_refinements if name in self.disjunctive_facets]
        return list(dict.fromkeys([*self.disjunctive_facets_refinements.keys(), *numeric_disjunctive]))

    def get_unrefined_disjunctive_facets(self) -> list[str]:
        """Return the declared disjunctive facets that are not refined, in declaration order."""
        refined = set(self.get_refined_disjunctive_facets())
        return [facet for facet in self.disjunctive_facets if facet not in refined]

    # ------------------------------------------------------------------
    # Hierarchical refinements

    def is_hierarchical_facet(self, name: str) -> bool:
        return any(config.name == name for config in self.hierarchical_facets)

    def get_hierarchical_facet_by_name(self, name: str) -> HierarchicalFacetConfig:
        """Return the hierarchical facet configuration named ``name``.

        Raises:
            ValueError: If no hierarchical facet has this name.
        """
        for config in self.hierarchical_facets:
            if config.name == name:
                return config
        raise ValueError(f"{name} is not defined in the hierarchical_facets list")

    def get_hierarchical_refinement(self, name: str) -> tuple[str, ...]:
        return self.hierarchical_facets_refinements.get(name, ())

    def is_hierarchical_facet_refined(self, name: str, value: str | None = None) -> bool:
        return rl.is_refined(self.hierarchical_facets_refinements, name, value)

    def get_refined_hierarchical_facets(self) -> list[str]:
        """Return names of refined hierarchical facets, in declaration order."""
        return [
            config.name
            for config in self.hierarchical_facets
            if rl.is_refined(self.hierarchical_facets_refinements, config.name)
        ]

    def add_hierarchical_facet_refinement(self, name: str, path: str) -> SearchParameters:
        """Select ``path`` for a hierarchical facet, replacing any previous selection."""
        self.get_hierarchical_facet_by_name(name)
        if self.get_hierarchical_refinement(name) == (path,):
            return self
        return self._set_hierarchical_refinement(name, path)

    def remove_hierarchical_facet_refinement(self, name: str) -> SearchParameters:
        if not self.is_hierarchical_facet_refined(name):
            return self
        return self._set_hierarchical_refinement(name, None)

    def toggle_hierarchical_facet_refinement(self, name: str, path: str) -> SearchParameters:
        """Toggle the selected path of a hierarchical facet.

        Toggling the selected path moves the selection up to its parent, or
        clears it when the path is a root category.
        """
        config = self.get_hierarchical_facet_by_name(name)
        if not self.is_hierarchical_facet_refined(name, path):
            return self._set_hierarchical_refinement(name, path)
        segments = path.split(config.separator)
        parent = config.separator.join(segments[:-1]) if len(segments) > 1 else None
        return self._set_hierarchical_refinement(name, parent)

    def _set_hierarchical_refinement(self, name: str, path: str | None) -> SearchParameters:
        updated = {k: v for k, v in self.hierarchical_facets_refinements.items() if k != name}
        if path:
            updated[name] = (path,)
        return self.set_query_parameters({"page": 0, "hierarchical_facets_refinements": updated})

    # ------------------------------------------------------------------
    # Numeric refinements

    def add_numeric_refinement(self, attribute: str, operator: str, value: float) -> SearchParameters:
        """Add or update the numeric filter for ``(attribute, operator)``.

        Only one value is kept per (attribute, operator) pair: a filter for
        ``("price", ">=", 20)`` replaces ``("price", ">=", 10)``.

        Raises:
            ValueError: If ``operator`` is not a supported operator.
        """
        _check_operator(operator)
        if self.is_numeric_refined(attribute, operator, value):
            return self
        updated = {key: dict(ops) for key, ops in self.numeric_refinements.items()}
        updated.setdefault(attribute, {})[operator] = value
        return self.set_query_parameters({"page": 0, "numeric_refinements": updated})

    def remove_numeric_refinement(self, attribute: str, operator: str) -> SearchParameters:
        if not self.is_numeric_refined(attribute, operator):
            return self
        return self.set_query_parameters(
            {
                "page": 0,
                "numeric_refinements": self._clear_numeric_refinements(
                    lambda numeric, key, kind: key == attribute and numeric.operator == operator
                ),
            }
        )

    def get_numeric_refinements(self, attribute: str) -> Mapping[str, float]:
        return self.numeric_refinements.get(attribute, MappingProxyType({}))

    def get_numeric_refinement(self, attribute: str, operator: str) -> float | None:
        return self.get_numeric_refinements(attribute).get(operator)

    def is_numeric_refined(self, attribute: str, operator: str | None = None, value: float | None = None) -> bool:
        """Test if a numeric refinement exists, each argument narrowing the test."""
        operators = self.numeric_refinements.get(attribute)
        if not operators:
            return False
        if operator is None:
            return True
        if operator not in operators:
            return False
        if value is None:
            return True
        return operators[operator] == value

    def _clear_numeric_refinements(
        self, selector: ClearSelector | str | ClearCallback | None
    ) -> Mapping[str, Mapping[str, float]]:
        resolved = rl.as_clear_selector(selector)
        if isinstance(resolved, ClearAll):
            return {} if self.numeric_refinements else self.numeric_refinements
        if isinstance(resolved, ClearAttribute):
            if resolved.name not in self.numeric_refinements:
                return self.numeric_refinements
            return {k: v for k, v in self.numeric_refinements.items() if k != resolved.name}

        changed = False
        kept: dict[str, dict[str, float]] = {}
        for attribute, operators in self.numeric_refinements.items():
            remaining = {
                op: value
                for op, value in operators.items()
                if not resolved.fn(NumericFilter(op, value), attribute, "numeric")
            }
            if len(remaining) != len(operators):
                changed = True
            if remaining:
                kept[attribute] = remaining
        return kept if changed else self.numeric_refinements

    # ------------------------------------------------------------------
    # Tags

    def add_tag_refinement(self, tag: str) -> SearchParameters:
        if self.is_tag_refined(tag):
            return self
        return self.set_query_parameters({"page": 0, "tag_refinements": self.tag_refinements + (tag,)})

    def remove_tag_refinement(self, tag: str) -> SearchParameters:
        if not self.is_tag_refined(tag):
            return self
        return self.set_query_parameters(
            {"page": 0, "tag_refinements": tuple(t for t in self.tag_refinements if t != tag)}
        )

    def toggle_tag_refinement(self, tag: str) -> SearchParameters:
        if self.is_tag_refined(tag):
            return self.remove_tag_refinement(tag)
        return self.add_tag_refinement(tag)

    def is_tag_refined(self, tag: str) -> bool:
        return tag in self.tag_refinements

    def clear_tags(self) -> SearchParameters:
        """Remove both the managed tag list and the raw tag filters."""
        if self.tag_filters is None and not self.tag_refinements:
            return self
        return self.set_query_parameters({"page": 0, "tag_filters": None, "tag_refinements": ()})

    # ------------------------------------------------------------------
    # Clearing

    def clear_refinements(self, selector: ClearSelector | str | ClearCallback | None = None) -> SearchParameters:
        """Remove refinements (conjunctive, exclude, disjunctive, hierarchical and numeric).

        Args:
            selector: ``None`` clears everything, an attribute name clears
                every refinement of that attribute, and a predicate
                ``(value, attribute, kind)`` clears the refinements it
                returns true for. ``kind`` is one of ``numeric``,
                ``conjunctiveFacet``, ``exclude``, ``disjunctiveFacet`` or
                ``hierarchicalFacet``.

        Returns:
            The updated state, or ``self`` when nothing was refined.
        """
        resolved = rl.as_clear_selector(selector)
        changes = {
            "numeric_refinements": self._clear_numeric_refinements(resolved),
            "facets_refinements": rl.clear_refinements(self.facets_refinements, resolved, "conjunctiveFacet"),
            "facets_excludes": rl.clear_refinements(self.facets_excludes, resolved, "exclude"),
            "disjunctive_facets_refinements": rl.clear_refinements(
                self.disjunctive_facets_refinements, resolved, "disjunctiveFacet"
            ),
            "hierarchical_facets_refinements": rl.clear_refinements(
                self.hierarchical_facets_refinements, resolved, "hierarchicalFacet"
            ),
        }
        if all(value is getattr(self, name) for name, value in changes.items()):
            return self
        return self.set_query_parameters({"page": 0, **changes})


_FIELD_NAMES: tuple[str, ...] = tuple(f.name for f in dataclasses.fields(SearchParameters))


def _as_tuple(value: Sequence[str] | str | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _freeze_numeric(mapping: Mapping[str, Mapping[str, float]] | None) -> Mapping[str, Mapping[str, float]]:
    frozen: dict[str, Mapping[str, float]] = {}
    for attribute, operators in (mapping or {}).items():
        for operator in operators:
            _check_operator(operator)
        if operators:
            frozen[attribute] = MappingProxyType(dict(operators))
    return MappingProxyType(frozen)


def _check_operator(operator: str) -> None:
    if operator not in NUMERIC_OPERATORS:
        raise ValueError(f"Unsupported numeric operator: {operator!r} (expected one of {sorted(NUMERIC_OPERATORS)})")


__all__ = ["NUMERIC_OPERATORS", "NumericFilter", "SearchParameters"]
