"""Search orchestration: state changes, dispatch and response reconciliation."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass
from functools import partial
from typing import Any, Mapping, Protocol, Sequence, Union

from SearchHelper.core.hierarchical import HierarchicalFacetResult
from SearchHelper.core.models import SearchRequest, SearchResponse, SearchResults
from SearchHelper.core.parameters import SearchParameters
from SearchHelper.core.refinements import ClearCallback, ClearSelector
from SearchHelper.services.events import EventEmitter, Listener
from SearchHelper.services.requests import RequestPlan, build_requests
from SearchHelper.services.results import merge_responses
from SearchHelper.services.sequencer import PendingBatch, ResponseSequencer
from SearchHelper.sources.http.parser import parse_search_response
from SearchHelper.utils.log import batch_log

RawResponse = Union[SearchResponse, Mapping[str, Any]]
SearchOutcome = Union[Sequence[RawResponse], Sequence[Future], Future]


class SearchClient(Protocol):
    """Capability that executes a batch of requests against the search service.

    Implementations return the responses positionally aligned with the
    requests, either directly, as a single future for the whole batch, or
    as one future per request.
    """

    def search(self, requests: Sequence[SearchRequest]) -> SearchOutcome:
        """Send ``requests`` to the search service."""
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ResultEvent:
    """Payload of the ``result`` event."""

    results: SearchResults
    state: SearchParameters
    hierarchical_facets: tuple[HierarchicalFacetResult, ...]


class SearchHelper:
    """Keep the current search state and surface the freshest results.

    Events:
        change: ``(state)`` after each state change.
        search: ``(state)`` when a batch is dispatched.
        result: ``(ResultEvent)`` for each batch accepted by the sequencer.
        error: ``(error, state)`` when the client fails for a current batch.
    """

    def __init__(
        self,
        client: SearchClient,
        index_name: str,
        state: SearchParameters | Mapping[str, Any] | None = None,
    ) -> None:
        self.client = client
        self.index_name = index_name
        self.state = SearchParameters.make(state)
        self._sequencer = ResponseSequencer()
        self._events = EventEmitter()
        self._lock = threading.RLock()
        self._in_flight: set[int] = set()

    # ------------------------------------------------------------------
    # Events

    def on(self, event: str, listener: Listener) -> SearchHelper:
        self._events.on(event, listener)
        return self

    def once(self, event: str, listener: Listener) -> SearchHelper:
        self._events.once(event, listener)
        return self

    def off(self, event: str, listener: Listener | None = None) -> SearchHelper:
        self._events.off(event, listener)
        return self

    @property
    def sequencer(self) -> ResponseSequencer:
        return self._sequencer

    def has_pending_requests(self) -> bool:
        with self._lock:
            return bool(self._in_flight)

    # ------------------------------------------------------------------
    # State

    def get_state(self) -> SearchParameters:
        return self.state

    def set_state(self, state: SearchParameters | Mapping[str, Any]) -> SearchHelper:
        return self._change(SearchParameters.make(state))

    def set_query(self, query: str) -> SearchHelper:
        return self._change(self.state.set_query(query))

    def set_page(self, page: int) -> SearchHelper:
        return self._change(self.state.set_page(page))

    def next_page(self) -> SearchHelper:
        return self.set_page(self.state.page + 1)

    def previous_page(self) -> SearchHelper:
        if self.state.page == 0:
            raise ValueError("Page requested below 0")
        return self.set_page(self.state.page - 1)

    def set_query_parameter(self, name: str, value: Any) -> SearchHelper:
        return self._change(self.state.set_query_parameter(name, value))

    def add_refine(self, facet: str, value: str) -> SearchHelper:
        """Refine ``facet`` with ``value``, whatever kind of facet it is."""
        state = self.state
        if state.is_hierarchical_facet(facet):
            return self._change(state.add_hierarchical_facet_refinement(facet, value))
        if state.is_disjunctive_facet(facet):
            return self._change(state.add_disjunctive_facet_refinement(facet, value))
        self._require_conjunctive(facet)
        return self._change(state.add_facet_refinement(facet, value))

    def remove_refine(self, facet: str, value: str) -> SearchHelper:
        state = self.state
        if state.is_hierarchical_facet(facet):
            if not state.is_hierarchical_facet_refined(facet, value):
                return self
            return self._change(state.remove_hierarchical_facet_refinement(facet))
        if state.is_disjunctive_facet(facet):
            return self._change(state.remove_disjunctive_facet_refinement(facet, value))
        self._require_conjunctive(facet)
        return self._change(state.remove_facet_refinement(facet, value))

    def toggle_refine(self, facet: str, value: str) -> SearchHelper:
        state = self.state
        if state.is_hierarchical_facet(facet):
            return self._change(state.toggle_hierarchical_facet_refinement(facet, value))
        if state.is_disjunctive_facet(facet):
            return self._change(state.toggle_disjunctive_facet_refinement(facet, value))
        self._require_conjunctive(facet)
        return self._change(state.toggle_facet_refinement(facet, value))

    def add_exclude(self, facet: str, value: str) -> SearchHelper:
        return self._change(self.state.add_exclude_refinement(facet, value))

    def remove_exclude(self, facet: str, value: str) -> SearchHelper:
        return self._change(self.state.remove_exclude_refinement(facet, value))

    def toggle_exclude(self, facet: str, value: str) -> SearchHelper:
        return self._change(self.state.toggle_exclude_facet_refinement(facet, value))

    def add_disjunctive_refine(self, facet: str, value: str) -> SearchHelper:
        return self._change(self.state.add_disjunctive_facet_refinement(facet, value))

    def remove_disjunctive_refine(self, facet: str, value: str) -> SearchHelper:
        return self._change(self.state.remove_disjunctive_facet_refinement(facet, value))

    def add_numeric_refinement(self, attribute: str, operator: str, value: float) -> SearchHelper:
        return self._change(self.state.add_numeric_refinement(attribute, operator, value))

    def remove_numeric_refinement(self, attribute: str, operator: str) -> SearchHelper:
        return self._change(self.state.remove_numeric_refinement(attribute, operator))

    def add_tag(self, tag: str) -> SearchHelper:
        return self._change(self.state.add_tag_refinement(tag))

    def remove_tag(self, tag: str) -> SearchHelper:
        return self._change(self.state.remove_tag_refinement(tag))

    def toggle_tag(self, tag: str) -> SearchHelper:
        return self._change(self.state.toggle_tag_refinement(tag))

    def clear_refinements(self, selector: ClearSelector | str | ClearCallback | None = None) -> SearchHelper:
        return self._change(self.state.clear_refinements(selector))

    def clear_tags(self) -> SearchHelper:
        return self._change(self.state.clear_tags())

    def _require_conjunctive(self, facet: str) -> None:
        if not self.state.is_conjunctive_facet(facet):
            raise ValueError(f"{facet} is not declared in facets, disjunctive_facets or hierarchical_facets")

    def _change(self, state: SearchParameters) -> SearchHelper:
        if state is not self.state:
            self.state = state
            self._events.emit("change", state)
        return self

    # ------------------------------------------------------------------
    # Dispatch

    def search(self) -> SearchHelper:
        """Send the requests for the current state.

        Results are delivered through the ``result`` event, only if no
        newer batch has been accepted before this one completes.
        """
        state = self.state
        plan = build_requests(self.index_name, state)
        with self._lock:
            batch: PendingBatch[SearchResponse] = PendingBatch(self._sequencer.next_sequence_id(), len(plan))
            self._in_flight.add(batch.sequence_id)
        batch_log(batch.sequence_id).debug("dispatched requests=%d", len(plan))
        self._events.emit("search", state)

        try:
            outcome = self.client.search(plan.requests)
        except Exception as error:
            self._fail(batch, state, error, raise_unhandled=True)
            return self

        if isinstance(outcome, Future):
            outcome.add_done_callback(partial(self._on_batch_done, batch, state, plan))
            return self

        items = list(outcome)
        if len(items) != len(plan):
            self._fail(
                batch,
                state,
                ValueError(f"client returned {len(items)} responses for {len(plan)} requests"),
                raise_unhandled=True,
            )
            return self
        for index, item in enumerate(items):
            if isinstance(item, Future):
                item.add_done_callback(partial(self._on_request_done, batch, state, plan, index))
            elif not self._deliver(batch, state, plan, index, item, raise_unhandled=True):
                break
        return self

    def _on_batch_done(
        self,
        batch: PendingBatch[SearchResponse],
        state: SearchParameters,
        plan: RequestPlan,
        future: Future,
    ) -> None:
        error = future.exception()
        if error is not None:
            self._fail(batch, state, error)
            return
        try:
            responses = list(future.result())
        except TypeError as error:
            self._fail(batch, state, error)
            return
        if len(responses) != len(plan):
            self._fail(batch, state, ValueError(f"client returned {len(responses)} responses for {len(plan)} requests"))
            return
        for index, response in enumerate(responses):
            if not self._deliver(batch, state, plan, index, response):
                return

    def _on_request_done(
        self,
        batch: PendingBatch[SearchResponse],
        state: SearchParameters,
        plan: RequestPlan,
        index: int,
        future: Future,
    ) -> None:
        error = future.exception()
        if error is not None:
            self._fail(batch, state, error)
            return
        self._deliver(batch, state, plan, index, future.result())

    def _deliver(
        self,
        batch: PendingBatch[SearchResponse],
        state: SearchParameters,
        plan: RequestPlan,
        index: int,
        raw: RawResponse,
        *,
        raise_unhandled: bool = False,
    ) -> bool:
        """Store one response; merge and surface the batch once it is complete.

        Returns:
            False when the response could not be used and the batch failed.
        """
        try:
            response = raw if isinstance(raw, SearchResponse) else parse_search_response(raw)
        except (TypeError, ValueError) as error:
            self._fail(batch, state, error, raise_unhandled=raise_unhandled)
            return False
        # Emission happens under the lock so subscribers see batches in
        # sequence order even when they complete on different threads.
        with self._lock:
            if not batch.deliver(index, response):
                return True
            try:
                results = merge_responses(state, plan, batch.responses)
            except (KeyError, TypeError, ValueError) as error:
                self._fail(batch, state, error, raise_unhandled=raise_unhandled)
                return False
            self._in_flight.discard(batch.sequence_id)
            if not self._sequencer.accept(batch.sequence_id):
                return True
            batch_log(batch.sequence_id).debug("accepted nb_hits=%d", results.nb_hits)
            self._events.emit(
                "result",
                ResultEvent(results=results, state=state, hierarchical_facets=tuple(results.hierarchical_facets)),
            )
        return True

    def _fail(
        self,
        batch: PendingBatch[SearchResponse],
        state: SearchParameters,
        error: BaseException,
        *,
        raise_unhandled: bool = False,
    ) -> None:
        with self._lock:
            if batch.sequence_id not in self._in_flight:
                # Already reported by another request of the batch.
                return
            self._in_flight.discard(batch.sequence_id)
            if self._sequencer.is_stale(batch.sequence_id):
                batch_log(batch.sequence_id).debug("ignoring failure of stale batch: %s", error)
                return
            batch_log(batch.sequence_id).warning("search failed: %s", error)
            if self._events.emit("error", error, state):
                return
        if raise_unhandled:
            raise error
        batch_log(batch.sequence_id).error("unhandled search error: %s", error)


__all__ = ["ResultEvent", "SearchClient", "SearchHelper"]
