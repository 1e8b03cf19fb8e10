"""Tests for SearchHelper dispatch, ordering and events."""

import sys
import threading
import unittest
from concurrent.futures import Future
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchHelper.core.hierarchical import HierarchicalFacetConfig
from SearchHelper.core.parameters import SearchParameters
from SearchHelper.services import ResultEvent, SearchHelper
from SearchHelper.services.events import EventEmitter


def _payload(query: str, **facets) -> dict:
    return {"hits": [{"objectID": query}], "nbHits": 1, "query": query, "facets": facets}


class _FutureClient:
    """Return one unresolved future per request."""

    def __init__(self) -> None:
        self.batches: list[tuple[list, list[Future]]] = []

    def search(self, requests):
        futures = [Future() for _ in requests]
        self.batches.append((list(requests), futures))
        return futures


class _BatchFutureClient:
    """Return a single future for the whole batch."""

    def __init__(self) -> None:
        self.futures: list[Future] = []

    def search(self, requests):
        future: Future = Future()
        self.futures.append(future)
        return future


class _SyncClient:
    def __init__(self, responder) -> None:
        self.responder = responder

    def search(self, requests):
        return self.responder(requests)


class _FailingClient:
    def search(self, requests):
        raise RuntimeError("boom")


class TestDispatchOrdering(unittest.TestCase):
    def setUp(self) -> None:
        self.client = _FutureClient()
        self.helper = SearchHelper(self.client, "products", {"facets": ["brand"]})
        self.events: list[ResultEvent] = []
        self.helper.on("result", self.events.append)

    def test_newest_batch_wins_when_answered_first(self) -> None:
        self.helper.set_query("a").search()
        self.helper.set_query("ab").search()
        (_, first), (_, second) = self.client.batches

        second[0].set_result(_payload("ab"))
        first[0].set_result(_payload("a"))

        self.assertEqual([event.results.query for event in self.events], ["ab"])
        self.assertEqual(self.helper.sequencer.last_accepted_id, 1)
        self.assertFalse(self.helper.has_pending_requests())

    def test_batches_answered_in_order_are_all_surfaced(self) -> None:
        self.helper.set_query("a").search()
        self.helper.set_query("ab").search()
        self.client.batches[0][1][0].set_result(_payload("a"))
        self.client.batches[1][1][0].set_result(_payload("ab"))
        self.assertEqual([event.results.query for event in self.events], ["a", "ab"])

    def test_event_carries_state_of_dispatch(self) -> None:
        self.helper.set_query("a").search()
        self.helper.set_query("later")
        self.assertTrue(self.helper.has_pending_requests())
        self.client.batches[0][1][0].set_result(_payload("a"))
        self.assertEqual(self.events[0].state.query, "a")
        self.assertEqual(self.helper.state.query, "later")

    def test_batch_waits_for_every_response(self) -> None:
        helper = SearchHelper(
            self.client,
            "products",
            SearchParameters.make(disjunctive_facets=["color"]).add_disjunctive_facet_refinement("color", "red"),
        )
        events: list[ResultEvent] = []
        helper.on("result", events.append)
        helper.search()
        _, futures = self.client.batches[-1]
        self.assertEqual(len(futures), 2)

        futures[1].set_result(_payload("", color={"blue": 2}))
        self.assertEqual(events, [])
        futures[0].set_result(_payload("", color={"red": 1}))
        self.assertEqual(dict(events[0].results.disjunctive_facets["color"]), {"blue": 2, "red": 0})

    def test_results_follow_sequence_across_threads(self) -> None:
        self.helper.set_query("a").search()
        self.helper.set_query("ab").search()
        (_, first), (_, second) = self.client.batches
        seen: list[str] = []
        workers: list[threading.Thread] = []

        def on_result(event: ResultEvent) -> None:
            if event.state.query == "a" and not workers:
                # The newer batch completes elsewhere while this one is being surfaced.
                worker = threading.Thread(target=second[0].set_result, args=(_payload("ab"),))
                workers.append(worker)
                worker.start()
                worker.join(timeout=0.2)
            seen.append(event.state.query)

        self.helper.on("result", on_result)
        first[0].set_result(_payload("a"))
        workers[0].join(timeout=5)

        self.assertFalse(workers[0].is_alive())
        self.assertEqual(seen, ["a", "ab"])
        self.assertEqual(self.helper.sequencer.last_accepted_id, 1)


class TestClientShapes(unittest.TestCase):
    def test_single_future_for_batch(self) -> None:
        client = _BatchFutureClient()
        helper = SearchHelper(client, "products")
        events: list[ResultEvent] = []
        helper.on("result", events.append)
        helper.set_query("x").search()
        client.futures[0].set_result([_payload("x")])
        self.assertEqual(events[0].results.query, "x")

    def test_direct_responses_are_delivered_synchronously(self) -> None:
        helper = SearchHelper(_SyncClient(lambda requests: [_payload("now") for _ in requests]), "products")
        events: list[ResultEvent] = []
        helper.on("result", events.append)
        helper.search()
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].results.hits[0]["objectID"], "now")

    def test_wrong_response_count_is_reported(self) -> None:
        helper = SearchHelper(_SyncClient(lambda requests: []), "products")
        errors: list[BaseException] = []
        helper.on("error", lambda error, state: errors.append(error))
        helper.search()
        self.assertIsInstance(errors[0], ValueError)


class TestErrors(unittest.TestCase):
    def test_client_exception_emits_error(self) -> None:
        helper = SearchHelper(_FailingClient(), "products", {"query": "q"})
        received: list[tuple] = []
        helper.on("error", lambda error, state: received.append((error, state)))
        helper.search()
        self.assertEqual(str(received[0][0]), "boom")
        self.assertEqual(received[0][1].query, "q")
        self.assertFalse(helper.has_pending_requests())

    def test_client_exception_raised_without_listener(self) -> None:
        helper = SearchHelper(_FailingClient(), "products")
        with self.assertRaises(RuntimeError):
            helper.search()

    def test_failed_future_emits_error(self) -> None:
        client = _FutureClient()
        helper = SearchHelper(client, "products")
        errors: list[BaseException] = []
        helper.on("error", lambda error, state: errors.append(error))
        helper.search()
        client.batches[0][1][0].set_exception(ConnectionError("down"))
        self.assertIsInstance(errors[0], ConnectionError)

    def test_failure_of_superseded_batch_is_ignored(self) -> None:
        client = _FutureClient()
        helper = SearchHelper(client, "products")
        errors: list[BaseException] = []
        helper.on("error", lambda error, state: errors.append(error))
        helper.set_query("a").search()
        helper.set_query("ab").search()
        client.batches[1][1][0].set_result(_payload("ab"))
        client.batches[0][1][0].set_exception(ConnectionError("late"))
        self.assertEqual(errors, [])

    def test_malformed_response_from_future_emits_error(self) -> None:
        client = _FutureClient()
        helper = SearchHelper(client, "products")
        errors: list[BaseException] = []
        results: list[ResultEvent] = []
        helper.on("error", lambda error, state: errors.append(error))
        helper.on("result", results.append)
        helper.search()

        client.batches[0][1][0].set_result("not a mapping")

        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], TypeError)
        self.assertEqual(results, [])
        self.assertFalse(helper.has_pending_requests())

    def test_malformed_batch_future_emits_error(self) -> None:
        client = _BatchFutureClient()
        helper = SearchHelper(client, "products")
        errors: list[BaseException] = []
        helper.on("error", lambda error, state: errors.append(error))
        helper.search()

        client.futures[0].set_result(["not a mapping"])

        self.assertEqual(len(errors), 1)
        self.assertFalse(helper.has_pending_requests())

    def test_batch_failure_reported_once(self) -> None:
        client = _FutureClient()
        state = SearchParameters.make(disjunctive_facets=["color"]).add_disjunctive_facet_refinement("color", "red")
        helper = SearchHelper(client, "products", state)
        errors: list[BaseException] = []
        helper.on("error", lambda error, state: errors.append(error))
        helper.search()

        _, futures = client.batches[0]
        futures[0].set_exception(ConnectionError("down"))
        futures[1].set_result(42)

        self.assertEqual(len(errors), 1)

    def test_malformed_direct_response_raised_without_listener(self) -> None:
        helper = SearchHelper(_SyncClient(lambda requests: ["bad" for _ in requests]), "products")
        with self.assertRaises(TypeError):
            helper.search()
        self.assertFalse(helper.has_pending_requests())


class TestStateChanges(unittest.TestCase):
    def setUp(self) -> None:
        self.helper = SearchHelper(
            _FutureClient(),
            "products",
            SearchParameters.make(
                facets=["brand"],
                disjunctive_facets=["color"],
                hierarchical_facets=[HierarchicalFacetConfig("categories", ("lvl0", "lvl1"))],
            ),
        )
        self.changes: list[SearchParameters] = []
        self.helper.on("change", self.changes.append)

    def test_change_emitted_only_when_state_changes(self) -> None:
        self.helper.add_refine("brand", "acme")
        self.helper.add_refine("brand", "acme")
        self.assertEqual(len(self.changes), 1)
        self.assertIs(self.changes[0], self.helper.get_state())

    def test_refine_routes_by_facet_kind(self) -> None:
        self.helper.toggle_refine("brand", "acme")
        self.helper.toggle_refine("color", "red")
        self.helper.toggle_refine("categories", "beers > IPA")
        state = self.helper.state
        self.assertTrue(state.is_facet_refined("brand", "acme"))
        self.assertTrue(state.is_disjunctive_facet_refined("color", "red"))
        self.assertEqual(state.get_hierarchical_refinement("categories"), ("beers > IPA",))

        self.helper.remove_refine("categories", "beers > IPA")
        self.assertFalse(self.helper.state.is_hierarchical_facet_refined("categories"))

    def test_undeclared_facet_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.helper.toggle_refine("unknown", "x")

    def test_paging(self) -> None:
        with self.assertRaises(ValueError):
            self.helper.previous_page()
        self.helper.next_page().next_page()
        self.assertEqual(self.helper.state.page, 2)
        self.helper.previous_page()
        self.assertEqual(self.helper.state.page, 1)

    def test_search_event_emitted_on_dispatch(self) -> None:
        searched: list[SearchParameters] = []
        self.helper.on("search", searched.append)
        self.helper.search()
        self.assertEqual(searched, [self.helper.state])


class TestHierarchicalEndToEnd(unittest.TestCase):
    def test_tree_with_parent_level_from_multi_level_responses(self) -> None:
        config = HierarchicalFacetConfig(
            "categories", ("categories.lvl0", "categories.lvl1"), separator=" | ", show_parent_level=True
        )
        responses = [
            {
                "query": "a",
                "hits": [{"objectID": "one"}, {"objectID": "two"}],
                "nbHits": 2,
                "page": 0,
                "nbPages": 1,
                "hitsPerPage": 20,
                "facets": {"categories.lvl0": {"beers": 2}, "categories.lvl1": {"beers | IPA": 2}},
            },
            {
                "query": "a",
                "hits": [{"objectID": "one"}],
                "nbHits": 1,
                "page": 0,
                "nbPages": 1,
                "hitsPerPage": 1,
                "facets": {
                    "categories.lvl0": {"beers": 3},
                    "categories.lvl1": {"beers | IPA": 2, "beers | Belgian": 1},
                },
            },
            {
                "query": "a",
                "hits": [{"objectID": "one"}],
                "nbHits": 1,
                "page": 0,
                "nbPages": 1,
                "hitsPerPage": 1,
                "facets": {"categories.lvl0": {"beers": 3}},
            },
        ]
        sent: list[list] = []

        def respond(requests):
            sent.append(list(requests))
            return responses

        helper = SearchHelper(
            _SyncClient(respond), "products", SearchParameters.make(hierarchical_facets=[config])
        )
        events: list[ResultEvent] = []
        helper.once("result", events.append)
        helper.toggle_refine("categories", "beers | IPA")
        helper.set_query("a").search()

        self.assertEqual(len(sent), 1)
        self.assertEqual(len(sent[0]), 3)
        self.assertEqual(
            [facet.to_dict() for facet in events[0].hierarchical_facets],
            [
                {
                    "name": "categories",
                    "count": None,
                    "isRefined": True,
                    "path": None,
                    "data": [
                        {
                            "name": "beers",
                            "path": "beers",
                            "count": 3,
                            "isRefined": True,
                            "data": [
                                {"name": "IPA", "path": "beers | IPA", "count": 2, "isRefined": True, "data": None},
                                {
                                    "name": "Belgian",
                                    "path": "beers | Belgian",
                                    "count": 1,
                                    "isRefined": False,
                                    "data": None,
                                },
                            ],
                        }
                    ],
                }
            ],
        )

    def test_tree_without_parent_level(self) -> None:
        config = HierarchicalFacetConfig(
            "categories", ("categories.lvl0", "categories.lvl1"), show_parent_level=False
        )
        client = _FutureClient()
        helper = SearchHelper(client, "products", SearchParameters.make(hierarchical_facets=[config]))
        events: list[ResultEvent] = []
        helper.on("result", events.append)

        helper.toggle_refine("categories", "beers > IPA").search()
        requests, futures = client.batches[0]
        self.assertEqual(len(requests), 3)
        self.assertIn("categories.lvl0:beers", requests[2].params["facetFilters"])

        futures[0].set_result(
            {
                "hits": [],
                "nbHits": 5,
                "facets": {"categories.lvl0": {"beers": 5}, "categories.lvl1": {"beers > IPA": 2}},
            }
        )
        futures[2].set_result({"facets": {"categories.lvl1": {"beers > IPA": 2, "beers > Stout": 3}}})
        futures[1].set_result({"facets": {"categories.lvl0": {"beers": 5, "wine": 3}}})

        self.assertEqual(len(events), 1)
        self.assertEqual(
            [facet.to_dict() for facet in events[0].hierarchical_facets],
            [
                {
                    "name": "categories",
                    "count": None,
                    "path": None,
                    "isRefined": True,
                    "data": [
                        {
                            "name": "beers",
                            "path": "beers",
                            "count": 5,
                            "isRefined": True,
                            "data": [
                                {"name": "IPA", "path": "beers > IPA", "count": 2, "isRefined": True, "data": None}
                            ],
                        }
                    ],
                }
            ],
        )


class TestEventEmitter(unittest.TestCase):
    def test_once_and_off(self) -> None:
        emitter = EventEmitter()
        calls: list[str] = []

        def persistent(value: str) -> None:
            calls.append("on:" + value)

        emitter.on("x", persistent)
        emitter.once("x", lambda value: calls.append("once:" + value))
        self.assertTrue(emitter.emit("x", "1"))
        self.assertTrue(emitter.emit("x", "2"))
        self.assertEqual(calls, ["on:1", "once:1", "on:2"])

        emitter.off("x", persistent)
        self.assertEqual(emitter.listener_count("x"), 0)
        self.assertFalse(emitter.emit("x", "3"))


if __name__ == "__main__":
    unittest.main()
