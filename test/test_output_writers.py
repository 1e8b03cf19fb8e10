"""Tests for console and JSON output writers."""

import json
import sys
import tempfile
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchHelper.core.hierarchical import FacetTreeNode, HierarchicalFacetResult
from SearchHelper.core.models import SearchResults
from SearchHelper.core.parameters import SearchParameters
from SearchHelper.renderers import JsonFileWriter, MultiOutputWriter, render_text


def _results() -> SearchResults:
    return SearchResults(
        query="ipa",
        hits=[{"objectID": "1", "title": "Hazy IPA"}, {"objectID": "2"}],
        nb_hits=12,
        page=1,
        nb_pages=6,
        hits_per_page=2,
        processing_time_ms=3,
        facets={"brand": {"acme": 4, "other": 8}},
        disjunctive_facets={"color": {"red": 3}},
        hierarchical_facets=(
            HierarchicalFacetResult(
                name="categories",
                is_refined=True,
                data=(
                    FacetTreeNode(
                        "beers",
                        "beers",
                        12,
                        True,
                        (FacetTreeNode("IPA", "beers > IPA", 7, True),),
                    ),
                ),
            ),
        ),
    )


class TestRenderText(unittest.TestCase):
    def test_hits_facets_and_tree(self) -> None:
        state = SearchParameters.make(facets=["brand"]).add_facet_refinement("brand", "acme")
        text = render_text(_results(), state)
        lines = text.splitlines()

        self.assertEqual(lines[0], "query='ipa' hits=12 page=2/6")
        self.assertIn("3. Hazy IPA", lines)
        self.assertIn("4. 2", lines)
        self.assertIn("  * acme (4)", lines)
        self.assertIn("    other (8)", lines)
        self.assertIn("Hierarchical facet categories:", lines)
        self.assertIn("    * IPA (7)", lines)


class TestJsonFileWriter(unittest.TestCase):
    def test_finalize_writes_accumulated_results(self) -> None:
        tmp = Path(tempfile.mkdtemp())
        writer = JsonFileWriter(str(tmp))
        multi = MultiOutputWriter([writer])
        multi.write_results(_results(), SearchParameters.make(query="ipa", page=1))
        multi.finalize("search")

        files = list((tmp / "json").glob("search_*.json"))
        self.assertEqual(len(files), 1)
        payload = json.loads(files[0].read_text(encoding="utf-8"))
        self.assertEqual(payload[0]["params"]["page"], 1)
        self.assertEqual(payload[0]["results"]["hierarchicalFacets"][0]["data"][0]["data"][0]["path"], "beers > IPA")


if __name__ == "__main__":
    unittest.main()
