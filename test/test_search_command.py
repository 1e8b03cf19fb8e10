"""Tests for the search command and the CLI surface."""

import json
import sys
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from click.testing import CliRunner

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchHelper.cli import cli
from SearchHelper.cli.commands import SearchCommand, parse_numeric, parse_refinement
from SearchHelper.core.parameters import SearchParameters
from SearchHelper.services import SearchHelper


class _StaticClient:
    """Answer every request with the same payload."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.batches: list[list] = []

    def __enter__(self) -> "_StaticClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def search(self, requests):
        self.batches.append(list(requests))
        if self.fail:
            raise ConnectionError("service unavailable")
        return [
            {
                "hits": [{"objectID": "1", "title": "Hazy IPA"}],
                "nbHits": 1,
                "nbPages": 1,
                "hitsPerPage": 20,
                "facets": {"brand": {"acme": 1}},
            }
            for _ in requests
        ]


class _RecordingWriter:
    def __init__(self) -> None:
        self.written: list = []

    def write_results(self, results, state) -> None:
        self.written.append((results, state))

    def finalize(self, action: str) -> None:
        del action


def _make_runner() -> CliRunner:
    """Create CliRunner with best-effort stderr capture."""
    try:
        return CliRunner(mix_stderr=True)
    except TypeError:
        # Newer Click versions always mix stderr into output.
        return CliRunner()


class TestArgumentParsing(unittest.TestCase):
    def test_parse_refinement_splits_on_first_colon(self) -> None:
        self.assertEqual(parse_refinement("categories:beers > IPA"), ("categories", "beers > IPA"))
        self.assertEqual(parse_refinement("time:12:30"), ("time", "12:30"))
        with self.assertRaises(ValueError):
            parse_refinement("brand")
        with self.assertRaises(ValueError):
            parse_refinement(":acme")

    def test_parse_numeric(self) -> None:
        self.assertEqual(parse_numeric("price>=10"), ("price", ">=", 10.0))
        self.assertEqual(parse_numeric("rating != 2.5"), ("rating", "!=", 2.5))
        with self.assertRaises(ValueError):
            parse_numeric("price ~ 10")
        with self.assertRaises(ValueError):
            parse_numeric("price >= cheap")


class TestSearchCommand(unittest.TestCase):
    def _command(self, client: _StaticClient, writer: _RecordingWriter, **kwargs) -> SearchCommand:
        helper = SearchHelper(client, "products", SearchParameters.make(facets=["brand"]))
        config = SimpleNamespace(client=SimpleNamespace(timeout=1.0))
        return SearchCommand(config=config, helper=helper, output_writer=writer, **kwargs)

    def test_execute_applies_state_and_writes_results(self) -> None:
        client = _StaticClient()
        writer = _RecordingWriter()
        command = self._command(
            client, writer, refinements=["brand:acme"], numeric=["price>=10"], tags=["promo"], page=2
        )
        event = command.execute()

        self.assertEqual(event.results.nb_hits, 1)
        self.assertEqual(len(writer.written), 1)
        params = client.batches[0][0].params
        self.assertEqual(params["facetFilters"], ["brand:acme"])
        self.assertEqual(params["numericFilters"], ["price>=10.0"])
        self.assertEqual(params["tagFilters"], "promo")
        self.assertEqual(params["page"], 2)

    def test_execute_raises_transport_error(self) -> None:
        command = self._command(_StaticClient(fail=True), _RecordingWriter())
        with self.assertRaises(ConnectionError):
            command.execute()


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.config_path = self.tmp / "config.yml"
        self.config_path.write_text(
            "client:\n"
            "  endpoint: http://localhost:7700/1/indexes/*/queries\n"
            "helper:\n"
            "  facets: [brand]\n"
            "output:\n"
            f"  base_dir: {self.tmp.as_posix()}\n"
            "  formats: [console, json]\n",
            encoding="utf-8",
        )
        default_patch = patch("SearchHelper.cli.ui.DEFAULT_CONFIG", REPO_ROOT / "config" / "default.yml")
        default_patch.start()
        self.addCleanup(default_patch.stop)

    def test_search_prints_hits_and_writes_json(self) -> None:
        client = _StaticClient()
        with patch("SearchHelper.cli.runner.create_search_client", return_value=client):
            result = _make_runner().invoke(
                cli,
                ["--config", str(self.config_path), "search", "ipa", "--refine", "brand:acme"],
                catch_exceptions=False,
            )

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Hazy IPA", result.output)
        self.assertEqual(client.batches[0][0].params["query"], "ipa")

        files = list((self.tmp / "json").glob("search_*.json"))
        self.assertEqual(len(files), 1)
        payload = json.loads(files[0].read_text(encoding="utf-8"))
        self.assertEqual(payload[0]["results"]["nbHits"], 1)
        self.assertEqual(payload[0]["params"]["query"], "ipa")

    def test_undeclared_facet_aborts(self) -> None:
        with patch("SearchHelper.cli.runner.create_search_client", return_value=_StaticClient()):
            result = _make_runner().invoke(
                cli, ["--config", str(self.config_path), "search", "--refine", "color:red"]
            )
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
