"""JSON output renderers.

Provides JsonFileWriter, which accumulates results and writes them to a
timestamped file on finalize.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from SearchHelper.core.models import SearchResults
from SearchHelper.core.parameters import SearchParameters
from SearchHelper.renderers.base import OutputWriter
from SearchHelper.services.requests import to_wire_params
from SearchHelper.utils.log import log


def render_json(results: SearchResults, state: SearchParameters) -> dict[str, Any]:
    """Render one result batch into a JSON-serializable object.

    Args:
        results: Merged results.
        state: Search state the results were computed for.

    Returns:
        ``{"params": ..., "results": ...}`` where ``params`` holds the
        passthrough query parameters under their wire names.
    """
    return {
        "params": to_wire_params(state),
        "results": results.to_dict(),
    }


class JsonFileWriter(OutputWriter):
    """Accumulate results and write to JSON file on finalize."""

    def __init__(self, base_dir: str) -> None:
        """Initialize JSON writer.

        Args:
            base_dir: Base output directory.
        """
        self.output_dir = Path(base_dir) / "json"
        self.all_results: list[dict[str, Any]] = []

    def write_results(self, results: SearchResults, state: SearchParameters) -> None:
        self.all_results.append(render_json(results, state))

    def finalize(self, action: str) -> None:
        """Write accumulated results to JSON file.

        Args:
            action: The CLI command name (used in filename).
        """
        payload = json.dumps(self.all_results, ensure_ascii=False, indent=2, default=str)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = self.output_dir / f"{action}_{timestamp}.json"
        output_path.write_text(payload, encoding="utf-8")
        log.info("JSON saved to %s", output_path)
