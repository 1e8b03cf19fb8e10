"""Command implementations for SearchHelper CLI.

Encapsulates the search flow, separated from CLI parameter handling and
output formatting.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Sequence

from SearchHelper.config import AppConfig
from SearchHelper.core.parameters import NUMERIC_OPERATORS
from SearchHelper.renderers import OutputWriter
from SearchHelper.services import ResultEvent, SearchHelper
from SearchHelper.utils.log import log

_NUMERIC_RE = re.compile(r"^\s*(?P<attribute>[^<>=!\s]+)\s*(?P<operator>>=|<=|!=|=|>|<)\s*(?P<value>\S+)\s*$")

# Seconds waited for a batch on top of the transport timeout.
_WAIT_MARGIN = 5.0


def parse_refinement(raw: str) -> tuple[str, str]:
    """Split ``ATTR:VALUE`` on the first colon.

    Raises:
        ValueError: If either side is empty.
    """
    attribute, sep, value = raw.partition(":")
    if not sep or not attribute.strip() or not value.strip():
        raise ValueError(f"Invalid refinement {raw!r}, expected ATTR:VALUE")
    return attribute.strip(), value.strip()


def parse_numeric(raw: str) -> tuple[str, str, float]:
    """Parse ``ATTR OP VALUE`` such as ``price>=10``.

    Raises:
        ValueError: If the expression or the value is malformed.
    """
    match = _NUMERIC_RE.match(raw)
    if not match or match.group("operator") not in NUMERIC_OPERATORS:
        raise ValueError(f"Invalid numeric filter {raw!r}, expected ATTR OP VALUE")
    try:
        value = float(match.group("value"))
    except ValueError as exc:
        raise ValueError(f"Invalid numeric value in {raw!r}") from exc
    return match.group("attribute"), match.group("operator"), value


@dataclass(slots=True)
class SearchCommand:
    """Apply the requested refinements, run one search and write the results."""

    config: AppConfig
    helper: SearchHelper
    output_writer: OutputWriter
    refinements: Sequence[str] = ()
    excludes: Sequence[str] = ()
    numeric: Sequence[str] = ()
    tags: Sequence[str] = ()
    page: int = 0
    _done: threading.Event = field(default_factory=threading.Event, init=False)
    _event: ResultEvent | None = field(default=None, init=False)
    _error: BaseException | None = field(default=None, init=False)

    def execute(self) -> ResultEvent:
        """Run the search and block until its results arrive.

        Raises:
            TimeoutError: If no result arrives in time.
            Exception: Whatever the transport failed with.
        """
        self._apply_state()
        log.info("query=%r page=%d", self.helper.state.query, self.helper.state.page)
        log.debug("state=%s", self.helper.state)

        self.helper.once("result", self._on_result)
        self.helper.once("error", self._on_error)
        self.helper.search()

        if not self._done.wait(self.config.client.timeout + _WAIT_MARGIN):
            raise TimeoutError("search did not complete in time")
        if self._error is not None:
            raise self._error
        event = self._event
        if event is None:
            raise RuntimeError("search finished without results")
        log.info("Fetched %d hits (%d total)", len(event.results.hits), event.results.nb_hits)
        self.output_writer.write_results(event.results, event.state)
        return event

    def _apply_state(self) -> None:
        for raw in self.refinements:
            self.helper.toggle_refine(*parse_refinement(raw))
        for raw in self.excludes:
            self.helper.add_exclude(*parse_refinement(raw))
        for raw in self.numeric:
            self.helper.add_numeric_refinement(*parse_numeric(raw))
        for tag in self.tags:
            self.helper.add_tag(tag)
        if self.page:
            self.helper.set_page(self.page)

    def _on_result(self, event: ResultEvent) -> None:
        self._event = event
        self._done.set()

    def _on_error(self, error: BaseException, _state: object) -> None:
        self._error = error
        self._done.set()
