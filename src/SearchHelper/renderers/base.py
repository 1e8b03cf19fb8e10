"""Writers presenting the merged results of accepted search batches.

A command hands every ``result`` event to one writer; the writer decides
whether to print it immediately or keep it until the command finishes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from SearchHelper.core.models import SearchResults
from SearchHelper.core.parameters import SearchParameters


class OutputWriter(ABC):
    """Destination for search results (console, JSON file...)."""

    @abstractmethod
    def write_results(self, results: SearchResults, state: SearchParameters) -> None:
        """Write the merged results of one accepted batch.

        Args:
            results: Merged results.
            state: Search state the batch was sent for.
        """

    @abstractmethod
    def finalize(self, action: str) -> None:
        """Flush whatever was kept back while results arrived.

        Args:
            action: CLI command name, used to name output files.
        """


@dataclass(slots=True)
class MultiOutputWriter(OutputWriter):
    """Fan results out to every configured format."""

    writers: Sequence[OutputWriter]

    def write_results(self, results: SearchResults, state: SearchParameters) -> None:
        for writer in self.writers:
            writer.write_results(results, state)

    def finalize(self, action: str) -> None:
        for writer in self.writers:
            writer.finalize(action)
