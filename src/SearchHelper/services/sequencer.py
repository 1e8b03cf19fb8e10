"""Ordering of asynchronous response batches.

Every dispatched batch gets an increasing sequence id. Responses may come
back in any order; a batch is only surfaced if no newer batch has been
accepted in the meantime. Stale batches are dropped silently, this is the
normal outcome of overlapping requests (e.g. search-as-you-type).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, Sequence, TypeVar

from SearchHelper.utils.log import batch_log

T = TypeVar("T")


class ResponseSequencer:
    """Assigns sequence ids and gates responses on them."""

    def __init__(self) -> None:
        self._next_id = 0
        self._last_accepted_id = -1

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def last_accepted_id(self) -> int:
        return self._last_accepted_id

    def next_sequence_id(self) -> int:
        """Return a fresh id; call once per dispatched batch."""
        sequence_id = self._next_id
        self._next_id += 1
        return sequence_id

    def is_stale(self, sequence_id: int) -> bool:
        return sequence_id <= self._last_accepted_id

    def accept(self, sequence_id: int, applier: Callable[[], Any] | None = None) -> bool:
        """Accept a response batch if it is newer than the last accepted one.

        Args:
            sequence_id: Id the batch was dispatched with.
            applier: Merges the payload; only run when accepted.

        Returns:
            True when the caller should notify subscribers.
        """
        if self.is_stale(sequence_id):
            batch_log(sequence_id).debug("dropped as stale, last accepted=%d", self._last_accepted_id)
            return False
        self._last_accepted_id = sequence_id
        if applier is not None:
            applier()
        return True


@dataclass(slots=True)
class PendingBatch(Generic[T]):
    """Tracking record for the physical requests of one batch.

    Responses are stored positionally, even once the batch has been
    superseded, so the record always reflects what actually arrived.
    """

    sequence_id: int
    expected: int
    _responses: list[T | None] = field(init=False, repr=False)
    _received: set[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.expected <= 0:
            raise ValueError("a batch must contain at least one request")
        self._responses = [None] * self.expected
        self._received = set()

    @property
    def complete(self) -> bool:
        return len(self._received) == self.expected

    @property
    def received(self) -> int:
        return len(self._received)

    def deliver(self, index: int, response: T) -> bool:
        """Store the response of request ``index``.

        Returns:
            True if this delivery completed the batch.
        """
        if not 0 <= index < self.expected:
            raise IndexError(f"response index {index} out of range for batch of {self.expected}")
        was_complete = self.complete
        self._responses[index] = response
        self._received.add(index)
        return self.complete and not was_complete

    def deliver_all(self, responses: Sequence[T]) -> bool:
        """Store a full, positionally aligned list of responses."""
        if len(responses) != self.expected:
            raise ValueError(f"expected {self.expected} responses, got {len(responses)}")
        completed = False
        for index, response in enumerate(responses):
            completed = self.deliver(index, response) or completed
        return completed

    @property
    def responses(self) -> list[T]:
        if not self.complete:
            raise RuntimeError(f"batch {self.sequence_id} is still waiting for responses")
        return list(self._responses)  # type: ignore[arg-type]


__all__ = ["PendingBatch", "ResponseSequencer"]
