"""Tests for response ordering and batch tracking."""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from SearchHelper.services.sequencer import PendingBatch, ResponseSequencer


class TestResponseSequencer(unittest.TestCase):
    def test_ids_are_increasing_from_zero(self) -> None:
        sequencer = ResponseSequencer()
        self.assertEqual([sequencer.next_sequence_id() for _ in range(3)], [0, 1, 2])
        self.assertEqual(sequencer.next_id, 3)
        self.assertEqual(sequencer.last_accepted_id, -1)

    def test_older_batch_dropped_after_newer_accepted(self) -> None:
        sequencer = ResponseSequencer()
        applied: list[int] = []

        self.assertTrue(sequencer.accept(3, lambda: applied.append(3)))
        self.assertFalse(sequencer.accept(2, lambda: applied.append(2)))
        self.assertEqual(sequencer.last_accepted_id, 3)

        self.assertTrue(sequencer.accept(4, lambda: applied.append(4)))
        self.assertEqual(sequencer.last_accepted_id, 4)
        self.assertEqual(applied, [3, 4])

    def test_stale_drop_is_logged_with_batch_prefix(self) -> None:
        sequencer = ResponseSequencer()
        sequencer.accept(3)
        with self.assertLogs("SearchHelper", level="DEBUG") as captured:
            sequencer.accept(2)
        self.assertIn("[batch 2] dropped as stale, last accepted=3", captured.output[0])

    def test_same_id_is_not_accepted_twice(self) -> None:
        sequencer = ResponseSequencer()
        self.assertTrue(sequencer.accept(0))
        self.assertTrue(sequencer.is_stale(0))
        self.assertFalse(sequencer.accept(0))


class TestPendingBatch(unittest.TestCase):
    def test_completes_once_every_position_arrived(self) -> None:
        batch: PendingBatch[str] = PendingBatch(sequence_id=7, expected=3)
        self.assertFalse(batch.deliver(2, "c"))
        self.assertFalse(batch.deliver(0, "a"))
        self.assertEqual(batch.received, 2)
        with self.assertRaises(RuntimeError):
            batch.responses
        self.assertTrue(batch.deliver(1, "b"))
        self.assertTrue(batch.complete)
        self.assertEqual(batch.responses, ["a", "b", "c"])

    def test_redelivery_does_not_complete_again(self) -> None:
        batch: PendingBatch[str] = PendingBatch(sequence_id=0, expected=1)
        self.assertTrue(batch.deliver(0, "a"))
        self.assertFalse(batch.deliver(0, "again"))

    def test_deliver_all(self) -> None:
        batch: PendingBatch[int] = PendingBatch(sequence_id=1, expected=2)
        self.assertTrue(batch.deliver_all([1, 2]))
        with self.assertRaises(ValueError):
            PendingBatch(sequence_id=2, expected=2).deliver_all([1])

    def test_invalid_sizes_and_indexes(self) -> None:
        with self.assertRaises(ValueError):
            PendingBatch(sequence_id=0, expected=0)
        with self.assertRaises(IndexError):
            PendingBatch(sequence_id=0, expected=1).deliver(1, "x")


if __name__ == "__main__":
    unittest.main()
