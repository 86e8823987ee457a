"""Tests for the ordered fan-out helper and cancellation token."""

import threading
import time

import pytest

from zetaspiral.core.cancellation import CancellationToken
from zetaspiral.core.parallel import run_ordered
from zetaspiral.errors import ComputationCancelled


class TestRunOrdered:
    """Tests for result ordering and fail-fast behaviour."""

    def test_results_follow_item_order(self):
        """Later items finishing first must not reorder results."""

        def slow_for_small(n):
            time.sleep(0.01 * (5 - n))
            return n * n

        assert run_ordered(slow_for_small, [0, 1, 2, 3, 4], max_workers=5) == [0, 1, 4, 9, 16]

    def test_empty_items(self):
        """No items, no tasks."""
        assert run_ordered(lambda x: x, [], max_workers=4) == []

    def test_first_failure_propagates(self):
        """The failing task's exception reaches the caller."""
        def boom(n):
            if n == 3:
                raise ValueError("chunk 3 failed")
            return n

        with pytest.raises(ValueError, match="chunk 3 failed"):
            run_ordered(boom, list(range(8)), max_workers=2)

    def test_failure_cancels_pending_siblings(self):
        """Queued tasks never start after a failure."""
        started = []
        lock = threading.Lock()

        def task(n):
            with lock:
                started.append(n)
            if n == 0:
                raise RuntimeError("fail fast")
            time.sleep(0.05)
            return n

        with pytest.raises(RuntimeError):
            run_ordered(task, list(range(50)), max_workers=1)
        assert len(started) < 50

    def test_cancelled_token_raises(self):
        """A tripped token fails every task."""
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ComputationCancelled):
            run_ordered(lambda x: x, [1, 2, 3], max_workers=2, token=token)

    def test_deadline_exceeded(self):
        """The join gives up once the deadline passes."""
        token = CancellationToken(deadline_seconds=0.05)

        def slow(n):
            time.sleep(0.02)
            token.check()
            return n

        with pytest.raises(ComputationCancelled):
            run_ordered(slow, list(range(40)), max_workers=1, token=token)


class TestCancellationToken:
    """Tests for the token itself."""

    def test_fresh_token(self):
        """A new token without deadline never fires."""
        token = CancellationToken()
        assert not token.cancelled
        assert token.remaining() is None
        token.check()

    def test_cancel(self):
        """cancel() makes check() raise."""
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(ComputationCancelled):
            token.check()

    def test_expired_deadline(self):
        """A zero deadline is already past."""
        token = CancellationToken(deadline_seconds=0.0)
        assert token.cancelled
        assert token.remaining() == 0.0
        with pytest.raises(ComputationCancelled):
            token.check()
