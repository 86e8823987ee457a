"""Cooperative cancellation shared by the summation and downsampling engines."""

import threading
import time

from zetaspiral.errors import ComputationCancelled


class CancellationToken:
    """
    Cancellation flag with an optional wall-clock deadline.

    Worker tasks call check() before starting and periodically while
    running; the controlling thread calls cancel() to stop siblings after
    a failure.
    """

    def __init__(self, deadline_seconds: float | None = None):
        """
        Args:
            deadline_seconds: Seconds from now after which check() raises.
                None means no deadline.
        """
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + deadline_seconds
            if deadline_seconds is not None
            else None
        )

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self):
        """Raise ComputationCancelled if cancelled or past the deadline."""
        if self._event.is_set():
            raise ComputationCancelled("computation was cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise ComputationCancelled("computation deadline exceeded")
