"""
Fan-out / join helper shared by the summation and downsampling engines.

Results are placed by chunk index, never by completion order.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Sequence, TypeVar

from zetaspiral.core.cancellation import CancellationToken
from zetaspiral.errors import ComputationCancelled, InvariantViolation

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def run_ordered(
    fn: Callable[[T], R],
    items: Sequence[T],
    max_workers: int,
    token: CancellationToken | None = None,
) -> list[R]:
    """
    Run fn over items concurrently and return results in item order.

    The first task failure cancels every task that has not started yet
    and is re-raised once the running tasks have drained.

    Args:
        fn: Task body; must only write to its own return value.
        items: Work items, one task each.
        max_workers: Thread pool size.
        token: Optional cancellation token checked before each task.

    Returns:
        List of results, results[i] == fn(items[i]).
    """
    if not items:
        return []

    def guarded(item: T) -> R:
        if token is not None:
            token.check()
        return fn(item)

    results: list[R | None] = [None] * len(items)
    done_flags = [False] * len(items)

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as executor:
        futures = {executor.submit(guarded, item): i for i, item in enumerate(items)}
        timeout = token.remaining() if token is not None else None
        done, pending = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)

        failed = next((f for f in done if f.exception() is not None), None)
        if failed is not None or pending:
            for future in pending:
                future.cancel()
            if token is not None:
                token.cancel()
            if failed is not None:
                logger.debug("Task %d failed, cancelled %d siblings", futures[failed], len(pending))
                raise failed.exception()
            raise ComputationCancelled("computation deadline exceeded")

        for future in done:
            idx = futures[future]
            results[idx] = future.result()
            done_flags[idx] = True

    if not all(done_flags):
        raise InvariantViolation("join completed with missing chunk results")
    return results
