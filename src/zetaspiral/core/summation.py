"""
Chunked summation engine.

Computes the cumulative partial sums of k^(-s) over [1, N) in parallel
chunks and chains them into one trajectory, then applies the
Euler-Maclaurin tail corrections once.
"""

import logging
from dataclasses import dataclass

import numpy as np

from zetaspiral.config import SpiralConfig
from zetaspiral.core.cancellation import CancellationToken
from zetaspiral.core.parallel import run_ordered
from zetaspiral.core.terms import terms
from zetaspiral.errors import DomainError, InvariantViolation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """Half-open index range [start, end) owned by one task."""

    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


@dataclass
class SpiralResult:
    """Output of one summation run."""

    s: complex
    n_terms: int
    total: complex  # grand total including corrections
    trajectory: np.ndarray  # complex128, length n_terms - 1
    correction: complex  # tail integral + half-term boundary correction
    n_chunks: int


def partition(n_terms: int, chunk_width: int) -> list[Chunk]:
    """
    Split [1, n_terms) into contiguous chunks of at most chunk_width indices.

    Returns:
        ceil((n_terms - 1) / chunk_width) chunks ordered by start index.
    """
    chunks = []
    for i, start in enumerate(range(1, n_terms, chunk_width)):
        chunks.append(Chunk(index=i, start=start, end=min(start + chunk_width, n_terms)))
    verify_partition(chunks, n_terms)
    return chunks


def verify_partition(chunks: list[Chunk], n_terms: int):
    """Raise InvariantViolation unless chunks tile [1, n_terms) exactly."""
    expected = 1
    for i, chunk in enumerate(chunks):
        if chunk.index != i or chunk.start != expected or chunk.end <= chunk.start:
            raise InvariantViolation(
                f"chunk {i} [{chunk.start}, {chunk.end}) breaks tiling at {expected}"
            )
        expected = chunk.end
    if expected != n_terms:
        raise InvariantViolation(f"chunks end at {expected}, expected {n_terms}")


def correction_terms(n_terms: int, s: complex) -> complex:
    """
    Euler-Maclaurin corrections N^(1-s)/(s-1) + N^(-s)/2.

    Raises:
        DomainError: If s == 1 or the correction is not finite.
    """
    s = complex(s)
    if s == 1:
        raise DomainError("correction N^(1-s)/(s-1) is undefined at s = 1")
    log_n = np.log(float(n_terms))
    with np.errstate(over="ignore", invalid="ignore"):
        tail = complex(np.exp((1 - s) * log_n)) / (s - 1)
        half = 0.5 * complex(np.exp(-s * log_n))
    correction = tail + half
    if not np.isfinite(correction):
        raise DomainError(f"non-finite correction term for s={s}, N={n_terms}")
    return correction


def chunk_local_sums(chunk: Chunk, s: complex) -> np.ndarray:
    """
    Local cumulative sums for one chunk, starting from zero.

    Raises:
        DomainError: If any term or running sum is not finite.
    """
    with np.errstate(over="ignore", invalid="ignore"):
        local = np.cumsum(terms(chunk.start, chunk.end, s))
    if local.size and not np.isfinite(local[-1]):
        raise DomainError(
            f"non-finite partial sum in chunk {chunk.index} [{chunk.start}, {chunk.end}) for s={s}"
        )
    return local


def chain_chunks(chunks: list[Chunk], local_sums: list[np.ndarray]) -> tuple[complex, np.ndarray]:
    """
    Offset each chunk's local sums by the running total of earlier chunks.

    Chunks are chained strictly in index order.

    Returns:
        (uncorrected total, chained trajectory)
    """
    total_len = sum(c.size for c in chunks)
    trajectory = np.empty(total_len, dtype=np.complex128)
    offset = 0j
    pos = 0
    for expected, (chunk, local) in enumerate(zip(chunks, local_sums)):
        if chunk.index != expected or local.size != chunk.size:
            raise InvariantViolation(f"chunk {chunk.index} chained out of order")
        trajectory[pos:pos + local.size] = local + offset
        pos += local.size
        if local.size:
            offset += complex(local[-1])
    return offset, trajectory


class ChunkedSummation:
    """
    Parallel cumulative summation of k^(-s) with an order-independent chain.

    The per-chunk phase shares no mutable state; each task only returns
    its own local sums, which are chained by the calling thread after
    every task has finished.
    """

    def __init__(self, config: SpiralConfig | None = None):
        self.cfg = (config or SpiralConfig()).validate()

    def compute(
        self,
        s: complex,
        token: CancellationToken | None = None,
    ) -> SpiralResult:
        """
        Compute the trajectory and corrected grand total for exponent s.

        Args:
            s: Complex exponent.
            token: Optional cancellation token / deadline.

        Returns:
            SpiralResult with a trajectory of n_terms - 1 points.

        Raises:
            DomainError: Correction or partial sums are non-finite.
            ComputationCancelled: The token was tripped.
        """
        s = complex(s)
        n_terms = self.cfg.term_count(s)
        correction = correction_terms(n_terms, s)
        chunks = partition(n_terms, self.cfg.chunk_width)
        logger.debug(
            "Summing s=%s over N=%d terms in %d chunks of width %d",
            s, n_terms, len(chunks), self.cfg.chunk_width,
        )

        local_sums = run_ordered(
            lambda chunk: chunk_local_sums(chunk, s),
            chunks,
            self.cfg.workers(),
            token,
        )
        total, trajectory = chain_chunks(chunks, local_sums)

        total += correction
        if trajectory.size:
            trajectory[-1] += correction

        return SpiralResult(
            s=s,
            n_terms=n_terms,
            total=total,
            trajectory=trajectory,
            correction=correction,
            n_chunks=len(chunks),
        )

    def compute_serial(self, s: complex) -> SpiralResult:
        """Single accumulation over the whole range; reference for compute()."""
        s = complex(s)
        n_terms = self.cfg.term_count(s)
        correction = correction_terms(n_terms, s)

        trajectory = np.empty(max(n_terms - 1, 0), dtype=np.complex128)
        running = 0j
        for k in range(1, n_terms):
            running += complex(np.exp(-s * np.log(float(k))))
            trajectory[k - 1] = running
        if not np.isfinite(running):
            raise DomainError(f"non-finite partial sum for s={s}")

        total = running + correction
        if trajectory.size:
            trajectory[-1] += correction
        return SpiralResult(
            s=s,
            n_terms=n_terms,
            total=total,
            trajectory=trajectory,
            correction=correction,
            n_chunks=1,
        )

    def total(self, s: complex, token: CancellationToken | None = None) -> complex:
        """Grand total only; chunks reduce to their sums."""
        s = complex(s)
        n_terms = self.cfg.term_count(s)
        correction = correction_terms(n_terms, s)
        chunks = partition(n_terms, self.cfg.chunk_width)

        def chunk_sum(chunk: Chunk) -> complex:
            value = complex(np.sum(terms(chunk.start, chunk.end, s)))
            if not np.isfinite(value):
                raise DomainError(f"non-finite partial sum in chunk {chunk.index} for s={s}")
            return value

        sums = run_ordered(chunk_sum, chunks, self.cfg.workers(), token)
        return sum(sums, 0j) + correction


def compute_trajectory(
    s: complex,
    config: SpiralConfig | None = None,
    chunk_width: int | None = None,
    token: CancellationToken | None = None,
) -> tuple[complex, np.ndarray]:
    """
    Compute (grand_total, trajectory) for exponent s.

    Args:
        s: Complex exponent.
        config: Term range and execution tunables.
        chunk_width: Overrides config.chunk_width when given.
        token: Optional cancellation token / deadline.
    """
    config = config or SpiralConfig()
    if chunk_width is not None:
        config = config.with_overrides(chunk_width=chunk_width)
    result = ChunkedSummation(config).compute(s, token=token)
    return result.total, result.trajectory


def compute_trajectory_serial(
    s: complex,
    config: SpiralConfig | None = None,
) -> tuple[complex, np.ndarray]:
    """Single-threaded reference for compute_trajectory()."""
    result = ChunkedSummation(config).compute_serial(s)
    return result.total, result.trajectory


def euler_maclaurin(
    s: complex,
    config: SpiralConfig | None = None,
    token: CancellationToken | None = None,
) -> complex:
    """Corrected grand total without materializing the trajectory."""
    return ChunkedSummation(config).total(s, token=token)
