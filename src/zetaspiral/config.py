"""
Configuration for the summation and downsampling engines.

All tunables live on one dataclass that is passed explicitly into
every engine, so independent computations never share hidden state.
"""

import os
from dataclasses import dataclass, replace

from zetaspiral.errors import ConfigurationError

MIN_AGGRESSIVENESS = 0.0
MAX_AGGRESSIVENESS = 4.0


@dataclass(frozen=True)
class SpiralConfig:
    """Tunables recognized by the core."""

    # Term range
    min_terms: int = 100
    max_terms: int = 65_000_000_000
    chunk_width: int = 100_000

    # Downsampling
    output_resolution: int = 2048  # pixels
    aggressiveness: float = 0.5  # 0.0 (faithful) .. 4.0 (fewest points)
    parallel_threshold: int = 10_000  # below this, parallel reduce runs serially

    # Execution
    max_workers: int | None = None  # None -> os.cpu_count()
    debug: bool = False

    def validate(self) -> "SpiralConfig":
        """
        Reject out-of-range values before any computation starts.

        Returns:
            self, to allow chaining.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        if self.min_terms < 1:
            raise ConfigurationError(f"min_terms must be >= 1, got {self.min_terms}")
        if self.max_terms < self.min_terms:
            raise ConfigurationError(
                f"max_terms ({self.max_terms}) must be >= min_terms ({self.min_terms})"
            )
        if self.chunk_width <= 0:
            raise ConfigurationError(f"chunk_width must be positive, got {self.chunk_width}")
        validate_downsample_params(self.output_resolution, self.aggressiveness)
        if self.parallel_threshold < 0:
            raise ConfigurationError(
                f"parallel_threshold must be >= 0, got {self.parallel_threshold}"
            )
        if self.max_workers is not None and self.max_workers <= 0:
            raise ConfigurationError(f"max_workers must be positive, got {self.max_workers}")
        return self

    def term_count(self, s: complex) -> int:
        """Number of terms N for exponent s, clamped into [min_terms, max_terms]."""
        n = int(abs(complex(s)))
        return min(max(n, self.min_terms), self.max_terms)

    def workers(self) -> int:
        """Resolved number of concurrent workers."""
        return self.max_workers or os.cpu_count() or 1

    def with_overrides(self, **changes) -> "SpiralConfig":
        """Return a validated copy with the given fields replaced."""
        return replace(self, **changes).validate()


def validate_downsample_params(output_resolution: int, aggressiveness: float):
    """Raise ConfigurationError for a bad resolution or aggressiveness."""
    if output_resolution <= 0:
        raise ConfigurationError(
            f"output_resolution must be positive, got {output_resolution}"
        )
    if not MIN_AGGRESSIVENESS <= aggressiveness <= MAX_AGGRESSIVENESS:
        raise ConfigurationError(
            f"aggressiveness must be in [{MIN_AGGRESSIVENESS}, {MAX_AGGRESSIVENESS}], "
            f"got {aggressiveness}"
        )
