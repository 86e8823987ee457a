"""Core summation and downsampling engines."""

from zetaspiral.core.cancellation import CancellationToken
from zetaspiral.core.downsampler import (
    PixelDownsampler,
    downsample,
    group_average,
    reduce_parallel,
    reduce_sequential,
)
from zetaspiral.core.summation import (
    ChunkedSummation,
    SpiralResult,
    compute_trajectory,
    compute_trajectory_serial,
    euler_maclaurin,
)
from zetaspiral.core.terms import term, terms

__all__ = [
    "CancellationToken",
    "ChunkedSummation",
    "PixelDownsampler",
    "SpiralResult",
    "compute_trajectory",
    "compute_trajectory_serial",
    "downsample",
    "euler_maclaurin",
    "group_average",
    "reduce_parallel",
    "reduce_sequential",
    "term",
    "terms",
]
