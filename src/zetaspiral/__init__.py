"""Parallel partial-sum spirals of sum k^(-s) and their pixel-space downsampling."""

from zetaspiral.config import SpiralConfig
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
from zetaspiral.errors import (
    ComputationCancelled,
    ConfigurationError,
    DomainError,
    InvariantViolation,
    ZetaSpiralError,
)
from zetaspiral.io.exporter import TrajectoryExporter
from zetaspiral.pipeline import DownsampleStats, SpiralPipeline

__version__ = "0.1.0"
__all__ = [
    "CancellationToken",
    "ChunkedSummation",
    "ComputationCancelled",
    "ConfigurationError",
    "DomainError",
    "DownsampleStats",
    "InvariantViolation",
    "PixelDownsampler",
    "SpiralConfig",
    "SpiralPipeline",
    "SpiralResult",
    "TrajectoryExporter",
    "ZetaSpiralError",
    "compute_trajectory",
    "compute_trajectory_serial",
    "downsample",
    "euler_maclaurin",
    "group_average",
    "reduce_parallel",
    "reduce_sequential",
]
