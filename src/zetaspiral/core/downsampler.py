"""
Pixel-space downsampling of ordered complex trajectories.

Collapses runs of temporally contiguous points that land in (nearly)
the same pixel of the target raster into their mean, and inserts
linear interpolations between groups that are far apart so the
rendered path keeps its shape.
"""

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np

from zetaspiral.config import SpiralConfig, validate_downsample_params
from zetaspiral.core.cancellation import CancellationToken
from zetaspiral.core.parallel import run_ordered
from zetaspiral.errors import ConfigurationError

logger = logging.getLogger(__name__)

PARALLEL_THRESHOLD = 10_000
# Smoothing band at the top of the aggressiveness range
SMOOTHING_START = 3.5
SMOOTHING_WIDTH = 0.5
# How often a chunk walk polls the cancellation token
_CHECK_EVERY = 4096

TrajectoryLike = Union[Sequence[complex], np.ndarray]


def _smoothing_t(aggressiveness: float) -> float:
    return (aggressiveness - SMOOTHING_START) / SMOOTHING_WIDTH


def max_relative_spread(aggressiveness: float) -> float:
    """Relative spread at or below which the whole trajectory is one point."""
    if aggressiveness > SMOOTHING_START:
        return 0.03 + 0.02 * _smoothing_t(aggressiveness)
    return 0.0001 * 5.0 ** aggressiveness


def pixel_spread_threshold(aggressiveness: float) -> float:
    """Chebyshev distance in pixel bins still treated as the same location."""
    return 1.0 + 2.0 * aggressiveness


def interpolation_threshold(aggressiveness: float) -> float:
    """Pixel gap above which interpolated points are inserted."""
    if aggressiveness > SMOOTHING_START:
        return 55.0 + 20.0 * _smoothing_t(aggressiveness)
    return 1.1 * 2.5 ** aggressiveness


def interpolation_steps(gap: float, aggressiveness: float) -> int:
    """
    Number of points to insert across a pixel gap.

    Points are spaced 2^(2a - 1) pixels apart (one per pixel at a = 0.5,
    capped at a = 3.5), with a further linear cut of up to 50% across
    the smoothing band.
    """
    spacing = 2.0 ** (2.0 * min(aggressiveness, SMOOTHING_START) - 1.0)
    steps = int(gap / spacing) - 1
    if aggressiveness > SMOOTHING_START:
        steps = int(steps * (1.0 - 0.5 * _smoothing_t(aggressiveness)))
    return max(steps, 0)


@dataclass(frozen=True)
class Thresholds:
    """All aggressiveness-derived thresholds, computed once per call."""

    aggressiveness: float
    max_relative_spread: float
    pixel_spread: float
    interpolation: float

    @classmethod
    def for_aggressiveness(cls, aggressiveness: float) -> "Thresholds":
        return cls(
            aggressiveness=aggressiveness,
            max_relative_spread=max_relative_spread(aggressiveness),
            pixel_spread=pixel_spread_threshold(aggressiveness),
            interpolation=interpolation_threshold(aggressiveness),
        )

    def steps(self, gap: float) -> int:
        return interpolation_steps(gap, self.aggressiveness)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounds of a whole trajectory."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @classmethod
    def from_points(cls, points: np.ndarray) -> "BoundingBox":
        xs = points.real
        ys = points.imag
        return cls(
            min_x=float(xs.min()),
            max_x=float(xs.max()),
            min_y=float(ys.min()),
            max_y=float(ys.max()),
        )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> complex:
        return complex((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def relative_spread(self) -> float:
        """
        Half-extent of the box relative to the magnitude of its centre.

        The 0.01 floor keeps trajectories centred near the origin from
        collapsing.
        """
        radius = max(self.width, self.height) / 2
        return radius / max(0.01, abs(self.center))

    def pixel_bins(self, points: np.ndarray, resolution: int) -> tuple[np.ndarray, np.ndarray]:
        """
        Map points to integer pixel bins on a resolution x resolution grid.

        An axis with zero extent maps every point to bin 0.
        """
        return (
            _axis_bins(points.real, self.min_x, self.width, resolution),
            _axis_bins(points.imag, self.min_y, self.height, resolution),
        )


def _axis_bins(values: np.ndarray, lo: float, extent: float, resolution: int) -> np.ndarray:
    if extent <= 0:
        return np.zeros(values.shape, dtype=np.int64)
    normalized = (values - lo) / extent
    # Round half away from zero; normalized is never negative here
    return np.floor(normalized * resolution + 0.5).astype(np.int64)


class GroupState(enum.Enum):
    ACCUMULATING = "accumulating"
    FLUSHED = "flushed"


@dataclass
class Group:
    """Running accumulator for a run of points sharing a visual location."""

    total: complex
    count: int
    px: int
    py: int
    last: complex
    state: GroupState = GroupState.ACCUMULATING

    @classmethod
    def seed(cls, point: complex, px: int, py: int) -> "Group":
        return cls(total=point, count=1, px=px, py=py, last=point)

    def accepts(self, px: int, py: int, spread: float) -> bool:
        return abs(px - self.px) <= spread and abs(py - self.py) <= spread

    def merge(self, point: complex):
        self.total += point
        self.count += 1
        self.last = point

    def flush(self) -> complex:
        self.state = GroupState.FLUSHED
        return self.total / self.count


@dataclass
class ChunkResult:
    """Compacted output of one slice plus its boundary metadata."""

    points: list[complex] = field(default_factory=list)
    first_point: complex = 0j
    first_bin: tuple[int, int] = (0, 0)
    last_point: complex = 0j
    last_bin: tuple[int, int] = (0, 0)


def interpolate(start: complex, end: complex, steps: int) -> list[complex]:
    """Evenly spaced points strictly between start and end."""
    out = []
    for i in range(1, steps + 1):
        t = i / (steps + 1)
        out.append(start * (1 - t) + end * t)
    return out


def _bridge(
    last_point: complex,
    last_bin: tuple[int, int],
    next_point: complex,
    next_bin: tuple[int, int],
    thresholds: Thresholds,
) -> list[complex]:
    dx = next_bin[0] - last_bin[0]
    dy = next_bin[1] - last_bin[1]
    # Bins the walk would have merged are never bridged
    if abs(dx) <= thresholds.pixel_spread and abs(dy) <= thresholds.pixel_spread:
        return []
    gap = math.hypot(dx, dy)
    if gap <= thresholds.interpolation:
        return []
    return interpolate(last_point, next_point, thresholds.steps(gap))


def join_chunks(results: list[ChunkResult], thresholds: Thresholds) -> list[complex]:
    """
    Concatenate compacted chunks in index order.

    Each boundary is bridged from chunk i's last raw point to chunk i+1's
    first raw point when their bins are far apart.
    """
    merged: list[complex] = []
    for i, chunk in enumerate(results):
        merged.extend(chunk.points)
        if i + 1 < len(results):
            nxt = results[i + 1]
            merged.extend(
                _bridge(chunk.last_point, chunk.last_bin, nxt.first_point, nxt.first_bin, thresholds)
            )
    return merged


def compact_slice(
    points: np.ndarray,
    bbox: BoundingBox,
    resolution: int,
    thresholds: Thresholds,
    token: CancellationToken | None = None,
) -> ChunkResult:
    """
    Walk one ordered slice, merging same-location runs into their mean.

    Args:
        points: Non-empty complex128 slice of the trajectory.
        bbox: Bounding box of the whole trajectory.
        resolution: Output raster size in pixels.
        thresholds: Shared, read-only thresholds.
        token: Optional cancellation token, polled periodically.
    """
    px_arr, py_arr = bbox.pixel_bins(points, resolution)
    values = points.tolist()
    pxs = px_arr.tolist()
    pys = py_arr.tolist()

    group = Group.seed(values[0], pxs[0], pys[0])
    result = ChunkResult(first_point=values[0], first_bin=(pxs[0], pys[0]))
    out = result.points
    spread = thresholds.pixel_spread

    for i in range(1, len(values)):
        if token is not None and i % _CHECK_EVERY == 0:
            token.check()
        point, px, py = values[i], pxs[i], pys[i]

        if group.accepts(px, py, spread):
            group.merge(point)
            continue

        out.append(group.flush())
        out.extend(_bridge(group.last, (group.px, group.py), point, (px, py), thresholds))
        group = Group.seed(point, px, py)

    out.append(group.flush())
    result.last_point = group.last
    result.last_bin = (group.px, group.py)
    return result


def _prepare(trajectory: TrajectoryLike) -> np.ndarray:
    return np.asarray(trajectory, dtype=np.complex128).ravel()


def _collapse_check(
    points: np.ndarray,
    thresholds: Thresholds,
    debug: bool,
) -> tuple[BoundingBox, np.ndarray | None]:
    """Compute the global bounding box and the single-point shortcut, if it applies."""
    bbox = BoundingBox.from_points(points)
    spread = bbox.relative_spread()
    if debug:
        logger.debug(
            "View bounds: minX=%.6f, maxX=%.6f, minY=%.6f, maxY=%.6f",
            bbox.min_x, bbox.max_x, bbox.min_y, bbox.max_y,
        )
        logger.debug(
            "relativeSpread=%e, maxRelativeSpread=%e (aggressiveness=%.2f)",
            spread, thresholds.max_relative_spread, thresholds.aggressiveness,
        )
    if spread <= thresholds.max_relative_spread:
        avg = complex(points.mean())
        if debug:
            logger.debug("Collapsed %d points to their average %s", points.size, avg)
        return bbox, np.array([avg], dtype=np.complex128)
    return bbox, None


def reduce_sequential(
    trajectory: TrajectoryLike,
    output_resolution: int,
    aggressiveness: float,
    debug: bool = False,
    token: CancellationToken | None = None,
) -> np.ndarray:
    """
    Reference downsampler: one ordered walk over the whole trajectory.

    Args:
        trajectory: Ordered complex points.
        output_resolution: Raster size in pixels.
        aggressiveness: 0.0 (faithful) to 4.0 (fewest points).
        debug: Log bounds, thresholds and point counts.
        token: Optional cancellation token / deadline.

    Returns:
        complex128 array. Interpolated points can make it longer than the
        input at low aggressiveness.
    """
    validate_downsample_params(output_resolution, aggressiveness)
    points = _prepare(trajectory)
    if points.size == 0:
        return points.copy()
    if debug:
        logger.debug(
            "Sequential downsample of %d points at size %d (aggressiveness: %.2f)",
            points.size, output_resolution, aggressiveness,
        )

    thresholds = Thresholds.for_aggressiveness(aggressiveness)
    bbox, collapsed = _collapse_check(points, thresholds, debug)
    if collapsed is not None:
        return collapsed

    result = compact_slice(points, bbox, output_resolution, thresholds, token)
    if debug:
        logger.debug("Downsampled %d points to %d points", points.size, len(result.points))
    return np.array(result.points, dtype=np.complex128)


def reduce_parallel(
    trajectory: TrajectoryLike,
    output_resolution: int,
    aggressiveness: float,
    debug: bool = False,
    max_workers: int | None = None,
    parallel_threshold: int = PARALLEL_THRESHOLD,
    token: CancellationToken | None = None,
) -> np.ndarray:
    """
    Chunked downsampler; equivalent to reduce_sequential within tolerance.

    The collapse check, bounding box and thresholds are computed once over
    the whole input. Each chunk is compacted independently, then chunks
    are joined in index order with interpolation across large boundary
    gaps.

    Args:
        trajectory: Ordered complex points.
        output_resolution: Raster size in pixels.
        aggressiveness: 0.0 (faithful) to 4.0 (fewest points).
        debug: Log bounds, thresholds and point counts.
        max_workers: Number of chunks/threads (default: CPU count).
        parallel_threshold: Inputs shorter than this run sequentially.
        token: Optional cancellation token / deadline.
    """
    validate_downsample_params(output_resolution, aggressiveness)
    if max_workers is not None and max_workers <= 0:
        raise ConfigurationError(f"max_workers must be positive, got {max_workers}")
    points = _prepare(trajectory)
    if points.size < max(parallel_threshold, 2):
        return reduce_sequential(points, output_resolution, aggressiveness, debug, token)
    if debug:
        logger.debug(
            "Parallel downsample of %d points at size %d (aggressiveness: %.2f)",
            points.size, output_resolution, aggressiveness,
        )

    thresholds = Thresholds.for_aggressiveness(aggressiveness)
    bbox, collapsed = _collapse_check(points, thresholds, debug)
    if collapsed is not None:
        return collapsed

    workers = max_workers or SpiralConfig().workers()
    chunk_size = -(-points.size // workers)
    slices = [points[start:start + chunk_size] for start in range(0, points.size, chunk_size)]

    results = run_ordered(
        lambda chunk: compact_slice(chunk, bbox, output_resolution, thresholds, token),
        slices,
        workers,
        token,
    )

    merged = join_chunks(results, thresholds)

    if debug:
        logger.debug(
            "Downsampled %d points to %d points across %d chunks",
            points.size, len(merged), len(results),
        )
    return np.array(merged, dtype=np.complex128)


def downsample(
    trajectory: TrajectoryLike,
    output_resolution: int,
    aggressiveness: float,
    mode: str = "auto",
    debug: bool = False,
    max_workers: int | None = None,
    token: CancellationToken | None = None,
) -> np.ndarray:
    """
    Reduce a trajectory using the requested mode.

    Args:
        mode: "sequential", "parallel", or "auto" (sequential when
            debugging, parallel otherwise).
    """
    if mode not in ("sequential", "parallel", "auto"):
        raise ConfigurationError(f"unknown downsample mode: {mode!r}")
    if mode == "sequential" or (mode == "auto" and debug):
        return reduce_sequential(trajectory, output_resolution, aggressiveness, debug, token)
    return reduce_parallel(
        trajectory,
        output_resolution,
        aggressiveness,
        debug,
        max_workers=max_workers,
        token=token,
    )


def group_average(points, group_size: int) -> np.ndarray:
    """
    Average consecutive, non-overlapping groups of group_size points.

    A trailing group with fewer than group_size points is dropped.

    Args:
        points: Complex points, or an (n, 2) array of (x, y) pairs.
        group_size: Points per group.

    Returns:
        Array of group means in the same representation as the input.
    """
    if group_size <= 0:
        raise ConfigurationError(f"group_size must be positive, got {group_size}")
    arr = np.asarray(points)
    if arr.ndim == 2 and arr.shape[1] == 2 and not np.iscomplexobj(arr):
        arr = arr.astype(np.float64)
        n_groups = arr.shape[0] // group_size
        return arr[: n_groups * group_size].reshape(n_groups, group_size, 2).mean(axis=1)

    arr = arr.astype(np.complex128).ravel()
    n_groups = arr.size // group_size
    return arr[: n_groups * group_size].reshape(n_groups, group_size).mean(axis=1)


class PixelDownsampler:
    """Downsampler bound to a SpiralConfig."""

    def __init__(self, config: SpiralConfig | None = None):
        self.cfg = (config or SpiralConfig()).validate()

    def reduce_sequential(
        self,
        trajectory: TrajectoryLike,
        token: CancellationToken | None = None,
    ) -> np.ndarray:
        return reduce_sequential(
            trajectory,
            self.cfg.output_resolution,
            self.cfg.aggressiveness,
            self.cfg.debug,
            token,
        )

    def reduce_parallel(
        self,
        trajectory: TrajectoryLike,
        token: CancellationToken | None = None,
    ) -> np.ndarray:
        return reduce_parallel(
            trajectory,
            self.cfg.output_resolution,
            self.cfg.aggressiveness,
            self.cfg.debug,
            max_workers=self.cfg.workers(),
            parallel_threshold=self.cfg.parallel_threshold,
            token=token,
        )

    def downsample(
        self,
        trajectory: TrajectoryLike,
        mode: str = "auto",
        token: CancellationToken | None = None,
    ) -> np.ndarray:
        if mode == "sequential" or (mode == "auto" and self.cfg.debug):
            return self.reduce_sequential(trajectory, token)
        if mode not in ("parallel", "auto"):
            raise ConfigurationError(f"unknown downsample mode: {mode!r}")
        return self.reduce_parallel(trajectory, token)
