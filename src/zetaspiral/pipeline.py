"""
Main spiral pipeline.

Orchestrates the flow from exponent to trajectory, downsampled point set,
statistics and exported file.
"""

import hashlib
import json
import logging
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from zetaspiral.config import SpiralConfig
from zetaspiral.core.cancellation import CancellationToken
from zetaspiral.core.downsampler import PixelDownsampler
from zetaspiral.core.summation import ChunkedSummation, SpiralResult
from zetaspiral.io.exporter import TrajectoryExporter

logger = logging.getLogger(__name__)

BYTES_PER_POINT = 16  # complex128


@dataclass
class DownsampleStats:
    """Summary of one downsampling pass."""

    points_before: int
    points_after: int
    reduction_ratio: float
    memory_saved_kb: float
    average_distance: float  # end-to-end distance / output point count
    percent_fewer: float

    @classmethod
    def from_points(cls, before: int, points: np.ndarray) -> "DownsampleStats":
        after = int(points.size)
        ratio = before / after if after else 0.0
        saved = (before - after) * BYTES_PER_POINT / 1024.0
        distance = abs(points[-1] - points[0]) / after if after else 0.0
        fewer = 100.0 * (1.0 - after / before) if before else 0.0
        return cls(
            points_before=before,
            points_after=after,
            reduction_ratio=ratio,
            memory_saved_kb=saved,
            average_distance=float(distance),
            percent_fewer=fewer,
        )


class SpiralPipeline:
    """
    Complete exponent-to-points processing pipeline.

    Combines chunked summation, pixel-space downsampling and export,
    with an on-disk cache of computed trajectories.
    """

    # Version of the summation logic.
    # Increment whenever the term or correction logic changes so that
    # cached trajectories are invalidated.
    SUMMATION_VERSION = "1.0"

    def __init__(self, config: SpiralConfig | None = None):
        self.cfg = (config or SpiralConfig()).validate()
        self.summation = ChunkedSummation(self.cfg)
        self.downsampler = PixelDownsampler(self.cfg)
        self.exporter = TrajectoryExporter()

    def _get_cache_dir(self) -> Path:
        """Return the directory for cached trajectories."""
        cache_dir = Path.home() / ".cache" / "zetaspiral" / "trajectories"
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir

    def _get_config_hash(self) -> str:
        """Hash of the settings that change the computed trajectory."""
        # Chunk width and worker count do not change the result
        config = {
            "version": self.SUMMATION_VERSION,
            "min_terms": self.cfg.min_terms,
            "max_terms": self.cfg.max_terms,
        }
        return hashlib.md5(json.dumps(config, sort_keys=True).encode("utf-8")).hexdigest()

    def _get_cache_path(self, s: complex) -> Path:
        key = hashlib.sha256(f"{s.real!r}:{s.imag!r}".encode("utf-8")).hexdigest()[:16]
        return self._get_cache_dir() / f"trajectory_{key}_{self._get_config_hash()}.npz"

    def clear_cache(self):
        """Clear the trajectory cache."""
        cache_dir = self._get_cache_dir()
        if cache_dir.exists():
            shutil.rmtree(cache_dir)
            cache_dir.mkdir(parents=True, exist_ok=True)

    def compute(
        self,
        s: complex,
        use_cache: bool = True,
        token: CancellationToken | None = None,
    ) -> SpiralResult:
        """
        Phase A: compute the trajectory, reusing a cached one when possible.
        """
        s = complex(s)
        if use_cache:
            cache_path = self._get_cache_path(s)
            if cache_path.exists():
                try:
                    result = self.exporter.load_numpy(cache_path)
                    logger.info("Loaded trajectory from cache: %s", cache_path)
                    return result
                except (OSError, KeyError, ValueError, zipfile.BadZipFile) as e:
                    logger.warning("Failed to load cache: %s. Recomputing.", e)

        result = self.summation.compute(s, token=token)

        if use_cache:
            try:
                self.exporter.export_numpy(result, self._get_cache_path(s))
            except OSError as e:
                logger.warning("Failed to save cache: %s", e)
        return result

    def downsample(
        self,
        trajectory: np.ndarray,
        mode: str = "auto",
        token: CancellationToken | None = None,
    ) -> np.ndarray:
        """Phase B: reduce the trajectory to the configured raster."""
        return self.downsampler.downsample(trajectory, mode=mode, token=token)

    def export(
        self,
        result: SpiralResult,
        output_path: Union[str, Path],
        points: np.ndarray | None = None,
    ) -> Path:
        """Phase C: write .npz when the path ends in .npz, JSON otherwise."""
        output_path = Path(output_path)
        if output_path.suffix == ".npz":
            return self.exporter.export_numpy(result, output_path, points)
        return self.exporter.export_json(
            result,
            output_path,
            points=points,
            aggressiveness=self.cfg.aggressiveness if points is not None else None,
        )

    def process(
        self,
        s: complex,
        output_path: Union[str, Path] | None = None,
        downsample: bool = False,
        mode: str = "auto",
        use_cache: bool = True,
        token: CancellationToken | None = None,
    ) -> dict[str, Any]:
        """
        Run the complete pipeline for exponent s.

        Returns:
            Dictionary with the result, the output points, optional
            downsampling stats and the written path.
        """
        result = self.compute(s, use_cache=use_cache, token=token)

        points = result.trajectory
        stats = None
        if downsample:
            points = self.downsample(result.trajectory, mode=mode, token=token)
            stats = DownsampleStats.from_points(result.trajectory.size, points)

        output = {
            "result": result,
            "total": result.total,
            "n_terms": result.n_terms,
            "points": points,
            "stats": stats,
        }

        if output_path:
            written = self.export(result, output_path, points if downsample else None)
            output["output_path"] = str(written)

        return output
