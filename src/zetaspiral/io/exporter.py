"""
Trajectory serialization module.

Writes computed (and optionally downsampled) trajectories to JSON or
compressed NumPy archives for renderers and downstream encoders.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from zetaspiral.core.summation import SpiralResult


@dataclass
class TrajectoryMetadata:
    """Metadata header for an exported trajectory."""

    real: float
    imag: float
    n_terms: int
    n_points: int
    is_downsampled: bool
    aggressiveness: float
    version: str = "1.0"
    schema_version: str = "1.0"


class TrajectoryExporter:
    """Exports spiral results to JSON and .npz formats."""

    def __init__(self, precision: int | None = None):
        """
        Args:
            precision: Decimal places for JSON floats (None keeps full precision).
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        if self.precision is None:
            return float(value)
        return round(float(value), self.precision)

    def _pair(self, value: complex) -> list[float]:
        return [self._round(value.real), self._round(value.imag)]

    def build_payload(
        self,
        result: SpiralResult,
        points: np.ndarray | None = None,
        aggressiveness: float | None = None,
    ) -> dict[str, Any]:
        """
        Build the export dictionary.

        Args:
            result: Summation result.
            points: Downsampled points; None exports the full trajectory.
            aggressiveness: Aggressiveness used for points, if downsampled.

        Returns:
            Dictionary ready for JSON serialization.
        """
        is_downsampled = points is not None
        if points is None:
            points = result.trajectory

        metadata = TrajectoryMetadata(
            real=result.s.real,
            imag=result.s.imag,
            n_terms=result.n_terms,
            n_points=int(points.size),
            is_downsampled=is_downsampled,
            aggressiveness=float(aggressiveness or 0.0),
        )

        bounds = None
        if points.size:
            bounds = {
                "min_x": self._round(points.real.min()),
                "max_x": self._round(points.real.max()),
                "min_y": self._round(points.imag.min()),
                "max_y": self._round(points.imag.max()),
            }

        return {
            "metadata": {
                "real": metadata.real,
                "imag": metadata.imag,
                "n_terms": metadata.n_terms,
                "n_points": metadata.n_points,
                "is_downsampled": metadata.is_downsampled,
                "aggressiveness": metadata.aggressiveness,
                "version": metadata.version,
                "schema_version": metadata.schema_version,
            },
            "total": self._pair(result.total),
            "bounds": bounds,
            "points": [self._pair(p) for p in points.tolist()],
        }

    def export_json(
        self,
        result: SpiralResult,
        output_path: Union[str, Path],
        points: np.ndarray | None = None,
        aggressiveness: float | None = None,
        indent: int | None = None,
    ) -> Path:
        """Export the payload to a JSON file and return its path."""
        payload = self.build_payload(result, points, aggressiveness)
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        result: SpiralResult,
        output_path: Union[str, Path],
        points: np.ndarray | None = None,
    ) -> Path:
        """
        Export as a NumPy .npz archive.

        The archive always holds the full trajectory; downsampled points
        are stored alongside when given.
        """
        output_path = Path(output_path)
        arrays = {
            "s": np.complex128(result.s),
            "n_terms": np.int64(result.n_terms),
            "total": np.complex128(result.total),
            "correction": np.complex128(result.correction),
            "n_chunks": np.int64(result.n_chunks),
            "trajectory": result.trajectory,
        }
        if points is not None:
            arrays["points"] = points

        # np.savez_compressed appends .npz when missing
        np.savez_compressed(output_path, **arrays)
        if output_path.suffix != ".npz":
            output_path = output_path.with_name(output_path.name + ".npz")
        return output_path

    @staticmethod
    def load_numpy(path: Union[str, Path]) -> SpiralResult:
        """Load a SpiralResult written by export_numpy()."""
        with np.load(Path(path)) as data:
            return SpiralResult(
                s=complex(data["s"]),
                n_terms=int(data["n_terms"]),
                total=complex(data["total"]),
                trajectory=np.array(data["trajectory"], dtype=np.complex128),
                correction=complex(data["correction"]),
                n_chunks=int(data["n_chunks"]),
            )
