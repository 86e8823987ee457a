"""Tests for the TrajectoryExporter module."""

import json

import numpy as np
import pytest

from zetaspiral.config import SpiralConfig
from zetaspiral.core.summation import ChunkedSummation
from zetaspiral.io.exporter import TrajectoryExporter


class TestTrajectoryExporter:
    """Tests for trajectory serialization."""

    @pytest.fixture
    def result(self):
        cfg = SpiralConfig(min_terms=100, max_terms=1000, chunk_width=50)
        return ChunkedSummation(cfg).compute(complex(0.5, 14.135))

    def test_payload_structure(self, result):
        """Payload has the four top-level sections."""
        payload = TrajectoryExporter().build_payload(result)

        assert set(payload) == {"metadata", "total", "bounds", "points"}
        meta = payload["metadata"]
        assert meta["n_terms"] == 100
        assert meta["n_points"] == 99
        assert meta["is_downsampled"] is False
        assert meta["real"] == 0.5
        assert meta["imag"] == 14.135

    def test_payload_points_are_pairs(self, result):
        """Points are [x, y] pairs starting at 1."""
        payload = TrajectoryExporter().build_payload(result)

        assert len(payload["points"]) == 99
        first = payload["points"][0]
        assert first == [1.0, 0.0]

    def test_downsampled_payload(self, result):
        """Downsampled points set the flag and bounds."""
        points = result.trajectory[::10]
        payload = TrajectoryExporter(precision=4).build_payload(result, points, aggressiveness=1.5)

        assert payload["metadata"]["is_downsampled"] is True
        assert payload["metadata"]["aggressiveness"] == 1.5
        assert payload["metadata"]["n_points"] == len(points)
        assert payload["bounds"]["min_x"] == round(float(points.real.min()), 4)

    def test_export_json(self, result, tmp_path):
        """JSON file holds the metadata and total."""
        path = TrajectoryExporter().export_json(result, tmp_path / "spiral.json")

        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["metadata"]["n_points"] == 99
        assert np.isclose(complex(*data["total"]), result.total)

    def test_numpy_round_trip(self, result, tmp_path):
        """load_numpy restores what export_numpy wrote."""
        points = result.trajectory[:5]
        path = TrajectoryExporter().export_numpy(result, tmp_path / "spiral.npz", points)

        loaded = TrajectoryExporter.load_numpy(path)
        assert loaded.n_terms == result.n_terms
        assert loaded.total == result.total
        assert np.array_equal(loaded.trajectory, result.trajectory)
        with np.load(path) as data:
            assert np.array_equal(data["points"], points)

    def test_numpy_suffix_added(self, result, tmp_path):
        """A missing .npz suffix is appended."""
        path = TrajectoryExporter().export_numpy(result, tmp_path / "spiral")
        assert path.name == "spiral.npz"
        assert path.exists()
