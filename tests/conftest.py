"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from zetaspiral.config import SpiralConfig


def make_spiral(n: int, turns: float = 20.0, radius: float = 10.0) -> np.ndarray:
    """Archimedean spiral of n ordered complex points."""
    t = np.arange(n) / n
    return (t * radius) * np.exp(1j * t * turns * 2 * np.pi)


@pytest.fixture
def small_config() -> SpiralConfig:
    """Config with a small term range and several workers."""
    return SpiralConfig(min_terms=100, max_terms=20_000, chunk_width=37, max_workers=4)


@pytest.fixture
def spiral_points() -> np.ndarray:
    """
    A 50k point spiral, large enough for the parallel reducer.

    Returns:
        complex128 array.
    """
    return make_spiral(50_000)


@pytest.fixture
def short_spiral() -> np.ndarray:
    """A 20k point spiral for threshold sweeps."""
    return make_spiral(20_000)
