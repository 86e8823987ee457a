"""Term evaluator for the power sum k^(-s)."""

import numpy as np


def term(k: int, s: complex) -> complex:
    """Return k^(-s) for a positive integer k."""
    return complex(np.exp(-s * np.log(float(k))))


def terms(start: int, end: int, s: complex) -> np.ndarray:
    """
    Evaluate k^(-s) for every k in the half-open range [start, end).

    Args:
        start: First index (>= 1).
        end: One past the last index.
        s: Complex exponent.

    Returns:
        complex128 array of length max(0, end - start).
    """
    if end <= start:
        return np.zeros(0, dtype=np.complex128)
    k = np.arange(start, end, dtype=np.float64)
    return np.exp(-complex(s) * np.log(k))
