"""Validation metrics for PSFs and rendered images.

Provides energy, symmetry and radial-profile measures used by the
analytic validation cases and the test suite.
"""

from __future__ import annotations

import numpy as np


def energy_error(psf: np.ndarray) -> float:
    """Absolute deviation of the PSF sum from 1."""
    return abs(float(np.sum(psf)) - 1.0)


def peak_position(psf: np.ndarray) -> tuple[int, int]:
    """(row, col) of the brightest cell."""
    row, col = np.unravel_index(int(np.argmax(psf)), psf.shape)
    return int(row), int(col)


def mirror(a: np.ndarray, axis: int) -> np.ndarray:
    """Reflect about index n/2 along `axis` (index i maps to n - i, modulo n)."""
    return np.roll(np.flip(a, axis=axis), 1, axis=axis)


def symmetry_error(psf: np.ndarray) -> float:
    """Largest left/right or up/down asymmetry about (n/2, n/2), relative to the peak.

    Args:
        psf: Square intensity array

    Returns:
        max |psf - mirror(psf)| / max(psf)
    """
    peak = float(np.max(psf))
    if peak <= 0:
        return 0.0
    lr = np.max(np.abs(psf - mirror(psf, 1)))
    ud = np.max(np.abs(psf - mirror(psf, 0)))
    return float(max(lr, ud)) / peak


def radial_profile(
    image: np.ndarray, center: tuple[float, float] | None = None
) -> tuple[np.ndarray, np.ndarray]:
    """Azimuthal mean in one-cell rings.

    Args:
        image: 2D array
        center: (row, col) of the ring centre; defaults to (n/2, n/2)

    Returns:
        Tuple of (radii in cells, mean value per ring)
    """
    rows, cols = image.shape
    if center is None:
        center = (rows // 2, cols // 2)
    y, x = np.indices(image.shape)
    r = np.rint(np.hypot(y - center[0], x - center[1])).astype(np.int64)
    sums = np.bincount(r.ravel(), weights=image.ravel())
    counts = np.bincount(r.ravel())
    valid = counts > 0
    radii = np.nonzero(valid)[0].astype(np.float64)
    return radii, sums[valid] / counts[valid]


def first_minimum_radius(radii: np.ndarray, values: np.ndarray) -> float:
    """Radius of the first local minimum of a profile that starts at its peak.

    Returns:
        Radius in the units of `radii`, or NaN if the profile never turns up
    """
    for i in range(1, len(values) - 1):
        if values[i] <= values[i - 1] and values[i] < values[i + 1]:
            return float(radii[i])
    return float("nan")


def mean_abs_difference(a: np.ndarray, b: np.ndarray) -> float:
    if a.shape != b.shape:
        raise ValueError(f"Shape mismatch: {a.shape} vs {b.shape}")
    return float(np.mean(np.abs(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64))))


__all__ = [
    "energy_error",
    "peak_position",
    "mirror",
    "symmetry_error",
    "radial_profile",
    "first_minimum_radius",
    "mean_abs_difference",
]
