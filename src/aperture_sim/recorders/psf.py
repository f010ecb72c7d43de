"""PSF recording: intensity capture, energy normalization and image kernels.

A PSF is recorded on the simulation grid and then resampled onto image
pixels. Every step preserves total energy, so a normalized PSF always sums
to one.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from obscura.core.errors import PhysicsError

from ..prop.plan import SimulationGrid

# Energy allowed outside a cropped kernel, as a fraction of the total
CROP_TOLERANCE = 1e-6


@dataclass
class PSF:
    """Normalized point spread function on the simulation grid.

    Attributes:
        data: Real (n, n) float64 intensity summing to 1
        energy: Intensity sum before normalization (0 for the delta fallback)
    """

    data: np.ndarray
    energy: float

    @property
    def n(self) -> int:
        return self.data.shape[0]


def delta_psf(n: int) -> np.ndarray:
    """Unit impulse at the optical axis cell (n/2, n/2)."""
    out = np.zeros((n, n), dtype=np.float64)
    out[n // 2, n // 2] = 1.0
    return out


def _normalize(intensity: np.ndarray) -> PSF:
    energy = float(intensity.sum())
    if not math.isfinite(energy):
        raise PhysicsError(f"PSF energy is not finite ({energy})")
    if energy <= 0.0:
        return PSF(data=delta_psf(intensity.shape[0]), energy=0.0)
    return PSF(data=intensity / energy, energy=energy)


def record_psf(field: np.ndarray) -> PSF:
    """Intensity |E|^2 of a propagated field, normalized to unit sum."""
    intensity = np.abs(np.asarray(field)) ** 2
    return _normalize(intensity.astype(np.float64))


def geometric_psf(mask: np.ndarray) -> PSF:
    """Shadow of the mask itself, used when diffraction is disabled."""
    return _normalize(np.asarray(mask, dtype=np.float64))


def _overlap_matrix(n: int, cell_mm: float, half: int, pixel_mm: float) -> np.ndarray:
    """Fraction of each grid cell (columns) falling inside each pixel (rows).

    Pixel 0 of the output is centred on grid cell n/2.
    """
    cell_idx = np.arange(n) - n // 2
    c_lo = (cell_idx - 0.5) * cell_mm
    c_hi = (cell_idx + 0.5) * cell_mm
    pix_idx = np.arange(-half, half + 1)
    p_lo = (pix_idx - 0.5) * pixel_mm
    p_hi = (pix_idx + 0.5) * pixel_mm
    overlap = np.minimum(p_hi[:, None], c_hi[None, :]) - np.maximum(p_lo[:, None], c_lo[None, :])
    return np.clip(overlap, 0.0, None) / cell_mm


def crop_kernel(kernel: np.ndarray, tolerance: float = CROP_TOLERANCE) -> np.ndarray:
    """Smallest centred square holding all but `tolerance` of the energy, renormalized."""
    size = kernel.shape[0]
    c = size // 2
    total = float(kernel.sum())
    if total <= 0.0:
        return np.ones((1, 1), dtype=np.float64)

    idx = np.arange(size)
    ring = np.maximum(np.abs(idx[:, None] - c), np.abs(idx[None, :] - c))
    per_ring = np.bincount(ring.ravel(), weights=kernel.ravel(), minlength=c + 1)
    kept = np.cumsum(per_ring)
    h = int(np.searchsorted(kept, total * (1.0 - tolerance)))
    h = min(h, c)

    cropped = kernel[c - h : c + h + 1, c - h : c + h + 1]
    return cropped / cropped.sum()


def psf_to_image_kernel(psf: PSF, grid: SimulationGrid, image_px_per_mm: float) -> np.ndarray:
    """Resample a grid PSF onto image pixels.

    Each grid cell's energy is shared among the image pixels it overlaps,
    in proportion to the overlapping area. The result is odd-sized and
    centred, then cropped with `crop_kernel`.

    Args:
        psf: Normalized PSF on `grid`
        grid: Simulation grid the PSF was recorded on
        image_px_per_mm: Pixel density of the image being convolved

    Returns:
        Odd (k, k) float64 kernel summing to 1
    """
    if not (math.isfinite(image_px_per_mm) and image_px_per_mm > 0):
        raise PhysicsError(f"Image pixel density must be positive, got {image_px_per_mm}")
    pixel_mm = 1.0 / image_px_per_mm
    half = int(math.ceil((grid.window_mm / 2.0 + grid.cell_mm) / pixel_mm))

    weights = _overlap_matrix(grid.n, grid.cell_mm, half, pixel_mm)
    kernel = weights @ psf.data @ weights.T
    if not np.all(np.isfinite(kernel)):
        raise PhysicsError("Image kernel contains non-finite values")
    total = float(kernel.sum())
    if total <= 0.0:
        return np.ones((1, 1), dtype=np.float64)
    return crop_kernel(kernel / total)


__all__ = [
    "CROP_TOLERANCE",
    "PSF",
    "delta_psf",
    "record_psf",
    "geometric_psf",
    "crop_kernel",
    "psf_to_image_kernel",
]
