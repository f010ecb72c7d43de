"""Angular spectrum propagation from the aperture plane to the sensor.

The transfer function is built in numpy at float64 and handed to whichever
backend performs the transforms, so both backends multiply by the same
kernel.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np

from obscura.core.errors import PhysicsError

logger = logging.getLogger(__name__)


def transfer_function(n: int, wavelength_mm: float, z_mm: float, window_mm: float) -> np.ndarray:
    """Angular spectrum transfer function in centred (shifted) frequency layout.

    Args:
        n: Grid side in cells
        wavelength_mm: Wavelength in millimeters
        z_mm: Propagation distance in millimeters
        window_mm: Physical side of the grid in millimeters

    Returns:
        Complex128 array H(fx, fy) with fx = (x - n/2) / window
    """
    k = 2.0 * np.pi / wavelength_mm
    f = (np.arange(n, dtype=np.float64) - n // 2) / window_mm
    fx, fy = np.meshgrid(f, f, indexing="xy")

    val = 1.0 - (wavelength_mm * fx) ** 2 - (wavelength_mm * fy) ** 2
    propagating = val >= 0

    H = np.empty((n, n), dtype=np.complex128)
    H[propagating] = np.exp(1j * k * z_mm * np.sqrt(val[propagating]))
    # Evanescent waves decay instead of oscillating
    H[~propagating] = np.exp(-k * z_mm * np.sqrt(-val[~propagating]))
    return H


class AngularSpectrumPropagator:
    """Free-space propagation over one backend.

    Forward FFT, shift, multiply by the transfer function, unshift and
    inverse FFT. Grid size, wavelength and distance fully determine the
    kernel. The most recent `max_kernels` kernels are kept, so a pipeline
    holding one propagator reuses all three RGB kernels across requests
    with unchanged optics.
    """

    def __init__(self, backend: Any, max_kernels: int = 3):
        self.backend = backend
        self.max_kernels = max_kernels
        self._kernels: dict[tuple[int, float, float, float], Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _kernel(self, n: int, wavelength_mm: float, z_mm: float, window_mm: float) -> Any:
        key = (n, wavelength_mm, z_mm, window_mm)
        with self._lock:
            cached = self._kernels.get(key)
            if cached is not None:
                self.hits += 1
                return cached
        H = self.backend.asarray(transfer_function(n, wavelength_mm, z_mm, window_mm))
        with self._lock:
            self.misses += 1
            self._kernels[key] = H
            while len(self._kernels) > self.max_kernels:
                # Dicts keep insertion order; drop the oldest kernel
                del self._kernels[next(iter(self._kernels))]
        return H

    def clear(self) -> None:
        with self._lock:
            self._kernels.clear()

    def propagate(
        self, field: np.ndarray, wavelength_mm: float, z_mm: float, window_mm: float
    ) -> np.ndarray:
        """Propagate a square complex field by `z_mm`.

        Args:
            field: Complex (n, n) field at the aperture plane
            wavelength_mm: Wavelength in millimeters
            z_mm: Propagation distance in millimeters
            window_mm: Physical side of the grid in millimeters

        Returns:
            Complex128 (n, n) field at the sensor plane
        """
        if field.ndim != 2 or field.shape[0] != field.shape[1]:
            raise PhysicsError(f"Field must be square 2D, got shape {field.shape}")
        if not (wavelength_mm > 0 and window_mm > 0 and np.isfinite(z_mm)):
            raise PhysicsError(
                f"Invalid propagation parameters: wavelength={wavelength_mm} mm, "
                f"z={z_mm} mm, window={window_mm} mm"
            )

        n = field.shape[0]
        logger.debug(
            f"Angular spectrum: N={n}, lambda={wavelength_mm * 1e6:.1f} nm, "
            f"z={z_mm} mm, window={window_mm:.4f} mm, backend={self.backend.name}"
        )

        xp = self.backend
        spectrum = xp.fftshift(xp.fft2(xp.asarray(field)))
        spectrum = spectrum * self._kernel(n, wavelength_mm, z_mm, window_mm)
        out = xp.fft2(xp.ifftshift(spectrum), inverse=True)
        return xp.to_numpy(out)


def run(field: np.ndarray, grid: Any, wavelength_mm: float, z_mm: float, backend: Any) -> np.ndarray:
    """Module-level entry point used by the solver registry."""
    return AngularSpectrumPropagator(backend).propagate(field, wavelength_mm, z_mm, grid.window_mm)


__all__ = [
    "transfer_function",
    "AngularSpectrumPropagator",
    "run",
]
