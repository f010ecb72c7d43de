"""Simulation grid planning.

Chooses the physical window and power-of-two grid for one aperture and
wavelength so that the diffraction spread is not clipped by the window and
the finest feature survives rasterization.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from obscura.core.config import ApertureKind
from obscura.core.errors import SamplingError
from obscura.core.units import nm_to_mm

MIN_GRID = 256
MAX_GRID = 2048
DIFFRACTION_BUFFER = 40.0
GEOMETRIC_MARGIN = 1.5

_LINE_SHAPES = {
    ApertureKind.SLIT,
    ApertureKind.CROSS,
    ApertureKind.SLIT_ARRAY,
    ApertureKind.WAVES,
    ApertureKind.YIN_YANG,
    ApertureKind.LISSAJOUS,
    ApertureKind.SPIRAL,
    ApertureKind.ROSETTE,
}


@dataclass(frozen=True)
class SimulationGrid:
    """Square simulation grid.

    Attributes:
        n: Grid side in cells (power of two)
        window_mm: Physical side of the grid in millimeters
        pixels_per_mm: Cells per millimeter (n / window_mm)
    """

    n: int
    window_mm: float

    @property
    def pixels_per_mm(self) -> float:
        return self.n / self.window_mm

    @property
    def cell_mm(self) -> float:
        return self.window_mm / self.n

    @property
    def center(self) -> int:
        """Index of the optical axis along either dimension."""
        return self.n // 2

    def get_memory_estimate(self) -> float:
        """Working memory for one wavelength in MB (mask, field, spectrum, PSF)."""
        cells = self.n * self.n
        bytes_total = cells * (4 + 16 + 16 + 8)
        return bytes_total / (1024**2)


def feature_size_mm(aperture) -> float:  # type: ignore[no-untyped-def]
    """Characteristic minimum feature of an aperture in mm."""
    kind = ApertureKind(aperture.kind)
    if kind in _LINE_SHAPES:
        return float(aperture.slit_width)
    if kind == ApertureKind.FREEFORM:
        return float(aperture.brush_size)
    if kind == ApertureKind.URA:
        if aperture.rank == 0:
            return math.inf
        return float(aperture.diameter) / aperture.rank
    if kind in (ApertureKind.FRACTAL, ApertureKind.SIERPINSKI):
        return float(aperture.spread)
    # Pinholes, zone plates, litho main features and dot patterns: the diameter
    return float(aperture.diameter)


def geometric_extent_mm(aperture) -> float:  # type: ignore[no-untyped-def]
    """Overall footprint of the drawn aperture in mm."""
    kind = ApertureKind(aperture.kind)
    if kind == ApertureKind.SLIT_ARRAY:
        n = max(2, aperture.count)
        span = (n - 1) * max(aperture.spread, 0.0) + max(aperture.slit_width, 0.0)
        return max(span, aperture.diameter)
    if kind in (ApertureKind.SLIT, ApertureKind.CROSS):
        return max(aperture.diameter, aperture.slit_width)
    if kind in (ApertureKind.MULTI_DOT, ApertureKind.FIBONACCI):
        return 2.0 * max(aperture.spread, 0.0) + max(aperture.diameter, 0.0)
    if kind == ApertureKind.RANDOM:
        spread = aperture.spread if aperture.spread is not None else aperture.diameter
        return max(spread, 0.0) + max(aperture.diameter, 0.0)
    if kind in (ApertureKind.FRACTAL, ApertureKind.SIERPINSKI):
        return float(aperture.spread)
    if kind == ApertureKind.LITHO_OPC:
        cd = aperture.diameter
        bar = aperture.slit_width if aperture.slit_width is not None else 0.25 * cd
        return max(cd + 2.0 * (max(aperture.spread, 0.0) + max(bar, 0.0)), 5.0 * cd)
    if kind in (ApertureKind.WAVES, ApertureKind.YIN_YANG):
        return max(aperture.diameter, aperture.slit_height) + max(aperture.slit_width, 0.0)
    if kind == ApertureKind.ROSETTE:
        amp = aperture.amplitude if aperture.amplitude is not None else 0.15 * aperture.diameter
        return aperture.diameter + 2.0 * abs(amp) + max(aperture.slit_width, 0.0)
    if kind in (ApertureKind.LISSAJOUS, ApertureKind.SPIRAL):
        return aperture.diameter + max(aperture.slit_width, 0.0)
    if kind == ApertureKind.FREEFORM:
        return aperture.diameter + max(aperture.brush_size, 0.0)
    return float(aperture.diameter)


def plan_grid(
    aperture,  # type: ignore[no-untyped-def]
    wavelength_nm: float,
    focal_length_mm: float,
    target_px_per_mm: float,
) -> SimulationGrid:
    """Size the simulation grid for one aperture and wavelength.

    Args:
        aperture: Aperture descriptor
        wavelength_nm: Wavelength in nanometers
        focal_length_mm: Propagation distance to the sensor in millimeters
        target_px_per_mm: Pixel density of the image the PSF will be applied to

    Returns:
        SimulationGrid with n in {256, 512, 1024, 2048}

    Raises:
        SamplingError: If the feature size or window is not a positive finite number
    """
    feature = feature_size_mm(aperture)
    if not (math.isfinite(feature) and feature > 0):
        raise SamplingError(
            f"Aperture '{aperture.kind}' has no usable feature size ({feature}); "
            "cannot size the diffraction window"
        )
    if not (math.isfinite(target_px_per_mm) and target_px_per_mm > 0):
        raise SamplingError(f"Target pixel density must be positive, got {target_px_per_mm}")

    lambda_mm = nm_to_mm(wavelength_nm)
    diffractive = DIFFRACTION_BUFFER * lambda_mm * focal_length_mm / feature
    geometric = GEOMETRIC_MARGIN * geometric_extent_mm(aperture)
    window = max(geometric, diffractive)
    if not (math.isfinite(window) and window > 0):
        raise SamplingError(f"Simulation window is not finite and positive: {window}")

    n = MIN_GRID
    required = window * target_px_per_mm
    while required > n and n < MAX_GRID:
        n *= 2

    return SimulationGrid(n=n, window_mm=window)


__all__ = [
    "MIN_GRID",
    "MAX_GRID",
    "SimulationGrid",
    "feature_size_mm",
    "geometric_extent_mm",
    "plan_grid",
]
