"""Aperture mask rasterization.

`rasterize` turns an aperture descriptor into a float32 transmission mask on
a simulation grid. Every shape kind maps to one drawing function; the
drawing functions live in topic modules and share a `MaskCanvas`.
"""

from __future__ import annotations

import logging

import numpy as np

from obscura.core.config import ApertureKind
from obscura.core.errors import ConfigError
from obscura.core.units import nm_to_mm

from ..prop.plan import SimulationGrid
from .apertures import (
    draw_annular,
    draw_cross,
    draw_custom,
    draw_litho_opc,
    draw_pinhole,
    draw_slit,
    draw_slit_array,
    draw_star,
)
from .canvas import MaskCanvas, RasterContext
from .curves import (
    draw_freeform,
    draw_lissajous,
    draw_rosette,
    draw_spiral,
    draw_waves,
    draw_yin_yang,
)
from .diffractive import draw_photon_sieve, draw_ura, draw_zone_plate
from .patterns import draw_fibonacci, draw_fractal, draw_multi_dot, draw_random, draw_sierpinski

logger = logging.getLogger(__name__)

_DRAWERS = {
    ApertureKind.PINHOLE: draw_pinhole,
    ApertureKind.SLIT: draw_slit,
    ApertureKind.CROSS: draw_cross,
    ApertureKind.SLIT_ARRAY: draw_slit_array,
    ApertureKind.ZONE_PLATE: draw_zone_plate,
    ApertureKind.PHOTON_SIEVE: draw_photon_sieve,
    ApertureKind.ANNULAR: draw_annular,
    ApertureKind.STAR: draw_star,
    ApertureKind.MULTI_DOT: draw_multi_dot,
    ApertureKind.RANDOM: draw_random,
    ApertureKind.FIBONACCI: draw_fibonacci,
    ApertureKind.FRACTAL: draw_fractal,
    ApertureKind.SIERPINSKI: draw_sierpinski,
    ApertureKind.URA: draw_ura,
    ApertureKind.LITHO_OPC: draw_litho_opc,
    ApertureKind.FREEFORM: draw_freeform,
    ApertureKind.CUSTOM: draw_custom,
    ApertureKind.LISSAJOUS: draw_lissajous,
    ApertureKind.SPIRAL: draw_spiral,
    ApertureKind.ROSETTE: draw_rosette,
    ApertureKind.WAVES: draw_waves,
    ApertureKind.YIN_YANG: draw_yin_yang,
}


def rasterize(
    aperture,  # type: ignore[no-untyped-def]
    grid: SimulationGrid,
    wavelength_nm: float,
    focal_length_mm: float,
    mask_bitmap: np.ndarray | None = None,
) -> np.ndarray:
    """Rasterize an aperture descriptor onto the simulation grid.

    Args:
        aperture: Aperture descriptor
        grid: Simulation grid (mask is grid.n x grid.n)
        wavelength_nm: Wavelength in nanometers (zone geometry depends on it)
        focal_length_mm: Aperture-to-sensor distance in millimeters
        mask_bitmap: 8-bit image for custom apertures

    Returns:
        float32 array in [0, 1], optical axis at cell (n/2, n/2)
    """
    kind = ApertureKind(aperture.kind)
    drawer = _DRAWERS.get(kind)
    if drawer is None:
        raise ConfigError(f"No rasterizer for aperture kind '{kind.value}'")

    canvas = MaskCanvas(grid, rotation_deg=aperture.rotation_deg)
    ctx = RasterContext(
        wavelength_mm=nm_to_mm(wavelength_nm),
        focal_length_mm=focal_length_mm,
        mask_bitmap=mask_bitmap,
    )
    drawer(canvas, aperture, ctx)

    mask = canvas.data
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"Rasterized {kind.value} on N={grid.n}: open fraction {float(mask.mean()):.4g}"
        )
    return mask


__all__ = ["MaskCanvas", "RasterContext", "rasterize"]
