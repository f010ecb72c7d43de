"""Diffractive apertures: Fresnel zone plates, photon sieves and URAs.

Zone geometry follows the Fresnel construction for the camera's focal
length and wavelength: the n-th zone boundary sits at r_n = sqrt(n λ f).
"""

from __future__ import annotations

import math

import numpy as np

from obscura.core.config import ZonePlateProfile

from ..core.rng import LinearCongruentialGenerator
from .canvas import MaskCanvas, RasterContext


def zone_radius(n: int, wavelength_mm: float, focal_length_mm: float) -> float:
    """Radius of the n-th Fresnel zone boundary in mm."""
    return math.sqrt(n * wavelength_mm * focal_length_mm)


def draw_zone_plate(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    radius = ap.diameter / 2.0
    if radius <= 0:
        return
    lf = ctx.wavelength_mm * ctx.focal_length_mm
    profile = ZonePlateProfile(ap.profile)

    if profile == ZonePlateProfile.SINUSOIDAL:
        canvas.fill_radial(radius, lambda r, theta: (1.0 + np.cos(np.pi * r * r / lf)) / 2.0)
        return
    if profile == ZonePlateProfile.SPIRAL:
        canvas.fill_radial(
            radius, lambda r, theta: (np.cos(np.pi * r * r / lf + theta) > 0).astype(np.float32)
        )
        return

    # Binary: zone n covers sqrt((n-1) λ f) < r <= sqrt(n λ f); odd zones are open
    max_n = max(1, int(math.floor(radius * radius / lf)))

    def binary(r: np.ndarray, theta: np.ndarray) -> np.ndarray:
        n = np.maximum(1, np.ceil(r * r / lf))
        return (n % 2 == 1).astype(np.float32)

    canvas.fill_radial(zone_radius(max_n, ctx.wavelength_mm, ctx.focal_length_mm), binary)


def draw_photon_sieve(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Holes scattered along the odd (open) zones with seeded angular jitter."""
    rng = LinearCongruentialGenerator(ap.seed)
    wl, f = ctx.wavelength_mm, ctx.focal_length_mm
    max_r = ap.diameter / 2.0
    min_hole_r = 0.2 * canvas.cell_mm

    for n in range(1, ap.zones * 4 + 1):
        r_center = math.sqrt((n + 0.5) * wl * f)
        zone_width = zone_radius(n + 1, wl, f) - zone_radius(n, wl, f)
        if r_center > max_r:
            break
        if n % 2 == 0:
            continue
        hole_d = 1.53 * zone_width
        if hole_d / 2.0 < min_hole_r:
            continue
        holes = int(math.floor(2.0 * math.pi * r_center / (hole_d * 1.5)))
        for k in range(holes):
            theta = k / holes * 2.0 * math.pi + rng.random() * 0.5
            canvas.fill_circle(r_center * math.cos(theta), r_center * math.sin(theta), hole_d / 2.0)


def quadratic_residue(n: int, m: int) -> int:
    """Legendre-style indicator: 0 for n == 0, 1 if n is a square mod m, else -1."""
    if n == 0:
        return 0
    for x in range(1, m):
        if (x * x) % m == n:
            return 1
    return -1


def ura_pattern(rank: int) -> np.ndarray:
    """Open (1) / closed (0) cells of a rank x rank uniformly redundant array.

    Row 0 is closed, column 0 (below row 0) is open, and every other cell is
    open when the quadratic-residue indicators of its row and column agree.
    """
    residues = [quadratic_residue(k, rank) for k in range(rank)]
    grid = np.zeros((rank, rank), dtype=np.int8)
    for i in range(1, rank):
        grid[i, 0] = 1
        for j in range(1, rank):
            grid[i, j] = 1 if residues[i] * residues[j] == 1 else 0
    return grid


def draw_ura(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ap.rank < 1 or ap.diameter <= 0:
        return
    cell = ap.diameter / ap.rank
    offset = ap.diameter / 2.0
    grid = ura_pattern(ap.rank)
    for i, j in zip(*np.nonzero(grid)):
        canvas.fill_rect(j * cell - offset, i * cell - offset, cell, cell)


__all__ = [
    "zone_radius",
    "draw_zone_plate",
    "draw_photon_sieve",
    "quadratic_residue",
    "ura_pattern",
    "draw_ura",
]
