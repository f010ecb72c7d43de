"""Drawing surface for aperture masks.

Coordinates are millimeters in the aperture's own frame, origin on the
optical axis (cell n/2, n/2), x to the right and y down. The canvas rotates
every primitive by the aperture rotation, so shapes draw themselves
unrotated. Each primitive only touches the cells inside its rotated
bounding box.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np

from obscura.core.units import deg_to_rad

from ..prop.plan import SimulationGrid

# Smallest drawn feature, in cells, so thin slits and pinholes survive sampling
MIN_FEATURE_CELLS = 1.5

Point = tuple[float, float]


@dataclass(frozen=True)
class RasterContext:
    """Optical parameters some shapes depend on."""

    wavelength_mm: float
    focal_length_mm: float
    mask_bitmap: np.ndarray | None = None


class MaskCanvas:
    """Float32 transmission canvas painted with opaque primitives.

    Later primitives overwrite earlier ones, so drawing with `value=0.0`
    cuts holes (as the binary zone plate and carpet need).
    """

    def __init__(self, grid: SimulationGrid, rotation_deg: float = 0.0):
        self.grid = grid
        self.n = grid.n
        self.cell_mm = grid.cell_mm
        self.min_size_mm = MIN_FEATURE_CELLS * self.cell_mm
        self.data = np.zeros((self.n, self.n), dtype=np.float32)

        theta = deg_to_rad(rotation_deg)
        self._cos = math.cos(theta)
        self._sin = math.sin(theta)

        axis = (np.arange(self.n, dtype=np.float64) - self.n // 2) * self.cell_mm
        x, y = np.meshgrid(axis, axis, indexing="xy")
        # Inverse rotation maps sensor-aligned cells into the shape frame
        self._u = x * self._cos + y * self._sin
        self._v = -x * self._sin + y * self._cos

    def _window(
        self, xs: Sequence[float], ys: Sequence[float], pad: float = 0.0
    ) -> tuple[tuple[slice, slice], np.ndarray, np.ndarray] | None:
        """Cells covering the rotated bounding box of shape-frame points."""
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        wx = xs * self._cos - ys * self._sin
        wy = xs * self._sin + ys * self._cos

        half = self.n // 2
        pad = pad + self.cell_mm
        i0 = max(0, int(math.floor((wx.min() - pad) / self.cell_mm)) + half)
        i1 = min(self.n, int(math.ceil((wx.max() + pad) / self.cell_mm)) + half + 1)
        j0 = max(0, int(math.floor((wy.min() - pad) / self.cell_mm)) + half)
        j1 = min(self.n, int(math.ceil((wy.max() + pad) / self.cell_mm)) + half + 1)
        if i0 >= i1 or j0 >= j1:
            return None
        sl = (slice(j0, j1), slice(i0, i1))
        return sl, self._u[sl], self._v[sl]

    def _paint(self, sl: tuple[slice, slice], inside: np.ndarray, value: float) -> None:
        self.data[sl][inside] = value

    def fill_circle(self, cx: float, cy: float, radius: float, value: float = 1.0) -> None:
        if not radius > 0:
            return
        win = self._window([cx - radius, cx + radius], [cy - radius, cy + radius], radius)
        if win is None:
            return
        sl, u, v = win
        self._paint(sl, (u - cx) ** 2 + (v - cy) ** 2 <= radius * radius, value)

    def fill_rect(
        self, x: float, y: float, width: float, height: float, value: float = 1.0
    ) -> None:
        """Axis-aligned rectangle (in the shape frame) with top-left corner (x, y)."""
        if not (width > 0 and height > 0):
            return
        win = self._window([x, x + width, x, x + width], [y, y, y + height, y + height])
        if win is None:
            return
        sl, u, v = win
        inside = (u >= x) & (u <= x + width) & (v >= y) & (v <= y + height)
        self._paint(sl, inside, value)

    def fill_polygon(self, points: Sequence[Point], value: float = 1.0) -> None:
        """Even-odd fill of a closed polygon."""
        if len(points) < 3:
            return
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        win = self._window(xs, ys)
        if win is None:
            return
        sl, u, v = win
        inside = np.zeros(u.shape, dtype=bool)
        count = len(points)
        for k in range(count):
            x1, y1 = points[k]
            x2, y2 = points[k - 1]
            if y1 == y2:
                continue
            crosses = (v < y1) != (v < y2)
            x_cross = x1 + (v - y1) * (x2 - x1) / (y2 - y1)
            inside ^= crosses & (u < x_cross)
        self._paint(sl, inside, value)

    def stroke_polyline(
        self, points: Sequence[Point], width: float, closed: bool = False, value: float = 1.0
    ) -> None:
        """Round-capped stroke: every cell within width/2 of a segment."""
        if not width > 0 or not points:
            return
        half = width / 2.0
        pts = list(points)
        if closed and len(pts) > 2:
            pts.append(pts[0])
        if len(pts) == 1:
            self.fill_circle(pts[0][0], pts[0][1], half, value)
            return
        for (x1, y1), (x2, y2) in zip(pts[:-1], pts[1:]):
            win = self._window([x1, x2], [y1, y2], half)
            if win is None:
                continue
            sl, u, v = win
            dx, dy = x2 - x1, y2 - y1
            length_sq = dx * dx + dy * dy
            if length_sq == 0:
                t = np.zeros_like(u)
            else:
                t = np.clip(((u - x1) * dx + (v - y1) * dy) / length_sq, 0.0, 1.0)
            dist_sq = (u - x1 - t * dx) ** 2 + (v - y1 - t * dy) ** 2
            self._paint(sl, dist_sq <= half * half, value)

    def fill_radial(
        self, radius: float, profile: Callable[[np.ndarray, np.ndarray], np.ndarray]
    ) -> None:
        """Write `profile(r, theta)` into every cell of the disc of `radius`."""
        if not radius > 0:
            return
        win = self._window([-radius, radius], [-radius, radius], radius)
        if win is None:
            return
        sl, u, v = win
        r = np.hypot(u, v)
        inside = r <= radius
        values = profile(r[inside], np.arctan2(v[inside], u[inside]))
        self.data[sl][inside] = np.clip(values, 0.0, 1.0)

    def paste_bitmap(self, bitmap: np.ndarray, side: float) -> None:
        """Nearest-neighbour copy of a [0, 1] bitmap onto a centred square."""
        if not side > 0 or bitmap.size == 0:
            return
        h = side / 2.0
        win = self._window([-h, h], [-h, h])
        if win is None:
            return
        sl, u, v = win
        rows, cols = bitmap.shape[:2]
        inside = (np.abs(u) < h) & (np.abs(v) < h)
        ix = np.clip(((u[inside] + h) / side * cols).astype(np.int64), 0, cols - 1)
        iy = np.clip(((v[inside] + h) / side * rows).astype(np.int64), 0, rows - 1)
        self.data[sl][inside] = bitmap[iy, ix]


__all__ = ["MIN_FEATURE_CELLS", "MaskCanvas", "Point", "RasterContext"]
