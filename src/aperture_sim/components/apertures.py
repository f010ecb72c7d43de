"""Solid apertures: holes, slits, stars, lithography bars and bitmaps."""

from __future__ import annotations

import math

import numpy as np

from .canvas import MaskCanvas, RasterContext


def draw_pinhole(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ap.diameter <= 0:
        return
    canvas.fill_circle(0.0, 0.0, max(canvas.min_size_mm, ap.diameter / 2.0))


def draw_slit(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Horizontal slit; `diameter` is the length."""
    if ap.diameter <= 0 or ap.slit_width <= 0:
        return
    w = max(canvas.min_size_mm, ap.slit_width)
    canvas.fill_rect(-ap.diameter / 2.0, -w / 2.0, ap.diameter, w)


def draw_cross(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ap.diameter <= 0 or ap.slit_width <= 0:
        return
    w = max(canvas.min_size_mm, ap.slit_width)
    length = ap.diameter
    canvas.fill_rect(-w / 2.0, -length / 2.0, w, length)
    canvas.fill_rect(-length / 2.0, -w / 2.0, length, w)


def draw_slit_array(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Vertical slits centred on the axis, `spread` apart."""
    if ap.diameter <= 0 or ap.slit_width <= 0:
        return
    n = max(2, ap.count)
    w = max(canvas.min_size_mm, ap.slit_width)
    h = ap.diameter
    start = -(n - 1) * ap.spread / 2.0
    for i in range(n):
        canvas.fill_rect(start + i * ap.spread - w / 2.0, -h / 2.0, w, h)


def draw_annular(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    inner = ap.inner_diameter if ap.inner_diameter is not None else 0.5 * ap.diameter
    r_out = ap.diameter / 2.0
    r_in = max(0.0, inner / 2.0)
    if r_out <= 0 or r_in >= r_out:
        return
    canvas.fill_circle(0.0, 0.0, r_out)
    canvas.fill_circle(0.0, 0.0, r_in, value=0.0)


def star_vertices(spikes: int, outer: float, inner: float) -> list[tuple[float, float]]:
    """Alternating tip/valley vertices, first tip straight up at (0, -outer)."""
    rot = 1.5 * math.pi
    step = math.pi / spikes
    points = []
    for _ in range(spikes):
        points.append((math.cos(rot) * outer, math.sin(rot) * outer))
        rot += step
        points.append((math.cos(rot) * inner, math.sin(rot) * inner))
        rot += step
    return points


def draw_star(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    inner_d = ap.inner_diameter if ap.inner_diameter is not None else 0.4 * ap.diameter
    if ap.diameter <= 0 or ap.spikes < 2:
        return
    canvas.fill_polygon(star_vertices(ap.spikes, ap.diameter / 2.0, max(0.0, inner_d) / 2.0))


def draw_litho_opc(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Main bar of width cd and height 5 cd with an assist bar on each side."""
    cd = ap.diameter
    if cd <= 0:
        return
    height = 5.0 * cd
    canvas.fill_rect(-cd / 2.0, -height / 2.0, cd, height)

    bar = ap.slit_width if ap.slit_width is not None else 0.25 * cd
    if bar <= 0:
        return
    bar = max(canvas.min_size_mm, bar)
    left = -cd / 2.0 - ap.spread - bar
    right = cd / 2.0 + ap.spread
    canvas.fill_rect(left, -height / 2.0, bar, height)
    canvas.fill_rect(right, -height / 2.0, bar, height)


def threshold_bitmap(bitmap: np.ndarray, threshold: float, invert: bool = False) -> np.ndarray:
    """Binary transmission from an 8-bit image: mean RGB brightness above threshold.

    Accepts (H, W) grayscale or (H, W, 3|4) color arrays; alpha is ignored.
    """
    img = np.asarray(bitmap, dtype=np.float64)
    if img.ndim == 3:
        img = img[..., :3].mean(axis=-1)
    elif img.ndim != 2:
        raise ValueError(f"Mask bitmap must be 2D or 3D, got shape {img.shape}")
    out = (img > threshold).astype(np.float32)
    if invert:
        out = 1.0 - out
    return out


def draw_custom(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ctx.mask_bitmap is None or ap.diameter <= 0:
        return
    if ap.diameter < 2.0 * canvas.min_size_mm:
        canvas.fill_circle(0.0, 0.0, canvas.min_size_mm)
        return
    canvas.paste_bitmap(threshold_bitmap(ctx.mask_bitmap, ap.threshold, ap.invert), ap.diameter)


__all__ = [
    "draw_pinhole",
    "draw_slit",
    "draw_cross",
    "draw_slit_array",
    "draw_annular",
    "star_vertices",
    "draw_star",
    "draw_litho_opc",
    "threshold_bitmap",
    "draw_custom",
]
