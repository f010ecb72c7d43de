"""Stroked curves: sine waves, Lissajous figures, spirals, rosettes and freehand paths."""

from __future__ import annotations

import math

from obscura.core.units import deg_to_rad

from .canvas import MaskCanvas, Point, RasterContext

LISSAJOUS_STEPS = 500
ROSETTE_STEPS = 360


def _stroke_width(canvas: MaskCanvas, width: float) -> float:
    return max(canvas.min_size_mm, width)


def wave_points(width: float, amplitude: float, waves: int) -> list[Point]:
    steps = 100 * max(1, waves)
    points = []
    for i in range(steps + 1):
        t = i / steps
        points.append(((t - 0.5) * width, amplitude / 2.0 * math.sin(2.0 * math.pi * waves * t)))
    return points


def draw_waves(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ap.diameter <= 0 or ap.slit_width <= 0:
        return
    waves = max(1, ap.count)
    canvas.stroke_polyline(
        wave_points(ap.diameter, ap.slit_height, waves), _stroke_width(canvas, ap.slit_width)
    )


def draw_yin_yang(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Sine wave with a dot under every crest and over every trough."""
    draw_waves(canvas, ap, ctx)
    if ap.diameter <= 0 or ap.inner_diameter <= 0:
        return
    waves = max(1, ap.count)
    radius = max(canvas.min_size_mm, ap.inner_diameter / 2.0)
    for w in range(waves):
        for phase in (0.25, 0.75):
            x = ((w + phase) / waves - 0.5) * ap.diameter
            canvas.fill_circle(x, 0.0, radius)


def lissajous_points(radius: float, freq_x: float, freq_y: float, delta_rad: float) -> list[Point]:
    points = []
    for i in range(LISSAJOUS_STEPS + 1):
        t = i / LISSAJOUS_STEPS * 2.0 * math.pi
        points.append((radius * math.sin(freq_x * t + delta_rad), radius * math.sin(freq_y * t)))
    return points


def draw_lissajous(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ap.diameter <= 0 or ap.slit_width <= 0:
        return
    points = lissajous_points(ap.diameter / 2.0, ap.freq_x, ap.freq_y, deg_to_rad(ap.delta_deg))
    canvas.stroke_polyline(points, _stroke_width(canvas, ap.slit_width))


def draw_spiral(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Archimedean spiral arms evenly spaced in angle."""
    if ap.diameter <= 0 or ap.slit_width <= 0:
        return
    arms = max(1, ap.arms)
    max_r = ap.diameter / 2.0
    steps = max(1, int(100 * ap.turns))
    width = _stroke_width(canvas, ap.slit_width)
    for a in range(arms):
        start = a * 2.0 * math.pi / arms
        points = []
        for i in range(steps + 1):
            t = i / steps
            theta = start + 2.0 * math.pi * ap.turns * t
            points.append((t * max_r * math.cos(theta), t * max_r * math.sin(theta)))
        canvas.stroke_polyline(points, width)


def draw_rosette(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Closed curve r = R + A cos(k θ)."""
    if ap.diameter <= 0 or ap.slit_width <= 0:
        return
    base = ap.diameter / 2.0
    amp = ap.amplitude if ap.amplitude is not None else 0.3 * base
    points = []
    for i in range(ROSETTE_STEPS + 1):
        theta = i / ROSETTE_STEPS * 2.0 * math.pi
        r = base + amp * math.cos(ap.petals * theta)
        points.append((r * math.cos(theta), r * math.sin(theta)))
    canvas.stroke_polyline(points, _stroke_width(canvas, ap.slit_width), closed=True)


def split_strokes(path, scale: float) -> list[list[Point]]:  # type: ignore[no-untyped-def]
    """Break a freehand path at null or NaN points and scale it to mm."""
    strokes: list[list[Point]] = []
    current: list[Point] = []
    for p in path:
        if p is None or math.isnan(p[0]) or math.isnan(p[1]):
            if current:
                strokes.append(current)
            current = []
            continue
        current.append((p[0] * scale, p[1] * scale))
    if current:
        strokes.append(current)
    return strokes


def draw_freeform(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ap.diameter <= 0 or ap.brush_size <= 0:
        return
    width = _stroke_width(canvas, ap.brush_size)
    for stroke in split_strokes(ap.path, ap.diameter / 2.0):
        canvas.stroke_polyline(stroke, width)


__all__ = [
    "wave_points",
    "draw_waves",
    "draw_yin_yang",
    "lissajous_points",
    "draw_lissajous",
    "draw_spiral",
    "draw_rosette",
    "split_strokes",
    "draw_freeform",
]
