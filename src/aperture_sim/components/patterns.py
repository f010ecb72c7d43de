"""Dot arrays and self-similar patterns.

Recursive shapes are expanded with explicit stacks and a capped depth, so a
large iteration count cannot exhaust the interpreter stack.
"""

from __future__ import annotations

import math

from obscura.core.config import MultiDotPattern

from ..core.rng import LinearCongruentialGenerator
from .canvas import MaskCanvas, RasterContext

GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))
CARPET_MAX_DEPTH = 5
TRIANGLE_MAX_DEPTH = 6
CONCENTRIC_RINGS = 5


def multi_dot_centers(ap, rng: LinearCongruentialGenerator) -> list[tuple[float, float]]:  # type: ignore[no-untyped-def]
    """Dot centres in mm for a multi-dot aperture (centre dot excluded)."""
    count = max(1, ap.count)
    spread = ap.spread
    pattern = MultiDotPattern(ap.pattern)
    centers: list[tuple[float, float]] = []

    if pattern == MultiDotPattern.RING:
        for i in range(count):
            theta = i / count * 2.0 * math.pi
            centers.append((spread * math.cos(theta), spread * math.sin(theta)))
    elif pattern == MultiDotPattern.GRID:
        side = math.ceil(math.sqrt(count))
        spacing = spread * 2.0 / max(1, side - 1)
        start = -(side - 1) * spacing / 2.0
        for r in range(side):
            for c in range(side):
                if len(centers) >= count:
                    break
                centers.append((start + c * spacing, start + r * spacing))
    elif pattern == MultiDotPattern.CONCENTRIC:
        # Ring r gets a share r / (1 + 2 + ... + rings) of the dots
        total_weight = CONCENTRIC_RINGS * (CONCENTRIC_RINGS + 1) / 2
        for r in range(1, CONCENTRIC_RINGS + 1):
            radius = r / CONCENTRIC_RINGS * spread
            dots = max(3, int(math.floor(count * r / total_weight)))
            for k in range(dots):
                theta = k / dots * 2.0 * math.pi + (r % 2) * (math.pi / dots)
                centers.append((radius * math.cos(theta), radius * math.sin(theta)))
    elif pattern == MultiDotPattern.RANDOM:
        for _ in range(count):
            r = spread * math.sqrt(rng.random())
            theta = 2.0 * math.pi * rng.random()
            centers.append((r * math.cos(theta), r * math.sin(theta)))
    elif pattern == MultiDotPattern.LINE:
        step = spread * 2.0 / max(1, count - 1)
        for i in range(count):
            centers.append((-spread + i * step, 0.0))
    return centers


def draw_multi_dot(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    if ap.diameter <= 0:
        return
    radius = max(canvas.min_size_mm, ap.diameter / 2.0)
    if ap.center_dot:
        canvas.fill_circle(0.0, 0.0, radius)
    for x, y in multi_dot_centers(ap, LinearCongruentialGenerator(ap.seed)):
        canvas.fill_circle(x, y, radius)


def draw_random(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Uniform-in-disc dots with radii between 1/8 and 1/2 of the nominal diameter."""
    if ap.diameter <= 0:
        return
    rng = LinearCongruentialGenerator(ap.seed)
    field_radius = (ap.spread if ap.spread is not None else ap.diameter) / 2.0
    base = ap.diameter / 4.0
    for _ in range(max(0, ap.count)):
        r = field_radius * math.sqrt(rng.random())
        theta = 2.0 * math.pi * rng.random()
        size = base * (0.5 + 1.5 * rng.random())
        canvas.fill_circle(r * math.cos(theta), r * math.sin(theta), max(canvas.min_size_mm, size))


def draw_fibonacci(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Sunflower (Vogel) spiral of equal dots."""
    if ap.diameter <= 0 or ap.count <= 0:
        return
    radius = max(canvas.min_size_mm, ap.diameter / 2.0)
    for i in range(ap.count):
        r = ap.spread * math.sqrt(i / ap.count)
        theta = i * GOLDEN_ANGLE
        canvas.fill_circle(r * math.cos(theta), r * math.sin(theta), radius)


def draw_fractal(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Sierpinski carpet: keep the eight outer squares of every 3x3 split."""
    if ap.spread <= 0:
        return
    min_size = 0.5 * canvas.cell_mm
    stack = [(0.0, 0.0, float(ap.spread), max(0, min(CARPET_MAX_DEPTH, ap.iteration)))]
    while stack:
        x, y, s, depth = stack.pop()
        child = s / 3.0
        if depth == 0 or child < min_size:
            canvas.fill_rect(x - s / 2.0, y - s / 2.0, s, s)
            continue
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                stack.append((x + dx * child, y + dy * child, child, depth - 1))


def draw_sierpinski(canvas: MaskCanvas, ap, ctx: RasterContext) -> None:  # type: ignore[no-untyped-def]
    """Sierpinski triangle, apex up, centred on its circumcentre."""
    side = ap.spread
    if side <= 0:
        return
    R = side / math.sqrt(3.0)
    p1, p2, p3 = (0.0, -R), (side / 2.0, R / 2.0), (-side / 2.0, R / 2.0)
    stack = [(p1, p2, p3, max(0, min(TRIANGLE_MAX_DEPTH, ap.iteration)))]
    while stack:
        a, b, c, depth = stack.pop()
        edge = math.hypot(a[0] - b[0], a[1] - b[1])
        if depth == 0 or edge < canvas.cell_mm:
            canvas.fill_polygon([a, b, c])
            continue
        ab = ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)
        bc = ((b[0] + c[0]) / 2.0, (b[1] + c[1]) / 2.0)
        ca = ((c[0] + a[0]) / 2.0, (c[1] + a[1]) / 2.0)
        stack.append((a, ab, ca, depth - 1))
        stack.append((ab, b, bc, depth - 1))
        stack.append((ca, bc, c, depth - 1))


__all__ = [
    "GOLDEN_ANGLE",
    "multi_dot_centers",
    "draw_multi_dot",
    "draw_random",
    "draw_fibonacci",
    "draw_fractal",
    "draw_sierpinski",
]
