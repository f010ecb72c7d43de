"""Optics summary for an aperture on a camera.

First-order figures a user wants before running a full simulation: blur
budget, optimal pinhole size, effective f-number, field of view and, for
slit arrays, the expected fringe spacing.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from obscura.core.config import ApertureKind, CameraDescriptor
from obscura.core.units import nm_to_mm, rad_to_deg

from ..components.apertures import star_vertices
from ..components.curves import split_strokes
from ..prop.plan import GEOMETRIC_MARGIN, feature_size_mm, geometric_extent_mm

RAYLEIGH_FACTOR = 1.9
AIRY_DISK_FACTOR = 2.44
FULL_FRAME_DIAGONAL_MM = 43.266
MIN_FOCAL_LENGTH_MM = 0.1
MIN_WAVELENGTH_NM = 380.0
DEFAULT_ZONES = 10

_WIDTH_LIMITED = {
    ApertureKind.SLIT,
    ApertureKind.CROSS,
    ApertureKind.SLIT_ARRAY,
    ApertureKind.WAVES,
    ApertureKind.YIN_YANG,
    ApertureKind.LISSAJOUS,
    ApertureKind.SPIRAL,
    ApertureKind.ROSETTE,
}

_FRINGE_RATINGS = (
    (0.005, "Microscopic (Invisible)"),
    (0.02, "Very Weak"),
    (0.1, "Visible (Fine)"),
    (1.0, "Strong / Clear"),
)


@dataclass
class OpticsSummary:
    """First-order optics figures; lengths in mm, angles in degrees."""

    geometric_blur_mm: float
    diffraction_blur_mm: float
    total_blur_mm: float
    optimal_diameter_mm: float
    open_area_mm2: float
    f_number: float
    fov_h_deg: float
    fov_v_deg: float
    focal_length_35mm: float
    footprint_mm: float
    diffraction_limited: bool
    fringe_spacing_mm: float = 0.0
    interference_rating: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _polyline_length(points: list[tuple[float, float]]) -> float:
    return sum(math.dist(a, b) for a, b in zip(points[:-1], points[1:]))


def open_area_mm2(aperture) -> float:  # type: ignore[no-untyped-def]
    """Approximate transmitting area of an aperture in mm^2."""
    kind = ApertureKind(aperture.kind)
    d = getattr(aperture, "diameter", 0.0)
    r = d / 2.0

    if kind == ApertureKind.ZONE_PLATE:
        return math.pi * r * r / 2.0
    if kind == ApertureKind.PHOTON_SIEVE:
        return math.pi * r * r * 0.30
    if kind == ApertureKind.SLIT:
        return aperture.slit_width * d
    if kind == ApertureKind.SLIT_ARRAY:
        return max(2, aperture.count) * aperture.slit_width * d
    if kind == ApertureKind.CROSS:
        w = aperture.slit_width
        return 2.0 * w * d - w * w
    if kind == ApertureKind.ANNULAR:
        inner = aperture.inner_diameter if aperture.inner_diameter is not None else 0.5 * d
        return math.pi * (r * r - (inner / 2.0) ** 2)
    if kind == ApertureKind.STAR:
        inner = aperture.inner_diameter if aperture.inner_diameter is not None else 0.4 * d
        pts = star_vertices(max(2, aperture.spikes), r, inner / 2.0)
        shoelace = sum(x1 * y2 - x2 * y1 for (x1, y1), (x2, y2) in zip(pts, pts[1:] + pts[:1]))
        return abs(shoelace) / 2.0
    if kind in (ApertureKind.MULTI_DOT, ApertureKind.RANDOM, ApertureKind.FIBONACCI):
        return max(1, aperture.count) * math.pi * r * r
    if kind == ApertureKind.URA:
        return d * d * 0.5
    if kind in (ApertureKind.WAVES, ApertureKind.YIN_YANG):
        waves = max(1, aperture.count)
        length = math.hypot(d, 2.0 * waves * aperture.slit_height)
        area = length * aperture.slit_width
        if kind == ApertureKind.YIN_YANG:
            area += 2 * waves * math.pi * (aperture.inner_diameter / 2.0) ** 2
        return area
    if kind == ApertureKind.LITHO_OPC:
        bar = aperture.slit_width if aperture.slit_width is not None else 0.25 * d
        height = 5.0 * d
        return d * height + 2.0 * bar * height
    if kind == ApertureKind.FRACTAL:
        return aperture.spread**2 * (8.0 / 9.0) ** max(0, aperture.iteration)
    if kind == ApertureKind.SIERPINSKI:
        s = aperture.spread
        return math.sqrt(3.0) / 4.0 * s * s * 0.75 ** max(0, aperture.iteration)
    if kind in (ApertureKind.LISSAJOUS, ApertureKind.SPIRAL, ApertureKind.ROSETTE):
        return 3.0 * d * aperture.slit_width
    if kind == ApertureKind.FREEFORM:
        strokes = split_strokes(aperture.path, d / 2.0)
        return sum(_polyline_length(s) for s in strokes) * aperture.brush_size
    # Pinholes and imported bitmaps
    return math.pi * r * r


def interference_rating(fringe_spacing_mm: float) -> str:
    for limit, label in _FRINGE_RATINGS:
        if fringe_spacing_mm < limit:
            return label
    return "Very Wide"


def optics_summary(camera: CameraDescriptor, aperture) -> OpticsSummary:  # type: ignore[no-untyped-def]
    """Blur, f-number, field of view and interference figures.

    Args:
        camera: Camera descriptor
        aperture: Aperture descriptor

    Returns:
        OpticsSummary
    """
    kind = ApertureKind(aperture.kind)
    focal = max(MIN_FOCAL_LENGTH_MM, camera.focal_length_mm)
    lam = nm_to_mm(max(MIN_WAVELENGTH_NM, camera.wavelength_nm))

    feature = feature_size_mm(aperture)
    if kind in (ApertureKind.ZONE_PLATE, ApertureKind.PHOTON_SIEVE):
        zones = max(1, aperture.zones or DEFAULT_ZONES)
        optimal = 2.0 * math.sqrt(zones * focal * lam)
    else:
        optimal = RAYLEIGH_FACTOR * math.sqrt(focal * lam)

    area = open_area_mm2(aperture)
    if kind in _WIDTH_LIMITED:
        effective = aperture.slit_width
    elif kind in (ApertureKind.LITHO_OPC, ApertureKind.ANNULAR):
        effective = aperture.diameter
    else:
        effective = 2.0 * math.sqrt(max(area, 0.0) / math.pi)
    f_number = focal / effective if effective > 0 else math.inf

    geometric = feature
    diffraction = AIRY_DISK_FACTOR * lam * focal / feature if feature > 0 else math.inf
    total = math.hypot(geometric, diffraction)

    diagonal = math.hypot(camera.sensor_width_mm, camera.sensor_height_mm)
    crop = FULL_FRAME_DIAGONAL_MM / diagonal if diagonal > 0 else 1.0

    fringe = 0.0
    rating = ""
    if kind == ApertureKind.SLIT_ARRAY and aperture.spread > 0:
        fringe = lam * focal / aperture.spread
        rating = interference_rating(fringe)

    return OpticsSummary(
        geometric_blur_mm=geometric,
        diffraction_blur_mm=diffraction,
        total_blur_mm=total,
        optimal_diameter_mm=optimal,
        open_area_mm2=area,
        f_number=f_number,
        fov_h_deg=rad_to_deg(2.0 * math.atan(camera.sensor_width_mm / (2.0 * focal))),
        fov_v_deg=rad_to_deg(2.0 * math.atan(camera.sensor_height_mm / (2.0 * focal))),
        focal_length_35mm=focal * crop,
        footprint_mm=GEOMETRIC_MARGIN * geometric_extent_mm(aperture),
        diffraction_limited=diffraction > geometric,
        fringe_spacing_mm=fringe,
        interference_rating=rating,
    )


__all__ = [
    "OpticsSummary",
    "open_area_mm2",
    "interference_rating",
    "optics_summary",
]
