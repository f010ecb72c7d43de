"""Analytic validation cases.

Each case runs part of the simulator against a closed-form expectation and
returns a ValidationResult, so the CLI and the tests share one definition of
"correct".
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy.special import j1

from obscura.core.config import (
    CameraDescriptor,
    ConvolutionMode,
    Pinhole,
    SimulationOptions,
    Slit,
    ZonePlate,
    ZonePlateProfile,
)
from obscura.core.units import nm_to_mm

from ..components import rasterize
from ..core.pipeline import RGB_WAVELENGTHS_NM, SimulationPipeline
from ..imaging.convolution import FrequencyDomainConvolver, SparseSpatialConvolver
from ..prop.plan import plan_grid
from .metrics import (
    energy_error,
    first_minimum_radius,
    mean_abs_difference,
    peak_position,
    radial_profile,
    symmetry_error,
)

# Pinhole scenario: 0.3 mm hole, 50 mm to the sensor, 550 nm
PINHOLE_DIAMETER_MM = 0.3
PINHOLE_FOCAL_MM = 50.0
PINHOLE_WAVELENGTH_NM = 550.0
# Sampling density giving a 512 grid for the pinhole scenario
PINHOLE_PX_PER_MM = 100.0


@dataclass
class ValidationResult:
    """Outcome of one validation case."""

    name: str
    passed: bool
    value: float
    expected: float
    tolerance: float
    detail: str = ""

    def __str__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return (
            f"[{status}] {self.name}: value={self.value:.6g} expected={self.expected:.6g} "
            f"tol={self.tolerance:.3g} {self.detail}".rstrip()
        )


def airy_intensity(r_mm: np.ndarray, diameter_mm: float, wavelength_mm: float, z_mm: float) -> np.ndarray:
    """Fraunhofer pattern (2 J1(x) / x)^2 of a circular hole, unit peak.

    Args:
        r_mm: Radial distances on the sensor
        diameter_mm: Hole diameter
        wavelength_mm: Wavelength
        z_mm: Hole-to-sensor distance

    Returns:
        Normalized intensity at each radius
    """
    x = np.pi * diameter_mm * np.asarray(r_mm, dtype=np.float64) / (wavelength_mm * z_mm)
    x_safe = np.where(x > 1e-12, x, 1.0)
    return np.where(x > 1e-12, (2.0 * j1(x_safe) / x_safe) ** 2, 1.0)


def airy_first_null_mm(diameter_mm: float, wavelength_mm: float, z_mm: float) -> float:
    return 1.22 * wavelength_mm * z_mm / diameter_mm


def case_pinhole_airy(pipeline: SimulationPipeline | None = None, backend: str = "numpy") -> ValidationResult:
    """First dark ring of the pinhole PSF against the Airy null."""
    pipeline = pipeline or SimulationPipeline()
    camera = CameraDescriptor(focal_length_mm=PINHOLE_FOCAL_MM, wavelength_nm=PINHOLE_WAVELENGTH_NM)
    options = SimulationOptions(polychromatic=False, backend=backend)
    channel = pipeline.build_psf(
        Pinhole(diameter=PINHOLE_DIAMETER_MM),
        camera,
        PINHOLE_WAVELENGTH_NM,
        PINHOLE_PX_PER_MM,
        options,
    )
    psf = channel.psf.data
    radii, values = radial_profile(psf)
    null_mm = first_minimum_radius(radii, values) * channel.grid.cell_mm
    expected = airy_first_null_mm(PINHOLE_DIAMETER_MM, nm_to_mm(PINHOLE_WAVELENGTH_NM), PINHOLE_FOCAL_MM)

    centered = peak_position(psf) == (channel.grid.center, channel.grid.center)
    symmetric = symmetry_error(psf) < 1e-6
    tolerance = channel.grid.cell_mm
    close = math.isfinite(null_mm) and abs(null_mm - expected) <= tolerance
    return ValidationResult(
        name="pinhole_airy_first_null",
        passed=bool(close and centered and symmetric),
        value=null_mm,
        expected=expected,
        tolerance=tolerance,
        detail=f"N={channel.grid.n} centered={centered} symmetric={symmetric}",
    )


def case_zone_radius(wavelength_nm: float = 550.0, focal_length_mm: float = 50.0) -> ValidationResult:
    """First zone boundary of a binary zone plate against sqrt(λ f)."""
    plate = ZonePlate(diameter=1.0, profile=ZonePlateProfile.BINARY)
    grid = plan_grid(plate, wavelength_nm, focal_length_mm, target_px_per_mm=200.0)
    mask = rasterize(plate, grid, wavelength_nm, focal_length_mm)

    row = mask[grid.center, grid.center :]
    closed = np.nonzero(row < 0.5)[0]
    measured = float(closed[0]) * grid.cell_mm if closed.size else float("nan")
    expected = math.sqrt(nm_to_mm(wavelength_nm) * focal_length_mm)
    return ValidationResult(
        name="zone_plate_first_radius",
        passed=bool(math.isfinite(measured) and abs(measured - expected) <= grid.cell_mm),
        value=measured,
        expected=expected,
        tolerance=grid.cell_mm,
    )


def case_psf_energy(pipeline: SimulationPipeline | None = None) -> ValidationResult:
    """Every RGB PSF and image kernel sums to one."""
    pipeline = pipeline or SimulationPipeline()
    camera = CameraDescriptor()
    worst = 0.0
    for aperture in (Pinhole(), Slit(), ZonePlate(profile=ZonePlateProfile.SINUSOIDAL)):
        for wl in RGB_WAVELENGTHS_NM:
            channel = pipeline.build_psf(aperture, camera, wl, 28.5)
            worst = max(worst, energy_error(channel.psf.data), energy_error(channel.kernel))
    return ValidationResult(
        name="psf_energy_normalization", passed=worst < 1e-9, value=worst, expected=0.0, tolerance=1e-9
    )


def gray_image(height: int = 64, width: int = 96, level: float = 0.5) -> np.ndarray:
    image = np.full((height, width, 4), level, dtype=np.float64)
    image[..., 3] = 1.0
    return image


def case_uniform_gray(mode: ConvolutionMode | str = ConvolutionMode.FREQUENCY) -> ValidationResult:
    """A uniform image stays uniform and keeps its level through convolution."""
    kernel = SimulationPipeline().build_psf(Pinhole(diameter=1.0), CameraDescriptor(), 550.0, 28.5).kernel
    image = gray_image()
    mode = ConvolutionMode(mode)
    convolver = FrequencyDomainConvolver() if mode == ConvolutionMode.FREQUENCY else SparseSpatialConvolver()
    out = convolver.convolve(image, [kernel])
    error = float(np.max(np.abs(out[..., :3] - 0.5)))
    return ValidationResult(
        name=f"uniform_gray_{mode.value}", passed=error < 1e-6, value=error, expected=0.0, tolerance=1e-6
    )


def sample_scene(height: int = 96, width: int = 128, seed: int = 0) -> np.ndarray:
    """Random linear RGBA scene with a few bright points."""
    rng = np.random.default_rng(seed)
    image = np.empty((height, width, 4), dtype=np.float64)
    image[..., :3] = rng.random((height, width, 3))
    image[height // 2, width // 2, :3] = 4.0
    image[..., 3] = 1.0
    return image


def case_strategy_agreement() -> ValidationResult:
    """Frequency and sparse convolution agree to better than one 8-bit level."""
    kernel = SimulationPipeline().build_psf(Slit(), CameraDescriptor(), 550.0, 28.5).kernel
    image = sample_scene()
    a = FrequencyDomainConvolver().convolve(image, [kernel])
    b = SparseSpatialConvolver().convolve(image, [kernel])
    diff = mean_abs_difference(a[..., :3], b[..., :3])
    return ValidationResult(
        name="frequency_vs_sparse", passed=diff < 1.0 / 255.0, value=diff, expected=0.0, tolerance=1.0 / 255.0
    )


def run_all() -> list[ValidationResult]:
    pipeline = SimulationPipeline()
    return [
        case_pinhole_airy(pipeline),
        case_zone_radius(),
        case_psf_energy(pipeline),
        case_uniform_gray(ConvolutionMode.FREQUENCY),
        case_uniform_gray(ConvolutionMode.SPARSE),
        case_strategy_agreement(),
    ]


__all__ = [
    "ValidationResult",
    "airy_intensity",
    "airy_first_null_mm",
    "case_pinhole_airy",
    "case_zone_radius",
    "case_psf_energy",
    "case_uniform_gray",
    "case_strategy_agreement",
    "gray_image",
    "sample_scene",
    "run_all",
]
