"""Tests for PSF recording and resampling to image kernels."""

import numpy as np
import pytest

from aperture_sim.core.pipeline import RGB_WAVELENGTHS_NM, SimulationPipeline
from aperture_sim.prop.plan import SimulationGrid
from aperture_sim.recorders.psf import (
    PSF,
    crop_kernel,
    delta_psf,
    geometric_psf,
    psf_to_image_kernel,
    record_psf,
)
from obscura.core.config import (
    URA,
    Annular,
    ApertureKind,
    CameraDescriptor,
    Cross,
    CustomMask,
    Fibonacci,
    Fractal,
    Freeform,
    Lissajous,
    LithoOPC,
    MultiDot,
    MultiDotPattern,
    PhotonSieve,
    Pinhole,
    RandomDots,
    Rosette,
    Sierpinski,
    Slit,
    SlitArray,
    Spiral,
    Star,
    Waves,
    YinYang,
    ZonePlate,
    ZonePlateProfile,
)
from obscura.core.errors import PhysicsError

# One descriptor per aperture kind, plus every zone plate profile and multi-dot layout
APERTURE_VARIANTS = [
    Pinhole(),
    Slit(),
    Cross(),
    SlitArray(),
    *[ZonePlate(profile=profile) for profile in ZonePlateProfile],
    PhotonSieve(),
    Annular(),
    Star(),
    *[MultiDot(pattern=pattern) for pattern in MultiDotPattern],
    RandomDots(),
    Fibonacci(),
    Fractal(),
    Sierpinski(),
    URA(),
    LithoOPC(),
    Freeform(path=((-0.5, -0.5), (0.5, 0.5), None, (-0.5, 0.5), (0.5, -0.5))),
    CustomMask(),
    Lissajous(),
    Spiral(),
    Rosette(),
    Waves(),
    YinYang(),
]

# Kernel density for a 1024 px wide image on a full-frame sensor
PX_PER_MM = 28.5


def _gaussian(n: int, sigma: float) -> np.ndarray:
    y, x = np.indices((n, n)) - n // 2
    g = np.exp(-(x**2 + y**2) / (2.0 * sigma**2))
    return g / g.sum()


def test_record_psf_normalizes() -> None:
    rng = np.random.default_rng(4)
    field = rng.standard_normal((32, 32)) + 1j * rng.standard_normal((32, 32))
    psf = record_psf(field)
    assert psf.n == 32
    assert psf.data.sum() == pytest.approx(1.0, abs=1e-12)
    assert psf.energy == pytest.approx(float(np.sum(np.abs(field) ** 2)))
    assert np.all(psf.data >= 0)


def test_zero_field_falls_back_to_delta() -> None:
    psf = record_psf(np.zeros((16, 16), dtype=np.complex128))
    assert psf.energy == 0.0
    np.testing.assert_array_equal(psf.data, delta_psf(16))
    assert psf.data[8, 8] == 1.0


def test_non_finite_field_raises() -> None:
    field = np.ones((8, 8), dtype=np.complex128)
    field[2, 3] = np.nan
    with pytest.raises(PhysicsError, match="not finite"):
        record_psf(field)


def test_geometric_psf_is_scaled_mask() -> None:
    mask = np.zeros((16, 16), dtype=np.float32)
    mask[6:10, 6:10] = 1.0
    psf = geometric_psf(mask)
    assert psf.energy == 16.0
    np.testing.assert_allclose(psf.data, mask / 16.0)


def test_crop_delta_to_single_tap() -> None:
    kernel = np.zeros((11, 11))
    kernel[5, 5] = 1.0
    np.testing.assert_array_equal(crop_kernel(kernel), np.ones((1, 1)))


def test_crop_keeps_energy_and_odd_size() -> None:
    cropped = crop_kernel(_gaussian(81, 3.0))
    size = cropped.shape[0]
    assert cropped.shape == (size, size)
    assert size % 2 == 1
    assert 15 <= size < 81
    assert cropped.sum() == pytest.approx(1.0, abs=1e-12)


def test_delta_psf_maps_to_one_pixel() -> None:
    grid = SimulationGrid(n=256, window_mm=2.56)
    kernel = psf_to_image_kernel(PSF(delta_psf(256), 0.0), grid, 10.0)
    assert kernel.shape == (1, 1)
    assert kernel[0, 0] == pytest.approx(1.0)


def test_resampled_kernel_is_centred_and_normalized() -> None:
    grid = SimulationGrid(n=256, window_mm=2.56)
    psf = PSF(_gaussian(256, 12.0), 1.0)
    kernel = psf_to_image_kernel(psf, grid, 20.0)
    size = kernel.shape[0]
    assert size % 2 == 1
    assert kernel.sum() == pytest.approx(1.0, abs=1e-12)
    assert np.unravel_index(np.argmax(kernel), kernel.shape) == (size // 2, size // 2)
    np.testing.assert_allclose(kernel, kernel.T, atol=1e-15)


def test_invalid_pixel_density_raises() -> None:
    grid = SimulationGrid(n=256, window_mm=2.56)
    with pytest.raises(PhysicsError):
        psf_to_image_kernel(PSF(delta_psf(256), 0.0), grid, 0.0)


@pytest.fixture(scope="module")
def shared_pipeline():  # type: ignore[no-untyped-def]
    p = SimulationPipeline()
    yield p
    p.close()


def _variant_id(aperture) -> str:  # type: ignore[no-untyped-def]
    sub = getattr(aperture, "profile", None) or getattr(aperture, "pattern", None)
    return f"{aperture.kind}-{sub.value}" if sub is not None else str(aperture.kind)


def test_variants_cover_every_kind() -> None:
    assert {ApertureKind(a.kind) for a in APERTURE_VARIANTS} == set(ApertureKind)


@pytest.mark.parametrize("wavelength_nm", RGB_WAVELENGTHS_NM)
@pytest.mark.parametrize("aperture", APERTURE_VARIANTS, ids=_variant_id)
def test_psf_and_kernel_sum_to_one(shared_pipeline, aperture, wavelength_nm) -> None:
    bitmap = None
    if aperture.kind == ApertureKind.CUSTOM:
        bitmap = np.zeros((16, 16), dtype=np.uint8)
        bitmap[4:12, 4:12] = 255
    channel = shared_pipeline.build_psf(
        aperture, CameraDescriptor(), wavelength_nm, PX_PER_MM, mask_bitmap=bitmap
    )
    assert channel.mask.sum() > 0
    assert channel.psf.data.sum() == pytest.approx(1.0, abs=1e-9)
    assert channel.kernel.sum() == pytest.approx(1.0, abs=1e-9)
    assert np.all(channel.kernel >= 0)
