"""End-to-end tests for the simulation pipeline."""

import numpy as np
import pytest

from aperture_sim.core.pipeline import (
    CANCELLED,
    RGB_WAVELENGTHS_NM,
    CancellationToken,
    SimulationPipeline,
    SimulationRequest,
    wavelengths_for,
)
from aperture_sim.sources.point_source import PointSource
from obscura.core.config import (
    CameraDescriptor,
    Pinhole,
    SimulationConfig,
    SimulationOptions,
    Slit,
)
from obscura.core.errors import SimulationCancelled


def _source(height: int = 48, width: int = 64, level: int = 128) -> np.ndarray:
    image = np.full((height, width, 4), level, dtype=np.uint8)
    image[..., 3] = 255
    return image


def _request(source=None, aperture=None, **options) -> SimulationRequest:  # type: ignore[no-untyped-def]
    return SimulationRequest(
        aperture=aperture or Pinhole(),
        camera=CameraDescriptor(),
        source=_source() if source is None else source,
        options=SimulationOptions(**options),
    )


@pytest.fixture()
def pipeline():  # type: ignore[no-untyped-def]
    p = SimulationPipeline()
    yield p
    p.close()


def test_run_returns_rgba(pipeline) -> None:
    response = pipeline.run(_request())
    assert response.success, response.error
    assert response.error is None
    image = response.image
    assert image.shape == (48, 64, 4)
    assert image.dtype == np.uint8
    np.testing.assert_array_equal(image[..., 3], 255)


def test_uniform_source_stays_uniform(pipeline) -> None:
    response = pipeline.run(_request(vignetting=False))
    rgb = response.image[..., :3].astype(int)
    assert rgb.max() - rgb.min() <= 1


def test_black_source_stays_black(pipeline) -> None:
    response = pipeline.run(_request(source=_source(level=0)))
    np.testing.assert_array_equal(response.image[..., :3], 0)


def test_vignetting_darkens_corners(pipeline) -> None:
    response = pipeline.run(_request(source=_source(level=200)))
    image = response.image.astype(int)
    assert image[0, 0, 1] < image[24, 32, 1]


def test_monochrome_channels_match(pipeline) -> None:
    source = _source()
    source[20:28, 28:36, :3] = 255
    response = pipeline.run(_request(source=source, polychromatic=False))
    image = response.image
    np.testing.assert_array_equal(image[..., 0], image[..., 1])
    np.testing.assert_array_equal(image[..., 1], image[..., 2])


def test_seeded_noise_is_deterministic(pipeline) -> None:
    request = _request(noise_seed=3)
    request.camera = CameraDescriptor(iso=3200.0)
    a = pipeline.run(request).image
    b = pipeline.run(request).image
    np.testing.assert_array_equal(a, b)


def test_parallel_channels_match_sequential(pipeline) -> None:
    source = PointSource(width=64, height=48).render(35.9)
    a = pipeline.run(_request(source=source, aperture=Slit()))
    b = pipeline.run(_request(source=source, aperture=Slit(), parallel_channels=True))
    np.testing.assert_array_equal(a.image, b.image)


def test_processing_width_and_restore(pipeline) -> None:
    source = _source(64, 96)
    small = pipeline.run(_request(source=source, processing_width=32))
    assert small.image.shape == (21, 32, 4)
    restored = pipeline.run(_request(source=source, processing_width=32, restore_size=True))
    assert restored.image.shape == (64, 96, 4)


def test_geometric_mode(pipeline) -> None:
    channel = pipeline.build_psf(
        Pinhole(diameter=1.0),
        CameraDescriptor(),
        550.0,
        10.0,
        SimulationOptions(render_diffraction=False),
    )
    np.testing.assert_allclose(channel.psf.data, channel.mask / channel.mask.sum())
    assert channel.kernel.sum() == pytest.approx(1.0)


def test_build_psf_products(pipeline) -> None:
    channel = pipeline.build_psf(Pinhole(), CameraDescriptor(), 540.0, 1.8)
    assert channel.wavelength_nm == 540.0
    assert channel.mask.shape == (channel.grid.n, channel.grid.n)
    assert channel.psf.data.sum() == pytest.approx(1.0)
    assert channel.kernel.shape[0] % 2 == 1


def test_transfer_kernels_reused_across_requests(pipeline) -> None:
    options = SimulationOptions()
    propagator = pipeline.propagator_for(options)
    assert pipeline.propagator_for(options) is propagator

    first = [pipeline.build_psf(Pinhole(), CameraDescriptor(), wl, 1.8, options) for wl in RGB_WAVELENGTHS_NM]
    assert propagator.misses == 3
    assert propagator.hits == 0

    second = [pipeline.build_psf(Pinhole(), CameraDescriptor(), wl, 1.8, options) for wl in RGB_WAVELENGTHS_NM]
    assert propagator.misses == 3
    assert propagator.hits == 3
    for a, b in zip(first, second):
        np.testing.assert_array_equal(a.psf.data, b.psf.data)


def test_invalid_source_reported(pipeline) -> None:
    response = pipeline.run(_request(source=np.zeros((8, 8, 3), dtype=np.uint8)))
    assert not response.success
    assert response.image is None
    assert response.error.startswith("PhysicsError")


def test_sampling_failure_reported(pipeline) -> None:
    response = pipeline.run(_request(aperture=Pinhole(diameter=0.0)))
    assert not response.success
    assert response.error.startswith("SamplingError")


def test_non_finite_exposure_reported(pipeline) -> None:
    request = _request()
    request.exposure = float("inf")
    response = pipeline.run(request)
    assert not response.success
    assert "finite" in response.error


def test_unexpected_exception_reported(pipeline) -> None:
    request = _request()
    request.exposure = "1.0"
    response = pipeline.run(request)
    assert not response.success
    assert response.image is None
    assert response.error.startswith("TypeError")


def test_cancelled_request(pipeline) -> None:
    token = CancellationToken()
    token.cancel()
    response = pipeline.run(_request(), token)
    assert not response.success
    assert response.error == CANCELLED


def test_token_raises_once_cancelled() -> None:
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()
    assert token.cancelled
    with pytest.raises(SimulationCancelled):
        token.raise_if_cancelled()


def test_torch_backend_matches_numpy(pipeline) -> None:
    source = PointSource(width=64, height=48).render(35.9)
    a = pipeline.run(_request(source=source, convolution="frequency"))
    b = pipeline.run(_request(source=source, convolution="frequency", backend="torch"))
    assert b.success, b.error
    assert np.abs(a.image.astype(int) - b.image.astype(int)).max() <= 1


def test_request_from_config() -> None:
    config = SimulationConfig(exposure=2.0)
    request = SimulationRequest.from_config(config, _source(), exposure_gain=50.0)
    assert request.exposure == 100.0
    assert request.aperture == config.aperture


def test_wavelength_selection() -> None:
    camera = CameraDescriptor(wavelength_nm=600.0)
    assert wavelengths_for(camera, SimulationOptions()) == RGB_WAVELENGTHS_NM
    assert wavelengths_for(camera, SimulationOptions(polychromatic=False)) == (600.0,)


def test_point_source_render() -> None:
    image = PointSource(width=100, height=80, diameter_mm=1.0).render(10.0)
    assert image.shape == (80, 100, 4)
    assert image[40, 50, 0] == 255
    assert image[0, 0, 0] == 0
    np.testing.assert_array_equal(image[..., 3], 255)
