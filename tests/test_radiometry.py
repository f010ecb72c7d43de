"""Tests for vignetting, sensor noise, tone mapping and gamma."""

import numpy as np
import pytest

from aperture_sim.imaging.radiometry import (
    aces_tonemap,
    apply_sensor_noise,
    apply_vignetting,
    cos4_falloff,
    gamma_decode,
    gamma_encode,
    post_process,
    to_linear_rgba,
)
from aperture_sim.imaging.resample import downsample_to_width, resize_to


def _flat(height: int = 20, width: int = 30, level: float = 0.5) -> np.ndarray:
    image = np.full((height, width, 4), level)
    image[..., 3] = 1.0
    return image


def test_cos4_falloff() -> None:
    falloff = cos4_falloff(20, 30, 50.0, 36.0)
    assert falloff[10, 15] == 1.0
    assert falloff[0, 0] < falloff[10, 0] < 1.0
    # Corner of a 36 mm wide sensor at f = 50 mm
    r2 = 18.0**2 + 12.0**2
    assert falloff[0, 0] == pytest.approx((2500.0 / (2500.0 + r2)) ** 2)


def test_vignetting_leaves_alpha() -> None:
    out = apply_vignetting(_flat(), 20.0, 36.0)
    assert out[0, 0, 0] < 0.5
    np.testing.assert_array_equal(out[..., 3], 1.0)


def test_no_noise_at_base_iso() -> None:
    image = _flat()
    np.testing.assert_array_equal(apply_sensor_noise(image, 100.0), image)


def test_noise_amplitude_and_independence() -> None:
    image = _flat(64, 64)
    out = apply_sensor_noise(image, 3200.0, rng=np.random.default_rng(1))
    delta = out[..., :3] - image[..., :3]
    half_width = 15.0 / 255.0 / 2.0
    assert np.abs(delta).max() <= half_width
    assert np.abs(delta).max() > 0.5 * half_width
    assert not np.allclose(delta[..., 0], delta[..., 1])
    np.testing.assert_array_equal(out[..., 3], 1.0)


def test_noise_skips_transparent_and_clamps() -> None:
    image = np.zeros((32, 32, 4))
    image[:16, :, 3] = 1.0
    out = apply_sensor_noise(image, 6400.0, rng=np.random.default_rng(2))
    np.testing.assert_array_equal(out[16:, :, :3], 0.0)
    assert out.min() >= 0.0
    assert out[:16, :, :3].max() > 0.0


def test_seeded_noise_is_reproducible() -> None:
    a = apply_sensor_noise(_flat(), 1600.0, rng=np.random.default_rng(5))
    b = apply_sensor_noise(_flat(), 1600.0, rng=np.random.default_rng(5))
    np.testing.assert_array_equal(a, b)


def test_aces_curve() -> None:
    x = np.linspace(0.0, 16.0, 200)
    y = aces_tonemap(x)
    assert y[0] == 0.0
    assert y[-1] == 1.0
    assert np.all(np.diff(y) >= 0)


def test_gamma_encode_inverts_decode() -> None:
    values = np.arange(256, dtype=np.uint8)
    np.testing.assert_array_equal(gamma_encode(gamma_decode(values)), values)
    assert gamma_encode(np.array([2.0]))[0] == 255


def test_to_linear_rgba() -> None:
    src = np.zeros((2, 2, 4), dtype=np.uint8)
    src[..., :3] = 128
    src[..., 3] = 51
    linear = to_linear_rgba(src)
    assert linear[0, 0, 0] == pytest.approx((128 / 255) ** 2.2)
    assert linear[0, 0, 3] == pytest.approx(0.2)


def test_post_process_output() -> None:
    black = np.zeros((10, 12, 4))
    out = post_process(black, 50.0, 36.0, iso=100.0)
    assert out.dtype == np.uint8
    np.testing.assert_array_equal(out[..., :3], 0)
    np.testing.assert_array_equal(out[..., 3], 255)

    bright = post_process(_flat(level=16.0), 50.0, 36.0, iso=100.0, vignetting=False)
    assert bright[..., :3].min() >= 254


def test_resize_and_downsample() -> None:
    image = _flat(40, 80)
    assert resize_to(image, 21, 33).shape == (21, 33, 4)
    small = downsample_to_width(image, 32)
    assert small.shape == (16, 32, 4)
    np.testing.assert_allclose(small[..., :3], 0.5)
    np.testing.assert_allclose(small[..., 3], 1.0)
    assert downsample_to_width(image, 100) is image
