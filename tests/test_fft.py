"""Tests for the radix-2 transform against numpy.fft."""

import numpy as np
import pytest

from aperture_sim.prop import fft as radix2
from obscura.core.errors import BackendError


@pytest.mark.parametrize("n", [1, 2, 8, 64, 256])
def test_fft_matches_numpy(n: int) -> None:
    rng = np.random.default_rng(n)
    x = rng.standard_normal(n) + 1j * rng.standard_normal(n)
    np.testing.assert_allclose(radix2.fft(x), np.fft.fft(x), atol=1e-9)


def test_inverse_matches_numpy() -> None:
    rng = np.random.default_rng(1)
    x = rng.standard_normal(128) + 1j * rng.standard_normal(128)
    np.testing.assert_allclose(radix2.fft(x, inverse=True), np.fft.ifft(x), atol=1e-12)


def test_fft2_rectangular_matches_numpy() -> None:
    rng = np.random.default_rng(2)
    x = rng.standard_normal((16, 32)) + 1j * rng.standard_normal((16, 32))
    np.testing.assert_allclose(radix2.fft2(x), np.fft.fft2(x), atol=1e-9)
    np.testing.assert_allclose(radix2.fft2(x, inverse=True), np.fft.ifft2(x), atol=1e-12)


def test_fft2_real_input_promoted_to_complex() -> None:
    x = np.ones((8, 8))
    out = radix2.fft2(x)
    assert out.dtype == np.complex128
    assert out[0, 0] == pytest.approx(64.0)
    assert np.abs(out).sum() == pytest.approx(64.0)


def test_shifts_match_numpy() -> None:
    x = np.arange(64.0).reshape(8, 8)
    np.testing.assert_array_equal(radix2.fftshift(x), np.fft.fftshift(x))
    np.testing.assert_array_equal(radix2.ifftshift(x), np.fft.ifftshift(x))
    np.testing.assert_array_equal(radix2.ifftshift(radix2.fftshift(x)), x)


def test_non_power_of_two_rejected() -> None:
    with pytest.raises(BackendError, match="power of two"):
        radix2.fft(np.ones(12))


def test_power_of_two_helpers() -> None:
    assert radix2.is_power_of_two(1)
    assert radix2.is_power_of_two(1024)
    assert not radix2.is_power_of_two(0)
    assert not radix2.is_power_of_two(96)
    assert radix2.next_power_of_two(0) == 1
    assert radix2.next_power_of_two(5) == 8
    assert radix2.next_power_of_two(8) == 8
    assert radix2.next_power_of_two(1025) == 2048


def test_bit_reverse_indices() -> None:
    np.testing.assert_array_equal(radix2.bit_reverse_indices(8), [0, 4, 2, 6, 1, 5, 3, 7])
