"""Tests for the numpy and torch FFT backends."""

import numpy as np
import pytest
import torch

from aperture_sim.core.precision import enforce_device_precision, get_precision_dtype
from aperture_sim.prop.backends import NumpyBackend, TorchBackend, get_backend
from obscura.core.errors import BackendError


def _field(n: int = 64) -> np.ndarray:
    rng = np.random.default_rng(3)
    return rng.standard_normal((n, n)) + 1j * rng.standard_normal((n, n))


def test_numpy_backend_matches_numpy_fft() -> None:
    xp = NumpyBackend()
    x = _field()
    np.testing.assert_allclose(xp.to_numpy(xp.fft2(xp.asarray(x))), np.fft.fft2(x), atol=1e-9)


def test_numpy_backend_rejects_odd_grid() -> None:
    with pytest.raises(BackendError):
        NumpyBackend().fft2(np.ones((48, 48), dtype=np.complex128))


def test_torch_cpu_parity_with_numpy() -> None:
    x = _field()
    a = NumpyBackend()
    b = TorchBackend("cpu")
    fa = a.to_numpy(a.fftshift(a.fft2(a.asarray(x))))
    fb = b.to_numpy(b.fftshift(b.fft2(b.asarray(x))))
    np.testing.assert_allclose(fa, fb, atol=1e-9)
    back = b.to_numpy(b.fft2(b.ifftshift(b.asarray(fb)), inverse=True))
    np.testing.assert_allclose(back, x, atol=1e-10)


def test_pad_to_places_array_top_left() -> None:
    small = np.arange(9.0).reshape(3, 3)
    for xp in (NumpyBackend(), TorchBackend("cpu")):
        padded = xp.to_numpy(xp.pad_to(small, (8, 8), (3, 3)))
        assert padded.shape == (8, 8)
        np.testing.assert_array_equal(padded[:3, :3].real, small)
        assert np.count_nonzero(padded[3:, :]) == 0


def test_torch_context_reused_per_resolution() -> None:
    backend = TorchBackend("cpu")
    ctx = backend.context_for((64, 96))
    assert backend.context_for((64, 96)) is ctx
    buf = ctx.workspace((128, 128))
    assert ctx.workspace((128, 128)) is buf

    other = backend.context_for((32, 32))
    assert other is not ctx
    assert ctx.workspaces == {}
    backend.close()
    assert backend.context is None


def test_get_backend() -> None:
    assert isinstance(get_backend("numpy"), NumpyBackend)
    assert isinstance(get_backend("TORCH", "cpu"), TorchBackend)
    with pytest.raises(BackendError, match="Unknown backend"):
        get_backend("fftw")


def test_cpu_precision_is_double() -> None:
    cpu = torch.device("cpu")
    assert get_precision_dtype(cpu) == torch.complex128
    assert get_precision_dtype(cpu, is_complex=False) == torch.float64
    t = enforce_device_precision(torch.zeros(4, dtype=torch.complex64), cpu)
    assert t.dtype == torch.complex128


@pytest.mark.gpu
def test_cuda_backend_single_precision() -> None:
    if not torch.cuda.is_available():
        pytest.skip("CUDA not available")
    backend = TorchBackend("cuda")
    x = _field()
    out = backend.fft2(backend.asarray(x))
    assert out.dtype == torch.complex64
    np.testing.assert_allclose(backend.to_numpy(out), np.fft.fft2(x), rtol=1e-4, atol=1e-3)


def test_cuda_unavailable_raises() -> None:
    if torch.cuda.is_available():
        pytest.skip("CUDA is available")
    with pytest.raises(BackendError, match="CUDA"):
        TorchBackend("cuda")
