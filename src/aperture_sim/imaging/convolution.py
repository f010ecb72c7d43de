"""Image convolution with per-channel PSF kernels.

Two interchangeable strategies share one contract: `convolve(image,
kernels, exposure)` takes a linear float RGBA image (H, W, 4) and one kernel
(shared by R, G, B) or three (R, G, B), and returns a new linear image with
exposure applied, radiance clamped to [0, hdr_ceiling] and alpha opaque.
Both treat pixels beyond the border as copies of the nearest edge pixel and
compute out(p) = sum_d psf(d) src(p - d), so a point source reproduces the
PSF.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import numpy as np

from obscura.core.config import ConvolutionMode
from obscura.core.errors import PhysicsError

from ..prop.backends import NumpyBackend
from ..prop.fft import next_power_of_two

logger = logging.getLogger(__name__)

SPARSE_THRESHOLD = 1e-5
# Auto mode picks the sparse path below this tap density or tap count
AUTO_SPARSE_DENSITY = 0.1
AUTO_SPARSE_TAPS = 64


def _channel_kernels(kernels: Sequence[np.ndarray]) -> list[np.ndarray]:
    if len(kernels) == 1:
        return [np.asarray(kernels[0], dtype=np.float64)] * 3
    if len(kernels) == 3:
        return [np.asarray(k, dtype=np.float64) for k in kernels]
    raise PhysicsError(f"Expected 1 or 3 kernels, got {len(kernels)}")


def _check_kernel(kernel: np.ndarray) -> None:
    if kernel.ndim != 2 or kernel.shape[0] != kernel.shape[1] or kernel.shape[0] % 2 == 0:
        raise PhysicsError(f"Kernel must be square with odd size, got {kernel.shape}")


class Convolver(ABC):
    """Shared post-convolution handling; subclasses convolve one channel."""

    name = "base"

    def __init__(self, hdr_ceiling: float = 16.0):
        self.hdr_ceiling = hdr_ceiling

    @abstractmethod
    def convolve_channel(self, channel: np.ndarray, kernel: np.ndarray) -> np.ndarray:
        """Convolve one (H, W) plane with an odd square kernel."""

    def convolve(
        self, image: np.ndarray, kernels: Sequence[np.ndarray], exposure: float = 1.0
    ) -> np.ndarray:
        if image.ndim != 3 or image.shape[2] != 4:
            raise PhysicsError(f"Image must be (H, W, 4) RGBA, got {image.shape}")
        per_channel = _channel_kernels(kernels)

        out = np.empty(image.shape, dtype=np.float64)
        for c, kernel in enumerate(per_channel):
            _check_kernel(kernel)
            out[..., c] = self.convolve_channel(image[..., c].astype(np.float64), kernel)

        out[..., :3] *= exposure
        np.clip(out[..., :3], 0.0, self.hdr_ceiling, out=out[..., :3])
        out[..., 3] = 1.0
        return out


class FrequencyDomainConvolver(Convolver):
    """FFT convolution on a power-of-two canvas large enough to avoid wrap-around."""

    name = "frequency"

    def __init__(self, backend: Any = None, hdr_ceiling: float = 16.0):
        super().__init__(hdr_ceiling)
        self.backend = backend if backend is not None else NumpyBackend()
        self._kernel_cache: dict[int, tuple[np.ndarray, tuple[int, int], Any]] = {}

    def _kernel_spectrum(self, kernel: np.ndarray, shape: tuple[int, int], resolution) -> Any:  # type: ignore[no-untyped-def]
        # Channels sharing one kernel object reuse its transform
        cached = self._kernel_cache.get(id(kernel))
        if cached is not None and cached[0] is kernel and cached[1] == shape:
            return cached[2]
        xp = self.backend
        spectrum = xp.fft2(xp.pad_to(kernel, shape, resolution))
        self._kernel_cache[id(kernel)] = (kernel, shape, spectrum)
        return spectrum

    def convolve_channel(self, channel: np.ndarray, kernel: np.ndarray) -> np.ndarray:
        h = kernel.shape[0] // 2
        rows, cols = channel.shape
        padded = np.pad(channel, h, mode="edge")
        shape = (next_power_of_two(rows + 4 * h), next_power_of_two(cols + 4 * h))

        xp = self.backend
        k_spec = self._kernel_spectrum(kernel, shape, (rows, cols))
        spectrum = xp.fft2(xp.pad_to(padded, shape, (rows, cols)))
        full = xp.to_numpy(xp.fft2(spectrum * k_spec, inverse=True)).real
        return full[2 * h : 2 * h + rows, 2 * h : 2 * h + cols]

    def convolve(
        self, image: np.ndarray, kernels: Sequence[np.ndarray], exposure: float = 1.0
    ) -> np.ndarray:
        self._kernel_cache.clear()
        try:
            return super().convolve(image, kernels, exposure)
        finally:
            self._kernel_cache.clear()


def sparse_taps(
    kernel: np.ndarray, threshold: float = SPARSE_THRESHOLD
) -> list[tuple[int, int, float]]:
    """(dx, dy, weight) for every tap above threshold, renormalized to the kernel sum."""
    h = kernel.shape[0] // 2
    ys, xs = np.nonzero(kernel > threshold)
    weights = kernel[ys, xs]
    kept = float(weights.sum())
    if kept > 0:
        weights = weights * (float(kernel.sum()) / kept)
    return [(int(x - h), int(y - h), float(w)) for y, x, w in zip(ys, xs, weights)]


class SparseSpatialConvolver(Convolver):
    """Direct convolution over the significant taps only."""

    name = "sparse"

    def __init__(self, hdr_ceiling: float = 16.0, threshold: float = SPARSE_THRESHOLD):
        super().__init__(hdr_ceiling)
        self.threshold = threshold

    def convolve_channel(self, channel: np.ndarray, kernel: np.ndarray) -> np.ndarray:
        h = kernel.shape[0] // 2
        rows, cols = channel.shape
        padded = np.pad(channel, h, mode="edge")
        out = np.zeros((rows, cols), dtype=np.float64)
        for dx, dy, w in sparse_taps(kernel, self.threshold):
            out += w * padded[h - dy : h - dy + rows, h - dx : h - dx + cols]
        return out


def select_strategy(
    kernels: Sequence[np.ndarray],
    mode: ConvolutionMode | str = ConvolutionMode.AUTO,
    backend: Any = None,
    hdr_ceiling: float = 16.0,
) -> Convolver:
    """Pick a convolver; auto mode goes sparse when few taps are significant."""
    mode = ConvolutionMode(mode)
    if mode == ConvolutionMode.FREQUENCY:
        return FrequencyDomainConvolver(backend, hdr_ceiling)
    if mode == ConvolutionMode.SPARSE:
        return SparseSpatialConvolver(hdr_ceiling)

    taps = max(int(np.count_nonzero(np.asarray(k) > SPARSE_THRESHOLD)) for k in kernels)
    area = max(np.asarray(k).size for k in kernels)
    density = taps / area
    use_sparse = taps <= AUTO_SPARSE_TAPS or density < AUTO_SPARSE_DENSITY
    logger.debug(
        f"Auto convolution: {taps} taps over {area} cells (density {density:.3f}) -> "
        f"{'sparse' if use_sparse else 'frequency'}"
    )
    if use_sparse:
        return SparseSpatialConvolver(hdr_ceiling)
    return FrequencyDomainConvolver(backend, hdr_ceiling)


__all__ = [
    "SPARSE_THRESHOLD",
    "Convolver",
    "FrequencyDomainConvolver",
    "SparseSpatialConvolver",
    "sparse_taps",
    "select_strategy",
]
