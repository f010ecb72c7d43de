"""Interchangeable FFT backends.

Both backends expose the same small surface (`asarray`, `to_numpy`, `fft2`,
`fftshift`, `ifftshift`, `pad_to`) so the propagator and the frequency-domain
convolver are written once. The numpy backend runs the in-house radix-2
transform; the torch backend runs `torch.fft` on CPU or CUDA with the same
unnormalized-forward / 1/N-inverse convention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import torch

from obscura.core.errors import BackendError

from ..core.precision import enforce_device_precision, get_precision_dtype
from . import fft as radix2

logger = logging.getLogger(__name__)


class NumpyBackend:
    """Reference CPU backend built on the radix-2 transform."""

    name = "numpy"

    def asarray(self, array: np.ndarray) -> np.ndarray:
        return np.asarray(array, dtype=np.complex128)

    def to_numpy(self, array: Any) -> np.ndarray:
        return np.array(array, copy=True)

    def fft2(self, array: np.ndarray, inverse: bool = False) -> np.ndarray:
        ny, nx = array.shape[-2:]
        if not (radix2.is_power_of_two(ny) and radix2.is_power_of_two(nx)):
            raise BackendError(f"Grid {ny}x{nx} is not a power of two")
        return radix2.fft2(array, inverse=inverse)

    def fftshift(self, array: np.ndarray) -> np.ndarray:
        return radix2.fftshift(array)

    def ifftshift(self, array: np.ndarray) -> np.ndarray:
        return radix2.ifftshift(array)

    def pad_to(
        self, array: np.ndarray, shape: tuple[int, int], resolution: tuple[int, int]
    ) -> np.ndarray:  # noqa: ARG002 - resolution only matters for cached contexts
        out = np.zeros(shape, dtype=np.complex128)
        out[: array.shape[0], : array.shape[1]] = array
        return out

    def close(self) -> None:
        return None


@dataclass
class AcceleratorContext:
    """Device-side workspace reused across requests of one output resolution."""

    resolution: tuple[int, int]
    device: torch.device
    workspaces: dict[tuple[int, int], torch.Tensor] = field(default_factory=dict)

    def workspace(self, shape: tuple[int, int]) -> torch.Tensor:
        buf = self.workspaces.get(shape)
        if buf is None:
            dtype = get_precision_dtype(self.device, is_complex=True)
            buf = torch.zeros(shape, dtype=dtype, device=self.device)
            self.workspaces[shape] = buf
        return buf

    def teardown(self) -> None:
        self.workspaces.clear()
        if self.device.type == "cuda":
            torch.cuda.empty_cache()


class TorchBackend:
    """Accelerated backend; the context is created lazily per resolution."""

    name = "torch"

    def __init__(self, device: str | torch.device = "cpu"):
        self.device = torch.device(device)
        if self.device.type == "cuda" and not torch.cuda.is_available():
            raise BackendError("CUDA requested but not available")
        self._context: AcceleratorContext | None = None
        logger.info(f"Torch backend initialized on {self.device}")

    @property
    def context(self) -> AcceleratorContext | None:
        return self._context

    def context_for(self, resolution: tuple[int, int]) -> AcceleratorContext:
        """Return the cached context, rebuilding it when the resolution changes."""
        if self._context is not None and self._context.resolution != resolution:
            logger.debug(
                f"Resolution changed {self._context.resolution} -> {resolution}, "
                "tearing down accelerator context"
            )
            self._context.teardown()
            self._context = None
        if self._context is None:
            self._context = AcceleratorContext(resolution=resolution, device=self.device)
        return self._context

    def asarray(self, array: np.ndarray) -> torch.Tensor:
        tensor = torch.as_tensor(np.asarray(array, dtype=np.complex128))
        return enforce_device_precision(tensor, self.device)

    def to_numpy(self, array: torch.Tensor) -> np.ndarray:
        return array.detach().cpu().numpy().astype(np.complex128)

    def fft2(self, array: torch.Tensor, inverse: bool = False) -> torch.Tensor:
        if inverse:
            return torch.fft.ifft2(array)
        return torch.fft.fft2(array)

    def fftshift(self, array: torch.Tensor) -> torch.Tensor:
        return torch.fft.fftshift(array, dim=(-2, -1))

    def ifftshift(self, array: torch.Tensor) -> torch.Tensor:
        return torch.fft.ifftshift(array, dim=(-2, -1))

    def pad_to(
        self, array: np.ndarray, shape: tuple[int, int], resolution: tuple[int, int]
    ) -> torch.Tensor:
        buf = self.context_for(resolution).workspace(shape)
        buf.zero_()
        buf[: array.shape[0], : array.shape[1]] = self.asarray(array)
        return buf

    def close(self) -> None:
        if self._context is not None:
            self._context.teardown()
            self._context = None


_BACKENDS = {
    "numpy": NumpyBackend,
    "torch": TorchBackend,
}


def get_backend(name: str, device: str = "cpu"):  # type: ignore[no-untyped-def]
    """Instantiate a backend by key."""
    key = str(getattr(name, "value", name)).strip().lower()
    if key not in _BACKENDS:
        raise BackendError(f"Unknown backend: {name}")
    if key == "torch":
        return TorchBackend(device)
    return NumpyBackend()


__all__ = [
    "NumpyBackend",
    "TorchBackend",
    "AcceleratorContext",
    "get_backend",
]
