"""Radix-2 Cooley-Tukey FFT used by the reference (numpy) backend.

Transforms run along the last axis with an explicit bit-reversal permutation
followed by iterative butterflies; every butterfly stage is vectorized over
all rows at once. The forward kernel is exp(-2πi kn/N) and the inverse pass
divides by N, matching `numpy.fft`.
"""

from __future__ import annotations

import numpy as np

from obscura.core.errors import BackendError


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (and >= 1)."""
    p = 1
    while p < n:
        p <<= 1
    return p


def bit_reverse_indices(n: int) -> np.ndarray:
    """Permutation that maps index i to its bit-reversed counterpart."""
    if not is_power_of_two(n):
        raise BackendError(f"FFT length must be a power of two, got {n}")
    bits = n.bit_length() - 1
    idx = np.arange(n)
    rev = np.zeros(n, dtype=np.int64)
    for b in range(bits):
        rev = (rev << 1) | ((idx >> b) & 1)
    return rev


def fft(x: np.ndarray, inverse: bool = False) -> np.ndarray:
    """1D transform along the last axis of `x`.

    Args:
        x: Real or complex array whose last dimension is a power of two
        inverse: If True, run the inverse transform (scaled by 1/N)

    Returns:
        New complex128 array of the same shape
    """
    a = np.asarray(x)
    n = a.shape[-1]
    a = a[..., bit_reverse_indices(n)].astype(np.complex128)

    sign = 1.0 if inverse else -1.0
    lead = a.shape[:-1]
    m = 2
    while m <= n:
        half = m // 2
        twiddle = np.exp(sign * 2j * np.pi * np.arange(half) / m)
        blocks = a.reshape(*lead, n // m, m)
        u = blocks[..., :half]
        t = blocks[..., half:] * twiddle
        a = np.concatenate((u + t, u - t), axis=-1).reshape(*lead, n)
        m *= 2

    if inverse:
        a /= n
    return a


def fft2(x: np.ndarray, inverse: bool = False) -> np.ndarray:
    """2D transform over the last two axes: rows first, then columns."""
    a = fft(x, inverse=inverse)
    a = fft(np.swapaxes(a, -1, -2), inverse=inverse)
    return np.ascontiguousarray(np.swapaxes(a, -1, -2))


def fftshift(x: np.ndarray) -> np.ndarray:
    """Move the zero-frequency bin to the centre of the last two axes."""
    ny, nx = x.shape[-2], x.shape[-1]
    return np.roll(x, (ny // 2, nx // 2), axis=(-2, -1))


def ifftshift(x: np.ndarray) -> np.ndarray:
    """Inverse of `fftshift` (identical for even sizes)."""
    ny, nx = x.shape[-2], x.shape[-1]
    return np.roll(x, (-(ny // 2), -(nx // 2)), axis=(-2, -1))


__all__ = [
    "is_power_of_two",
    "next_power_of_two",
    "bit_reverse_indices",
    "fft",
    "fft2",
    "fftshift",
    "ifftshift",
]
