"""Core utilities: seeded random source, precision policy and the pipeline."""

from .precision import enforce_device_precision, get_precision_dtype
from .rng import LinearCongruentialGenerator

__all__ = [
    "LinearCongruentialGenerator",
    "enforce_device_precision",
    "get_precision_dtype",
]
