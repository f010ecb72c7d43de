"""Convolution, resampling and radiometric post-processing of images."""

from .convolution import (
    FrequencyDomainConvolver,
    SparseSpatialConvolver,
    select_strategy,
)
from .radiometry import post_process

__all__ = [
    "FrequencyDomainConvolver",
    "SparseSpatialConvolver",
    "select_strategy",
    "post_process",
]
