"""Aperture-sim package root.

This package provides the aperture rasterizer, Fourier propagation backends,
PSF recording, convolution, radiometric post-processing, the simulation
pipeline and its background worker, metrics, validation cases, and TIFF I/O.
"""

__all__ = [
    "core",
    "components",
    "prop",
    "recorders",
    "imaging",
    "sources",
    "runtime",
    "metrics",
    "validation",
    "io",
]
