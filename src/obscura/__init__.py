"""Aperture imaging simulation front end.

Simulate how light passing through pinholes, zone plates, photon sieves and
other apertures forms an image. This package holds configuration, logging and
the command line; the optics live in `aperture_sim`.
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "core",
]
