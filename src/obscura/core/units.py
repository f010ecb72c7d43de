"""Unit conversion utilities for aperture simulation.

All internal lengths are millimeters. Wavelengths are accepted in nanometers
at the configuration boundary and converted here.
"""

import math

NM_PER_MM = 1.0e6


def nm_to_mm(value: float | int) -> float:
    """Convert nanometers to millimeters."""
    return float(value) / NM_PER_MM


def deg_to_rad(value: float | int) -> float:
    """Convert degrees to radians."""
    return float(value) * math.pi / 180.0


def rad_to_deg(value: float | int) -> float:
    """Convert radians to degrees."""
    return float(value) * 180.0 / math.pi


__all__ = [
    "NM_PER_MM",
    "nm_to_mm",
    "deg_to_rad",
    "rad_to_deg",
]
