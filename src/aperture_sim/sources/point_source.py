"""Synthetic point-source scene for inspecting a PSF through the full pipeline."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

POINT_SOURCE_SIZE = 1200
POINT_SOURCE_DIAMETER_MM = 0.15
# A tiny disc is too faint at unit exposure to show the diffraction halo
POINT_SOURCE_GAIN = 50.0


@dataclass
class PointSource:
    """White disc on black, centred on the sensor.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        diameter_mm: Disc diameter on the sensor in mm
        gain: Exposure multiplier to use with this scene
    """

    width: int = POINT_SOURCE_SIZE
    height: int = POINT_SOURCE_SIZE
    diameter_mm: float = POINT_SOURCE_DIAMETER_MM
    gain: float = POINT_SOURCE_GAIN

    def render(self, sensor_width_mm: float) -> np.ndarray:
        """uint8 RGBA (height, width, 4) image; disc radius at least one pixel."""
        px_per_mm = self.width / sensor_width_mm
        radius = max(1.0, self.diameter_mm / 2.0 * px_per_mm)
        y, x = np.mgrid[0 : self.height, 0 : self.width]
        disc = (x - self.width / 2.0) ** 2 + (y - self.height / 2.0) ** 2 <= radius * radius

        image = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        image[disc, :3] = 255
        image[..., 3] = 255
        return image


__all__ = ["POINT_SOURCE_GAIN", "PointSource"]
