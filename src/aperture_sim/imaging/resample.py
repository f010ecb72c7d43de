"""Image resizing with scipy.ndimage (bilinear)."""

from __future__ import annotations

import numpy as np
from scipy import ndimage


def resize_to(image: np.ndarray, height: int, width: int) -> np.ndarray:
    """Bilinear resize of an (H, W, C) float image to (height, width, C)."""
    if image.shape[0] == height and image.shape[1] == width:
        return np.array(image, copy=True)
    factors = (height / image.shape[0], width / image.shape[1], 1.0)
    out = ndimage.zoom(np.asarray(image, dtype=np.float64), factors, order=1, mode="nearest")
    # zoom rounds the output shape; pin it to the requested size
    if out.shape[0] != height or out.shape[1] != width:
        out = out[:height, :width]
        out = np.pad(
            out,
            ((0, height - out.shape[0]), (0, width - out.shape[1]), (0, 0)),
            mode="edge",
        )
    return out


def downsample_to_width(image: np.ndarray, max_width: int) -> np.ndarray:
    """Shrink images wider than `max_width`, keeping the aspect ratio."""
    height, width = image.shape[:2]
    if width <= max_width:
        return image
    new_height = max(1, int(round(height * max_width / width)))
    return resize_to(image, new_height, max_width)


__all__ = ["resize_to", "downsample_to_width"]
