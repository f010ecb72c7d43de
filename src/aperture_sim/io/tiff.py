"""Image and array file I/O.

Float stacks (masks, PSFs) are written as 32-bit TIFF with a JSON metadata
block in the ImageDescription tag. RGBA images are read and written as
8-bit TIFF, PNG/JPEG (Pillow) or .npy.
"""

from __future__ import annotations

import json
import platform
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import numpy as np
import tifffile
from PIL import Image, UnidentifiedImageError

from obscura import __version__
from obscura.core.errors import ImageIOError

_TIFF_SUFFIXES = {".tif", ".tiff"}


def _prepare_metadata(data: np.ndarray, user_metadata: Optional[dict], pixel_mm: float) -> dict:
    meta = {
        "units": "millimeters",
        "pixel_mm": pixel_mm,
        "shape": list(data.shape),
        "dtype": "float32",
        "timestamp": datetime.now().isoformat(),
        "software": f"obscura {__version__}",
        "system": {
            "platform": platform.platform(),
            "python_version": platform.python_version(),
        },
    }
    if user_metadata:
        for key, value in user_metadata.items():
            if key not in meta:
                meta[key] = value
    return meta


def write_tiff(
    filename: Union[str, Path],
    data: np.ndarray,
    metadata: Optional[dict] = None,
    pixel_mm: float = 1.0,
) -> None:
    """Write a float32 stack with embedded JSON metadata.

    Args:
        filename: Output filename
        data: Real array, shape (ny, nx) or (nz, ny, nx)
        metadata: Additional metadata (wavelengths, grid, aperture)
        pixel_mm: Sampling pitch in millimeters
    """
    filename = Path(filename)
    data = np.asarray(data)
    if np.iscomplexobj(data):
        raise ImageIOError("write_tiff stores real data; pass |E|^2 or split real/imag")
    stack = data.astype(np.float32)
    if stack.ndim == 2:
        stack = stack[np.newaxis, ...]
    if stack.ndim != 3:
        raise ImageIOError(f"Unsupported data dimensions: {data.ndim}")

    meta = _prepare_metadata(stack, metadata, pixel_mm)
    filename.parent.mkdir(parents=True, exist_ok=True)
    # Resolution in pixels per centimeter
    resolution = (10.0 / pixel_mm, 10.0 / pixel_mm)
    tifffile.imwrite(
        filename,
        stack,
        dtype=np.float32,
        resolution=resolution,
        resolutionunit="CENTIMETER",
        photometric="minisblack",
        description=json.dumps(meta, indent=2, default=str),
        metadata=None,
    )


def read_tiff(filename: Union[str, Path]) -> tuple[np.ndarray, dict]:
    """Read a TIFF written by `write_tiff`.

    Returns:
        Tuple of (data array, metadata dict)
    """
    filename = Path(filename)
    if not filename.exists():
        raise ImageIOError(f"File not found: {filename}")
    with tifffile.TiffFile(filename) as tif:
        data = tif.asarray()
        metadata: dict = {}
        description = tif.pages[0].description
        if description:
            try:
                metadata = json.loads(description)
            except json.JSONDecodeError:
                metadata = {"description": description}
    return data, metadata


def as_rgba(image: np.ndarray) -> np.ndarray:
    """Coerce gray, RGB or RGBA pixel data to uint8 RGBA (H, W, 4)."""
    img = np.asarray(image)
    if img.dtype != np.uint8:
        if np.issubdtype(img.dtype, np.floating) and img.size and float(np.nanmax(img)) <= 1.0:
            img = img * 255.0
        img = np.clip(np.rint(np.nan_to_num(img.astype(np.float64))), 0, 255).astype(np.uint8)
    if img.ndim == 2:
        img = img[..., np.newaxis]
    if img.ndim != 3 or img.shape[2] not in (1, 2, 3, 4):
        raise ImageIOError(f"Cannot interpret image of shape {image.shape} as RGBA")

    channels = img.shape[2]
    out = np.empty(img.shape[:2] + (4,), dtype=np.uint8)
    if channels in (1, 2):
        out[..., :3] = img[..., :1]
    else:
        out[..., :3] = img[..., :3]
    if channels in (2, 4):
        out[..., 3] = img[..., -1]
    else:
        out[..., 3] = 255
    return out


def _read_pixels(filename: Path) -> np.ndarray:
    if not filename.exists():
        raise ImageIOError(f"Image not found: {filename}")
    suffix = filename.suffix.lower()
    if suffix in _TIFF_SUFFIXES:
        return tifffile.imread(filename)
    if suffix == ".npy":
        return np.load(filename, allow_pickle=False)
    try:
        with Image.open(filename) as img:
            if img.mode not in ("L", "LA", "RGB", "RGBA"):
                img = img.convert("RGBA")
            return np.array(img)
    except UnidentifiedImageError as e:
        raise ImageIOError(f"Unrecognized image format: {filename}") from e


def read_rgba(filename: Union[str, Path]) -> np.ndarray:
    """Load a source image as uint8 RGBA."""
    return as_rgba(_read_pixels(Path(filename)))


def write_rgba(filename: Union[str, Path], image: np.ndarray) -> None:
    """Save a uint8 RGBA image; TIFF via tifffile, .npy raw, anything else via Pillow."""
    filename = Path(filename)
    filename.parent.mkdir(parents=True, exist_ok=True)
    rgba = as_rgba(image)
    suffix = filename.suffix.lower()
    if suffix in _TIFF_SUFFIXES:
        tifffile.imwrite(filename, rgba, photometric="rgb")
    elif suffix == ".npy":
        np.save(filename, rgba)
    else:
        Image.fromarray(rgba).save(filename)


def load_mask_bitmap(filename: Union[str, Path]) -> np.ndarray:
    """Load a custom-aperture bitmap as uint8 (H, W) or (H, W, C) pixels.

    Thresholding happens at rasterization time, where the aperture's
    threshold and invert settings are known.
    """
    pixels = _read_pixels(Path(filename))
    if pixels.ndim == 3 and pixels.shape[2] in (2, 4):
        pixels = pixels[..., :-1]
    if pixels.ndim == 3 and pixels.shape[2] == 1:
        pixels = pixels[..., 0]
    if pixels.dtype != np.uint8:
        return as_rgba(pixels)[..., :3]
    return pixels


__all__ = [
    "write_tiff",
    "read_tiff",
    "as_rgba",
    "read_rgba",
    "write_rgba",
    "load_mask_bitmap",
]
