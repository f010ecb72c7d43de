"""Sensor-side radiometry: vignetting, noise, tone mapping and gamma.

Images here are linear float RGBA arrays (H, W, 4) until `gamma_encode`
turns them into 8-bit display values.
"""

from __future__ import annotations

import numpy as np

DISPLAY_GAMMA = 2.2
# Full noise width in 8-bit units at ISO 3200
NOISE_AT_3200 = 15.0
ACES_A = 2.51
ACES_B = 0.03
ACES_C = 2.43
ACES_D = 0.59
ACES_E = 0.14


def cos4_falloff(
    height: int, width: int, focal_length_mm: float, sensor_width_mm: float
) -> np.ndarray:
    """Natural vignetting (f^2 / (f^2 + r^2))^2 for every pixel, centre at (W/2, H/2)."""
    px_per_mm = width / sensor_width_mm
    dx = (np.arange(width, dtype=np.float64) - width / 2.0) / px_per_mm
    dy = (np.arange(height, dtype=np.float64) - height / 2.0) / px_per_mm
    r2 = dy[:, None] ** 2 + dx[None, :] ** 2
    f2 = focal_length_mm * focal_length_mm
    return (f2 / (f2 + r2)) ** 2


def apply_vignetting(
    image: np.ndarray, focal_length_mm: float, sensor_width_mm: float
) -> np.ndarray:
    out = np.array(image, dtype=np.float64, copy=True)
    falloff = cos4_falloff(out.shape[0], out.shape[1], focal_length_mm, sensor_width_mm)
    out[..., :3] *= falloff[..., None]
    return out


def apply_sensor_noise(
    image: np.ndarray,
    iso: float,
    base_iso: float = 100.0,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Add uniform noise of full width (ISO / 3200) * 15 / 255 above the base ISO.

    Each color channel draws its own noise; fully transparent pixels are left
    untouched.
    """
    out = np.array(image, dtype=np.float64, copy=True)
    if iso <= base_iso:
        return out
    rng = rng if rng is not None else np.random.default_rng()
    amount = iso / 3200.0 * NOISE_AT_3200 / 255.0
    noise = (rng.random(out.shape[:2] + (3,)) - 0.5) * amount
    visible = out[..., 3] != 0
    out[..., :3][visible] += noise[visible]
    np.clip(out[..., :3], 0.0, None, out=out[..., :3])
    return out


def aces_tonemap(x: np.ndarray) -> np.ndarray:
    """Narkowicz ACES filmic curve, clamped to [0, 1]."""
    x = np.asarray(x, dtype=np.float64)
    mapped = (x * (ACES_A * x + ACES_B)) / (x * (ACES_C * x + ACES_D) + ACES_E)
    return np.clip(mapped, 0.0, 1.0)


def gamma_encode(x: np.ndarray) -> np.ndarray:
    """Linear [0, 1] values to 8-bit display values."""
    x = np.clip(np.asarray(x, dtype=np.float64), 0.0, 1.0)
    return np.clip(np.rint(x ** (1.0 / DISPLAY_GAMMA) * 255.0), 0, 255).astype(np.uint8)


def gamma_decode(values: np.ndarray) -> np.ndarray:
    """8-bit display values to linear [0, 1]."""
    return (np.asarray(values, dtype=np.float64) / 255.0) ** DISPLAY_GAMMA


def to_linear_rgba(image: np.ndarray) -> np.ndarray:
    """uint8 RGBA source to linear float RGBA (alpha scaled to [0, 1])."""
    out = np.empty(image.shape, dtype=np.float64)
    out[..., :3] = gamma_decode(image[..., :3])
    out[..., 3] = image[..., 3] / 255.0
    return out


def post_process(
    image: np.ndarray,
    focal_length_mm: float,
    sensor_width_mm: float,
    iso: float,
    vignetting: bool = True,
    base_iso: float = 100.0,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Vignetting, noise, tone map and gamma encode in that order.

    Returns:
        uint8 RGBA image with opaque alpha
    """
    out = image
    if vignetting:
        out = apply_vignetting(out, focal_length_mm, sensor_width_mm)
    out = apply_sensor_noise(out, iso, base_iso=base_iso, rng=rng)

    final = np.empty(out.shape, dtype=np.uint8)
    final[..., :3] = gamma_encode(aces_tonemap(out[..., :3]))
    final[..., 3] = 255
    return final


__all__ = [
    "cos4_falloff",
    "apply_vignetting",
    "apply_sensor_noise",
    "aces_tonemap",
    "gamma_encode",
    "gamma_decode",
    "to_linear_rgba",
    "post_process",
]
