"""Configuration models and I/O for aperture imaging simulation.

Pydantic models for apertures, the camera, and run options with YAML/JSON I/O.
Lengths are millimeters, wavelengths nanometers, angles degrees.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


class ApertureKind(str, Enum):
    """Shape family of an aperture."""

    PINHOLE = "pinhole"
    SLIT = "slit"
    CROSS = "cross"
    SLIT_ARRAY = "slit_array"
    ZONE_PLATE = "zone_plate"
    PHOTON_SIEVE = "photon_sieve"
    ANNULAR = "annular"
    STAR = "star"
    MULTI_DOT = "multi_dot"
    RANDOM = "random"
    FIBONACCI = "fibonacci"
    FRACTAL = "fractal"
    SIERPINSKI = "sierpinski"
    URA = "ura"
    LITHO_OPC = "litho_opc"
    FREEFORM = "freeform"
    CUSTOM = "custom"
    LISSAJOUS = "lissajous"
    SPIRAL = "spiral"
    ROSETTE = "rosette"
    WAVES = "waves"
    YIN_YANG = "yin_yang"


class ZonePlateProfile(str, Enum):
    """Transmission profile of a zone plate."""

    BINARY = "binary"
    SINUSOIDAL = "sinusoidal"
    SPIRAL = "spiral"


class MultiDotPattern(str, Enum):
    """Arrangement of dots in a multi-dot aperture."""

    RING = "ring"
    LINE = "line"
    GRID = "grid"
    RANDOM = "random"
    CONCENTRIC = "concentric"


class ConvolutionMode(str, Enum):
    """Convolution strategy selection."""

    AUTO = "auto"
    FREQUENCY = "frequency"
    SPARSE = "sparse"


class BackendKind(str, Enum):
    """FFT backend used for propagation and frequency-domain convolution."""

    NUMPY = "numpy"
    TORCH = "torch"


DEFAULT_SEED = 12345


class _Aperture(BaseModel):
    """Fields shared by every aperture shape."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rotation_deg: float = Field(default=0.0, description="In-plane rotation in degrees")


class Pinhole(_Aperture):
    kind: Literal["pinhole"] = "pinhole"
    diameter: float = Field(default=0.3, description="Hole diameter in mm")


class Slit(_Aperture):
    """Single horizontal slit; `diameter` is its length."""

    kind: Literal["slit"] = "slit"
    diameter: float = Field(default=5.0, description="Slit length in mm")
    slit_width: float = Field(default=0.2, description="Slit width in mm")


class Cross(_Aperture):
    kind: Literal["cross"] = "cross"
    diameter: float = Field(default=5.0, description="Arm length in mm")
    slit_width: float = Field(default=0.2, description="Arm width in mm")


class SlitArray(_Aperture):
    """Young's slits / grating of vertical slits."""

    kind: Literal["slit_array"] = "slit_array"
    diameter: float = Field(default=5.0, description="Slit height in mm")
    slit_width: float = Field(default=0.1, description="Slit width in mm")
    count: int = Field(default=2, description="Number of slits (at least 2 are drawn)")
    spread: float = Field(default=0.5, description="Centre-to-centre slit spacing in mm")


class ZonePlate(_Aperture):
    kind: Literal["zone_plate"] = "zone_plate"
    diameter: float = Field(default=2.0, description="Outer diameter in mm")
    profile: ZonePlateProfile = Field(default=ZonePlateProfile.BINARY)
    zones: int = Field(default=10, description="Design zone count (optics summary)")


class PhotonSieve(_Aperture):
    kind: Literal["photon_sieve"] = "photon_sieve"
    diameter: float = Field(default=2.0, description="Outer diameter in mm")
    zones: int = Field(default=15, description="Zone count")
    seed: int = Field(default=DEFAULT_SEED, description="Seed for angular hole jitter")


class Annular(_Aperture):
    kind: Literal["annular"] = "annular"
    diameter: float = Field(default=1.0, description="Outer diameter in mm")
    inner_diameter: Optional[float] = Field(
        default=None, description="Inner diameter in mm (half the outer if unset)"
    )


class Star(_Aperture):
    kind: Literal["star"] = "star"
    diameter: float = Field(default=1.0, description="Tip-to-tip diameter in mm")
    inner_diameter: Optional[float] = Field(
        default=None, description="Valley diameter in mm (0.4 x outer if unset)"
    )
    spikes: int = Field(default=5)


class MultiDot(_Aperture):
    kind: Literal["multi_dot"] = "multi_dot"
    diameter: float = Field(default=0.2, description="Dot diameter in mm")
    count: int = Field(default=8)
    spread: float = Field(default=2.0, description="Pattern radius in mm")
    pattern: MultiDotPattern = Field(default=MultiDotPattern.RING)
    center_dot: bool = False
    seed: int = DEFAULT_SEED


class RandomDots(_Aperture):
    kind: Literal["random"] = "random"
    diameter: float = Field(default=0.1, description="Nominal dot diameter in mm")
    count: int = Field(default=50)
    spread: Optional[float] = Field(default=None, description="Field diameter in mm")
    seed: int = DEFAULT_SEED


class Fibonacci(_Aperture):
    kind: Literal["fibonacci"] = "fibonacci"
    diameter: float = Field(default=0.1, description="Dot diameter in mm")
    count: int = Field(default=50)
    spread: float = Field(default=2.0, description="Outer radius in mm")


class Fractal(_Aperture):
    """Sierpinski carpet."""

    kind: Literal["fractal"] = "fractal"
    spread: float = Field(default=10.0, description="Carpet side in mm")
    iteration: int = Field(default=3, description="Subdivision depth (capped at 5)")


class Sierpinski(_Aperture):
    """Sierpinski triangle."""

    kind: Literal["sierpinski"] = "sierpinski"
    spread: float = Field(default=5.0, description="Triangle side in mm")
    iteration: int = Field(default=3, description="Subdivision depth (capped at 6)")


class URA(_Aperture):
    """Uniformly redundant array coded aperture."""

    kind: Literal["ura"] = "ura"
    diameter: float = Field(default=2.0, description="Array side in mm")
    rank: int = Field(default=13, description="Prime array rank")


class LithoOPC(_Aperture):
    """Main feature flanked by two sub-resolution assist bars."""

    kind: Literal["litho_opc"] = "litho_opc"
    diameter: float = Field(default=1.0, description="Main feature width in mm")
    slit_width: Optional[float] = Field(
        default=None, description="Assist bar width in mm (0.25 x main if unset)"
    )
    spread: float = Field(default=1.0, description="Gap between feature and bars in mm")


class Freeform(_Aperture):
    """Hand-drawn stroke path in normalized [-1, 1] coordinates."""

    kind: Literal["freeform"] = "freeform"
    diameter: float = Field(default=10.0, description="Drawing extent in mm")
    brush_size: float = Field(default=0.5, description="Stroke width in mm")
    path: tuple[Optional[tuple[float, float]], ...] = Field(
        default=(), description="Points; null breaks the stroke"
    )


class CustomMask(_Aperture):
    """Imported bitmap mask."""

    kind: Literal["custom"] = "custom"
    diameter: float = Field(default=5.0, description="Mask side in mm")
    threshold: float = Field(default=128.0, description="Brightness threshold (0-255)")
    invert: bool = False


class Lissajous(_Aperture):
    kind: Literal["lissajous"] = "lissajous"
    diameter: float = Field(default=5.0)
    slit_width: float = Field(default=0.1, description="Stroke width in mm")
    freq_x: float = Field(default=3.0)
    freq_y: float = Field(default=2.0)
    delta_deg: float = Field(default=0.0, description="Phase shift in degrees")


class Spiral(_Aperture):
    kind: Literal["spiral"] = "spiral"
    diameter: float = Field(default=5.0)
    slit_width: float = Field(default=0.1, description="Stroke width in mm")
    turns: float = Field(default=3.0)
    arms: int = Field(default=1)


class Rosette(_Aperture):
    kind: Literal["rosette"] = "rosette"
    diameter: float = Field(default=5.0)
    slit_width: float = Field(default=0.1, description="Stroke width in mm")
    petals: int = Field(default=5)
    amplitude: Optional[float] = Field(
        default=None, description="Ripple amplitude in mm (0.3 x radius if unset)"
    )


class Waves(_Aperture):
    kind: Literal["waves"] = "waves"
    diameter: float = Field(default=10.0, description="Wave train width in mm")
    slit_width: float = Field(default=0.1, description="Stroke width in mm")
    slit_height: float = Field(default=2.0, description="Peak-to-peak amplitude in mm")
    count: int = Field(default=1, description="Number of periods")


class YinYang(Waves):
    kind: Literal["yin_yang"] = "yin_yang"  # type: ignore[assignment]
    inner_diameter: float = Field(default=0.2, description="Dot diameter in mm")


ApertureDescriptor = Annotated[
    Union[
        Pinhole,
        Slit,
        Cross,
        SlitArray,
        ZonePlate,
        PhotonSieve,
        Annular,
        Star,
        MultiDot,
        RandomDots,
        Fibonacci,
        Fractal,
        Sierpinski,
        URA,
        LithoOPC,
        Freeform,
        CustomMask,
        Lissajous,
        Spiral,
        Rosette,
        Waves,
        YinYang,
    ],
    Field(discriminator="kind"),
]

_aperture_adapter: TypeAdapter = TypeAdapter(ApertureDescriptor)


def parse_aperture(data: dict) -> ApertureDescriptor:
    """Validate a plain mapping into the matching aperture model."""
    return _aperture_adapter.validate_python(data)


class CameraDescriptor(BaseModel):
    """Pinhole camera body: image distance, sensor and exposure settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    focal_length_mm: float = Field(default=50.0, description="Aperture-to-sensor distance")
    sensor_width_mm: float = Field(default=35.9)
    sensor_height_mm: float = Field(default=23.9)
    wavelength_nm: float = Field(default=550.0, description="Monochrome wavelength")
    iso: float = Field(default=100.0)

    @field_validator("wavelength_nm")
    @classmethod
    def validate_wavelength(cls, v: float) -> float:
        """Validate wavelength is in reasonable range."""
        if not 100 <= v <= 2000:
            raise ValueError(f"Wavelength must be between 100 and 2000 nm, got {v}")
        return v

    @field_validator("focal_length_mm", "sensor_width_mm", "sensor_height_mm")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Camera dimensions must be positive, got {v}")
        return v

    @field_validator("iso")
    @classmethod
    def validate_iso(cls, v: float) -> float:
        if v < 1:
            raise ValueError(f"ISO must be at least 1, got {v}")
        return v


class SimulationOptions(BaseModel):
    """Rendering switches for one simulation request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    polychromatic: bool = Field(default=True, description="Render R/G/B at 640/540/460 nm")
    vignetting: bool = Field(default=True, description="Apply cosine-fourth falloff")
    render_diffraction: bool = Field(
        default=True, description="Propagate the wavefront; otherwise geometric blur only"
    )
    convolution: ConvolutionMode = Field(default=ConvolutionMode.AUTO)
    backend: BackendKind = Field(default=BackendKind.NUMPY)
    device: str = Field(default="cpu", description="Torch device for the torch backend")
    processing_width: int = Field(default=1024, description="Downsample wider sources")
    restore_size: bool = Field(default=False, description="Resize output to the source size")
    noise_seed: Optional[int] = Field(default=None, description="Seed for sensor noise")
    base_iso: float = Field(default=100.0, description="ISO at which noise starts")
    hdr_ceiling: float = Field(default=16.0, description="Upper clamp of linear radiance")
    parallel_channels: bool = Field(default=False, description="Build RGB PSFs concurrently")

    @field_validator("processing_width")
    @classmethod
    def validate_width(cls, v: int) -> int:
        if v < 16:
            raise ValueError(f"processing_width must be at least 16, got {v}")
        return v

    @field_validator("hdr_ceiling")
    @classmethod
    def validate_ceiling(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"hdr_ceiling must be positive, got {v}")
        return v


class SimulationConfig(BaseModel):
    """Complete run configuration as stored on disk."""

    model_config = ConfigDict(extra="forbid")

    aperture: ApertureDescriptor = Field(default_factory=Pinhole)
    camera: CameraDescriptor = Field(default_factory=CameraDescriptor)
    options: SimulationOptions = Field(default_factory=SimulationOptions)
    exposure: float = Field(default=1.0, description="Linear exposure multiplier")
    source_path: Optional[str] = Field(default=None, description="RGBA source image")
    mask_path: Optional[str] = Field(default=None, description="Bitmap for custom apertures")

    @field_validator("exposure")
    @classmethod
    def validate_exposure(cls, v: float) -> float:
        if not v >= 0:
            raise ValueError(f"Exposure must be non-negative, got {v}")
        return v

    @model_validator(mode="after")
    def validate_mask(self) -> SimulationConfig:
        """A bitmap only makes sense for custom apertures."""
        if self.mask_path is not None and self.aperture.kind != ApertureKind.CUSTOM:
            raise ValueError("mask_path is only valid with a 'custom' aperture")
        return self


def load_config(path: str | Path) -> SimulationConfig:
    """Load configuration from YAML or JSON file.

    Args:
        path: Path to configuration file

    Returns:
        Validated SimulationConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            data = yaml.safe_load(f)
        elif path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            content = f.read()
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)

    data = data or {}

    # Relative image paths are resolved against the config file
    for key in ("source_path", "mask_path"):
        value = data.get(key)
        if value and not Path(value).is_absolute():
            data[key] = str((path.parent / value).resolve())

    return SimulationConfig(**data)


def _dump_config(config: SimulationConfig) -> dict:
    data = config.model_dump(mode="json", exclude_unset=True)
    # The discriminator must survive even when left at its default
    if "aperture" in data:
        data["aperture"] = {"kind": ApertureKind(config.aperture.kind).value, **data["aperture"]}
    return data


def save_config(config: SimulationConfig, path: str | Path) -> None:
    """Save configuration to YAML or JSON file.

    Args:
        config: Configuration to save
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = _dump_config(config)

    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)


def round_trip_config(config: SimulationConfig) -> SimulationConfig:
    """Serialize a configuration through YAML and load it back."""
    data = _dump_config(config)
    yaml_str = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    loaded_data = yaml.safe_load(yaml_str)
    return SimulationConfig(**loaded_data)


__all__ = [
    "ApertureKind",
    "ZonePlateProfile",
    "MultiDotPattern",
    "ConvolutionMode",
    "BackendKind",
    "DEFAULT_SEED",
    "Pinhole",
    "Slit",
    "Cross",
    "SlitArray",
    "ZonePlate",
    "PhotonSieve",
    "Annular",
    "Star",
    "MultiDot",
    "RandomDots",
    "Fibonacci",
    "Fractal",
    "Sierpinski",
    "URA",
    "LithoOPC",
    "Freeform",
    "CustomMask",
    "Lissajous",
    "Spiral",
    "Rosette",
    "Waves",
    "YinYang",
    "ApertureDescriptor",
    "parse_aperture",
    "CameraDescriptor",
    "SimulationOptions",
    "SimulationConfig",
    "load_config",
    "save_config",
    "round_trip_config",
]
