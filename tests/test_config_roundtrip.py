"""Test configuration round-trip serialization."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from obscura.core.config import (
    Annular,
    ApertureKind,
    CameraDescriptor,
    CustomMask,
    Freeform,
    MultiDot,
    Pinhole,
    SimulationConfig,
    SimulationOptions,
    ZonePlate,
    load_config,
    parse_aperture,
    round_trip_config,
    save_config,
)


def test_default_config():
    """Test the default config is a pinhole camera."""
    config = SimulationConfig()
    assert config.aperture.kind == ApertureKind.PINHOLE
    assert config.camera.focal_length_mm == 50.0
    assert config.options.polychromatic is True
    assert config.exposure == 1.0


def test_discriminated_aperture_parsing():
    """Test the kind field selects the aperture model."""
    plate = parse_aperture({"kind": "zone_plate", "diameter": 3.0, "profile": "spiral"})
    assert isinstance(plate, ZonePlate)
    assert plate.profile == "spiral"

    with pytest.raises(ValidationError):
        parse_aperture({"kind": "hexagon"})
    with pytest.raises(ValidationError):
        parse_aperture({"kind": "pinhole", "spikes": 5})


def test_yaml_round_trip():
    """Test YAML serialization round-trip."""
    config = SimulationConfig(
        aperture=MultiDot(count=12, spread=1.5, pattern="concentric", center_dot=True),
        camera=CameraDescriptor(focal_length_mm=35.0, iso=800.0),
        options=SimulationOptions(polychromatic=False, convolution="sparse", noise_seed=9),
        exposure=1.5,
    )
    reloaded = round_trip_config(config)
    assert reloaded.model_dump() == config.model_dump()
    assert reloaded.aperture.pattern == "concentric"
    assert reloaded.options.noise_seed == 9


def test_freeform_path_survives_round_trip():
    """Test stroke breaks are preserved."""
    config = SimulationConfig(
        aperture=Freeform(path=((0.0, 0.0), (0.5, 0.5), None, (-0.5, 0.2)))
    )
    reloaded = round_trip_config(config)
    assert reloaded.aperture.path == ((0.0, 0.0), (0.5, 0.5), None, (-0.5, 0.2))


def test_yaml_and_json_file_io(tmp_path: Path):
    """Test saving and loading from YAML and JSON files."""
    config = SimulationConfig(aperture=Annular(diameter=2.0, inner_diameter=1.2))
    yaml_path = tmp_path / "scene.yaml"
    json_path = tmp_path / "scene.json"
    save_config(config, yaml_path)
    save_config(config, json_path)

    from_yaml = load_config(yaml_path)
    from_json = load_config(json_path)
    assert from_yaml.model_dump() == from_json.model_dump()
    assert from_yaml.aperture.inner_diameter == 1.2
    assert json.loads(json_path.read_text())["aperture"]["kind"] == "annular"


def test_relative_paths_resolved(tmp_path: Path):
    """Test image paths are resolved against the config file."""
    cfg = tmp_path / "configs" / "scene.yaml"
    cfg.parent.mkdir()
    cfg.write_text(
        """
aperture:
  kind: custom
  diameter: 4.0
source_path: ../images/source.png
mask_path: mask.png
"""
    )
    config = load_config(cfg)
    assert Path(config.source_path) == (tmp_path / "images" / "source.png").resolve()
    assert Path(config.mask_path) == (tmp_path / "configs" / "mask.png").resolve()
    assert isinstance(config.aperture, CustomMask)


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yaml")


def test_validation_errors():
    """Test that validation catches invalid configs."""
    with pytest.raises(ValueError, match="Wavelength must be between"):
        CameraDescriptor(wavelength_nm=50.0)

    with pytest.raises(ValueError, match="must be positive"):
        CameraDescriptor(focal_length_mm=0.0)

    with pytest.raises(ValueError, match="ISO"):
        CameraDescriptor(iso=0.0)

    with pytest.raises(ValueError, match="Exposure"):
        SimulationConfig(exposure=-1.0)

    with pytest.raises(ValueError, match="processing_width"):
        SimulationOptions(processing_width=4)

    with pytest.raises(ValueError, match="only valid with a 'custom' aperture"):
        SimulationConfig(aperture=Pinhole(), mask_path="mask.png")

    with pytest.raises(ValidationError):
        SimulationConfig(unknown_field=1)


def test_descriptors_are_immutable():
    aperture = Pinhole()
    with pytest.raises(ValidationError):
        aperture.diameter = 1.0  # type: ignore[misc]
