from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
from pathlib import Path

import numpy as np
import pytest

from aperture_sim.io.tiff import read_rgba, read_tiff
from obscura.cli.main import EXIT_CONFIG, EXIT_FAILURE, EXIT_OK, main

REPO = Path(__file__).resolve().parents[1]


def _cli(*args: str) -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO / "src"), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "obscura.cli", *args],
        capture_output=True,
        text=True,
        check=False,
        env=env,
    )


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def scene(tmp_path: Path) -> Path:
    source = np.zeros((48, 64, 4), dtype=np.uint8)
    source[20:28, 28:36, :3] = 255
    source[..., 3] = 255
    np.save(tmp_path / "source.npy", source)
    cfg = tmp_path / "scene.yaml"
    cfg.write_text(
        """
aperture:
  kind: pinhole
  diameter: 0.3
options:
  polychromatic: false
source_path: source.npy
"""
    )
    return cfg


def test_cli_help() -> None:
    result = _cli("--help")
    assert result.returncode == 0
    out = result.stdout
    assert "run" in out and "validate" in out and "inspect" in out and "psf" in out


def test_cli_run_help() -> None:
    result = _cli("run", "--help")
    assert result.returncode == 0
    assert "--config" in result.stdout
    assert "--out" in result.stdout


def test_cli_missing_command() -> None:
    result = _cli()
    assert result.returncode != 0


def test_run_writes_image_and_summary(scene: Path, tmp_path: Path) -> None:
    outdir = tmp_path / "out"
    assert main(["run", "-c", str(scene), "-o", str(outdir)]) == EXIT_OK

    image = read_rgba(outdir / "output.tif")
    assert image.shape == (48, 64, 4)
    assert image[24, 32, 0] > image[0, 0, 0]

    summary = json.loads((outdir / "summary.json").read_text())
    assert summary["output_shape"] == [48, 64, 4]
    assert summary["optics"]["f_number"] == pytest.approx(50.0 / 0.3)
    assert summary["config"]["aperture"]["kind"] == "pinhole"


def test_run_point_source_default(tmp_path: Path) -> None:
    cfg = tmp_path / "point.yaml"
    cfg.write_text("options:\n  polychromatic: false\n  processing_width: 64\n")
    outdir = tmp_path / "out"
    assert main(["run", "-c", str(cfg), "-o", str(outdir), "--image-name", "psf.png"]) == EXIT_OK
    summary = json.loads((outdir / "summary.json").read_text())
    assert summary["source_shape"] == [1200, 1200, 4]
    assert summary["exposure"] == 50.0
    assert read_rgba(outdir / "psf.png").shape == (64, 64, 4)


def test_run_simulation_failure(tmp_path: Path, capsys) -> None:
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("aperture:\n  kind: pinhole\n  diameter: 0.0\n")
    assert main(["run", "-c", str(cfg), "-o", str(tmp_path / "out")]) == EXIT_FAILURE
    assert "SamplingError" in capsys.readouterr().err


def test_config_errors(tmp_path: Path, capsys) -> None:
    assert main(["run", "-c", str(tmp_path / "missing.yaml")]) == EXIT_CONFIG
    bad = tmp_path / "bad.yaml"
    bad.write_text("camera:\n  wavelength_nm: 50\n")
    assert main(["inspect", "-c", str(bad)]) == EXIT_CONFIG
    missing_source = tmp_path / "nosource.yaml"
    missing_source.write_text("source_path: nowhere.png\n")
    assert main(["run", "-c", str(missing_source), "-o", str(tmp_path / "o")]) == EXIT_CONFIG
    assert "Error" in capsys.readouterr().err


def test_psf_command(scene: Path, tmp_path: Path) -> None:
    outdir = tmp_path / "psf"
    assert main(["psf", "-c", str(scene), "-o", str(outdir)]) == EXIT_OK
    mask, meta = read_tiff(outdir / "mask_550nm.tif")
    assert meta["wavelength_nm"] == 550.0
    assert np.squeeze(mask).shape == (meta["grid_n"], meta["grid_n"])
    psf, psf_meta = read_tiff(outdir / "psf_550nm.tif")
    assert float(np.sum(psf)) == pytest.approx(1.0, rel=1e-4)
    assert psf_meta["energy"] > 0
    assert (outdir / "kernel_550nm.tif").exists()


def test_inspect_command(capsys) -> None:
    assert main(["inspect", "-c", str(REPO / "examples" / "pinhole.yaml")]) == EXIT_OK
    out = capsys.readouterr().out
    assert "N=" in out
    assert "640.0 nm" in out and "460.0 nm" in out
    assert "f_number" in out


def test_validate_command(capsys) -> None:
    assert main(["validate"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "[PASS] pinhole_airy_first_null" in out
    assert "[FAIL]" not in out


@pytest.mark.parametrize("name", ["pinhole", "zone_plate", "slit_array", "photon_sieve_torch", "freeform"])
def test_example_configs_load(name: str) -> None:
    from obscura.core.config import load_config

    config = load_config(REPO / "examples" / f"{name}.yaml")
    assert config.aperture.kind
