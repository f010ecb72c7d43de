"""CLI main module with subcommands for run, psf, inspect, and validate.

Usage:
    python -m obscura.cli run --config scene.yaml --out out_dir
    python -m obscura.cli psf --config scene.yaml --out out_dir
    python -m obscura.cli inspect --config scene.yaml
    python -m obscura.cli validate

Exit codes: 0 success, 1 simulation or validation failure, 2 configuration error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np
import yaml

from obscura.core.config import SimulationConfig, load_config
from obscura.core.errors import ConfigError, ImageIOError
from obscura.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


class _ConfigProblem(Exception):
    """Carries a user-facing configuration error to the exit-code boundary."""


def _load(path: Path) -> SimulationConfig:
    try:
        return load_config(path)
    except (FileNotFoundError, ValueError, ConfigError, yaml.YAMLError) as e:
        raise _ConfigProblem(f"Invalid config {path}: {e}") from e


def _load_inputs(
    config: SimulationConfig, source_override: Optional[Path] = None
) -> tuple[np.ndarray, Optional[np.ndarray], float]:
    """Source image, mask bitmap and exposure gain for a config."""
    from aperture_sim.io.tiff import load_mask_bitmap, read_rgba
    from aperture_sim.sources.point_source import PointSource

    try:
        mask = load_mask_bitmap(config.mask_path) if config.mask_path else None
        source_path = source_override or config.source_path
        if source_path:
            return read_rgba(source_path), mask, 1.0
    except ImageIOError as e:
        raise _ConfigProblem(str(e)) from e

    scene = PointSource()
    logger.info("No source image given, rendering synthetic point source")
    return scene.render(config.camera.sensor_width_mm), mask, scene.gain


def _processing_px_per_mm(config: SimulationConfig, source_width: int) -> float:
    width = min(source_width, config.options.processing_width)
    return width / config.camera.sensor_width_mm


def cmd_run(args: argparse.Namespace) -> int:
    """Run the full simulation and write output.tif plus summary.json."""
    from aperture_sim.core.pipeline import SimulationPipeline, SimulationRequest
    from aperture_sim.io.tiff import write_rgba
    from aperture_sim.metrics.summary import optics_summary

    try:
        print("Loading config from", args.config)
        config = _load(args.config)
        source, mask, gain = _load_inputs(config, args.source)
    except _ConfigProblem as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    request = SimulationRequest.from_config(config, source, mask, exposure_gain=gain)
    pipeline = SimulationPipeline()
    try:
        response = pipeline.run(request)
    finally:
        pipeline.close()

    if not response.success:
        print(f"Error: simulation failed: {response.error}", file=sys.stderr)
        return EXIT_FAILURE

    out_path = Path(args.out)
    out_path.mkdir(parents=True, exist_ok=True)
    image_file = out_path / args.image_name
    write_rgba(image_file, response.image)

    summary = {
        "config": config.model_dump(mode="json"),
        "source_shape": list(source.shape),
        "output_shape": list(response.image.shape),
        "exposure": request.exposure,
        "optics": optics_summary(config.camera, config.aperture).to_dict(),
    }
    (out_path / "summary.json").write_text(json.dumps(summary, indent=2, default=str))
    print("Wrote", image_file)
    print("Wrote", out_path / "summary.json")
    return EXIT_OK


def cmd_psf(args: argparse.Namespace) -> int:
    """Write mask, PSF and image kernel TIFFs for every wavelength."""
    from aperture_sim.core.pipeline import SimulationPipeline, wavelengths_for
    from aperture_sim.io.tiff import write_tiff
    from obscura.core.errors import ObscuraError

    try:
        config = _load(args.config)
        source, mask, _ = _load_inputs(config)
    except _ConfigProblem as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    px_per_mm = _processing_px_per_mm(config, source.shape[1])
    out_path = Path(args.out)
    out_path.mkdir(parents=True, exist_ok=True)
    pipeline = SimulationPipeline()
    try:
        for wl in wavelengths_for(config.camera, config.options):
            channel = pipeline.build_psf(
                config.aperture, config.camera, wl, px_per_mm, config.options, mask
            )
            meta = {
                "wavelength_nm": wl,
                "grid_n": channel.grid.n,
                "window_mm": channel.grid.window_mm,
                "aperture": config.aperture.model_dump(mode="json"),
            }
            tag = f"{int(round(wl))}nm"
            write_tiff(out_path / f"mask_{tag}.tif", channel.mask, meta, channel.grid.cell_mm)
            write_tiff(
                out_path / f"psf_{tag}.tif",
                channel.psf.data,
                {**meta, "energy": channel.psf.energy},
                channel.grid.cell_mm,
            )
            write_tiff(out_path / f"kernel_{tag}.tif", channel.kernel, meta, 1.0 / px_per_mm)
            print(f"Wrote mask/psf/kernel for {wl:.0f} nm (N={channel.grid.n})")
    except ObscuraError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        pipeline.close()
    return EXIT_OK


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print grid sizing, memory estimates and the optics summary for a config."""
    from aperture_sim.core.pipeline import wavelengths_for
    from aperture_sim.metrics.summary import optics_summary
    from aperture_sim.prop.plan import plan_grid
    from obscura.core.errors import SamplingError

    try:
        print("Inspecting config:", args.config)
        config = _load(args.config)
    except _ConfigProblem as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    camera = config.camera
    width = args.width or config.options.processing_width
    px_per_mm = _processing_px_per_mm(config, width)

    print("Scene Summary:")
    print("-" * 40)
    print("  Aperture:   ", config.aperture.kind)
    print("  Focal:      ", f"{camera.focal_length_mm} mm")
    print("  Sensor:     ", f"{camera.sensor_width_mm} x {camera.sensor_height_mm} mm")
    print("  Density:    ", f"{px_per_mm:.2f} px/mm")
    print()

    print("Sampling Estimates:")
    print("-" * 40)
    try:
        for wl in wavelengths_for(camera, config.options):
            grid = plan_grid(config.aperture, wl, camera.focal_length_mm, px_per_mm)
            print(
                f"  {wl:6.1f} nm: N={grid.n:5d}  window={grid.window_mm:.4f} mm  "
                f"cell={grid.cell_mm * 1000:.3f} um  mem={grid.get_memory_estimate():.1f} MB"
            )
    except SamplingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    print()

    summary = optics_summary(camera, config.aperture)
    print("Optics Summary:")
    print("-" * 40)
    for key, value in summary.to_dict().items():
        if isinstance(value, float):
            value = f"{value:.6g}"
        print(f"  {key:22} {value}")
    return EXIT_OK


def cmd_validate(args: argparse.Namespace) -> int:
    """Run the analytic validation cases and report PASS/FAIL."""
    from aperture_sim.validation.cases import run_all

    print("Running validation suite...")
    if getattr(args, "config", None):
        try:
            _load(args.config)
            print("Loaded config:", args.config)
        except _ConfigProblem as e:
            print(f"Error loading config: {e}", file=sys.stderr)
            return EXIT_CONFIG

    results = run_all()
    print("\nValidation Results:")
    print("-" * 40)
    for result in results:
        print(f"  {result}")
    print("-" * 40)

    if all(r.passed for r in results):
        print("\nAll validation cases passed")
        return EXIT_OK
    print("\nSome validation cases failed")
    return EXIT_FAILURE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="obscura.cli",
        description="Aperture imaging simulation CLI",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-file", type=Path, default=None, help="Optional JSON lines log file"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # Run subcommand
    parser_run = subparsers.add_parser(
        "run",
        help="Simulate an image through the configured aperture",
    )
    parser_run.add_argument(
        "--config", "-c", type=Path, required=True, help="Path to YAML/JSON config file"
    )
    parser_run.add_argument(
        "--out",
        "-o",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output)",
    )
    parser_run.add_argument(
        "--source", "-s", type=Path, default=None, help="Source image overriding the config"
    )
    parser_run.add_argument(
        "--image-name", default="output.tif", help="Output image filename (default: output.tif)"
    )
    parser_run.set_defaults(func=cmd_run)

    # PSF subcommand
    parser_psf = subparsers.add_parser(
        "psf",
        help="Write mask, PSF and kernel TIFFs for the configured aperture",
    )
    parser_psf.add_argument(
        "--config", "-c", type=Path, required=True, help="Path to YAML/JSON config file"
    )
    parser_psf.add_argument(
        "--out", "-o", type=Path, default=Path("output"), help="Output directory"
    )
    parser_psf.set_defaults(func=cmd_psf)

    # Inspect subcommand
    parser_inspect = subparsers.add_parser(
        "inspect",
        help="Print grid sizing, memory estimates and optics summary",
    )
    parser_inspect.add_argument(
        "--config", "-c", type=Path, required=True, help="Path to YAML/JSON config file"
    )
    parser_inspect.add_argument(
        "--width", type=int, default=None, help="Source width in pixels (default: processing width)"
    )
    parser_inspect.set_defaults(func=cmd_inspect)

    # Validate subcommand
    parser_validate = subparsers.add_parser(
        "validate",
        help="Run validation cases and check tolerances",
    )
    parser_validate.add_argument(
        "--config",
        "-c",
        type=Path,
        required=False,
        help="Optional path to YAML/JSON config to sanity-check",
    )
    parser_validate.set_defaults(func=cmd_validate)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_file, logging.DEBUG if args.verbose else logging.WARNING)
    return int(args.func(args) or 0)


if __name__ == "__main__":
    sys.exit(main())
