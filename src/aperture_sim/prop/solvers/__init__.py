"""Propagator registry.

Maps a string key to the module implementing it so the pipeline can select
a propagator from configuration without importing every solver up front.
"""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import Any

import numpy as np

from obscura.core.errors import ConfigError

_SOLVER_ALIASES: dict[str, str] = {
    "angular_spectrum": "aperture_sim.prop.solvers.angular_spectrum",
    "as": "aperture_sim.prop.solvers.angular_spectrum",
}


def _resolve_solver_module(solver: str) -> ModuleType:
    key = solver.strip().lower()
    if key not in _SOLVER_ALIASES:
        raise ConfigError(f"Unknown solver key: {solver}")
    return importlib.import_module(_SOLVER_ALIASES[key])


def get_propagator(backend: Any, solver: str = "angular_spectrum"):  # type: ignore[no-untyped-def]
    """Instantiate the propagator class registered under `solver`."""
    module = _resolve_solver_module(solver)
    return module.AngularSpectrumPropagator(backend)


def run(
    field: np.ndarray,
    grid: Any,
    wavelength_mm: float,
    z_mm: float,
    backend: Any,
    solver: str | None = None,
) -> np.ndarray:
    """Dispatch to a concrete solver's run.

    Args:
        field: Complex input field (n, n)
        grid: SimulationGrid the field is sampled on
        wavelength_mm: Wavelength in millimeters
        z_mm: Propagation distance in millimeters
        backend: FFT backend instance
        solver: Solver key, defaults to 'angular_spectrum'

    Returns:
        Output field array
    """
    module = _resolve_solver_module(solver or "angular_spectrum")
    if not hasattr(module, "run"):
        raise AttributeError(f"Solver module '{module.__name__}' lacks a run() function")
    return module.run(field, grid, wavelength_mm, z_mm, backend)


__all__ = ["get_propagator", "run"]
