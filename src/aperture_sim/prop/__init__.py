"""Grid planning, FFT backends and free-space propagation."""

from .backends import AcceleratorContext, NumpyBackend, TorchBackend, get_backend
from .plan import SimulationGrid, plan_grid
from .solvers.angular_spectrum import AngularSpectrumPropagator

__all__ = [
    "AcceleratorContext",
    "NumpyBackend",
    "TorchBackend",
    "get_backend",
    "SimulationGrid",
    "plan_grid",
    "AngularSpectrumPropagator",
]
