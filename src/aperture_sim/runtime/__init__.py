"""Runtime helpers for running simulations off the caller's thread."""

from .worker import SimulationWorker

__all__ = ["SimulationWorker"]
