"""Custom exception types for aperture imaging simulation."""


class ObscuraError(Exception):
    """Base exception for all simulation errors."""

    pass


class ConfigError(ObscuraError):
    """Configuration-related errors."""

    pass


class SamplingError(ObscuraError):
    """Sampling and grid-related errors."""

    pass


class BackendError(ObscuraError):
    """FFT backend and device-related errors."""

    pass


class PhysicsError(ObscuraError):
    """Physics simulation errors, including non-finite intermediates."""

    pass


class ImageIOError(ObscuraError):
    """Image and mask input/output errors."""

    pass


class SimulationCancelled(ObscuraError):
    """Raised when a request is abandoned in favour of a newer one."""

    pass


__all__ = [
    "ObscuraError",
    "ConfigError",
    "SamplingError",
    "BackendError",
    "PhysicsError",
    "ImageIOError",
    "SimulationCancelled",
]
