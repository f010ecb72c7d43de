"""Core module with config models, errors, logging, and units."""

__all__ = [
    "units",
    "errors",
    "logging",
    "config",
]
