"""Synthetic source scenes."""

from .point_source import POINT_SOURCE_GAIN, PointSource

__all__ = ["POINT_SOURCE_GAIN", "PointSource"]
