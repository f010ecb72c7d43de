"""Optics figures of merit."""

from .summary import OpticsSummary, optics_summary

__all__ = ["OpticsSummary", "optics_summary"]
