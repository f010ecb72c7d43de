"""Validation metrics and analytic reference cases."""

from .cases import ValidationResult, run_all

__all__ = ["ValidationResult", "run_all"]
