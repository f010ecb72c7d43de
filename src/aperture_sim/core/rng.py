"""Deterministic random source for seeded aperture shapes."""

from __future__ import annotations

from dataclasses import dataclass

_MULTIPLIER = 1664525
_INCREMENT = 1013904223
_MODULUS = 2**32


@dataclass
class LinearCongruentialGenerator:
    """Numerical Recipes LCG; one instance per rasterization call.

    Each shape that needs randomness receives its own generator seeded from
    the descriptor, so the same descriptor always yields the same mask.
    """

    seed: int

    def __post_init__(self) -> None:
        self.state = int(self.seed) % _MODULUS

    def random(self) -> float:
        """Next value in [0, 1)."""
        self.state = (self.state * _MULTIPLIER + _INCREMENT) % _MODULUS
        return self.state / _MODULUS


__all__ = ["LinearCongruentialGenerator"]
