"""Random sources for telemetry generation."""

from .distributions import RandomSource

__all__ = [
    "RandomSource",
]
