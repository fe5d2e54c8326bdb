"""Realizers that execute build plans."""

from .base import Realization, Realizer
from .local import LocalRealizer

__all__ = [
    "LocalRealizer",
    "Realization",
    "Realizer",
]
