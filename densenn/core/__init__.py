"""Core numerical primitives for densenn."""

from . import activations, initializers, matrix, types

__all__ = ["activations", "initializers", "matrix", "types"]
