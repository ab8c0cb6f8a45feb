"""Exception taxonomy for densenn."""

from __future__ import annotations


class DenseNNError(Exception):
    """Base class for every error raised by densenn."""


class DimensionMismatchError(DenseNNError, ValueError):
    """Matrix shapes are incompatible for the requested operation."""


class MatrixIndexError(DenseNNError, IndexError):
    """Element access outside the bounds of a matrix."""


class UnsupportedActivationError(DenseNNError, ValueError):
    """An activation has no initialization rule or no canonical name."""


class UnknownActivationError(DenseNNError, ValueError):
    """An activation name does not match any known activation."""


class ConfigurationError(DenseNNError, ValueError):
    """Invalid network or training configuration."""


__all__ = [
    "ConfigurationError",
    "DenseNNError",
    "DimensionMismatchError",
    "MatrixIndexError",
    "UnknownActivationError",
    "UnsupportedActivationError",
]
