"""densenn public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.activations import Activation, CustomActivation
from .core.matrix import Matrix, fill, identity, one_hot, row_vector, uniform, zeros
from .core.types import Batch
from .errors import (
    ConfigurationError,
    DenseNNError,
    DimensionMismatchError,
    MatrixIndexError,
    UnknownActivationError,
    UnsupportedActivationError,
)
from .persistence import load, save
from .training.config import TrainingConfig, load_config
from .training.network import Network
from .training.optimizers import Adam, GradientDescent, clip_gradients

__all__ = [
    "Activation",
    "Adam",
    "Batch",
    "ConfigurationError",
    "CustomActivation",
    "DenseNNError",
    "DimensionMismatchError",
    "GradientDescent",
    "Matrix",
    "MatrixIndexError",
    "Network",
    "TrainingConfig",
    "UnknownActivationError",
    "UnsupportedActivationError",
    "activations",
    "clip_gradients",
    "fill",
    "identity",
    "load",
    "load_config",
    "one_hot",
    "row_vector",
    "save",
    "types",
    "uniform",
    "zeros",
]
