"""Training loops, losses and optimizers."""

from .config import TrainingConfig, load_config
from .losses import REGISTRY as LOSS_REGISTRY
from .network import Network
from .optimizers import Adam, GradientDescent, build_optimizer, clip_gradients

__all__ = [
    "Adam",
    "GradientDescent",
    "LOSS_REGISTRY",
    "Network",
    "TrainingConfig",
    "build_optimizer",
    "clip_gradients",
    "load_config",
]
