"""Loss registry used by the network trainer."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.matrix import Matrix
from ..errors import ConfigurationError, DimensionMismatchError

LossFn = Callable[[Matrix, Matrix], tuple[float, Matrix]]

LOG_CLIP_LOW = 1e-6
LOG_CLIP_HIGH = 1e10


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning both the scalar loss and the gradient."""

    name: str
    fn: LossFn

    def __call__(self, predictions: Matrix, targets: Matrix) -> tuple[float, Matrix]:
        if predictions.shape != targets.shape:
            raise DimensionMismatchError(
                f"Prediction shape {predictions.shape} does not match target shape {targets.shape}"
            )
        return self.fn(predictions, targets)

    def value(self, predictions: Matrix, targets: Matrix) -> float:
        return self(predictions, targets)[0]

    def gradient(self, predictions: Matrix, targets: Matrix) -> Matrix:
        return self(predictions, targets)[1]


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}
        self._deprecated: Dict[str, str] = {}

    def register(self, name: str, fn: LossFn) -> None:
        self._registry[name] = Loss(name, fn)

    def alias(self, alias: str, name: str, *, deprecated: bool = False) -> None:
        self._registry[alias] = self._registry[name]
        if deprecated:
            self._deprecated[alias] = name

    def get(self, name: str) -> Loss:
        if name in self._deprecated:
            warnings.warn(
                f"Loss name {name!r} is deprecated; use {self._deprecated[name]!r}",
                DeprecationWarning,
                stacklevel=2,
            )
        try:
            return self._registry[name]
        except KeyError:
            available = ", ".join(self.names())
            raise ConfigurationError(
                f"Unknown loss {name!r}. Available losses: {available}"
            ) from None

    def resolve(self, loss: str | Loss) -> Loss:
        if isinstance(loss, Loss):
            return loss
        return self.get(loss)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)


REGISTRY = LossRegistry()


def _mse(pred: Matrix, target: Matrix) -> tuple[float, Matrix]:
    diff = pred - target
    loss = diff.power(2).mean()
    return loss, diff


def _cross_entropy(pred: Matrix, target: Matrix) -> tuple[float, Matrix]:
    log_pred = pred.clip(LOG_CLIP_LOW, LOG_CLIP_HIGH).map(np.log, vectorized=True)
    loss = (target * log_pred * -1.0).mean()
    # Sign convention target - pred, paired with softmax output layers.
    grad = target - pred
    return loss, grad


REGISTRY.register("mse", _mse)
REGISTRY.register("cross_entropy", _cross_entropy)
REGISTRY.alias("ce", "cross_entropy")
REGISTRY.alias("crossEntropy", "cross_entropy", deprecated=True)


def mse(pred: Matrix, target: Matrix) -> float:
    return REGISTRY.get("mse").value(pred, target)


def mse_gradient(pred: Matrix, target: Matrix) -> Matrix:
    return REGISTRY.get("mse").gradient(pred, target)


def cross_entropy(pred: Matrix, target: Matrix) -> float:
    return REGISTRY.get("cross_entropy").value(pred, target)


def cross_entropy_gradient(pred: Matrix, target: Matrix) -> Matrix:
    return REGISTRY.get("cross_entropy").gradient(pred, target)


__all__ = [
    "LOG_CLIP_HIGH",
    "LOG_CLIP_LOW",
    "Loss",
    "LossRegistry",
    "REGISTRY",
    "cross_entropy",
    "cross_entropy_gradient",
    "mse",
    "mse_gradient",
]
