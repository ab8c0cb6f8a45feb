"""Parameter update rules and gradient clipping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, MutableSequence, Protocol

from ..core.matrix import Matrix
from ..core.types import Gradients
from ..errors import ConfigurationError, DimensionMismatchError

DEFAULT_CLIP_THRESHOLD = 5.0


class Optimizer(Protocol):
    """Protocol implemented by update rules.

    ``step`` replaces entries of ``weights`` and ``biases`` in place with
    updated matrices.
    """

    name: str

    def step(
        self,
        weights: MutableSequence[Matrix],
        biases: MutableSequence[Matrix],
        grads: Gradients,
        lr: float,
    ) -> None:
        """Apply one update using ``grads``."""

    def reset(self) -> None:
        """Drop any accumulated state."""


def _check_lengths(weights, biases, grads: Gradients) -> None:
    if not (len(weights) == len(biases) == len(grads.weights) == len(grads.biases)):
        raise DimensionMismatchError(
            f"Got {len(grads.weights)} gradients for {len(weights)} layers"
        )


@dataclass
class GradientDescent:
    """Plain gradient descent: ``param -= grad * lr``."""

    name: str = field(default="gradient_descent", init=False)

    def step(
        self,
        weights: MutableSequence[Matrix],
        biases: MutableSequence[Matrix],
        grads: Gradients,
        lr: float,
    ) -> None:
        _check_lengths(weights, biases, grads)
        for idx in range(len(weights)):
            weights[idx] = weights[idx] - grads.weights[idx] * lr
            biases[idx] = biases[idx] - grads.biases[idx] * lr

    def reset(self) -> None:
        return None


@dataclass
class Adam:
    """Adam with bias-corrected first and second moment estimates.

    The step counter ``t`` is shared by all layers and advances once per
    :meth:`step`, before the correction, so the first update divides by
    ``1 - beta1`` and ``1 - beta2``.
    """

    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    name: str = field(default="adam", init=False)
    t: int = field(default=0, init=False)
    m_w: List[Matrix] = field(default_factory=list, init=False, repr=False)
    v_w: List[Matrix] = field(default_factory=list, init=False, repr=False)
    m_b: List[Matrix] = field(default_factory=list, init=False, repr=False)
    v_b: List[Matrix] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if not (0.0 <= self.beta1 < 1.0 and 0.0 <= self.beta2 < 1.0):
            raise ConfigurationError("Adam betas must lie in [0, 1)")
        if self.epsilon <= 0.0:
            raise ConfigurationError("Adam epsilon must be positive")

    def reset(self) -> None:
        self.t = 0
        self.m_w, self.v_w, self.m_b, self.v_b = [], [], [], []

    def _ensure_state(self, weights, biases) -> None:
        if len(self.m_w) == len(weights):
            return
        self.m_w = [Matrix(*w.shape) for w in weights]
        self.v_w = [Matrix(*w.shape) for w in weights]
        self.m_b = [Matrix(*b.shape) for b in biases]
        self.v_b = [Matrix(*b.shape) for b in biases]

    def _moments(self, m: Matrix, v: Matrix, grad: Matrix) -> tuple[Matrix, Matrix]:
        m = m * self.beta1 + grad * (1.0 - self.beta1)
        v = v * self.beta2 + (grad * grad) * (1.0 - self.beta2)
        return m, v

    def _delta(self, m: Matrix, v: Matrix, lr: float) -> Matrix:
        m_hat = m / (1.0 - self.beta1**self.t)
        v_hat = v / (1.0 - self.beta2**self.t)
        eps = self.epsilon
        denom = v_hat.sqrt().map(lambda x: x + eps, vectorized=True)
        return (m_hat / denom) * lr

    def step(
        self,
        weights: MutableSequence[Matrix],
        biases: MutableSequence[Matrix],
        grads: Gradients,
        lr: float,
    ) -> None:
        _check_lengths(weights, biases, grads)
        self._ensure_state(weights, biases)
        self.t += 1
        for idx in range(len(weights)):
            self.m_w[idx], self.v_w[idx] = self._moments(
                self.m_w[idx], self.v_w[idx], grads.weights[idx]
            )
            self.m_b[idx], self.v_b[idx] = self._moments(
                self.m_b[idx], self.v_b[idx], grads.biases[idx]
            )
            weights[idx] = weights[idx] - self._delta(self.m_w[idx], self.v_w[idx], lr)
            biases[idx] = biases[idx] - self._delta(self.m_b[idx], self.v_b[idx], lr)


def clip_gradients(grads: Gradients, threshold: float = DEFAULT_CLIP_THRESHOLD) -> Gradients:
    """Clamp every weight gradient into ``[-threshold, threshold]``.

    Bias gradients pass through unchanged.
    """

    if threshold <= 0.0:
        raise ConfigurationError(f"Clip threshold must be positive, got {threshold}")
    return Gradients(
        weights=[g.clip(-threshold, threshold) for g in grads.weights],
        biases=list(grads.biases),
        deltas=list(grads.deltas),
    )


_OPTIMIZERS: Dict[str, type] = {
    "gradient_descent": GradientDescent,
    "sgd": GradientDescent,
    "adam": Adam,
}


def build_optimizer(name: str, **hyperparameters: float) -> Optimizer:
    """Instantiate an optimizer by name; hyperparameters go to Adam only."""

    try:
        cls = _OPTIMIZERS[name]
    except KeyError:
        available = ", ".join(sorted(_OPTIMIZERS))
        raise ConfigurationError(
            f"Unknown optimizer {name!r}. Available optimizers: {available}"
        ) from None
    if cls is GradientDescent:
        return GradientDescent()
    return cls(**hyperparameters)


__all__ = [
    "Adam",
    "DEFAULT_CLIP_THRESHOLD",
    "GradientDescent",
    "Optimizer",
    "build_optimizer",
    "clip_gradients",
]
