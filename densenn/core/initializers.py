"""Parameter initialization keyed to each layer's activation."""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

import numpy as np

from .activations import HE, ActivationTag, init_scheme
from .matrix import Matrix


def he_limit(fan_in: int) -> float:
    return math.sqrt(2.0 / fan_in)


def xavier_limit(fan_in: int, fan_out: int) -> float:
    return math.sqrt(6.0 / (fan_in + fan_out))


def he_uniform(fan_in: int, fan_out: int, rng: np.random.Generator) -> Matrix:
    limit = he_limit(fan_in)
    return Matrix.uniform_random(fan_in, fan_out, -limit, limit, rng=rng)


def xavier_uniform(fan_in: int, fan_out: int, rng: np.random.Generator) -> Matrix:
    limit = xavier_limit(fan_in, fan_out)
    return Matrix.uniform_random(fan_in, fan_out, -limit, limit, rng=rng)


def init_layer(
    fan_in: int, fan_out: int, activation: ActivationTag, rng: np.random.Generator
) -> Tuple[Matrix, Matrix]:
    """Return ``(weights, biases)`` for one layer; biases start at zero."""

    if init_scheme(activation) == HE:
        weights = he_uniform(fan_in, fan_out, rng)
    else:
        weights = xavier_uniform(fan_in, fan_out, rng)
    return weights, Matrix(1, fan_out)


def init_parameters(
    architecture: Sequence[int],
    activations: Sequence[ActivationTag],
    rng: np.random.Generator,
) -> Tuple[List[Matrix], List[Matrix]]:
    weights: List[Matrix] = []
    biases: List[Matrix] = []
    for fan_in, fan_out, activation in zip(architecture[:-1], architecture[1:], activations):
        W, b = init_layer(fan_in, fan_out, activation, rng)
        weights.append(W)
        biases.append(b)
    return weights, biases


__all__ = [
    "he_limit",
    "he_uniform",
    "init_layer",
    "init_parameters",
    "xavier_limit",
    "xavier_uniform",
]
