"""Activation functions, their derivatives and tag-based dispatch.

Each layer stores a tag (an :class:`Activation` member or a
:class:`CustomActivation`). Lookup of the forward function, the derivative,
the initialization scheme and the serialized name is a table lookup on that
tag, never a comparison of function objects.

Derivatives are evaluated on the *pre-activation* matrix.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, NamedTuple, Union

import numpy as np

from ..errors import UnknownActivationError, UnsupportedActivationError
from .matrix import Matrix
from .types import Array

LEAKY_SLOPE = 0.01

HE = "he"
XAVIER = "xavier"


class Activation(str, Enum):
    """Built-in activations; values are the canonical serialized names."""

    RELU = "relu"
    LEAKY_RELU = "leakyRelu"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    SOFTMAX = "softmax"
    LINEAR = "linear"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CustomActivation:
    """User-supplied activation with its own derivative.

    ``fn`` and ``derivative`` map a :class:`Matrix` to a :class:`Matrix` of the
    same shape. ``init`` selects ``"he"`` or ``"xavier"`` initialization; a
    custom activation without one cannot be used to build a network. Custom
    activations have no canonical name and are not serializable.
    """

    fn: Callable[[Matrix], Matrix]
    derivative: Callable[[Matrix], Matrix]
    init: str | None = None
    label: str = "custom"


ActivationTag = Union[Activation, CustomActivation]


# ----------------------------------------------------------------------
# Element-wise kernels (arrays in, arrays out)


def _relu(x: Array) -> Array:
    return np.maximum(x, 0.0)


def _relu_deriv(x: Array) -> Array:
    return (x > 0).astype(np.float64)


def _leaky_relu(x: Array) -> Array:
    return np.where(x > 0, x, LEAKY_SLOPE * x)


def _leaky_relu_deriv(x: Array) -> Array:
    return np.where(x > 0, 1.0, LEAKY_SLOPE)


def _sigmoid(x: Array) -> Array:
    return 1.0 / (1.0 + np.exp(-x))


def _sigmoid_deriv(x: Array) -> Array:
    s = _sigmoid(x)
    return s * (1.0 - s)


def _tanh(x: Array) -> Array:
    return np.tanh(x)


def _tanh_deriv(x: Array) -> Array:
    return 1.0 - np.tanh(x) ** 2


def _softmax(x: Array) -> Array:
    e = np.exp(x)
    return e / e.sum(axis=1, keepdims=True)


def _softmax_deriv(x: Array) -> Array:
    # Simplified element-wise form, not the softmax Jacobian.
    return x * (1.0 - x)


def _linear(x: Array) -> Array:
    return x


def _linear_deriv(x: Array) -> Array:
    return np.ones_like(x)


class _Entry(NamedTuple):
    fn: Callable[[Array], Array]
    derivative: Callable[[Array], Array]
    init: str


_REGISTRY: Dict[Activation, _Entry] = {
    Activation.RELU: _Entry(_relu, _relu_deriv, HE),
    Activation.LEAKY_RELU: _Entry(_leaky_relu, _leaky_relu_deriv, HE),
    Activation.SIGMOID: _Entry(_sigmoid, _sigmoid_deriv, XAVIER),
    Activation.TANH: _Entry(_tanh, _tanh_deriv, XAVIER),
    Activation.SOFTMAX: _Entry(_softmax, _softmax_deriv, XAVIER),
    Activation.LINEAR: _Entry(_linear, _linear_deriv, XAVIER),
}

_ALIASES: Dict[str, Activation] = {
    "leaky_relu": Activation.LEAKY_RELU,
    "identity": Activation.LINEAR,
}

# Legacy spellings, still accepted with a DeprecationWarning.
_DEPRECATED: Dict[str, Activation] = {
    "tanH": Activation.TANH,
}

_FOLDED: Dict[str, Activation] = {
    **{a.value.lower(): a for a in Activation},
    **{name.lower(): a for name, a in _ALIASES.items()},
}


# ----------------------------------------------------------------------
# Dispatch


def resolve(value: ActivationTag | str) -> ActivationTag:
    """Turn a tag or a name into an activation tag.

    Names match case-insensitively against the canonical names and aliases.
    """

    if isinstance(value, (Activation, CustomActivation)):
        return value
    if isinstance(value, str):
        if value in _DEPRECATED:
            tag = _DEPRECATED[value]
            warnings.warn(
                f"Activation name {value!r} is deprecated; use {tag.value!r}",
                DeprecationWarning,
                stacklevel=2,
            )
            return tag
        tag = _FOLDED.get(value.lower())
        if tag is not None:
            return tag
        known = ", ".join(a.value for a in Activation)
        raise UnknownActivationError(f"Unknown activation {value!r}. Known activations: {known}")
    raise UnknownActivationError(f"Cannot interpret {value!r} as an activation")


def activate(tag: ActivationTag, z: Matrix) -> Matrix:
    if isinstance(tag, CustomActivation):
        return tag.fn(z)
    return z.map(_REGISTRY[tag].fn, vectorized=True)


def derivative(tag: ActivationTag, z: Matrix) -> Matrix:
    if isinstance(tag, CustomActivation):
        return tag.derivative(z)
    return z.map(_REGISTRY[tag].derivative, vectorized=True)


def init_scheme(tag: ActivationTag) -> str:
    """Return ``"he"`` or ``"xavier"`` for ``tag``."""

    scheme = tag.init if isinstance(tag, CustomActivation) else _REGISTRY[tag].init
    if scheme not in (HE, XAVIER):
        raise UnsupportedActivationError(
            f"No initialization rule for activation {describe(tag)!r}"
        )
    return scheme


def canonical_name(tag: ActivationTag) -> str:
    if isinstance(tag, Activation):
        return tag.value
    raise UnsupportedActivationError(
        f"Activation {describe(tag)!r} has no canonical name and cannot be serialized"
    )


def describe(tag: ActivationTag) -> str:
    return tag.label if isinstance(tag, CustomActivation) else tag.value


# ----------------------------------------------------------------------
# Matrix-level conveniences


def relu(z: Matrix) -> Matrix:
    return activate(Activation.RELU, z)


def relu_deriv(z: Matrix) -> Matrix:
    return derivative(Activation.RELU, z)


def leaky_relu(z: Matrix) -> Matrix:
    return activate(Activation.LEAKY_RELU, z)


def leaky_relu_deriv(z: Matrix) -> Matrix:
    return derivative(Activation.LEAKY_RELU, z)


def sigmoid(z: Matrix) -> Matrix:
    return activate(Activation.SIGMOID, z)


def sigmoid_deriv(z: Matrix) -> Matrix:
    return derivative(Activation.SIGMOID, z)


def tanh(z: Matrix) -> Matrix:
    return activate(Activation.TANH, z)


def tanh_deriv(z: Matrix) -> Matrix:
    return derivative(Activation.TANH, z)


def softmax(z: Matrix) -> Matrix:
    return activate(Activation.SOFTMAX, z)


def softmax_deriv(z: Matrix) -> Matrix:
    return derivative(Activation.SOFTMAX, z)


def linear(z: Matrix) -> Matrix:
    return activate(Activation.LINEAR, z)


def linear_deriv(z: Matrix) -> Matrix:
    return derivative(Activation.LINEAR, z)


__all__ = [
    "Activation",
    "ActivationTag",
    "CustomActivation",
    "HE",
    "LEAKY_SLOPE",
    "XAVIER",
    "activate",
    "canonical_name",
    "derivative",
    "describe",
    "init_scheme",
    "leaky_relu",
    "leaky_relu_deriv",
    "linear",
    "linear_deriv",
    "relu",
    "relu_deriv",
    "resolve",
    "sigmoid",
    "sigmoid_deriv",
    "softmax",
    "softmax_deriv",
    "tanh",
    "tanh_deriv",
]
