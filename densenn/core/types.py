"""Core typing contracts for densenn."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Sequence

import numpy as np

from ..errors import ConfigurationError

if TYPE_CHECKING:  # pragma: no cover
    from .matrix import Matrix

Array = np.ndarray


@dataclass(frozen=True)
class Batch:
    """A group of samples trained with one averaged update."""

    inputs: Sequence["Matrix"]
    targets: Sequence["Matrix"]

    def __post_init__(self) -> None:
        if len(self.inputs) != len(self.targets):
            raise ConfigurationError(
                f"Batch has {len(self.inputs)} inputs but {len(self.targets)} targets"
            )
        if not self.inputs:
            raise ConfigurationError("Batch must contain at least one sample")

    def __len__(self) -> int:
        return len(self.inputs)


@dataclass
class ForwardContext:
    """Per-layer values recorded by a single forward pass.

    Index 0 of both lists holds the raw input; index ``i + 1`` holds the
    output of layer ``i``.
    """

    pre_activated: List["Matrix"] = field(default_factory=list)
    activated: List["Matrix"] = field(default_factory=list)

    @property
    def output(self) -> "Matrix":
        return self.activated[-1]


@dataclass
class Gradients:
    """Weight and bias gradients ordered by ascending layer index."""

    weights: List["Matrix"]
    biases: List["Matrix"]
    deltas: List["Matrix"] = field(default_factory=list, repr=False)

    def __len__(self) -> int:
        return len(self.weights)


__all__ = ["Array", "Batch", "ForwardContext", "Gradients"]
