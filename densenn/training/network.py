"""Feed-forward network trained by explicit backpropagation."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Sequence

import numpy as np

from ..core.activations import ActivationTag, activate, derivative, describe, resolve
from ..core.initializers import init_parameters
from ..core.matrix import Matrix
from ..core.types import Batch, ForwardContext, Gradients
from ..errors import ConfigurationError, DimensionMismatchError
from .config import TrainingConfig
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import Loss
from .optimizers import Optimizer, build_optimizer, clip_gradients

logger = logging.getLogger(__name__)


class Network:
    """Fully connected network with one activation per layer.

    ``architecture`` lists the layer widths, input first; ``activations``
    holds one tag (or name) per weight matrix, so
    ``len(architecture) == len(activations) + 1``.
    """

    def __init__(
        self,
        architecture: Sequence[int],
        activations: Sequence[ActivationTag | str],
        *,
        loss: str | Loss = "mse",
        optimizer: str | Optimizer = "gradient_descent",
        clip_threshold: float | None = None,
        seed: int | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if len(architecture) != len(activations) + 1:
            raise ConfigurationError(
                f"Architecture has {len(architecture)} layer sizes, so it needs "
                f"{len(architecture) - 1} activations; got {len(activations)}"
            )
        if len(architecture) < 2:
            raise ConfigurationError("Architecture needs at least an input and an output layer")
        if any(int(width) < 1 for width in architecture):
            raise ConfigurationError(f"Layer widths must be positive: {list(architecture)}")
        if clip_threshold is not None and clip_threshold <= 0.0:
            raise ConfigurationError("clip_threshold must be positive")

        self.architecture: List[int] = [int(width) for width in architecture]
        self.activations: List[ActivationTag] = [resolve(a) for a in activations]
        self.loss_fn: Loss = LOSS_REGISTRY.resolve(loss)
        self.optimizer: Optimizer = (
            build_optimizer(optimizer) if isinstance(optimizer, str) else optimizer
        )
        self.clip_threshold = clip_threshold
        self.seed = seed
        self.callbacks = list(callbacks or [])
        self._rng = np.random.default_rng(seed)
        self.weights, self.biases = init_parameters(
            self.architecture, self.activations, self._rng
        )
        self.last_context: ForwardContext | None = None
        logger.debug(
            "Built network %s with activations %s",
            self.architecture,
            [describe(a) for a in self.activations],
        )

    @classmethod
    def from_config(
        cls,
        architecture: Sequence[int],
        activations: Sequence[ActivationTag | str],
        config: TrainingConfig,
        callbacks: Sequence[object] | None = None,
    ) -> "Network":
        return cls(
            architecture,
            activations,
            loss=config.loss,
            optimizer=config.build_optimizer(),
            clip_threshold=config.clip_threshold,
            seed=config.seed,
            callbacks=callbacks,
        )

    @property
    def num_layers(self) -> int:
        return len(self.weights)

    def parameter_count(self) -> int:
        return sum(w.rows * w.cols + b.rows * b.cols for w, b in zip(self.weights, self.biases))

    # ------------------------------------------------------------------
    # Forward / backward / update

    def _dropout_mask(self, shape: tuple[int, int], rate: float) -> Matrix:
        keep = self._rng.random(shape) >= rate
        return Matrix.from_array(keep.astype(np.float64))

    def forward(self, inputs: Matrix, dropout: float = 0.0) -> ForwardContext:
        """Run one sample through the network, recording every layer.

        With ``dropout > 0`` each hidden unit is zeroed with that probability;
        surviving units are not rescaled.
        """

        expected = (1, self.architecture[0])
        if inputs.shape != expected:
            raise DimensionMismatchError(
                f"Expected input of shape {expected}, got {inputs.shape}"
            )
        if not 0.0 <= dropout < 1.0:
            raise ConfigurationError("dropout must lie in [0, 1)")

        x = inputs.copy()
        context = ForwardContext(pre_activated=[x], activated=[x])
        last = self.num_layers - 1
        for idx, (W, b, tag) in enumerate(zip(self.weights, self.biases, self.activations)):
            z = context.activated[idx] @ W + b
            a = activate(tag, z)
            if dropout > 0.0 and idx < last:
                a = a * self._dropout_mask(a.shape, dropout)
            context.pre_activated.append(z)
            context.activated.append(a)
        self.last_context = context
        return context

    def predict(self, inputs: Matrix, dropout: float = 0.0) -> Matrix:
        return self.forward(inputs, dropout=dropout).output

    def backward(
        self,
        context: ForwardContext,
        target: Matrix | None = None,
        *,
        loss_gradient: Matrix | None = None,
    ) -> Gradients:
        """Derive per-layer gradients from a recorded forward pass.

        Either ``target`` (the gradient then comes from the configured loss) or
        a precomputed ``loss_gradient`` seeds the output delta.
        """

        if (target is None) == (loss_gradient is None):
            raise ConfigurationError("Pass exactly one of target or loss_gradient")
        output = context.output
        delta = loss_gradient if loss_gradient is not None else self.loss_fn.gradient(output, target)
        if delta.shape != output.shape:
            raise DimensionMismatchError(
                f"Loss gradient shape {delta.shape} does not match output shape {output.shape}"
            )

        count = self.num_layers
        grad_w: List[Matrix] = [None] * count  # type: ignore[list-item]
        grad_b: List[Matrix] = [None] * count  # type: ignore[list-item]
        deltas: List[Matrix] = [None] * count  # type: ignore[list-item]
        for idx in reversed(range(count)):
            if idx < count - 1:
                delta = (delta @ self.weights[idx + 1].T) * derivative(
                    self.activations[idx], context.pre_activated[idx + 1]
                )
            deltas[idx] = delta
            grad_w[idx] = context.activated[idx].T @ delta
            grad_b[idx] = delta.col_sum()
        return Gradients(weights=grad_w, biases=grad_b, deltas=deltas)

    def update(self, grads: Gradients, learning_rate: float) -> None:
        if self.clip_threshold is not None:
            grads = clip_gradients(grads, self.clip_threshold)
        self.optimizer.step(self.weights, self.biases, grads, learning_rate)

    def loss(self, prediction: Matrix, target: Matrix) -> float:
        return self.loss_fn.value(prediction, target)

    # ------------------------------------------------------------------
    # Training loops

    def train_step(
        self, inputs: Matrix, target: Matrix, learning_rate: float, dropout: float = 0.0
    ) -> float:
        """Forward, backward and update on one sample; return its loss."""

        context = self.forward(inputs, dropout=dropout)
        loss_value, gradient = self.loss_fn(context.output, target)
        grads = self.backward(context, loss_gradient=gradient)
        self.update(grads, learning_rate)
        return loss_value

    def train(
        self,
        inputs: Sequence[Matrix],
        expected: Sequence[Matrix],
        learning_rate: float,
        epochs: int,
        *,
        dropout: float = 0.0,
        verbose: bool = False,
    ) -> None:
        """Run ``epochs`` ordered passes over ``inputs``/``expected``.

        Each epoch reports ``loss`` (the first sample's loss) and ``mean_loss``
        to the callbacks; ``verbose`` also prints one line per epoch.
        """

        inputs = list(inputs)
        expected = list(expected)
        if len(inputs) != len(expected):
            raise ConfigurationError(
                f"Got {len(inputs)} inputs but {len(expected)} expected outputs"
            )
        if not inputs:
            raise ConfigurationError("Training requires at least one sample")

        for epoch in range(1, epochs + 1):
            losses = [
                self.train_step(x, y, learning_rate, dropout=dropout)
                for x, y in zip(inputs, expected)
            ]
            self._finish_epoch(epoch, losses, verbose)

    def train_batch(self, batch: Batch, learning_rate: float, dropout: float = 0.0) -> float:
        """One update from the loss gradient averaged over ``batch``.

        Backpropagation runs once, on the activations of the batch's last
        sample. Returns the mean loss over the batch.
        """

        losses: List[float] = []
        gradients: List[Matrix] = []
        for x, y in zip(batch.inputs, batch.targets):
            context = self.forward(x, dropout=dropout)
            loss_value, gradient = self.loss_fn(context.output, y)
            losses.append(loss_value)
            gradients.append(gradient)
        total = gradients[0]
        for gradient in gradients[1:]:
            total = total + gradient
        grads = self.backward(context, loss_gradient=total / len(batch))
        self.update(grads, learning_rate)
        return float(np.mean(losses))

    def train_batches(
        self,
        batches: Iterable[Batch],
        learning_rate: float,
        epochs: int,
        *,
        dropout: float = 0.0,
        verbose: bool = False,
    ) -> None:
        batches = list(batches)
        if not batches:
            raise ConfigurationError("Training requires at least one batch")
        for epoch in range(1, epochs + 1):
            losses = [self.train_batch(b, learning_rate, dropout=dropout) for b in batches]
            self._finish_epoch(epoch, losses, verbose)

    def fit(
        self, inputs: Sequence[Matrix], expected: Sequence[Matrix], config: TrainingConfig
    ) -> None:
        self.train(
            inputs,
            expected,
            config.learning_rate,
            config.epochs,
            dropout=config.dropout,
            verbose=config.verbose,
        )

    def _finish_epoch(self, epoch: int, losses: Sequence[float], verbose: bool) -> None:
        metrics = {"loss": float(losses[0]), "mean_loss": float(np.mean(losses))}
        if verbose:
            print(f"epoch {epoch}: {metrics['loss']}")
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)

    # ------------------------------------------------------------------
    # Copies and persistence

    def clone(self) -> "Network":
        """Independent copy of the parameters with fresh optimizer state."""

        optimizer = copy.deepcopy(self.optimizer)
        optimizer.reset()
        twin = Network(
            self.architecture,
            self.activations,
            loss=self.loss_fn,
            optimizer=optimizer,
            clip_threshold=self.clip_threshold,
            seed=self.seed,
        )
        twin.weights = [w.copy() for w in self.weights]
        twin.biases = [b.copy() for b in self.biases]
        return twin

    def to_record(self) -> Mapping[str, Any]:
        from ..persistence import to_record

        return to_record(self)

    @classmethod
    def from_record(cls, record: Mapping[str, Any], **kwargs: Any) -> "Network":
        from ..persistence import from_record

        return from_record(record, **kwargs)

    def save(self, path: str | Path) -> Path:
        from ..persistence import save

        return save(self, path)

    @classmethod
    def load(cls, path: str | Path, **kwargs: Any) -> "Network":
        from ..persistence import load

        return load(path, **kwargs)


__all__ = ["Network"]
