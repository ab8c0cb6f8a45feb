"""Training configuration with validated defaults."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

from ..errors import ConfigurationError
from .losses import REGISTRY as LOSS_REGISTRY
from .optimizers import build_optimizer


@dataclass(frozen=True)
class TrainingConfig:
    """Every knob exposed by :class:`~densenn.training.network.Network`."""

    learning_rate: float = 0.01
    epochs: int = 1
    dropout: float = 0.0
    verbose: bool = False
    loss: str = "mse"
    optimizer: str = "gradient_descent"
    clip_threshold: float | None = None
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.learning_rate <= 0.0:
            raise ConfigurationError("learning_rate must be positive")
        if self.epochs < 0:
            raise ConfigurationError("epochs must be non-negative")
        if not 0.0 <= self.dropout < 1.0:
            raise ConfigurationError("dropout must lie in [0, 1)")
        if self.clip_threshold is not None and self.clip_threshold <= 0.0:
            raise ConfigurationError("clip_threshold must be positive")
        LOSS_REGISTRY.get(self.loss)
        # Validates the name and the Adam hyperparameters.
        self.build_optimizer()

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TrainingConfig":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown training options: {', '.join(unknown)}")
        return cls(**dict(values))

    def merge(self, override: Mapping[str, Any]) -> "TrainingConfig":
        merged = self.to_dict()
        merged.update(override)
        return TrainingConfig.from_mapping(merged)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def build_optimizer(self):
        if self.optimizer == "adam":
            return build_optimizer(
                "adam", beta1=self.beta1, beta2=self.beta2, epsilon=self.epsilon
            )
        return build_optimizer(self.optimizer)


def load_config(path: str | Path, base: TrainingConfig | None = None) -> TrainingConfig:
    """Read a JSON object of training options, layered over ``base``."""

    path = Path(path)
    try:
        override = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(override, Mapping):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return (base or TrainingConfig()).merge(override)


__all__ = ["TrainingConfig", "load_config"]
