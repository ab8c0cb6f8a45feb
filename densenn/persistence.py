"""JSON model records.

A record holds the architecture, canonical activation names and the weight
and bias matrices as nested lists::

    {"architecture": [1, 2, 2],
     "activations": ["relu", "softmax"],
     "weights": [[[...]], [[...]]],
     "biases": [[[...]], [[...]]]}

Optimizer state is never stored; a loaded network starts with fresh
accumulators.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping

from .core.activations import Activation, canonical_name
from .core.matrix import Matrix
from .errors import ConfigurationError, DimensionMismatchError, UnknownActivationError
from .training.network import Network

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ("architecture", "activations", "weights", "biases")


def to_record(network: Network) -> Dict[str, Any]:
    return {
        "architecture": list(network.architecture),
        "activations": [canonical_name(tag) for tag in network.activations],
        "weights": [w.to_list() for w in network.weights],
        "biases": [b.to_list() for b in network.biases],
    }


def _activation_from_name(name: Any) -> Activation:
    if not isinstance(name, str):
        raise UnknownActivationError(f"Activation name must be a string, got {name!r}")
    try:
        return Activation(name)
    except ValueError:
        raise UnknownActivationError(f"Unknown activation {name!r} in model record") from None


def from_record(record: Mapping[str, Any], **network_kwargs: Any) -> Network:
    """Rebuild a :class:`Network` from ``record``.

    ``network_kwargs`` (loss, optimizer, clip_threshold, seed, callbacks) are
    passed to the constructor since they are not part of the record.
    """

    missing = [key for key in _REQUIRED_KEYS if key not in record]
    if missing:
        raise ConfigurationError(f"Model record missing keys: {', '.join(missing)}")

    architecture = [int(width) for width in record["architecture"]]
    activations = [_activation_from_name(name) for name in record["activations"]]
    network = Network(architecture, activations, **network_kwargs)

    weights = [Matrix.from_list(w) for w in record["weights"]]
    biases = [Matrix.from_list(b) for b in record["biases"]]
    if len(weights) != network.num_layers or len(biases) != network.num_layers:
        raise DimensionMismatchError(
            f"Record has {len(weights)} weight and {len(biases)} bias matrices "
            f"for {network.num_layers} layers"
        )
    for idx, (W, b) in enumerate(zip(weights, biases)):
        if W.shape != network.weights[idx].shape or b.shape != network.biases[idx].shape:
            raise DimensionMismatchError(
                f"Layer {idx}: weights {W.shape} / biases {b.shape} do not match "
                f"architecture {architecture}"
            )
    network.weights = weights
    network.biases = biases
    network.optimizer.reset()
    return network


def save(network: Network, path: str | Path) -> Path:
    path = Path(path)
    record = to_record(network)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    logger.info("Saved %s network to %s", network.architecture, path)
    return path


def load(path: str | Path, **network_kwargs: Any) -> Network:
    path = Path(path)
    try:
        record = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Invalid model file {path}: {exc}") from exc
    if not isinstance(record, Mapping):
        raise ConfigurationError(f"{path} must contain a JSON object")
    network = from_record(record, **network_kwargs)
    logger.info("Loaded %s network from %s", network.architecture, path)
    return network


__all__ = ["from_record", "load", "save", "to_record"]
