"""Epoch callbacks recording training losses.

Every callback receives ``on_epoch(epoch, metrics)`` from
:meth:`densenn.training.network.Network.train`, where ``metrics`` holds
``loss`` (the first sample's loss) and ``mean_loss``.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

EPOCH_METRICS: Tuple[str, ...] = ("loss", "mean_loss")


def _select(metrics: Mapping[str, float], names: Sequence[str]) -> Dict[str, float]:
    return {name: float(metrics[name]) for name in names if name in metrics}


class LossHistory:
    """Keep every epoch's metrics in memory."""

    def __init__(self) -> None:
        self.history: List[Tuple[int, dict[str, float]]] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.history.append((int(epoch), {k: float(v) for k, v in metrics.items()}))

    def series(self, name: str = "loss") -> List[float]:
        return [metrics[name] for _, metrics in self.history if name in metrics]

    def best(self, name: str = "mean_loss") -> Tuple[int, float]:
        """Return ``(epoch, value)`` of the lowest recorded ``name``."""

        scored = [(metrics[name], epoch) for epoch, metrics in self.history if name in metrics]
        if not scored:
            raise KeyError(f"No epoch recorded {name!r}")
        value, epoch = min(scored)
        return epoch, value

    def __len__(self) -> int:
        return len(self.history)

    __call__ = on_epoch


class JsonlSink:
    """One JSON object per epoch: ``epoch``, the fixed ``tags`` and the metrics.

    Only the names in ``metrics`` are written; the file is truncated on
    construction.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        metrics: Sequence[str] = EPOCH_METRICS,
        tags: Mapping[str, object] | None = None,
    ) -> None:
        self.path = Path(path)
        self.metrics = tuple(metrics)
        self.tags = dict(tags or {})
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record: dict[str, object] = {"epoch": int(epoch), **self.tags}
        record.update(_select(metrics, self.metrics))
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_epoch


class CsvSink:
    """CSV with the header ``epoch`` followed by ``metrics``, written up front.

    An epoch that lacks one of the metrics leaves that cell empty.
    """

    def __init__(self, path: str | Path, *, metrics: Sequence[str] = EPOCH_METRICS) -> None:
        self.path = Path(path)
        self.fieldnames = ["epoch", *metrics]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8", newline="") as handle:
            csv.DictWriter(handle, fieldnames=self.fieldnames).writeheader()

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row: dict[str, object] = {"epoch": int(epoch)}
        row.update(_select(metrics, self.fieldnames[1:]))
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            csv.DictWriter(handle, fieldnames=self.fieldnames, restval="").writerow(row)

    __call__ = on_epoch


def read_jsonl(path: str | Path, *, metrics: Sequence[str] = EPOCH_METRICS) -> LossHistory:
    """Rebuild a :class:`LossHistory` of ``metrics`` from a :class:`JsonlSink` file."""

    history = LossHistory()
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        record = json.loads(line)
        history.on_epoch(record["epoch"], _select(record, metrics))
    return history


__all__ = ["CsvSink", "EPOCH_METRICS", "JsonlSink", "LossHistory", "read_jsonl"]
