"""Reporting utilities for densenn."""

from .metrics import EPOCH_METRICS, CsvSink, JsonlSink, LossHistory, read_jsonl

__all__ = ["CsvSink", "EPOCH_METRICS", "JsonlSink", "LossHistory", "read_jsonl"]
