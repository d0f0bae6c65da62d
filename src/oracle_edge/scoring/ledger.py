"""Calibration ledger: observed accuracy per 0.1-wide confidence bucket.

One ledger tracks every market type. Outcomes for the same market type are
serialized by a per-type lock; different market types never contend.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field

from oracle_edge.common.errors import ValidationError
from oracle_edge.common.types import JsonDict, clamp

DEFAULT_MARKET_TYPE = "default"

N_BUCKETS = 10


def bucket_index(confidence: float) -> int:
    """Bucket for a confidence in [0, 1]; 1.0 falls into the top bucket."""
    return min(int(math.floor(confidence * N_BUCKETS)), N_BUCKETS - 1)


def bucket_label(index: int) -> str:
    """Bucket lower bound as used in serialized ledgers ("0.0" .. "0.9")."""
    return f"{index / N_BUCKETS:.1f}"


def _label_index(label: str) -> int:
    return min(max(round(float(label) * N_BUCKETS), 0), N_BUCKETS - 1)


@dataclass
class CalibrationBucket:
    samples: int = 0
    correct: int = 0
    accuracy: float = 0.0

    def to_dict(self) -> JsonDict:
        return {"samples": self.samples, "correct": self.correct, "accuracy": self.accuracy}


@dataclass
class MarketCalibration:
    """Ledger entry for one market type."""

    samples: int = 0
    buckets: dict[int, CalibrationBucket] = field(default_factory=dict)


class CalibrationLedger:
    """Online record of predicted confidence vs. realized correctness."""

    def __init__(self) -> None:
        self._entries: dict[str, MarketCalibration] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, market_type: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(market_type)
            if lock is None:
                lock = self._locks[market_type] = threading.Lock()
            return lock

    def record_outcome(
        self,
        predicted_confidence: float,
        was_correct: bool,
        market_type: str = DEFAULT_MARKET_TYPE,
    ) -> CalibrationBucket:
        """Count one resolved prediction and refresh its bucket's accuracy.

        Returns a snapshot of the updated bucket.
        """
        if not 0.0 <= predicted_confidence <= 1.0:
            raise ValidationError(
                f"predicted_confidence must be in [0, 1], got {predicted_confidence}"
            )
        index = bucket_index(predicted_confidence)

        with self._lock_for(market_type):
            with self._locks_guard:
                entry = self._entries.setdefault(market_type, MarketCalibration())
            entry.samples += 1
            bucket = entry.buckets.setdefault(index, CalibrationBucket())
            bucket.samples += 1
            if was_correct:
                bucket.correct += 1
            bucket.accuracy = clamp(bucket.correct / bucket.samples)
            return CalibrationBucket(bucket.samples, bucket.correct, bucket.accuracy)

    def market_types(self) -> list[str]:
        with self._locks_guard:
            return sorted(self._entries)

    def market_samples(self, market_type: str) -> int:
        entry = self._entries.get(market_type)
        return entry.samples if entry else 0

    def bucket(self, market_type: str, confidence: float) -> CalibrationBucket | None:
        """Snapshot of the bucket containing ``confidence``, if it has data."""
        index = bucket_index(clamp(confidence))
        with self._lock_for(market_type):
            entry = self._entries.get(market_type)
            if entry is None:
                return None
            bucket = entry.buckets.get(index)
            if bucket is None:
                return None
            return CalibrationBucket(bucket.samples, bucket.correct, bucket.accuracy)

    def resolve_market_type(self, market_type: str | None) -> str | None:
        """The market type to calibrate against, falling back to the default entry."""
        if market_type and market_type in self._entries:
            return market_type
        if DEFAULT_MARKET_TYPE in self._entries:
            return DEFAULT_MARKET_TYPE
        return None

    def to_dict(self) -> dict[str, JsonDict]:
        """Serializable form: market type -> {samples, buckets: label -> bucket}."""
        report: dict[str, JsonDict] = {}
        for market_type in self.market_types():
            with self._lock_for(market_type):
                entry = self._entries[market_type]
                report[market_type] = {
                    "samples": entry.samples,
                    "buckets": {
                        bucket_label(index): entry.buckets[index].to_dict()
                        for index in sorted(entry.buckets)
                    },
                }
        return report

    @classmethod
    def from_dict(cls, data: dict) -> CalibrationLedger:
        """Restore a ledger from ``to_dict`` output."""
        ledger = cls()
        for market_type, raw in data.items():
            entry = MarketCalibration(samples=int(raw.get("samples", 0)))
            for label, raw_bucket in raw.get("buckets", {}).items():
                samples = int(raw_bucket.get("samples", 0))
                correct = int(raw_bucket.get("correct", 0))
                if samples <= 0:
                    continue
                entry.buckets[_label_index(label)] = CalibrationBucket(
                    samples=samples,
                    correct=correct,
                    accuracy=clamp(correct / samples),
                )
            ledger._entries[market_type] = entry
        return ledger
