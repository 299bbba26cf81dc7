"""
Reduction of transaction outcome records into aggregate statistics.

Each worker reduces its own records with :func:`compute_tx_stats`; the
coordinator combines the partial results with :func:`merge_tx_stats`. Both are
pure: they never touch a backend and never mutate their inputs.

Times inside records are epoch milliseconds, every bound reported here is in
seconds. Throughput buckets are keyed by the commit time rounded (half up) to
the nearest whole second. Bounds that no record contributed to are ``None``.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from .errors import RecordFormatError
from .records import TxRecord, TxStatus, coerce_record


@dataclass
class Window:
    min: float | None = None
    max: float | None = None

    def include(self, value: float) -> None:
        if self.min is None or value < self.min:
            self.min = value
        if self.max is None or value > self.max:
            self.max = value

    def absorb(self, other: "Window") -> None:
        if other.min is not None:
            self.include(other.min)
        if other.max is not None:
            self.include(other.max)

    def to_dict(self) -> dict[str, float | None]:
        return {"min": self.min, "max": self.max}


@dataclass
class DelayWindow(Window):
    # Kept in raw milliseconds so merges of integer timestamps stay exact.
    total_ms: float = 0

    @property
    def sum(self) -> float:
        return self.total_ms / 1000

    def absorb(self, other: "Window") -> None:
        super().absorb(other)
        if isinstance(other, DelayWindow):
            self.total_ms += other.total_ms

    def to_dict(self) -> dict[str, float | None]:
        return {"min": self.min, "max": self.max, "sum": self.sum, "total_ms": self.total_ms}


@dataclass
class TxStatistics:
    succ: int = 0
    fail: int = 0
    create: Window = field(default_factory=Window)
    valid: Window = field(default_factory=Window)
    delay: DelayWindow = field(default_factory=DelayWindow)
    throughput: dict[int, int] = field(default_factory=dict)
    out: list[Any] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succ + self.fail

    @property
    def average_delay(self) -> float | None:
        if self.succ == 0:
            return None
        return self.delay.sum / self.succ

    @property
    def send_rate(self) -> float | None:
        """Submitted transactions per second over the creation window."""
        if self.create.min is None or self.create.max is None:
            return None
        duration = self.create.max - self.create.min
        if duration <= 0:
            return None
        return self.total / duration

    @property
    def throughput_tps(self) -> float | None:
        """Committed transactions per second, first submission to last commit."""
        if self.succ == 0 or self.create.min is None or self.valid.max is None:
            return None
        duration = self.valid.max - self.create.min
        if duration <= 0:
            return None
        return self.succ / duration

    def to_dict(self) -> dict[str, Any]:
        return {
            "succ": self.succ,
            "fail": self.fail,
            "create": self.create.to_dict(),
            "valid": self.valid.to_dict(),
            "delay": self.delay.to_dict(),
            "throughput": {str(k): v for k, v in sorted(self.throughput.items())},
            "out": list(self.out),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TxStatistics":
        create = payload.get("create") or {}
        valid = payload.get("valid") or {}
        delay = payload.get("delay") or {}
        total_ms = delay.get("total_ms")
        if total_ms is None:
            total_ms = (delay.get("sum") or 0) * 1000
        return cls(
            succ=int(payload.get("succ", 0)),
            fail=int(payload.get("fail", 0)),
            create=Window(create.get("min"), create.get("max")),
            valid=Window(valid.get("min"), valid.get("max")),
            delay=DelayWindow(delay.get("min"), delay.get("max"), total_ms),
            throughput={int(k): int(v) for k, v in (payload.get("throughput") or {}).items()},
            out=list(payload.get("out") or []),
        )


def throughput_bucket(time_valid_ms: float) -> int:
    return int(math.floor((time_valid_ms + 500) / 1000))


def compute_tx_stats(
    records: Iterable[TxRecord | Mapping[str, Any]],
    out: Sequence[Any] | None = None,
) -> TxStatistics:
    """Aggregate one worker's records.

    Anything that is not ``success`` counts as a failure, including records
    still in ``created`` state. Raises ``RecordFormatError`` for records that
    break the record contract instead of producing a skewed aggregate.
    """
    stats = TxStatistics(out=list(out or []))
    for raw in records:
        record = coerce_record(raw)
        create = _require_time(record, "time_create", record.time_create)
        stats.create.include(create / 1000)

        if record.status is not TxStatus.SUCCESS:
            stats.fail += 1
            continue

        valid = _require_time(record, "time_valid", record.time_valid)
        if valid < create:
            raise RecordFormatError(
                f"record {record.id!r} committed before it was created "
                f"({valid} < {create})"
            )
        stats.succ += 1
        stats.valid.include(valid / 1000)
        delay_ms = valid - create
        stats.delay.include(delay_ms / 1000)
        stats.delay.total_ms += delay_ms
        bucket = throughput_bucket(valid)
        stats.throughput[bucket] = stats.throughput.get(bucket, 0) + 1
    return stats


def merge_tx_stats(results: Sequence[TxStatistics]) -> TxStatistics:
    """Combine partial aggregates into a new one; the inputs are left untouched."""
    if not results:
        raise ValueError("merge_tx_stats needs at least one aggregate")

    first = results[0]
    merged = TxStatistics(
        succ=first.succ,
        fail=first.fail,
        create=Window(first.create.min, first.create.max),
        valid=Window(first.valid.min, first.valid.max),
        delay=DelayWindow(first.delay.min, first.delay.max, first.delay.total_ms),
        throughput=dict(first.throughput),
        out=list(first.out),
    )
    for other in results[1:]:
        merged.succ += other.succ
        merged.fail += other.fail
        merged.out.extend(other.out)
        merged.create.absorb(other.create)
        merged.valid.absorb(other.valid)
        merged.delay.absorb(other.delay)
        for bucket, count in other.throughput.items():
            merged.throughput[bucket] = merged.throughput.get(bucket, 0) + count
    return merged


def _require_time(record: TxRecord, name: str, value: Any) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise RecordFormatError(f"record {record.id!r} has no numeric {name}")
    if math.isnan(value):
        raise RecordFormatError(f"record {record.id!r} has NaN {name}")
    return value


__all__ = [
    "DelayWindow",
    "TxStatistics",
    "Window",
    "compute_tx_stats",
    "merge_tx_stats",
    "throughput_bucket",
]
