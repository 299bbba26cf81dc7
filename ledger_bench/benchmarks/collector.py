from __future__ import annotations

import collections
from typing import Any, Sequence

import pandas as pd

from ..records import TxRecord
from ..stats import TxStatistics, compute_tx_stats

RECORD_COLUMNS = [
    "worker",
    "id",
    "status",
    "time_create",
    "time_valid",
    "latency_s",
    "backend",
]


class ResultCollector:
    """Keeps the outcome records of a single worker."""

    def __init__(self, worker: int) -> None:
        self.worker = worker
        self._records: list[TxRecord] = []

    def register(self, record: TxRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> list[TxRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def summaries(self) -> dict[str, int]:
        counter = collections.Counter(record.status.value for record in self._records)
        return dict(counter)

    def tx_stats(self, out: Sequence[Any] | None = None) -> TxStatistics:
        return compute_tx_stats(self._records, out=out)

    def build_dataframe(self) -> pd.DataFrame:
        if not self._records:
            return pd.DataFrame(columns=RECORD_COLUMNS)
        rows = [{"worker": self.worker, **record.to_row()} for record in self._records]
        return pd.DataFrame(rows, columns=RECORD_COLUMNS)


__all__ = ["RECORD_COLUMNS", "ResultCollector"]
