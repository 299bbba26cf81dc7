from __future__ import annotations

import asyncio
import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Callable

from ..blockchain import Blockchain, Context
from ..records import TxRecord
from .config import BenchmarkRound

LOGGER = logging.getLogger("ledger_bench.benchmark.load")


@dataclass
class LoadStatistics:
    worker: int
    produced: int
    started_at: float
    finished_at: float

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    @property
    def send_rate(self) -> float:
        if self.duration_s == 0:
            return 0.0
        return self.produced / self.duration_s

    def to_dict(self) -> dict[str, float]:
        return {
            "worker": self.worker,
            "produced": self.produced,
            "duration_s": self.duration_s,
            "send_rate": self.send_rate,
        }


class WorkloadGenerator:
    """Submits one worker's transactions on its own context with Poisson pacing.

    Submissions are sequential because a context must not carry more than one
    in-flight operation.
    """

    def __init__(
        self,
        blockchain: Blockchain,
        context: Context,
        round_: BenchmarkRound,
        worker: int,
        record_callback: Callable[[TxRecord], None],
        rng: random.Random | None = None,
    ) -> None:
        self._blockchain = blockchain
        self._context = context
        self._round = round_
        self._worker = worker
        self._record_callback = record_callback
        self._rng = rng or random.Random()

    async def run(self) -> LoadStatistics:
        produced = 0
        started_at = time.time()
        for index in range(1, self._round.tx_number + 1):
            record = await self._blockchain.invoke_smart_contract(
                self._context,
                self._round.contract_id,
                self._round.contract_ver,
                self._round.format_arguments(self._worker, index),
                self._round.timeout_seconds,
            )
            self._record_callback(record)
            produced += 1
            if index < self._round.tx_number:
                await self._sleep_for_next()

        finished_at = time.time()
        LOGGER.debug("Worker %d submitted %d transactions", self._worker, produced)
        return LoadStatistics(
            worker=self._worker, produced=produced, started_at=started_at, finished_at=finished_at
        )

    async def _sleep_for_next(self) -> None:
        if not self._round.rate.paced:
            return
        u = self._rng.random()
        delay = -math.log(1.0 - u) / self._round.rate.tps
        await asyncio.sleep(max(delay, 0.0))


__all__ = ["LoadStatistics", "WorkloadGenerator"]
