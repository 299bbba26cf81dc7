from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import pandas as pd

from ..blockchain import Blockchain
from ..stats import TxStatistics, merge_tx_stats
from .collector import RECORD_COLUMNS, ResultCollector
from .config import BenchmarkPlan, BenchmarkRound
from .load import LoadStatistics, WorkloadGenerator

LOGGER = logging.getLogger("ledger_bench.benchmark.runner")


@dataclass
class RoundResult:
    round: BenchmarkRound
    stats: TxStatistics
    partials: list[TxStatistics]
    load: list[LoadStatistics]
    records: pd.DataFrame

    def summary(self) -> dict[str, Any]:
        return {
            "label": self.round.label,
            "workers": self.round.workers,
            "succ": self.stats.succ,
            "fail": self.stats.fail,
            "average_delay_s": self.stats.average_delay,
            "send_rate": self.stats.send_rate,
            "throughput_tps": self.stats.throughput_tps,
        }


async def run_worker(
    blockchain: Blockchain,
    round_: BenchmarkRound,
    worker: int,
    credentials: Any,
) -> tuple[ResultCollector, LoadStatistics]:
    collector = ResultCollector(worker)
    context = await blockchain.get_context(round_.label, credentials)
    try:
        generator = WorkloadGenerator(blockchain, context, round_, worker, collector.register)
        load = await generator.run()
    finally:
        await blockchain.release_context(context)
    return collector, load


async def run_round(blockchain: Blockchain, round_: BenchmarkRound) -> RoundResult:
    LOGGER.info(
        "Running round %s (workers=%d, tx/worker=%d, tps/worker=%g)",
        round_.label,
        round_.workers,
        round_.tx_number,
        round_.rate.tps,
    )
    clients = await blockchain.create_clients(round_.workers)
    tasks = [
        asyncio.ensure_future(run_worker(blockchain, round_, worker, credentials))
        for worker, credentials in enumerate(clients, start=1)
    ]
    try:
        outcomes = await asyncio.gather(*tasks)
    except BaseException:
        # One worker failed; stop its siblings before propagating.
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    partials = [collector.tx_stats(out=[load.to_dict()]) for collector, load in outcomes]
    stats = merge_tx_stats(partials)
    frames = [collector.build_dataframe() for collector, _ in outcomes if len(collector)]
    records = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=RECORD_COLUMNS)

    result = RoundResult(
        round=round_,
        stats=stats,
        partials=partials,
        load=[load for _, load in outcomes],
        records=records,
    )
    LOGGER.info(
        "Round %s finished: succ=%d fail=%d avg_delay=%s tps=%s",
        round_.label,
        stats.succ,
        stats.fail,
        _fmt(stats.average_delay),
        _fmt(stats.throughput_tps),
    )
    return result


async def run_plan(
    blockchain: Blockchain,
    plan: BenchmarkPlan,
    initialise: bool = True,
) -> list[RoundResult]:
    """Prepare the backend, then run every round in order."""
    if initialise:
        await blockchain.init()
        await blockchain.install_smart_contract()
    results = []
    for round_ in plan:
        results.append(await run_round(blockchain, round_))
    return results


def _fmt(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.3f}"


__all__ = ["RoundResult", "run_plan", "run_round", "run_worker"]
