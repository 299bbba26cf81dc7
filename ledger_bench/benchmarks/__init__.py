"""
Benchmark driver for the ledger facade.

This package turns a benchmark plan into per-worker workloads against a
:class:`~ledger_bench.blockchain.Blockchain`, merges the workers' partial
statistics and renders throughput and latency charts for each round.
"""

from .main import main

__all__ = ["main"]
