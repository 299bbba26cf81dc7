"""
Platform-agnostic core of the ledger benchmark harness.

:class:`Blockchain` presents one operation set over every supported ledger
backend, and :mod:`ledger_bench.stats` turns transaction outcome records into
aggregate latency and throughput statistics.
"""

from .blockchain import BackendKind, Blockchain, Context, register_adapter
from .errors import (
    ConfigurationError,
    ContextError,
    DeploymentError,
    InitializationError,
    InvocationError,
    LedgerBenchError,
    ProvisioningError,
    QueryError,
    RecordFormatError,
)
from .records import TxRecord, TxStatus
from .stats import TxStatistics, compute_tx_stats, merge_tx_stats

__all__ = [
    "BackendKind",
    "Blockchain",
    "ConfigurationError",
    "Context",
    "ContextError",
    "DeploymentError",
    "InitializationError",
    "InvocationError",
    "LedgerBenchError",
    "ProvisioningError",
    "QueryError",
    "RecordFormatError",
    "TxRecord",
    "TxStatistics",
    "TxStatus",
    "compute_tx_stats",
    "merge_tx_stats",
    "register_adapter",
]
