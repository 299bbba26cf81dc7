"""
Backend adapters for the ledger benchmark facade.

Each adapter implements :class:`BlockchainAdapter` for one ledger platform.
Only the in-process simulated ledger ships with this package; SDK-backed
adapters are registered with :func:`ledger_bench.blockchain.register_adapter`.
"""

from .base import BlockchainAdapter
from .simulated import SimulatedLedgerAdapter

__all__ = ["BlockchainAdapter", "SimulatedLedgerAdapter"]
