from __future__ import annotations


class LedgerBenchError(Exception):
    """Base class for every error raised by the benchmark core."""


class ConfigurationError(LedgerBenchError):
    """Raised when no usable backend can be derived from the configuration."""


class InitializationError(LedgerBenchError):
    """Raised when the backend environment cannot be prepared."""


class ProvisioningError(LedgerBenchError):
    """Raised when the backend cannot create the requested client material."""


class DeploymentError(LedgerBenchError):
    """Raised when smart contract installation fails."""


class ContextError(LedgerBenchError):
    """Raised when a context cannot be bound, or is used after release."""


class InvocationError(LedgerBenchError):
    """Raised for infrastructure failures while submitting a transaction."""


class QueryError(LedgerBenchError):
    """Raised for infrastructure failures while querying ledger state."""


class RecordFormatError(LedgerBenchError):
    """Raised when a transaction record violates the record contract."""


__all__ = [
    "LedgerBenchError",
    "ConfigurationError",
    "InitializationError",
    "ProvisioningError",
    "DeploymentError",
    "ContextError",
    "InvocationError",
    "QueryError",
    "RecordFormatError",
]
