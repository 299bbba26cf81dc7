"""
Uniform facade over the supported ledger backends.

The backend is chosen once, at construction, from the marker key present in
the configuration (``fabric``, ``sawtooth``, ``iroha`` or ``simulated``).
Workload code talks to :class:`Blockchain` only and never branches on the
backend kind.
"""

from __future__ import annotations

import enum
import logging
import math
import numbers
import os
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

from .adapters.base import BlockchainAdapter
from .adapters.simulated import SimulatedLedgerAdapter
from .config import resolve_config
from .errors import (
    ConfigurationError,
    ContextError,
    DeploymentError,
    InitializationError,
    InvocationError,
    LedgerBenchError,
    ProvisioningError,
    QueryError,
)
from .records import TxRecord, coerce_record

LOGGER = logging.getLogger("ledger_bench.blockchain")

DEFAULT_TIMEOUT_SECONDS = 120

T = TypeVar("T")
AdapterFactory = Callable[[Mapping[str, Any]], BlockchainAdapter]


class BackendKind(str, enum.Enum):
    FABRIC = "fabric"
    SAWTOOTH = "sawtooth"
    IROHA = "iroha"
    SIMULATED = "simulated"


# Marker keys are probed in this order; the first one present wins.
PROBE_ORDER: tuple[BackendKind, ...] = (
    BackendKind.FABRIC,
    BackendKind.SAWTOOTH,
    BackendKind.IROHA,
    BackendKind.SIMULATED,
)

_ADAPTER_FACTORIES: dict[BackendKind, AdapterFactory] = {
    BackendKind.SIMULATED: SimulatedLedgerAdapter,
}


def register_adapter(kind: BackendKind | str, factory: AdapterFactory) -> None:
    """Install the adapter factory used for ``kind``, replacing any previous one."""
    _ADAPTER_FACTORIES[BackendKind(kind)] = factory


def unregister_adapter(kind: BackendKind | str) -> None:
    _ADAPTER_FACTORIES.pop(BackendKind(kind), None)


def detect_backend(config: Mapping[str, Any]) -> BackendKind:
    matches = [kind for kind in PROBE_ORDER if kind.value in config]
    if not matches:
        raise ConfigurationError(
            "configuration names no known backend; expected one of "
            + ", ".join(kind.value for kind in PROBE_ORDER)
        )
    if len(matches) > 1:
        LOGGER.warning(
            "Configuration contains several backend sections (%s); using %s",
            ", ".join(kind.value for kind in matches),
            matches[0].value,
        )
    return matches[0]


def normalise_timeout(timeout: Any) -> float:
    if (
        timeout is None
        or isinstance(timeout, bool)
        or not isinstance(timeout, numbers.Real)
        or not math.isfinite(timeout)
        or timeout < 0
    ):
        return DEFAULT_TIMEOUT_SECONDS
    return timeout


class ContextState(str, enum.Enum):
    ACQUIRED = "acquired"
    RELEASED = "released"


class Context:
    """Backend handle bound to one client's credentials for one workload."""

    def __init__(self, name: str, credentials: Any, handle: Any, backend: BackendKind) -> None:
        self.name = name
        self.credentials = credentials
        self.handle = handle
        self.backend = backend
        self.state = ContextState.ACQUIRED

    @property
    def released(self) -> bool:
        return self.state is ContextState.RELEASED

    def __repr__(self) -> str:
        return f"Context(name={self.name!r}, backend={self.backend.value}, state={self.state.value})"


class Blockchain:
    """Dispatches the benchmark operation set to the configured backend adapter."""

    def __init__(
        self,
        config: Mapping[str, Any] | str | os.PathLike[str] | None = None,
        adapters: Mapping[BackendKind, AdapterFactory] | None = None,
    ) -> None:
        resolved = resolve_config(config)
        kind = detect_backend(resolved)
        factories = dict(_ADAPTER_FACTORIES)
        if adapters:
            factories.update({BackendKind(k): v for k, v in adapters.items()})

        factory = factories.get(kind)
        if factory is None:
            raise ConfigurationError(f"no adapter registered for backend {kind.value!r}")
        try:
            adapter = factory(resolved)
        except LedgerBenchError:
            raise
        except Exception as exc:
            raise ConfigurationError(
                f"failed to construct {kind.value} adapter: {exc}"
            ) from exc

        self._kind = kind
        self._adapter = adapter
        self._config = resolved
        LOGGER.info("Using %s backend", kind.value)

    @property
    def kind(self) -> BackendKind:
        return self._kind

    @property
    def config(self) -> Mapping[str, Any]:
        return self._config

    def get_type(self) -> str:
        return self._kind.value

    async def init(self) -> None:
        """Prepare the backend; call once per deployment, before any workload."""
        await self._call(InitializationError, "init", self._adapter.init())

    async def create_clients(self, number: int) -> list[Any]:
        if isinstance(number, bool) or not isinstance(number, int) or number < 0:
            raise ValueError(f"number of clients must be a non-negative integer, got {number!r}")
        clients = await self._call(
            ProvisioningError, "create_clients", self._adapter.create_clients(number)
        )
        clients = list(clients or [])
        if len(clients) < number:
            raise ProvisioningError(f"backend created {len(clients)} of {number} requested clients")
        return clients[:number]

    async def install_smart_contract(self) -> None:
        await self._call(DeploymentError, "install_smart_contract", self._adapter.install_smart_contract())

    async def get_context(self, name: str, credentials: Any) -> Context:
        handle = await self._call(
            ContextError, "get_context", self._adapter.get_context(name, credentials)
        )
        return Context(name=name, credentials=credentials, handle=handle, backend=self._kind)

    async def release_context(self, context: Context) -> None:
        self._check_acquired(context)
        context.state = ContextState.RELEASED
        await self._call(ContextError, "release_context", self._adapter.release_context(context.handle))

    async def invoke_smart_contract(
        self,
        context: Context,
        contract_id: str,
        contract_ver: str,
        args: Sequence[Any],
        timeout: Any = None,
    ) -> TxRecord:
        """Submit a transaction; timeouts and rejections come back as failed records."""
        self._check_acquired(context)
        result = await self._call(
            InvocationError,
            "invoke_smart_contract",
            self._adapter.invoke_smart_contract(
                context.handle, contract_id, contract_ver, args, normalise_timeout(timeout)
            ),
        )
        return self._as_record(result, InvocationError)

    async def query_state(
        self,
        context: Context,
        contract_id: str,
        contract_ver: str,
        key: Any,
    ) -> TxRecord:
        self._check_acquired(context)
        result = await self._call(
            QueryError,
            "query_state",
            self._adapter.query_state(context.handle, contract_id, contract_ver, key),
        )
        return self._as_record(result, QueryError)

    def _check_acquired(self, context: Context) -> None:
        if not isinstance(context, Context):
            raise ContextError(f"expected a Context, got {type(context).__name__}")
        if context.released:
            raise ContextError(f"context {context.name!r} has already been released")

    async def _call(self, error: type[LedgerBenchError], operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except LedgerBenchError:
            raise
        except Exception as exc:
            LOGGER.debug("%s backend failed in %s", self._kind.value, operation, exc_info=True)
            raise error(f"{self._kind.value} backend failed in {operation}: {exc}") from exc

    def _as_record(self, result: Any, error: type[LedgerBenchError]) -> TxRecord:
        try:
            record = coerce_record(result)
        except LedgerBenchError as exc:
            raise error(f"{self._kind.value} backend returned a malformed record: {exc}") from exc
        if record.backend is None:
            record.backend = self._kind.value
        return record


__all__ = [
    "BackendKind",
    "Blockchain",
    "Context",
    "ContextState",
    "DEFAULT_TIMEOUT_SECONDS",
    "PROBE_ORDER",
    "detect_backend",
    "normalise_timeout",
    "register_adapter",
    "unregister_adapter",
]
