from __future__ import annotations

import asyncio
import itertools
import logging
import math
import random
import secrets
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ..errors import (
    ContextError,
    DeploymentError,
    InitializationError,
    InvocationError,
    ProvisioningError,
    QueryError,
)
from ..records import TxRecord, TxStatus, now_ms
from .base import BlockchainAdapter

LOGGER = logging.getLogger("ledger_bench.adapters.simulated")

DEFAULT_COMMIT_DELAY_MS = 50.0
DEFAULT_MAX_CLIENTS = 1_000

# Deployments initialised in this process; init must run once per deployment.
_initialised_deployments: set[str] = set()
_deployments_lock = threading.Lock()


@dataclass(eq=False)
class SimulatedSession:
    client_id: str
    name: str


class SimulatedLedgerAdapter(BlockchainAdapter):
    """In-process ledger with exponential commit delays and random rejections."""

    kind = "simulated"

    def __init__(self, config: Mapping[str, Any]) -> None:
        super().__init__(config)
        options = config.get("simulated") or {}
        if not isinstance(options, Mapping):
            raise ValueError("'simulated' configuration section must be an object")

        self._deployment = str(options.get("deployment", "simulated-ledger"))
        self._commit_delay_ms = float(options.get("commit_delay_ms", DEFAULT_COMMIT_DELAY_MS))
        self._failure_rate = float(options.get("failure_rate", 0.0))
        self._max_clients = int(options.get("max_clients", DEFAULT_MAX_CLIENTS))
        self._contracts = [
            (str(contract["id"]), str(contract["version"]))
            for contract in options.get("contracts", [])
        ]
        if self._commit_delay_ms < 0:
            raise ValueError("commit_delay_ms must be >= 0")
        if not 0.0 <= self._failure_rate <= 1.0:
            raise ValueError("failure_rate must be within [0, 1]")

        self._rng = random.Random(options.get("seed"))
        self._tx_counter = itertools.count(start=1)
        self._issued_clients: dict[str, dict[str, str]] = {}
        self._sessions: set[SimulatedSession] = set()
        self._installed: set[tuple[str, str]] = set()
        self._state: dict[tuple[str, str], dict[str, Any]] = {}

    @property
    def deployment(self) -> str:
        return self._deployment

    async def init(self) -> None:
        with _deployments_lock:
            if self._deployment in _initialised_deployments:
                raise InitializationError(
                    f"deployment {self._deployment!r} has already been initialised"
                )
            _initialised_deployments.add(self._deployment)
        LOGGER.info("Initialised simulated deployment %s", self._deployment)

    async def create_clients(self, number: int) -> list[dict[str, str]]:
        if number > self._max_clients:
            raise ProvisioningError(
                f"requested {number} clients but deployment allows {self._max_clients}"
            )
        clients = []
        for _ in range(number):
            client_id = f"client-{len(self._issued_clients) + 1}"
            credentials = {"client_id": client_id, "key": secrets.token_hex(16)}
            self._issued_clients[client_id] = credentials
            clients.append(dict(credentials))
        return clients

    async def install_smart_contract(self) -> None:
        if not self._contracts:
            raise DeploymentError("no contracts configured under 'simulated.contracts'")
        for contract in self._contracts:
            self._installed.add(contract)
            self._state.setdefault(contract, {})
            LOGGER.info("Installed contract %s@%s", *contract)

    async def get_context(self, name: str, credentials: Any) -> SimulatedSession:
        client_id = credentials.get("client_id") if isinstance(credentials, Mapping) else None
        issued = self._issued_clients.get(client_id) if client_id else None
        if issued is None or issued.get("key") != credentials.get("key"):
            raise ContextError(f"credentials for {client_id!r} were not issued by this deployment")
        session = SimulatedSession(client_id=client_id, name=name)
        self._sessions.add(session)
        return session

    async def release_context(self, handle: SimulatedSession) -> None:
        self._sessions.discard(handle)

    async def invoke_smart_contract(
        self,
        handle: SimulatedSession,
        contract_id: str,
        contract_ver: str,
        args: Sequence[Any],
        timeout: float,
    ) -> TxRecord:
        self._check_session(handle, InvocationError)
        contract = self._require_contract(contract_id, contract_ver, InvocationError)
        if not args:
            raise InvocationError("invoke needs at least a key argument")

        tx_id = f"{handle.client_id}-tx-{next(self._tx_counter)}"
        time_create = now_ms()
        commit_delay = self._draw_commit_delay()

        if commit_delay > timeout:
            await asyncio.sleep(timeout)
            LOGGER.debug("Transaction %s timed out after %.3fs", tx_id, timeout)
            return self._record(tx_id, TxStatus.FAILED, time_create, extra={"timeout": True})

        await asyncio.sleep(commit_delay)
        if self._rng.random() < self._failure_rate:
            return self._record(tx_id, TxStatus.FAILED, time_create, extra={"rejected": True})

        key = str(args[0])
        self._state[contract][key] = list(args[1:])
        return self._record(
            tx_id,
            TxStatus.SUCCESS,
            time_create,
            time_valid=max(now_ms(), time_create),
            result={"key": key},
        )

    async def query_state(
        self,
        handle: SimulatedSession,
        contract_id: str,
        contract_ver: str,
        key: Any,
    ) -> TxRecord:
        self._check_session(handle, QueryError)
        contract = self._require_contract(contract_id, contract_ver, QueryError)
        time_create = now_ms()
        value = self._state[contract].get(str(key))
        return self._record(
            f"{handle.client_id}-query-{next(self._tx_counter)}",
            TxStatus.SUCCESS,
            time_create,
            time_valid=max(now_ms(), time_create),
            result=value,
        )

    def _draw_commit_delay(self) -> float:
        if self._commit_delay_ms <= 0:
            return 0.0
        u = self._rng.random()
        return -math.log(1.0 - u) * self._commit_delay_ms / 1000.0

    def _check_session(self, handle: SimulatedSession, error: type[Exception]) -> None:
        if handle not in self._sessions:
            raise error(f"session for {getattr(handle, 'client_id', handle)!r} is not active")

    def _require_contract(
        self, contract_id: str, contract_ver: str, error: type[Exception]
    ) -> tuple[str, str]:
        contract = (str(contract_id), str(contract_ver))
        if contract not in self._installed:
            raise error(f"contract {contract_id}@{contract_ver} is not installed")
        return contract

    def _record(
        self,
        tx_id: str,
        status: TxStatus,
        time_create: int,
        time_valid: int | None = None,
        result: Any = None,
        extra: dict[str, Any] | None = None,
    ) -> TxRecord:
        return TxRecord(
            id=tx_id,
            status=status,
            time_create=time_create,
            time_valid=time_valid,
            result=result,
            backend=self.kind,
            extra=extra or {},
        )


__all__ = ["SimulatedLedgerAdapter", "SimulatedSession"]
