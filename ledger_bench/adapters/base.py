from __future__ import annotations

import abc
from typing import Any, Mapping, Sequence

from ..records import TxRecord


class BlockchainAdapter(abc.ABC):
    """Operations every ledger backend provides to the benchmark facade.

    Adapters report ledger-level rejections and timeouts as ``failed``
    records; exceptions are reserved for infrastructure failures.
    """

    kind: str = "unknown"

    def __init__(self, config: Mapping[str, Any]) -> None:
        self._config = config

    @abc.abstractmethod
    async def init(self) -> None:
        """Prepare the backend environment, e.g. join channels or genesis accounts."""

    @abc.abstractmethod
    async def create_clients(self, number: int) -> list[Any]:
        """Return one credential set per client."""

    @abc.abstractmethod
    async def install_smart_contract(self) -> None:
        ...

    @abc.abstractmethod
    async def get_context(self, name: str, credentials: Any) -> Any:
        """Return the backend handle used for subsequent invokes and queries."""

    @abc.abstractmethod
    async def release_context(self, handle: Any) -> None:
        ...

    @abc.abstractmethod
    async def invoke_smart_contract(
        self,
        handle: Any,
        contract_id: str,
        contract_ver: str,
        args: Sequence[Any],
        timeout: float,
    ) -> TxRecord | Mapping[str, Any]:
        """Submit a transaction and resolve no later than ``timeout`` seconds."""

    @abc.abstractmethod
    async def query_state(
        self,
        handle: Any,
        contract_id: str,
        contract_ver: str,
        key: Any,
    ) -> TxRecord | Mapping[str, Any]:
        ...


__all__ = ["BlockchainAdapter"]
