from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

from .errors import RecordFormatError


class TxStatus(str, enum.Enum):
    CREATED = "created"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class TxRecord:
    """Outcome of one submitted transaction or query.

    Times are epoch milliseconds. ``time_valid`` is only meaningful when the
    status is ``success``. ``backend`` tags the adapter that produced the
    record and ``extra`` carries its platform-specific diagnostics.
    """

    id: str
    status: TxStatus
    time_create: float
    time_valid: float | None = None
    result: Any = None
    backend: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        try:
            self.status = TxStatus(self.status)
        except ValueError as exc:
            raise RecordFormatError(
                f"record {self.id!r} has unknown status {self.status!r}"
            ) from exc

    @property
    def latency_s(self) -> float | None:
        if self.status is not TxStatus.SUCCESS or self.time_valid is None:
            return None
        return (self.time_valid - self.time_create) / 1000

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "time_create": self.time_create,
            "time_valid": self.time_valid,
            "latency_s": self.latency_s,
            "backend": self.backend,
        }


_RECORD_KEYS = ("id", "status", "time_create", "time_valid", "result")


def now_ms() -> int:
    return int(time.time() * 1000)


def coerce_record(value: TxRecord | Mapping[str, Any]) -> TxRecord:
    """Accept records as ``TxRecord`` or as plain mappings from external adapters.

    Unknown mapping keys end up in ``extra``.
    """
    if isinstance(value, TxRecord):
        return value
    if not isinstance(value, Mapping):
        raise RecordFormatError(f"unsupported record type {type(value).__name__}")

    extra = {k: v for k, v in value.items() if k not in _RECORD_KEYS and k != "backend"}
    return TxRecord(
        id=str(value.get("id", "")),
        status=value.get("status"),
        time_create=value.get("time_create"),
        time_valid=value.get("time_valid"),
        result=value.get("result"),
        backend=value.get("backend"),
        extra=extra,
    )


__all__ = ["TxStatus", "TxRecord", "coerce_record", "now_ms"]
