from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

from ..errors import ConfigurationError

DEFAULT_ARGUMENTS: tuple[str, ...] = ("key-{worker}-{index}", "value-{index}")


@dataclass(frozen=True)
class RateProfile:
    """Per-worker Poisson submission rate; ``tps <= 0`` submits back to back."""

    name: str
    tps: float

    @property
    def paced(self) -> bool:
        return self.tps > 0


@dataclass(frozen=True)
class BenchmarkRound:
    """One measured workload: ``workers`` clients each submitting ``tx_number`` transactions."""

    label: str
    contract_id: str
    contract_ver: str
    tx_number: int
    workers: int
    rate: RateProfile
    timeout_seconds: float | None = None
    arguments: tuple[str, ...] = DEFAULT_ARGUMENTS
    notes: str | None = None

    @property
    def total_transactions(self) -> int:
        return self.tx_number * self.workers

    def format_arguments(self, worker: int, index: int) -> list[str]:
        return [arg.format(worker=worker, index=index, label=self.label) for arg in self.arguments]


@dataclass
class BenchmarkPlan:
    """Ordered rounds the harness will execute against one backend."""

    rounds: list[BenchmarkRound] = field(default_factory=list)

    def __iter__(self) -> Iterator[BenchmarkRound]:
        return iter(self.rounds)

    def __len__(self) -> int:
        return len(self.rounds)


def load_plan(config: Mapping[str, Any]) -> BenchmarkPlan:
    """Build the plan from the ``test`` section of a benchmark configuration.

    Rounds inherit ``clients`` and ``contract`` from the ``test`` section
    unless they override them.
    """
    test = config.get("test")
    if not isinstance(test, Mapping):
        raise ConfigurationError("configuration has no 'test' section")

    raw_rounds = test.get("rounds")
    if not isinstance(raw_rounds, Sequence) or isinstance(raw_rounds, (str, bytes)) or not raw_rounds:
        raise ConfigurationError("'test.rounds' must be a non-empty list")

    default_workers = test.get("clients", 1)
    default_contract = test.get("contract") or {}

    rounds = []
    for position, raw in enumerate(raw_rounds, start=1):
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"round #{position} must be an object")
        label = str(raw.get("label") or f"round-{position}")
        contract = raw.get("contract") or default_contract
        if not contract.get("id") or not contract.get("version"):
            raise ConfigurationError(f"round {label!r} has no contract id/version")

        arguments = raw.get("arguments", DEFAULT_ARGUMENTS)
        if isinstance(arguments, (str, bytes)) or not isinstance(arguments, Sequence) or not arguments:
            raise ConfigurationError(f"round {label!r} arguments must be a non-empty list")

        tps = _number(raw.get("tps", 0), f"round {label!r} tps")
        timeout = raw.get("timeout")
        rounds.append(
            BenchmarkRound(
                label=label,
                contract_id=str(contract["id"]),
                contract_ver=str(contract["version"]),
                tx_number=_positive_int(raw.get("tx_number"), f"round {label!r} tx_number"),
                workers=_positive_int(raw.get("workers", default_workers), f"round {label!r} workers"),
                rate=RateProfile(name=f"{label}-{tps:g}tps", tps=tps),
                timeout_seconds=None if timeout is None else _number(timeout, f"round {label!r} timeout"),
                arguments=tuple(str(arg) for arg in arguments),
                notes=raw.get("notes"),
            )
        )
    return BenchmarkPlan(rounds=rounds)


def _positive_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"{what} must be a positive integer, got {value!r}")
    return value


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{what} must be a number, got {value!r}")
    return float(value)


__all__ = [
    "BenchmarkPlan",
    "BenchmarkRound",
    "DEFAULT_ARGUMENTS",
    "RateProfile",
    "load_plan",
]
