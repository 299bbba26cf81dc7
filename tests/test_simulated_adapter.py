"""
Tests for the in-process simulated ledger, driven through the Blockchain facade.
"""

import asyncio

import pytest

from ledger_bench.adapters.simulated import SimulatedLedgerAdapter
from ledger_bench.blockchain import Blockchain
from ledger_bench.errors import (
    ContextError,
    DeploymentError,
    InitializationError,
    InvocationError,
    ProvisioningError,
    QueryError,
)
from ledger_bench.records import TxStatus
from ledger_bench.stats import compute_tx_stats


def run(coro):
    return asyncio.run(coro)


async def prepared(chain, clients=1):
    await chain.init()
    await chain.install_smart_contract()
    credentials = await chain.create_clients(clients)
    return [await chain.get_context(f"worker-{i}", c) for i, c in enumerate(credentials)]


def test_invoke_then_query_round_trip(simulated_config):
    chain = Blockchain(simulated_config())

    async def scenario():
        (context,) = await prepared(chain)
        invoked = await chain.invoke_smart_contract(context, "simple", "v0", ["acc-1", "100"], 5)
        queried = await chain.query_state(context, "simple", "v0", "acc-1")
        await chain.release_context(context)
        return invoked, queried

    invoked, queried = run(scenario())
    assert chain.get_type() == "simulated"
    assert invoked.status is TxStatus.SUCCESS
    assert invoked.backend == "simulated"
    assert invoked.time_valid >= invoked.time_create
    assert queried.status is TxStatus.SUCCESS
    assert queried.result == ["100"]


def test_timeout_resolves_as_failed_record(simulated_config):
    # Mean commit delay of ~17 minutes; the first draw is far beyond the timeout.
    chain = Blockchain(simulated_config(commit_delay_ms=1_000_000))

    async def scenario():
        (context,) = await prepared(chain)
        return await chain.invoke_smart_contract(context, "simple", "v0", ["k", "v"], 0.01)

    record = run(scenario())
    assert record.status is TxStatus.FAILED
    assert record.time_valid is None
    assert record.extra == {"timeout": True}


def test_rejected_transactions_are_failed_records(simulated_config):
    chain = Blockchain(simulated_config(failure_rate=1.0))

    async def scenario():
        (context,) = await prepared(chain)
        return [
            await chain.invoke_smart_contract(context, "simple", "v0", [f"k{i}"], 5)
            for i in range(4)
        ]

    records = run(scenario())
    assert all(r.status is TxStatus.FAILED and r.extra["rejected"] for r in records)

    stats = compute_tx_stats(records)
    assert stats.fail == 4
    assert stats.throughput == {}


def test_deployment_is_initialised_only_once(simulated_config):
    config = simulated_config()
    first = Blockchain(config)
    second = Blockchain(config)

    run(first.init())
    with pytest.raises(InitializationError):
        run(second.init())


def test_client_limit_is_a_provisioning_error(simulated_config):
    chain = Blockchain(simulated_config(max_clients=2))

    with pytest.raises(ProvisioningError):
        run(chain.create_clients(3))


def test_foreign_credentials_are_rejected(simulated_config):
    chain = Blockchain(simulated_config())

    async def scenario():
        await chain.create_clients(1)
        await chain.get_context("workload", {"client_id": "client-1", "key": "forged"})

    with pytest.raises(ContextError):
        run(scenario())


def test_unknown_contract_errors(simulated_config):
    chain = Blockchain(simulated_config())

    async def scenario():
        (context,) = await prepared(chain)
        with pytest.raises(InvocationError):
            await chain.invoke_smart_contract(context, "missing", "v9", ["k"], 5)
        with pytest.raises(QueryError):
            await chain.query_state(context, "missing", "v9", "k")
        with pytest.raises(InvocationError):
            await chain.invoke_smart_contract(context, "simple", "v0", [], 5)

    run(scenario())


def test_install_without_contracts_fails(simulated_config):
    chain = Blockchain(simulated_config(contracts=[]))

    with pytest.raises(DeploymentError):
        run(chain.install_smart_contract())


def test_invalid_options_are_rejected(simulated_config):
    with pytest.raises(ValueError):
        SimulatedLedgerAdapter(simulated_config(failure_rate=1.5))


def test_records_from_concurrent_workers_aggregate_consistently(simulated_config):
    chain = Blockchain(simulated_config(commit_delay_ms=2, failure_rate=0.3, seed=5))

    async def worker(context, count):
        return [
            await chain.invoke_smart_contract(context, "simple", "v0", [f"{context.name}-{i}"], 5)
            for i in range(count)
        ]

    async def scenario():
        contexts = await prepared(chain, clients=3)
        batches = await asyncio.gather(*(worker(c, 10) for c in contexts))
        for context in contexts:
            await chain.release_context(context)
        return [record for batch in batches for record in batch]

    records = run(scenario())
    stats = compute_tx_stats(records)
    assert stats.succ + stats.fail == 30
    assert sum(stats.throughput.values()) == stats.succ
