"""
Tests for the transaction statistics engine.

Covers single-worker aggregation (counts, windows, delay, throughput buckets),
the merge of partial aggregates across workers, and rejection of malformed
records. Timestamps are integer milliseconds so every expected value is exact.
"""

import json
import random
import threading

import pytest

from ledger_bench.errors import RecordFormatError
from ledger_bench.records import TxRecord, TxStatus
from ledger_bench.stats import (
    TxStatistics,
    compute_tx_stats,
    merge_tx_stats,
    throughput_bucket,
)


def success(tx_id, create, valid):
    return TxRecord(id=tx_id, status=TxStatus.SUCCESS, time_create=create, time_valid=valid)


def failure(tx_id, create):
    return TxRecord(id=tx_id, status=TxStatus.FAILED, time_create=create)


def sample_records(count=60, seed=11):
    rng = random.Random(seed)
    records = []
    for i in range(count):
        create = 1_700_000_000_000 + rng.randint(0, 20_000)
        if rng.random() < 0.25:
            records.append(failure(f"tx-{i}", create))
        else:
            records.append(success(f"tx-{i}", create, create + rng.randint(0, 3_000)))
    return records


def test_single_success_and_failure_scenario():
    stats = compute_tx_stats([success("a", 1000, 1500), failure("b", 2000)])

    assert stats.succ == 1
    assert stats.fail == 1
    assert stats.create.to_dict() == {"min": 1.0, "max": 2.0}
    assert stats.valid.to_dict() == {"min": 1.5, "max": 1.5}
    assert stats.delay.min == 0.5
    assert stats.delay.max == 0.5
    assert stats.delay.sum == 0.5
    assert stats.throughput == {2: 1}
    assert stats.out == []


def test_empty_input_uses_none_bounds():
    stats = compute_tx_stats([])

    assert stats.succ == 0
    assert stats.fail == 0
    assert stats.create.min is None and stats.create.max is None
    assert stats.valid.min is None and stats.valid.max is None
    assert stats.delay.min is None and stats.delay.max is None
    assert stats.delay.sum == 0
    assert stats.throughput == {}
    assert stats.average_delay is None
    assert stats.send_rate is None
    assert stats.throughput_tps is None


def test_failed_records_only_touch_create_window():
    stats = compute_tx_stats([failure("a", 4000), failure("b", 1000)])

    assert stats.fail == 2
    assert stats.succ == 0
    assert stats.create.to_dict() == {"min": 1.0, "max": 4.0}
    assert stats.valid.min is None
    assert stats.delay.min is None
    assert stats.delay.sum == 0
    assert stats.throughput == {}


def test_created_records_count_as_failures():
    pending = TxRecord(id="p", status=TxStatus.CREATED, time_create=1000)
    stats = compute_tx_stats([pending, success("s", 1000, 1200)])

    assert stats.succ == 1
    assert stats.fail == 1


def test_counts_and_bucket_totals_match_input():
    records = sample_records()
    stats = compute_tx_stats(records)

    assert stats.succ + stats.fail == len(records)
    assert sum(stats.throughput.values()) == stats.succ
    assert stats.create.min <= stats.create.max
    assert stats.valid.min <= stats.valid.max
    assert stats.delay.min <= stats.delay.max


def test_result_does_not_depend_on_record_order():
    records = sample_records()
    shuffled = list(records)
    random.Random(3).shuffle(shuffled)

    assert compute_tx_stats(records).to_dict() == compute_tx_stats(shuffled).to_dict()


def test_bucket_rounds_half_up():
    assert throughput_bucket(1500) == 2
    assert throughput_bucket(2500) == 3
    assert throughput_bucket(2499) == 2
    assert throughput_bucket(999.9) == 1


def test_mapping_records_are_accepted():
    stats = compute_tx_stats(
        [{"id": "x", "status": "success", "time_create": 1000, "time_valid": 1200, "block": 7}]
    )

    assert stats.succ == 1
    assert stats.delay.sum == pytest.approx(0.2)


@pytest.mark.parametrize(
    "record",
    [
        TxRecord(id="no-create", status=TxStatus.FAILED, time_create=None),
        TxRecord(id="no-valid", status=TxStatus.SUCCESS, time_create=1000),
        TxRecord(id="backwards", status=TxStatus.SUCCESS, time_create=2000, time_valid=1000),
        {"id": "bad-status", "status": "pending", "time_create": 1000},
        {"id": "string-time", "status": "failed", "time_create": "1000"},
    ],
)
def test_malformed_records_are_rejected(record):
    with pytest.raises(RecordFormatError):
        compute_tx_stats([record])


def test_derived_rates():
    stats = compute_tx_stats([success("a", 1000, 2000), success("b", 3000, 5000)])

    assert stats.average_delay == pytest.approx(1.5)
    assert stats.send_rate == pytest.approx(1.0)
    assert stats.throughput_tps == pytest.approx(0.5)


def test_merge_adds_counts_and_unions_throughput():
    committed = compute_tx_stats([success("a", 1000, 1500), success("b", 2000, 2600)])
    failed = compute_tx_stats([failure("c", 500), failure("d", 900), failure("e", 3000)])
    overlapping = compute_tx_stats([success("f", 2000, 2400)])

    merged = merge_tx_stats([committed, failed, overlapping])

    assert merged.succ == 3
    assert merged.fail == 3
    assert merged.throughput == {2: 2, 3: 1}
    assert merged.create.to_dict() == {"min": 0.5, "max": 3.0}
    assert merged.valid.to_dict() == {"min": 1.5, "max": 2.6}
    assert merged.delay.min == pytest.approx(0.4)
    assert merged.delay.max == pytest.approx(0.6)
    assert merged.delay.total_ms == 1500


def test_merge_of_two_partials_with_only_counts():
    first = compute_tx_stats([success("a", 1000, 1100), success("b", 1000, 1200)])
    second = compute_tx_stats([failure("c", 1000), failure("d", 1000), failure("e", 1000)])

    merged = merge_tx_stats([first, second])

    assert merged.succ == 2
    assert merged.fail == 3
    assert merged.throughput == {1: 2}


def test_merge_leaves_inputs_untouched():
    first = compute_tx_stats([success("a", 1000, 1500)], out=["w1"])
    second = compute_tx_stats([success("b", 5000, 9000)], out=["w2"])
    before = first.to_dict()

    merged = merge_tx_stats([first, second])

    assert first.to_dict() == before
    assert merged.out == ["w1", "w2"]
    assert merged is not first


def test_merge_concatenates_out_in_order():
    parts = [TxStatistics(out=[1]), TxStatistics(out=[2, 3]), TxStatistics(out=[2])]

    assert merge_tx_stats(parts).out == [1, 2, 3, 2]


def test_merge_requires_input():
    with pytest.raises(ValueError):
        merge_tx_stats([])


def test_merge_with_empty_partial_keeps_bounds():
    stats = compute_tx_stats([success("a", 1000, 1500)])

    merged = merge_tx_stats([TxStatistics(), stats])

    assert merged.create.to_dict() == {"min": 1.0, "max": 1.0}
    assert merged.delay.min == 0.5


def _key_fields(stats):
    return (
        stats.succ,
        stats.fail,
        stats.delay.sum,
        stats.throughput,
        stats.create.to_dict(),
        stats.valid.to_dict(),
        stats.delay.min,
        stats.delay.max,
    )


def test_partitioned_merge_matches_direct_aggregation():
    records = sample_records(count=120)
    direct = compute_tx_stats(records)

    for seed in range(5):
        rng = random.Random(seed)
        groups = [[] for _ in range(4)]
        for record in records:
            groups[rng.randrange(4)].append(record)
        partials = [compute_tx_stats(group) for group in groups]

        flat = merge_tx_stats(partials)
        reordered = merge_tx_stats(list(reversed(partials)))
        tree = merge_tx_stats(
            [merge_tx_stats(partials[:2]), merge_tx_stats(partials[2:])]
        )
        incremental = partials[0]
        for partial in partials[1:]:
            incremental = merge_tx_stats([partial, incremental])

        for combined in (flat, reordered, tree, incremental):
            assert _key_fields(combined) == _key_fields(direct)


def test_serialised_partials_merge_like_live_ones():
    records = sample_records()
    partials = [compute_tx_stats(records[:30]), compute_tx_stats(records[30:])]
    shipped = [TxStatistics.from_dict(json.loads(json.dumps(p.to_dict()))) for p in partials]

    assert merge_tx_stats(shipped).to_dict() == merge_tx_stats(partials).to_dict()


def test_string_status_on_record_is_converted():
    record = TxRecord(id="a", status="success", time_create=1000, time_valid=1500)

    stats = compute_tx_stats([record])

    assert record.status is TxStatus.SUCCESS
    assert stats.succ == 1
    assert stats.fail == 0
    assert stats.throughput == {2: 1}
    assert record.to_row()["status"] == "success"


def test_unknown_status_on_record_is_rejected():
    with pytest.raises(RecordFormatError, match="unknown status"):
        TxRecord(id="a", status="committed", time_create=1000)


def test_merge_keeps_uncopyable_out_values_by_identity():
    lock = threading.Lock()
    first = compute_tx_stats([success("a", 1000, 1500)], out=[lock])
    second = compute_tx_stats([failure("b", 2000)])

    merged = merge_tx_stats([first, second])

    assert merged.out[0] is lock
    assert merged.succ == 1 and merged.fail == 1
    assert merged.create is not first.create
    assert first.fail == 0


def test_from_dict_accepts_null_delay_sum():
    stats = TxStatistics.from_dict(
        {"succ": 0, "fail": 2, "delay": {"min": None, "max": None, "sum": None}}
    )

    assert stats.delay.total_ms == 0
    assert stats.delay.sum == 0
