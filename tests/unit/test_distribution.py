from __future__ import annotations

from collections import Counter

import pytest

from task_dispatch.errors import NoActiveWorkersError
from task_dispatch.models.row_data import CanonicalRecord
from task_dispatch.models.task import Worker
from task_dispatch.services.distribution import (
    DistributionPolicy,
    build_plan,
    distribute_balanced,
    distribute_round_robin,
)


def _records(n: int) -> list[CanonicalRecord]:
    return [CanonicalRecord(f"N{i}", str(i), "", i) for i in range(1, n + 1)]


def _roster(w: int) -> list[Worker]:
    return [Worker(id=f"w{i}", name=f"W{i}", email=f"w{i}@example.com") for i in range(w)]


def _sizes(plan, roster) -> list[int]:
    counts = Counter(e.worker.id for e in plan)
    return [counts[w.id] for w in roster]


@pytest.mark.parametrize("policy", list(DistributionPolicy))
@pytest.mark.parametrize("n,w", [(0, 1), (1, 3), (5, 2), (7, 3), (9, 3), (10, 4), (25, 5)])
def test_every_record_assigned_exactly_once(policy, n, w):
    records, roster = _records(n), _roster(w)
    plan = build_plan(records, roster, policy)
    assert len(plan) == n
    assigned = sorted(e.record.original_row for e in plan)
    assert assigned == list(range(1, n + 1))
    sizes = _sizes(plan, roster)
    assert sum(sizes) == n
    assert max(sizes) - min(sizes) <= 1
    # 先頭側の担当者が後続より少なくなることはない
    assert sizes == sorted(sizes, reverse=True)


def test_round_robin_interleaves():
    roster = _roster(2)
    entries = distribute_round_robin(_records(5), roster)
    assert [e.worker.id for e in entries] == ["w0", "w1", "w0", "w1", "w0"]
    assert [e.sequence_index for e in entries] == [1, 2, 3, 4, 5]


def test_balanced_uses_contiguous_slices():
    roster = _roster(3)
    entries = distribute_balanced(_records(7), roster)
    buckets: dict[str, list[int]] = {}
    for e in entries:
        buckets.setdefault(e.worker.id, []).append(e.record.original_row)
    assert buckets == {"w0": [1, 2, 3], "w1": [4, 5], "w2": [6, 7]}


def test_balanced_more_workers_than_records():
    plan = build_plan(_records(2), _roster(4), "balanced")
    assert _sizes(plan, _roster(4)) == [1, 1, 0, 0]


def test_deterministic_for_fixed_inputs():
    records, roster = _records(11), _roster(3)
    for policy in DistributionPolicy:
        a = build_plan(records, roster, policy)
        b = build_plan(records, roster, policy)
        assert a == b


@pytest.mark.parametrize("policy", list(DistributionPolicy))
def test_empty_roster_rejected(policy):
    with pytest.raises(NoActiveWorkersError) as e:
        build_plan(_records(3), [], policy)
    assert e.value.status_code == 400
    assert e.value.message == "No active agents available"


def test_policy_from_string_and_labels():
    plan = build_plan(_records(1), _roster(1), "round_robin")
    assert plan.policy == "round_robin"
    assert DistributionPolicy.ROUND_ROBIN.label == "round-robin"
    assert DistributionPolicy.BALANCED.label == "balanced-split"


def test_unknown_policy_raises_value_error():
    with pytest.raises(ValueError):
        build_plan(_records(1), _roster(1), "weighted")
