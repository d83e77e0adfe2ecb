from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum

from ..errors import NoActiveWorkersError
from ..models.distribution import DistributionEntry, DistributionPlan
from ..models.row_data import CanonicalRecord
from ..models.task import Worker

"""Distribution engine: canonical records x active roster -> DistributionPlan.

Two policies exist and exactly one is selected per run (config
`distribution.policy`):

- round_robin: record i goes to roster[i mod w]; buckets differ by at most one
  and earlier roster entries never get fewer records than later ones.
- balanced: base = n // w, remainder = n % w; the first `remainder` workers get
  base + 1 records, the rest get base, as contiguous slices of input order.

Both are deterministic for a fixed roster order and input order. An empty
roster is rejected before any partitioning.
"""

__all__ = [
    "DistributionPolicy",
    "build_plan",
    "distribute_balanced",
    "distribute_round_robin",
]


class DistributionPolicy(Enum):
    ROUND_ROBIN = "round_robin"
    BALANCED = "balanced"

    @property
    def label(self) -> str:
        return "round-robin" if self is DistributionPolicy.ROUND_ROBIN else "balanced-split"


def _require_roster(roster: Sequence[Worker]) -> None:
    if not roster:
        raise NoActiveWorkersError(detail="active roster is empty")


def distribute_round_robin(
    records: Sequence[CanonicalRecord], roster: Sequence[Worker]
) -> list[DistributionEntry]:
    _require_roster(roster)
    w = len(roster)
    return [
        DistributionEntry(worker=roster[i % w], record=record, sequence_index=i + 1)
        for i, record in enumerate(records)
    ]


def distribute_balanced(
    records: Sequence[CanonicalRecord], roster: Sequence[Worker]
) -> list[DistributionEntry]:
    _require_roster(roster)
    n, w = len(records), len(roster)
    base, remainder = divmod(n, w)

    entries: list[DistributionEntry] = []
    start = 0
    for position, worker in enumerate(roster):
        size = base + 1 if position < remainder else base
        for offset in range(start, start + size):
            entries.append(
                DistributionEntry(worker=worker, record=records[offset], sequence_index=offset + 1)
            )
        start += size
    return entries


_POLICIES: dict[DistributionPolicy, Callable[..., list[DistributionEntry]]] = {
    DistributionPolicy.ROUND_ROBIN: distribute_round_robin,
    DistributionPolicy.BALANCED: distribute_balanced,
}


def build_plan(
    records: Sequence[CanonicalRecord],
    roster: Sequence[Worker],
    policy: DistributionPolicy | str = DistributionPolicy.ROUND_ROBIN,
) -> DistributionPlan:
    """Partition `records` across `roster` using exactly one policy."""
    policy = DistributionPolicy(policy)
    entries = _POLICIES[policy](records, roster)
    return DistributionPlan(policy=policy.value, entries=tuple(entries))
