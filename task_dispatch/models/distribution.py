from __future__ import annotations

from dataclasses import dataclass

from .row_data import CanonicalRecord
from .task import Worker

"""DistributionPlan model.

In-memory only: built by the distribution engine for one run and consumed
entry by entry by the task materializer. Never persisted.
"""

__all__ = [
    "DistributionEntry",
    "DistributionPlan",
]


@dataclass(frozen=True)
class DistributionEntry:
    worker: Worker
    record: CanonicalRecord
    sequence_index: int  # 1-based, input order


@dataclass(frozen=True)
class DistributionPlan:
    """Ordered (worker, record, sequence_index) triples for one upload."""
    policy: str
    entries: tuple[DistributionEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)
