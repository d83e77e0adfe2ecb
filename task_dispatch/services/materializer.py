from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from ..db.task_store import TaskStore
from ..errors import PersistenceError
from ..models.distribution import DistributionEntry, DistributionPlan
from ..models.processing_result import AgentAssignment, PersistStatsAccumulator
from ..models.row_data import CanonicalRecord
from ..models.task import NewTask, Provenance, Task, TaskPriority
from .progress import ProgressTracker

"""Task materializer: DistributionPlan -> persisted tasks.

Entries are persisted one at a time, in plan order, so a failure maps to
exactly one original row. There is no surrounding transaction: tasks created
before a failure stay in the store and the failure is reported through
PersistenceError with the count already created.
"""

__all__ = [
    "MaterializationResult",
    "build_task_fields",
    "materialize_plan",
    "summarize_distribution",
]

logger = logging.getLogger(__name__)

NO_NOTES = "No additional notes"


@dataclass
class MaterializationResult:
    tasks: list[Task] = field(default_factory=list)
    stats: PersistStatsAccumulator = field(default_factory=PersistStatsAccumulator)


def build_task_fields(record: CanonicalRecord) -> tuple[str, str]:
    """Human-readable (title, description) for a contact record."""
    title = f"Contact: {record.first_name}"
    description = (
        f"Name: {record.first_name}\n"
        f"Phone: {record.phone}\n"
        f"Notes: {record.notes or NO_NOTES}"
    )
    return title, description


def _new_task(
    entry: DistributionEntry,
    *,
    file_name: str,
    uploaded_at: datetime,
    assigned_by: str,
    priority: TaskPriority,
) -> NewTask:
    record = entry.record
    title, description = build_task_fields(record)
    return NewTask(
        title=title,
        description=description,
        worker_id=entry.worker.id,
        assigned_by=assigned_by,
        priority=priority,
        provenance=Provenance(
            first_name=record.first_name,
            phone=record.phone,
            notes=record.notes,
            original_row=record.original_row,
            file_name=file_name,
            uploaded_at=uploaded_at,
        ),
    )


def materialize_plan(
    plan: DistributionPlan,
    store: TaskStore,
    *,
    file_name: str,
    uploaded_at: datetime,
    assigned_by: str,
    priority: TaskPriority | str = TaskPriority.MEDIUM,
) -> MaterializationResult:
    """Persist one pending task per plan entry, sequentially.

    Every task of the run shares `file_name` and `uploaded_at`.

    Raises:
        PersistenceError: a create_task call failed; earlier tasks are kept.
    """
    priority = TaskPriority(priority)
    result = MaterializationResult()

    with ProgressTracker(len(plan), description=f"Creating tasks ({file_name})") as progress:
        for entry in plan:
            new_task = _new_task(
                entry,
                file_name=file_name,
                uploaded_at=uploaded_at,
                assigned_by=assigned_by,
                priority=priority,
            )
            start = time.perf_counter()
            try:
                created = store.create_task(new_task)
            except Exception as e:
                logger.error(
                    "create_task failed file=%s row=%d created_so_far=%d: %s",
                    file_name,
                    entry.record.original_row,
                    len(result.tasks),
                    e,
                )
                raise PersistenceError(
                    original_row=entry.record.original_row,
                    created_count=len(result.tasks),
                    cause=e,
                ) from e
            finally:
                result.stats.add(time.perf_counter() - start)
            result.tasks.append(created)
            progress.advance(entry.worker.name)
            logger.debug(
                "task created id=%s row=%d agent=%s",
                created.id,
                entry.record.original_row,
                entry.worker.id,
            )
    count, avg, p95 = result.stats.get_stats()
    logger.info("persisted file=%s tasks=%d avg=%.4fs p95=%.4fs", file_name, count, avg, p95)
    return result


def summarize_distribution(
    plan: DistributionPlan, tasks: list[Task], preview_limit: int = 3
) -> list[AgentAssignment]:
    """Per-agent counts in roster order, with up to `preview_limit` task titles each."""
    order: list[str] = []
    workers = {}
    for entry in plan:
        if entry.worker.id not in workers:
            workers[entry.worker.id] = entry.worker
            order.append(entry.worker.id)

    counts: dict[str, int] = {wid: 0 for wid in order}
    previews: dict[str, list[str]] = {wid: [] for wid in order}
    for task in tasks:
        counts[task.worker_id] = counts.get(task.worker_id, 0) + 1
        bucket = previews.setdefault(task.worker_id, [])
        if len(bucket) < preview_limit:
            bucket.append(task.title)

    return [
        AgentAssignment(
            agent_id=wid,
            agent_name=workers[wid].name,
            agent_email=workers[wid].email,
            count=counts[wid],
            preview=previews[wid],
        )
        for wid in order
    ]
