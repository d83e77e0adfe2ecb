from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from ..db.task_store import TaskStore
from ..db.worker_directory import WorkerDirectory
from ..models.report import AgentTotals, TaskStats, UploadHistoryEntry
from ..models.task import Task, TaskStatus, Worker

"""Upload history reporter (read-only).

Upload cohorts are not stored entities: they are rebuilt by grouping tasks on
their provenance pair (fileName, uploadedAt). Two uploads of the same file
name therefore show up as two cohorts with different timestamps.
"""

__all__ = [
    "task_stats",
    "upload_history",
    "upload_tasks",
]

FRAME_COLUMNS = [
    "id",
    "file_name",
    "uploaded_at",
    "worker_id",
    "status",
    "assigned_by",
    "is_completed",
]


def _tasks_frame(tasks: Iterable[Task]) -> pd.DataFrame:
    records = [
        {
            "id": t.id,
            "file_name": t.provenance.file_name if t.provenance else None,
            "uploaded_at": t.provenance.uploaded_at.isoformat() if t.provenance else None,
            "worker_id": t.worker_id,
            "status": t.status.value,
            "assigned_by": t.assigned_by,
            "is_completed": t.status is TaskStatus.COMPLETED,
        }
        for t in tasks
    ]
    return pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)


def _agent_totals(frame: pd.DataFrame, users: dict[str, Worker]) -> list[AgentTotals]:
    grouped = frame.groupby("worker_id", sort=False).agg(
        total=("id", "size"),
        completed=("is_completed", "sum"),
    )
    out: list[AgentTotals] = []
    for worker_id, row in grouped.iterrows():
        user = users.get(str(worker_id))
        out.append(
            AgentTotals(
                agent_id=str(worker_id),
                name=user.name if user else None,
                email=user.email if user else None,
                total_tasks=int(row["total"]),
                completed_tasks=int(row["completed"]),
            )
        )
    return out


def _lookup(directory: WorkerDirectory | None, ids: Iterable[str]) -> dict[str, Worker]:
    if directory is None:
        return {}
    return directory.lookup(ids)


def upload_history(
    store: TaskStore, directory: WorkerDirectory | None = None
) -> list[UploadHistoryEntry]:
    """One entry per upload cohort, newest upload first."""
    tasks = store.tasks_with_provenance()
    if not tasks:
        return []
    # uploadedAt を ISO 文字列のまま group key にする (tz 付き datetime の dtype 変換を避ける)
    uploaded = {t.provenance.uploaded_at.isoformat(): t.provenance.uploaded_at for t in tasks if t.provenance}
    df = _tasks_frame(tasks)
    users = _lookup(directory, set(df["worker_id"]) | set(df["assigned_by"]))

    entries: list[UploadHistoryEntry] = []
    for (file_name, uploaded_key), group in df.groupby(["file_name", "uploaded_at"], sort=False):
        counts = group["status"].value_counts()
        uploader_id = str(group.iloc[0]["assigned_by"])
        uploader = users.get(uploader_id)
        entries.append(
            UploadHistoryEntry(
                file_name=str(file_name),
                uploaded_at=uploaded[uploaded_key],
                total_tasks=len(group),
                pending_tasks=int(counts.get(TaskStatus.PENDING.value, 0)),
                in_progress_tasks=int(counts.get(TaskStatus.IN_PROGRESS.value, 0)),
                completed_tasks=int(counts.get(TaskStatus.COMPLETED.value, 0)),
                cancelled_tasks=int(counts.get(TaskStatus.CANCELLED.value, 0)),
                uploaded_by=uploader.name if uploader else uploader_id,
                assigned_agents=_agent_totals(group, users),
            )
        )
    entries.sort(key=lambda e: e.uploaded_at, reverse=True)
    return entries


def upload_tasks(store: TaskStore, file_name: str) -> list[Task]:
    """Every task of uploads named `file_name`, oldest first (drill-down view)."""
    return store.tasks_for_file(file_name)


def task_stats(store: TaskStore, directory: WorkerDirectory | None = None) -> TaskStats:
    """Status counts over all tasks plus per-agent completion."""
    tasks = store.all_tasks()
    status_counts = {s.value: 0 for s in TaskStatus}
    if not tasks:
        return TaskStats(status_counts=status_counts, agents=[])
    df = _tasks_frame(tasks)
    for status, count in df["status"].value_counts().items():
        status_counts[str(status)] = int(count)
    users = _lookup(directory, set(df["worker_id"]))
    return TaskStats(status_counts=status_counts, agents=_agent_totals(df, users))
