from __future__ import annotations

from datetime import UTC, datetime, timedelta

from task_dispatch.db.task_store import InMemoryTaskStore
from task_dispatch.models.task import NewTask, Provenance, TaskStatus
from task_dispatch.services.reporter import task_stats, upload_history, upload_tasks

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def _add(store, *, file_name, uploaded_at, worker_id, status=TaskStatus.PENDING, row=1, by="admin1"):
    return store.create_task(
        NewTask(
            title=f"Contact: R{row}",
            description="",
            worker_id=worker_id,
            assigned_by=by,
            status=status,
            provenance=Provenance("R", "1", "", row, file_name, uploaded_at),
        )
    )


def test_history_empty_store(directory):
    assert upload_history(InMemoryTaskStore(), directory) == []


def test_history_counts_and_completion_rate(directory):
    store = InMemoryTaskStore()
    statuses = [TaskStatus.COMPLETED, TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED]
    for i, status in enumerate(statuses, start=1):
        _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1" if i % 2 else "a2", status=status, row=i)

    (entry,) = upload_history(store, directory)
    assert entry.file_name == "a.csv"
    assert entry.uploaded_at == T0
    assert entry.total_tasks == 4
    assert (entry.pending_tasks, entry.in_progress_tasks, entry.completed_tasks, entry.cancelled_tasks) == (1, 1, 1, 1)
    assert entry.completion_rate == 25.0
    assert entry.uploaded_by == "Root Admin"
    assert entry.agents_count == 2
    a1 = next(a for a in entry.assigned_agents if a.agent_id == "a1")
    assert (a1.name, a1.total_tasks, a1.completed_tasks) == ("Alice", 2, 1)
    assert a1.completion_rate == 50.0


def test_same_file_name_uploaded_twice_gives_two_cohorts(directory):
    store = InMemoryTaskStore()
    later = T0 + timedelta(minutes=5)
    _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1")
    _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a2", row=2)
    _add(store, file_name="a.csv", uploaded_at=later, worker_id="a1")

    history = upload_history(store, directory)
    assert [(h.file_name, h.uploaded_at, h.total_tasks) for h in history] == [
        ("a.csv", later, 1),
        ("a.csv", T0, 2),
    ]


def test_history_newest_first_across_files(directory):
    store = InMemoryTaskStore()
    _add(store, file_name="old.csv", uploaded_at=T0, worker_id="a1")
    _add(store, file_name="new.xlsx", uploaded_at=T0 + timedelta(hours=1), worker_id="a1")
    assert [h.file_name for h in upload_history(store, directory)] == ["new.xlsx", "old.csv"]


def test_history_uploader_falls_back_to_raw_id():
    store = InMemoryTaskStore()
    _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1", by="ghost")
    (entry,) = upload_history(store)
    assert entry.uploaded_by == "ghost"
    assert entry.assigned_agents[0].name is None


def test_history_ignores_tasks_without_provenance(directory):
    store = InMemoryTaskStore()
    store.create_task(NewTask(title="manual", description="", worker_id="a1", assigned_by="admin1"))
    _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1")
    history = upload_history(store, directory)
    assert len(history) == 1
    assert history[0].total_tasks == 1


def test_history_entry_to_dict_keys(directory):
    store = InMemoryTaskStore()
    _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1")
    item = upload_history(store, directory)[0].to_dict()
    assert item["uploadedAt"] == T0.isoformat()
    assert item["completionRate"] == 0.0
    assert set(item) >= {"fileName", "totalTasks", "pendingTasks", "uploadedBy", "assignedAgents"}


def test_upload_tasks_oldest_first():
    store = InMemoryTaskStore()
    first = _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1", row=1)
    _add(store, file_name="b.csv", uploaded_at=T0, worker_id="a1", row=1)
    second = _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a2", row=2)
    assert [t.id for t in upload_tasks(store, "a.csv")] == [first.id, second.id]
    assert upload_tasks(store, "missing.csv") == []


def test_task_stats_counts_every_status(directory):
    store = InMemoryTaskStore()
    _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1", status=TaskStatus.COMPLETED)
    _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a2")
    stats = task_stats(store, directory)
    assert stats.status_counts == {"pending": 1, "in-progress": 0, "completed": 1, "cancelled": 0}
    by_id = {a.agent_id: a for a in stats.agents}
    assert by_id["a1"].completion_rate == 100.0
    assert by_id["a2"].completion_rate == 0.0
    payload = stats.to_dict()
    assert set(payload) == {"taskStats", "agentStats"}


def test_task_stats_empty_store():
    stats = task_stats(InMemoryTaskStore())
    assert stats.status_counts == {"pending": 0, "in-progress": 0, "completed": 0, "cancelled": 0}
    assert stats.agents == []


def test_reporter_does_not_modify_store(directory):
    store = InMemoryTaskStore()
    task = _add(store, file_name="a.csv", uploaded_at=T0, worker_id="a1")
    upload_history(store, directory)
    task_stats(store, directory)
    assert store.all_tasks() == [task]
