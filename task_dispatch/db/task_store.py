from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from psycopg2.extras import Json

from ..models.task import NewTask, Provenance, Task, TaskPriority, TaskStatus

"""Task store collaborators.

The pipeline needs three things from the store: create one task, list every
task carrying an upload provenance tag, and list the tasks of one upload file.
PostgresTaskStore keeps provenance in a jsonb column; InMemoryTaskStore backs
dry runs and tests.

Writes are independent: PostgresTaskStore expects an autocommit connection so
each create_task is durable on its own and a later failure does not undo it.
"""

__all__ = [
    "TaskStore",
    "InMemoryTaskStore",
    "PostgresTaskStore",
    "TASKS_DDL",
    "ensure_schema",
]

TASKS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id          BIGSERIAL PRIMARY KEY,
    name        TEXT NOT NULL,
    email       TEXT NOT NULL UNIQUE,
    role        TEXT NOT NULL DEFAULT 'agent',
    is_active   BOOLEAN NOT NULL DEFAULT TRUE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE TABLE IF NOT EXISTS tasks (
    id           BIGSERIAL PRIMARY KEY,
    title        TEXT NOT NULL,
    description  TEXT,
    agent_id     TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'pending',
    priority     TEXT NOT NULL DEFAULT 'medium',
    assigned_by  TEXT NOT NULL,
    provenance   JSONB,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS tasks_agent_status_idx ON tasks (agent_id, status);
CREATE INDEX IF NOT EXISTS tasks_file_name_idx ON tasks ((provenance ->> 'fileName'));
"""

TASK_COLUMNS = "id, title, description, agent_id, status, priority, assigned_by, created_at, provenance"

INSERT_TASK_SQL = (
    "INSERT INTO tasks (title, description, agent_id, status, priority, assigned_by, provenance) "
    "VALUES (%s, %s, %s, %s, %s, %s, %s) RETURNING id, created_at"
)
SELECT_WITH_PROVENANCE_SQL = (
    f"SELECT {TASK_COLUMNS} FROM tasks "
    "WHERE provenance ->> 'fileName' IS NOT NULL ORDER BY created_at, id"
)
SELECT_BY_FILE_SQL = (
    f"SELECT {TASK_COLUMNS} FROM tasks "
    "WHERE provenance ->> 'fileName' = %s ORDER BY created_at, id"
)
SELECT_ALL_SQL = f"SELECT {TASK_COLUMNS} FROM tasks ORDER BY created_at, id"


class TaskStore(Protocol):
    def create_task(self, task: NewTask) -> Task: ...

    def tasks_with_provenance(self) -> list[Task]: ...

    def tasks_for_file(self, file_name: str) -> list[Task]: ...

    def all_tasks(self) -> list[Task]: ...


def _materialize(new: NewTask, task_id: str, created_at: datetime) -> Task:
    return Task(
        id=task_id,
        title=new.title,
        description=new.description,
        worker_id=new.worker_id,
        status=new.status,
        priority=new.priority,
        assigned_by=new.assigned_by,
        created_at=created_at,
        provenance=new.provenance,
    )


class InMemoryTaskStore:
    """List-backed store with the same ordering rules as the SQL store."""

    def __init__(self) -> None:
        self._tasks: list[Task] = []
        self._next_id = 1

    def create_task(self, task: NewTask) -> Task:
        created = _materialize(task, str(self._next_id), datetime.now(UTC))
        self._next_id += 1
        self._tasks.append(created)
        return created

    def _sorted(self, tasks: list[Task]) -> list[Task]:
        return sorted(tasks, key=lambda t: (t.created_at, int(t.id)))

    def tasks_with_provenance(self) -> list[Task]:
        return self._sorted([t for t in self._tasks if t.provenance is not None])

    def tasks_for_file(self, file_name: str) -> list[Task]:
        return self._sorted(
            [t for t in self._tasks if t.provenance is not None and t.provenance.file_name == file_name]
        )

    def all_tasks(self) -> list[Task]:
        return self._sorted(list(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)


def _row_to_task(row: Sequence[Any]) -> Task:
    task_id, title, description, agent_id, status, priority, assigned_by, created_at, prov = row
    provenance = Provenance.from_dict(prov) if prov and prov.get("fileName") else None
    return Task(
        id=str(task_id),
        title=title,
        description=description or "",
        worker_id=str(agent_id),
        status=TaskStatus(status),
        priority=TaskPriority(priority),
        assigned_by=str(assigned_by),
        created_at=created_at,
        provenance=provenance,
    )


class PostgresTaskStore:
    """psycopg2-backed store. `cursor` must belong to an autocommit connection."""

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def create_task(self, task: NewTask) -> Task:
        self.cursor.execute(
            INSERT_TASK_SQL,
            (
                task.title,
                task.description,
                task.worker_id,
                task.status.value,
                task.priority.value,
                task.assigned_by,
                Json(task.provenance.to_dict()) if task.provenance else None,
            ),
        )
        task_id, created_at = self.cursor.fetchone()
        return _materialize(task, str(task_id), created_at)

    def _select(self, sql: str, params: tuple[Any, ...] | None = None) -> list[Task]:
        if params is None:
            self.cursor.execute(sql)
        else:
            self.cursor.execute(sql, params)
        return [_row_to_task(r) for r in self.cursor.fetchall()]

    def tasks_with_provenance(self) -> list[Task]:
        return self._select(SELECT_WITH_PROVENANCE_SQL)

    def tasks_for_file(self, file_name: str) -> list[Task]:
        return self._select(SELECT_BY_FILE_SQL, (file_name,))

    def all_tasks(self) -> list[Task]:
        return self._select(SELECT_ALL_SQL)


def ensure_schema(cursor: Any) -> None:
    cursor.execute(TASKS_DDL)
