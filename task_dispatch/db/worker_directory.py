from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

from ..models.task import Worker

"""Worker directory collaborators (read-only for the pipeline).

Roster order as returned here decides distribution order; the SQL directory
orders by id so the order is stable for the duration of one upload.
"""

__all__ = [
    "WorkerDirectory",
    "InMemoryWorkerDirectory",
    "PostgresWorkerDirectory",
]

SELECT_ACTIVE_AGENTS_SQL = (
    "SELECT id, name, email, is_active FROM users "
    "WHERE role = 'agent' AND is_active ORDER BY id"
)
SELECT_USERS_BY_ID_SQL = (
    "SELECT id, name, email, is_active FROM users WHERE id::text = ANY(%s)"
)


class WorkerDirectory(Protocol):
    def list_active_workers(self) -> list[Worker]: ...

    def lookup(self, ids: Iterable[str]) -> dict[str, Worker]: ...


class InMemoryWorkerDirectory:
    """Roster held in memory; `users` adds non-agent accounts (admins) for lookups."""

    def __init__(self, workers: Iterable[Worker], users: Iterable[Worker] = ()) -> None:
        self._workers = list(workers)
        self._users = list(users)

    def list_active_workers(self) -> list[Worker]:
        return [w for w in self._workers if w.active]

    def lookup(self, ids: Iterable[str]) -> dict[str, Worker]:
        wanted = set(ids)
        return {w.id: w for w in [*self._workers, *self._users] if w.id in wanted}


def _row_to_worker(row: Any) -> Worker:
    worker_id, name, email, is_active = row
    return Worker(id=str(worker_id), name=name, email=email, active=bool(is_active))


class PostgresWorkerDirectory:
    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def list_active_workers(self) -> list[Worker]:
        self.cursor.execute(SELECT_ACTIVE_AGENTS_SQL)
        return [_row_to_worker(r) for r in self.cursor.fetchall()]

    def lookup(self, ids: Iterable[str]) -> dict[str, Worker]:
        id_list = sorted(set(ids))
        if not id_list:
            return {}
        self.cursor.execute(SELECT_USERS_BY_ID_SQL, (id_list,))
        return {w.id: w for w in (_row_to_worker(r) for r in self.cursor.fetchall())}
