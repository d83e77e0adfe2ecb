from __future__ import annotations

from task_dispatch.db.worker_directory import (
    SELECT_ACTIVE_AGENTS_SQL,
    SELECT_USERS_BY_ID_SQL,
    InMemoryWorkerDirectory,
    PostgresWorkerDirectory,
)
from task_dispatch.models.task import Worker


class DummyCursor:
    def __init__(self, rows):
        self.rows = rows
        self.executed: list[tuple] = []

    def execute(self, sql, params=None):
        self.executed.append((sql, params))

    def fetchall(self):
        return self.rows


def test_in_memory_lists_only_active_in_order():
    d = InMemoryWorkerDirectory(
        [
            Worker("3", "C", "c@x"),
            Worker("1", "A", "a@x", active=False),
            Worker("2", "B", "b@x"),
        ]
    )
    assert [w.id for w in d.list_active_workers()] == ["3", "2"]


def test_in_memory_lookup_includes_users(directory):
    found = directory.lookup(["a1", "admin1", "nobody"])
    assert set(found) == {"a1", "admin1"}
    assert found["admin1"].name == "Root Admin"


def test_postgres_active_workers():
    cur = DummyCursor([(1, "Alice", "alice@x", True), (2, "Bob", "bob@x", True)])
    workers = PostgresWorkerDirectory(cur).list_active_workers()
    assert cur.executed == [(SELECT_ACTIVE_AGENTS_SQL, None)]
    assert workers == [Worker("1", "Alice", "alice@x"), Worker("2", "Bob", "bob@x")]


def test_postgres_lookup():
    cur = DummyCursor([(9, "Root", "root@x", True)])
    found = PostgresWorkerDirectory(cur).lookup(["9", "9", "4"])
    assert cur.executed == [(SELECT_USERS_BY_ID_SQL, (["4", "9"],))]
    assert found["9"].email == "root@x"


def test_postgres_lookup_no_ids_skips_query():
    cur = DummyCursor([])
    assert PostgresWorkerDirectory(cur).lookup([]) == {}
    assert cur.executed == []
