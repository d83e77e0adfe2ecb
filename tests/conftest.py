# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from task_dispatch.db.task_store import InMemoryTaskStore
from task_dispatch.db.worker_directory import InMemoryWorkerDirectory
from task_dispatch.models.config_models import DispatchConfig
from task_dispatch.models.task import Worker


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """staging_directory: ./staging
upload:
  max_bytes: 5242880
  allowed_extensions: [".csv", ".xlsx"]
distribution:
  policy: round_robin
task:
  priority: medium
summary:
  preview_limit: 2
timezone: UTC
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
dry_run_workers:
  - {id: "a1", name: "Alice", email: "alice@example.com"}
  - {id: "a2", name: "Bob", email: "bob@example.com"}
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "dispatch.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def dispatch_config(temp_workdir: Path) -> DispatchConfig:
    return DispatchConfig(staging_directory=str(temp_workdir / "staging"))


@pytest.fixture()
def workers() -> list[Worker]:
    return [
        Worker(id="a1", name="Alice", email="alice@example.com"),
        Worker(id="a2", name="Bob", email="bob@example.com"),
    ]


@pytest.fixture()
def task_store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture()
def directory(workers: list[Worker]) -> InMemoryWorkerDirectory:
    admin = Worker(id="admin1", name="Root Admin", email="root@example.com", active=False)
    return InMemoryWorkerDirectory(workers, users=[admin])

@pytest.fixture()
def five_row_csv(temp_workdir: Path) -> Path:
    p = temp_workdir / "data" / "contacts.csv"
    p.write_text(
        "FirstName,Phone,Notes\n"
        "Ann,+1 555-0100,call after 5\n"
        "Ben,(555) 0101,\n"
        "Cat,555 0102,vip\n"
        "Dan,5550103,\n"
        "Eve,+44 20 7946 0958,new lead\n",
        encoding="utf-8",
    )
    return p
