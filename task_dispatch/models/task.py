from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

"""Task and worker domain models.

Workers are owned by the external worker directory; the pipeline only reads
them. Tasks are created once per canonical record and carry provenance tags so
that upload cohorts can be rebuilt later by grouping on (fileName, uploadedAt).
"""

__all__ = [
    "TaskStatus",
    "TaskPriority",
    "Worker",
    "Provenance",
    "NewTask",
    "Task",
]


class TaskStatus(Enum):
    """Task lifecycle states.

    The pipeline only ever creates PENDING tasks; transitions happen through
    agent-facing task updates outside the upload flow.
    """
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True)
class Worker:
    """An agent as returned by the worker directory."""
    id: str
    name: str
    email: str
    active: bool = True


@dataclass(frozen=True)
class Provenance:
    """Upload lineage of a task (which file, which upload, which source row)."""
    first_name: str
    phone: str
    notes: str
    original_row: int
    file_name: str
    uploaded_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "firstName": self.first_name,
            "phone": self.phone,
            "notes": self.notes,
            "originalRow": self.original_row,
            "fileName": self.file_name,
            "uploadedAt": self.uploaded_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Provenance:
        uploaded_at = data["uploadedAt"]
        if isinstance(uploaded_at, str):
            uploaded_at = datetime.fromisoformat(uploaded_at)
        return Provenance(
            first_name=data.get("firstName", ""),
            phone=data.get("phone", ""),
            notes=data.get("notes", ""),
            original_row=int(data["originalRow"]),
            file_name=data["fileName"],
            uploaded_at=uploaded_at,
        )


@dataclass(frozen=True)
class NewTask:
    """Fields supplied by the caller of `TaskStore.create_task`."""
    title: str
    description: str
    worker_id: str
    assigned_by: str
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    provenance: Provenance | None = None


@dataclass(frozen=True)
class Task:
    """A persisted task (store-assigned id and creation time)."""
    id: str
    title: str
    description: str
    worker_id: str
    status: TaskStatus
    priority: TaskPriority
    assigned_by: str
    created_at: datetime
    provenance: Provenance | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "agentId": self.worker_id,
            "status": self.status.value,
            "priority": self.priority.value,
            "assignedBy": self.assigned_by,
            "createdAt": self.created_at.isoformat(),
            "metadata": self.provenance.to_dict() if self.provenance else {},
        }

