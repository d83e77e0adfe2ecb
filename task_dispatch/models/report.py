from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

"""Report models produced by the upload history reporter."""

__all__ = [
    "AgentTotals",
    "UploadHistoryEntry",
    "TaskStats",
]


@dataclass(frozen=True)
class AgentTotals:
    agent_id: str
    name: str | None
    email: str | None
    total_tasks: int
    completed_tasks: int = 0

    @property
    def completion_rate(self) -> float:
        return completion_rate(self.completed_tasks, self.total_tasks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "name": self.name,
            "email": self.email,
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "completionRate": self.completion_rate,
        }


@dataclass(frozen=True)
class UploadHistoryEntry:
    """One upload cohort rebuilt from provenance tags."""
    file_name: str
    uploaded_at: datetime
    total_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    completed_tasks: int
    cancelled_tasks: int
    uploaded_by: str | None
    assigned_agents: list[AgentTotals] = field(default_factory=list)

    @property
    def completion_rate(self) -> float:
        return completion_rate(self.completed_tasks, self.total_tasks)

    @property
    def agents_count(self) -> int:
        return len(self.assigned_agents)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "uploadedAt": self.uploaded_at.isoformat(),
            "totalTasks": self.total_tasks,
            "pendingTasks": self.pending_tasks,
            "inProgressTasks": self.in_progress_tasks,
            "completedTasks": self.completed_tasks,
            "cancelledTasks": self.cancelled_tasks,
            "completionRate": self.completion_rate,
            "uploadedBy": self.uploaded_by,
            "agentsCount": self.agents_count,
            "assignedAgents": [a.to_dict() for a in self.assigned_agents],
        }


@dataclass(frozen=True)
class TaskStats:
    status_counts: dict[str, int]
    agents: list[AgentTotals]

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskStats": dict(self.status_counts),
            "agentStats": [a.to_dict() for a in self.agents],
        }


def completion_rate(completed: int, total: int) -> float:
    """completed / total * 100, 0 when there are no tasks."""
    if total <= 0:
        return 0.0
    return completed / total * 100
