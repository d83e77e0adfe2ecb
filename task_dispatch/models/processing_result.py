from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

"""Result models for one submit-upload run.

UploadResponse mirrors the response contract of the upload endpoint
({success, message, data | errors}) plus the HTTP-equivalent status code.
"""


@dataclass(frozen=True)
class AgentAssignment:
    """Per-agent line of the distribution summary."""
    agent_id: str
    agent_name: str
    agent_email: str
    count: int
    preview: list[str] = field(default_factory=list)  # 先頭数件のタスクタイトル

    def to_dict(self) -> dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "agentName": self.agent_name,
            "agentEmail": self.agent_email,
            "count": self.count,
            "preview": list(self.preview),
        }


@dataclass(frozen=True)
class UploadSummary:
    """Payload of a successful submit."""
    total_tasks: int
    agents_count: int
    file_name: str
    uploaded_at: datetime
    created_tasks: int
    policy: str
    distribution: list[AgentAssignment]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTasks": self.total_tasks,
            "agentsCount": self.agents_count,
            "fileName": self.file_name,
            "uploadedAt": self.uploaded_at.isoformat(),
            "createdTasks": self.created_tasks,
            "policy": self.policy,
            "distribution": [a.to_dict() for a in self.distribution],
        }


@dataclass(frozen=True)
class UploadResponse:
    success: bool
    message: str
    status_code: int
    data: UploadSummary | None = None
    errors: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    persist_stats: tuple[int, float, float] = (0, 0.0, 0.0)  # (count, avg, p95)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.success and self.data is not None:
            body["data"] = self.data.to_dict()
        else:
            body["errors"] = list(self.errors)
        return body


class PersistStatsAccumulator:
    """Accumulates per-task persist timings for the run summary."""

    def __init__(self) -> None:
        self.persist_times: list[float] = []

    def add(self, elapsed_seconds: float) -> None:
        self.persist_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (count, avg_seconds, p95_seconds)."""
        if not self.persist_times:
            return (0, 0.0, 0.0)

        count = len(self.persist_times)
        avg = statistics.mean(self.persist_times)
        if count == 1:
            p95 = self.persist_times[0]
        else:
            # 95th percentile (19th of 20 quantiles)
            p95 = statistics.quantiles(self.persist_times, n=20, method='inclusive')[18]
        return (count, avg, p95)
