from __future__ import annotations

import sys
from collections import Counter
from typing import Any

from tqdm import tqdm

"""Task-creation progress bar.

Shown only when stdout is a terminal: piped or captured output (CI, the JSON
result of the CLI) stays free of control sequences. The bar's postfix names
the agent that received the latest task and that agent's running count.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    def __init__(self, total_tasks: int, *, description: str = "Creating tasks") -> None:
        self.total_tasks = total_tasks
        self.description = description
        self.current_task = 0
        self.per_agent: Counter[str] = Counter()
        self.enabled = total_tasks > 0 and is_tty_enabled()
        self.pbar: Any = (
            tqdm(total=total_tasks, desc=description, unit="task", leave=False, ncols=80, ascii=True)
            if self.enabled
            else None
        )

    def advance(self, worker_name: str | None = None) -> None:
        self.current_task += 1
        if worker_name:
            self.per_agent[worker_name] += 1
        if self.pbar is None:
            return
        self.pbar.update(1)
        if worker_name:
            self.pbar.set_postfix_str(f"{worker_name}={self.per_agent[worker_name]}", refresh=False)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
