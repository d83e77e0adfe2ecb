"""Domain models for the contact upload dispatcher."""

from .config_models import DatabaseConfig, DispatchConfig, DryRunWorker, UploadLimits
from .distribution import DistributionEntry, DistributionPlan
from .row_data import CanonicalRecord, RawRow
from .task import NewTask, Provenance, Task, TaskPriority, TaskStatus, Worker
from .upload_file import FileFormat, StagedUpload, UploadStatus

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "DispatchConfig",
    "DryRunWorker",
    "UploadLimits",
    # Pipeline models
    "RawRow",
    "CanonicalRecord",
    "DistributionEntry",
    "DistributionPlan",
    "FileFormat",
    "StagedUpload",
    "UploadStatus",
    # Task store models
    "NewTask",
    "Provenance",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Worker",
]
