from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from ..db.task_store import TaskStore
from ..db.worker_directory import WorkerDirectory
from ..errors import (
    FileTooLargeError,
    NoActiveWorkersError,
    NoFileProvidedError,
    SchemaValidationError,
    UnsupportedMediaTypeError,
    UploadError,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import DispatchConfig, UploadLimits
from ..models.processing_result import UploadResponse, UploadSummary
from ..models.upload_file import FileFormat, StagedUpload
from ..tabular.reader import EXTENSION_FORMATS, detect_format, parse_upload
from .distribution import DistributionPolicy, build_plan
from .materializer import materialize_plan, summarize_distribution
from .normalizer import normalize_rows
from .validator import validate_rows

"""Submit-upload orchestration.

One synchronous run per upload:

    staged file -> check media/size -> parse -> validate (reject, nothing
    written) -> read active roster -> normalize -> distribute -> create tasks
    one by one -> response

The staging file is removed on every exit path (success, each rejection,
persistence failure, unexpected exception). Task creation is not atomic:
on a mid-batch failure the tasks already created are kept and the response
reports how many there were.
"""

__all__ = [
    "check_upload",
    "stage_upload",
    "staged_file",
    "submit_upload",
]

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server error during file processing"


def stage_upload(source: Path, staging_dir: Path, media_type: str | None = None) -> StagedUpload:
    """Copy `source` into the staging directory as `<epoch-ms>-<name>`.

    Plays the part of the upload-receiving side; the returned StagedUpload is
    owned (and eventually deleted) by submit_upload.
    """
    staging_dir.mkdir(parents=True, exist_ok=True)
    stamp = int(time.time() * 1000)
    target = staging_dir / f"{stamp}-{source.name}"
    shutil.copyfile(source, target)
    return StagedUpload(
        path=target,
        original_name=source.name,
        media_type=media_type,
        size_bytes=target.stat().st_size,
    )


def _remove_staging(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("staging file could not be removed path=%s: %s", path, e)
    else:
        logger.debug("staging file removed path=%s", path)


@contextmanager
def staged_file(upload: StagedUpload | None) -> Iterator[StagedUpload | None]:
    """Scope a staged upload: the file is deleted when the block exits, however it exits."""
    try:
        yield upload
    finally:
        if upload is not None:
            _remove_staging(upload.path)


def check_upload(upload: StagedUpload | None, limits: UploadLimits) -> FileFormat:
    """Pre-parse gate: a file must be present, tabular, allowed, and under the size ceiling."""
    if upload is None:
        raise NoFileProvidedError()

    file_format = detect_format(upload.original_name, upload.media_type)
    if file_format is None:
        raise UnsupportedMediaTypeError(
            detail=f"name={upload.original_name} media_type={upload.media_type}"
        )
    ext = upload.extension
    if ext in EXTENSION_FORMATS and ext not in limits.allowed_extensions:
        raise UnsupportedMediaTypeError(detail=f"extension {ext} not allowed")

    size = upload.size_bytes
    if size is None:
        size = upload.path.stat().st_size
    if size > limits.max_bytes:
        raise FileTooLargeError(
            [f"File exceeds the {limits.max_bytes} byte upload limit"],
            detail=f"size={size} limit={limits.max_bytes}",
        )
    return file_format


def _run_pipeline(
    upload: StagedUpload | None,
    submitted_by: str,
    config: DispatchConfig,
    task_store: TaskStore,
    worker_directory: WorkerDirectory,
    policy: DistributionPolicy,
    clock: Callable[[], datetime],
) -> UploadResponse:
    file_format = check_upload(upload, config.upload)

    rows = parse_upload(upload.path, file_format)
    logger.info("parsed file=%s format=%s rows=%d", upload.original_name, file_format.value, len(rows))

    validation = validate_rows(rows)
    if not validation.valid:
        raise SchemaValidationError(validation.errors, detail=f"{len(validation.errors)} problem(s)")

    roster = worker_directory.list_active_workers()
    if not roster:
        raise NoActiveWorkersError()

    records = normalize_rows(rows)
    plan = build_plan(records, roster, policy)
    logger.debug("plan policy=%s entries=%d roster=%d", plan.policy, len(plan), len(roster))

    uploaded_at = clock()
    result = materialize_plan(
        plan,
        task_store,
        file_name=upload.original_name,
        uploaded_at=uploaded_at,
        assigned_by=submitted_by,
        priority=config.task_priority,
    )

    summary = UploadSummary(
        total_tasks=len(records),
        agents_count=len(roster),
        file_name=upload.original_name,
        uploaded_at=uploaded_at,
        created_tasks=len(result.tasks),
        policy=policy.value,
        distribution=summarize_distribution(plan, result.tasks, config.preview_limit),
    )
    message = (
        f"Successfully processed {len(records)} tasks and distributed among "
        f"{len(roster)} agents using {policy.label} algorithm"
    )
    logger.info(message)
    return UploadResponse(
        success=True,
        message=message,
        status_code=200,
        data=summary,
        persist_stats=result.stats.get_stats(),
    )


def submit_upload(
    upload: StagedUpload | None,
    submitted_by: str,
    *,
    config: DispatchConfig,
    task_store: TaskStore,
    worker_directory: WorkerDirectory,
    error_log: ErrorLogBuffer | None = None,
    policy: DistributionPolicy | str | None = None,
    clock: Callable[[], datetime] | None = None,
) -> UploadResponse:
    """Run the whole ingestion pipeline for one staged upload.

    Never raises for pipeline outcomes: rejections come back as 400 responses,
    persistence and unexpected failures as 500 responses.
    """
    start = time.perf_counter()
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    policy = DistributionPolicy(policy or config.distribution_policy)
    clock = clock or (lambda: datetime.now(UTC))
    file_name = upload.original_name if upload is not None else ""

    try:
        with staged_file(upload):
            response = _run_pipeline(
                upload, submitted_by, config, task_store, worker_directory, policy, clock
            )
    except UploadError as e:
        if e.status_code >= 500:
            logger.error("upload failed file=%s: %s", file_name, e)
        else:
            logger.warning("upload rejected file=%s kind=%s: %s", file_name, e.error_type, e)
        error_log.record_upload_error(file_name, e)
        response = UploadResponse(
            success=False,
            message=e.message,
            status_code=e.status_code,
            errors=e.errors,
        )
    except Exception as e:
        logger.exception("unexpected failure file=%s", file_name)
        error_log.record(file_name, "UNEXPECTED_FAILURE", str(e))
        response = UploadResponse(
            success=False,
            message=SERVER_ERROR_MESSAGE,
            status_code=500,
            errors=[str(e) or "Internal server error"],
        )

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning("error log flush failed: %s", e)
    else:
        if log_path is not None:
            logger.info("error details written to %s", log_path)

    return replace(response, elapsed_seconds=time.perf_counter() - start)
