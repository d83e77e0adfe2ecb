from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.task_store import InMemoryTaskStore, PostgresTaskStore, ensure_schema
from ..db.worker_directory import InMemoryWorkerDirectory, PostgresWorkerDirectory
from ..errors import ParseError
from ..logging.init import get_logger, log_summary, set_debug, setup_logging
from ..models.config_models import DispatchConfig
from ..models.task import Worker
from ..services.distribution import DistributionPolicy
from ..services.orchestrator import stage_upload, submit_upload
from ..services.reporter import task_stats, upload_history, upload_tasks
from ..services.summary import render_summary_line
from ..services.validator import validate_rows
from ..tabular.reader import detect_format, parse_upload

"""CLI entrypoint.

Subcommands:
- submit FILE --submitted-by ID : stage FILE and run the upload pipeline
- history [--file NAME]         : upload cohorts, or the tasks of one upload
- stats                         : task counts per status and per agent
- inspect FILE                  : headers, first rows and validation result only

Exit codes: 0 success, 2 rejected upload (400-class), 1 fatal (config / 500-class).
Set DISABLE_DB_CONNECT=1 for a dry run against in-memory stores seeded from
`dry_run_workers` in the config.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_REJECTED = 2


@contextmanager
def _db_connection(cfg: DispatchConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a cursor on an autocommit psycopg2 connection.

    Resolution order for connection parameters:
        1. DATABASE_URL / PGDSN (full DSN)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. `database` section of config/dispatch.yml

    Autocommit makes every task insert durable on its own; the upload batch
    is deliberately not wrapped in one transaction.
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    try:
        conn.autocommit = True
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="task-dispatch", description="Distribute uploaded contact lists to agents as tasks"
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("submit", help="Upload a CSV/XLSX file and create tasks")
    s.add_argument("file", type=Path)
    s.add_argument("--submitted-by", required=True, help="Id of the submitting administrator")
    s.add_argument("--media-type", default=None, help="Declared media type of the file")
    s.add_argument(
        "--policy",
        choices=[p.value for p in DistributionPolicy],
        default=None,
        help="Override distribution.policy from the config",
    )

    h = sub.add_parser("history", help="Show upload history")
    h.add_argument("--file", dest="file_name", default=None, help="List the tasks of one upload")

    sub.add_parser("stats", help="Show task statistics")

    i = sub.add_parser("inspect", help="Print headers, sample rows and validation result")
    i.add_argument("file", type=Path)
    i.add_argument("--media-type", default=None)
    return p.parse_args(argv)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _zone(cfg: DispatchConfig) -> tzinfo:
    if cfg.timezone.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(cfg.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        get_logger().warning("unknown timezone %r in config; showing times in UTC", cfg.timezone)
        return UTC


def _cmd_submit(args: argparse.Namespace, cfg: DispatchConfig, task_store, directory) -> int:
    upload = None
    if args.file.is_file():
        upload = stage_upload(args.file, Path(cfg.staging_directory), media_type=args.media_type)
    response = submit_upload(
        upload,
        str(args.submitted_by),
        config=cfg,
        task_store=task_store,
        worker_directory=directory,
        policy=args.policy,
    )
    _print_json(response.to_dict())
    policy = args.policy or cfg.distribution_policy
    log_summary(render_summary_line(args.file.name, response, policy))
    if response.success:
        return EXIT_SUCCESS
    return EXIT_FATAL if response.status_code >= 500 else EXIT_REJECTED


def _cmd_history(args: argparse.Namespace, cfg: DispatchConfig, task_store, directory) -> int:
    tz = _zone(cfg)
    if args.file_name:
        _print_json([t.to_dict() for t in upload_tasks(task_store, args.file_name)])
        return EXIT_SUCCESS
    out = []
    for entry in upload_history(task_store, directory):
        item = entry.to_dict()
        item["uploadedAt"] = entry.uploaded_at.astimezone(tz).isoformat()
        out.append(item)
    _print_json(out)
    return EXIT_SUCCESS


def _cmd_stats(args: argparse.Namespace, cfg: DispatchConfig, task_store, directory) -> int:
    _print_json(task_stats(task_store, directory).to_dict())
    return EXIT_SUCCESS


def _cmd_inspect(args: argparse.Namespace) -> int:
    file_format = detect_format(args.file.name, args.media_type)
    if file_format is None or not args.file.is_file():
        print(f"inspect: unsupported or missing file: {args.file}")
        return EXIT_REJECTED
    try:
        rows = parse_upload(args.file, file_format)
    except ParseError as e:
        print(f"inspect: parse error: {e}")
        return EXIT_REJECTED
    validation = validate_rows(rows)
    _print_json(
        {
            "file": args.file.name,
            "format": file_format.value,
            "columns": list(rows[0].keys()) if rows else [],
            "rows": len(rows),
            "sample_rows": rows[:3],
            "valid": validation.valid,
            "errors": validation.errors,
        }
    )
    return EXIT_SUCCESS if validation.valid else EXIT_REJECTED


_COMMANDS = {
    "submit": _cmd_submit,
    "history": _cmd_history,
    "stats": _cmd_stats,
}


def _dry_run_stores(cfg: DispatchConfig) -> tuple[InMemoryTaskStore, InMemoryWorkerDirectory]:
    workers = [
        Worker(id=w.id, name=w.name, email=w.email, active=w.active) for w in cfg.dry_run_workers
    ]
    return InMemoryTaskStore(), InMemoryWorkerDirectory(workers)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リスト [] はそのまま使う (None のときだけ sys.argv を読む)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.command == "inspect":
        return _cmd_inspect(args)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    handler = _COMMANDS[args.command]
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> dry-run mode")
        task_store, directory = _dry_run_stores(cfg)
        return handler(args, cfg, task_store, directory)

    try:
        with _db_connection(cfg) as cur:
            ensure_schema(cur)
            return handler(args, cfg, PostgresTaskStore(cur), PostgresWorkerDirectory(cur))
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
