"""
Copy a course schedule (tasks and events) into another course.

Usage:
    python -m backend.tools.copy_schedule --from-course 11 --to-course 23 [--dsn ...] [--dry-run]

Behavior:
    - Dates are shifted by the difference between the two course start dates.
    - `--dry-run` reports the shift and record counts without writing.
    - The copy is not transactional: on failure the records copied so far
      remain and the process exits non-zero.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import Optional, Sequence

from dotenv import load_dotenv

from backend.schedule.repo_db import DBScheduleRepo
from backend.schedule.services.schedule import ScheduleService

logger = logging.getLogger("schedule.tools.copy_schedule")


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Copy a course schedule into another course")
    parser.add_argument("--from-course", type=int, required=True, help="Source course id")
    parser.add_argument("--to-course", type=int, required=True, help="Target course id")
    parser.add_argument(
        "--dsn",
        default=os.getenv("SCHEDULE_DATABASE_URL") or os.getenv("DATABASE_URL"),
        help="Postgres DSN (defaults to SCHEDULE_DATABASE_URL or DATABASE_URL)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report what would be copied without writing")
    return parser.parse_args(argv)


async def run_copy(service: ScheduleService, from_course: int, to_course: int, *, dry_run: bool) -> int:
    """Execute (or preview) the copy and return the process exit code."""
    try:
        if dry_run:
            plan = await service.plan_copy(from_course, to_course)
            logger.info(
                "[dry-run] Would copy %d tasks and %d events, shifting dates by %s",
                len(plan.course_tasks),
                len(plan.course_events),
                plan.delta,
            )
            return 0
        result = await service.copy_from_to(from_course, to_course)
    except LookupError:
        logger.error("Course not found (from=%s to=%s)", from_course, to_course)
        return 2
    logger.info(
        "Copied %d tasks and %d events, dates shifted by %s", result.tasks_copied, result.events_copied, result.delta
    )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    load_dotenv()
    logging.basicConfig(
        level=(os.getenv("LOG_LEVEL") or "INFO").upper(), format="%(levelname)s:%(name)s:%(message)s"
    )
    args = _parse_args(argv)
    if args.from_course == args.to_course:
        raise SystemExit("--from-course and --to-course must differ")
    service = ScheduleService(DBScheduleRepo(args.dsn))
    code = asyncio.run(run_copy(service, args.from_course, args.to_course, dry_run=args.dry_run))
    if code:
        raise SystemExit(code)
    logger.info("Copy completed")


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
