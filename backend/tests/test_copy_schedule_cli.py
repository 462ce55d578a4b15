"""Tests for the schedule copy operator CLI (argument parsing and dry-run)."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from backend.schedule.models import Course, CourseTask
from backend.schedule.repo_memory import InMemoryScheduleRepo
from backend.schedule.services.schedule import ScheduleService
from backend.tools.copy_schedule import _parse_args, run_copy


def _repo() -> InMemoryScheduleRepo:
    repo = InMemoryScheduleRepo()
    repo.add_course(Course(id=1, name="src", start_date=datetime(2023, 1, 1, tzinfo=timezone.utc)))
    repo.add_course(Course(id=2, name="dst", start_date=datetime(2023, 6, 1, tzinfo=timezone.utc)))
    repo.course_tasks[1] = CourseTask(id=1, course_id=1, task_id=1)
    return repo


def test_parse_args_reads_dsn_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://app@db/main")
    args = _parse_args(["--from-course", "1", "--to-course", "2", "--dry-run"])
    assert (args.from_course, args.to_course, args.dry_run) == (1, 2, True)
    assert args.dsn == "postgresql://app@db/main"


@pytest.mark.anyio
async def test_dry_run_does_not_write(caplog: pytest.LogCaptureFixture):
    repo = _repo()
    with caplog.at_level("INFO"):
        code = await run_copy(ScheduleService(repo), 1, 2, dry_run=True)
    assert code == 0
    assert len(repo.course_tasks) == 1
    assert "[dry-run] Would copy 1 tasks and 0 events" in caplog.text


@pytest.mark.anyio
async def test_copy_and_missing_course_exit_codes():
    repo = _repo()
    assert await run_copy(ScheduleService(repo), 1, 2, dry_run=False) == 0
    assert len(repo.course_tasks) == 2
    assert await run_copy(ScheduleService(repo), 1, 42, dry_run=False) == 2
