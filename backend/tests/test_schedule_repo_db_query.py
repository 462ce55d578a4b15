"""
SQL builder and row mapping tests for the Postgres schedule repository.

Why:
    The query builder carries the temporal filter semantics of the course task
    lookups. These tests pin the generated SQL and parameters and exercise the
    row hydration with a fake psycopg connection, so no database is required.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List

import pytest

from backend.schedule import repo_db
from backend.schedule.repo_db import DBScheduleRepo, _build_course_task_query
from backend.schedule.services.course_tasks import CourseTaskFilter

NOW = datetime(2023, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_default_filter_excludes_disabled_and_orders_by_end_then_name():
    sql, params = _build_course_task_query(CourseTaskFilter(course_id=3))
    assert "ct.course_id = %s" in sql
    assert "ct.disabled = false" in sql
    assert sql.rstrip().endswith("order by ct.student_end_date asc, t.name asc")
    assert params == [3]


def test_bounds_are_appended_in_declared_order():
    flt = CourseTaskFilter(course_id=1, start_lte=NOW, end_gte=NOW, end_lte=NOW, order="end")
    sql, params = _build_course_task_query(flt)
    assert "ct.student_start_date <= %s" in sql
    assert "ct.student_end_date >= %s" in sql
    assert "ct.student_end_date <= %s" in sql
    assert params == [1, NOW, NOW, NOW]
    assert sql.rstrip().endswith("order by ct.student_end_date asc")


def test_owner_lookup_spans_courses_and_disabled_rows():
    flt = CourseTaskFilter(include_disabled=True, checker="taskOwner", owner_github_id="octo", order="id")
    sql, params = _build_course_task_query(flt)
    assert "ct.course_id" not in sql.split("where", 1)[1]
    assert "ct.disabled = false" not in sql
    assert "u.github_id = %s" in sql
    assert params == ["taskOwner", "octo"]


def test_unknown_order_is_rejected():
    with pytest.raises(ValueError):
        _build_course_task_query(CourseTaskFilter(order="random"))


class _FakeCursor:
    def __init__(self, rows: List[tuple], log: List[tuple]) -> None:
        self._rows = rows
        self._log = log

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql: str, params: Any = None) -> None:
        self._log.append((sql, params))

    def fetchall(self):
        return list(self._rows)


class _FakeConn:
    def __init__(self, rows: List[tuple], log: List[tuple]) -> None:
        self._rows = rows
        self._log = log

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def cursor(self):
        return _FakeCursor(self._rows, self._log)


def test_get_course_task_hydrates_template_and_owner(monkeypatch: pytest.MonkeyPatch):
    row = (
        5, 1, 10,
        NOW, NOW, None, None, None,
        Decimal("100.00"), Decimal("0.5"),
        "taskOwner", None, None, 7, "initial", False, NOW, NOW,
        10, "Basic JS", "jstask", "https://docs/basic",
        7, "octo", "Ada", "Lovelace",
    )  # fmt: skip
    log: List[tuple] = []
    monkeypatch.setattr(repo_db.psycopg, "connect", lambda dsn: _FakeConn([row], log))

    task = DBScheduleRepo("postgresql://test/db").get_course_task(5)

    assert task is not None
    assert task.max_score == 100.0 and isinstance(task.max_score, float)
    assert task.score_weight == 0.5
    assert task.task is not None and task.task.name == "Basic JS"
    assert task.task_owner is not None and task.task_owner.name == "Ada Lovelace"
    assert log[0][1] == (5,)


def test_get_course_returns_none_when_missing(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(repo_db.psycopg, "connect", lambda dsn: _FakeConn([], []))
    assert DBScheduleRepo("postgresql://test/db").get_course(404) is None
