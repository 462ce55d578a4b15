"""
Postgres-backed repository for the schedule context.

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Relations (task template, owner, event template, organizer) are joined in
  SQL and hydrated into the dataclasses from ``backend.schedule.models``.
- Numeric columns are returned as floats so score rules never see Decimals.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import psycopg

from backend.schedule.config import resolve_dsn
from backend.schedule.models import (
    Course,
    CourseEvent,
    CourseTask,
    EventTemplate,
    Person,
    StageInterview,
    StageInterviewFeedback,
    TaskChecker,
    TaskInterviewResult,
    TaskResult,
    TaskSolution,
    TaskTemplate,
)
from backend.schedule.services.course_tasks import CourseTaskFilter


def _float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


_COURSE_TASK_COLUMNS_SQL = """
    ct.id,
    ct.course_id,
    ct.task_id,
    ct.student_start_date,
    ct.student_end_date,
    ct.mentor_start_date,
    ct.mentor_end_date,
    ct.cross_check_end_date,
    ct.max_score,
    ct.score_weight,
    ct.checker,
    ct.type,
    ct.pair_count,
    ct.task_owner_id,
    ct.cross_check_status,
    ct.disabled,
    ct.created_at,
    ct.updated_at,
    t.id,
    t.name,
    t.type,
    t.description_url,
    u.id,
    u.github_id,
    u.first_name,
    u.last_name
"""

_COURSE_TASK_FROM_SQL = """
    from public.course_tasks ct
    left join public.tasks t on t.id = ct.task_id
    left join public.users u on u.id = ct.task_owner_id
"""


def _person(row: Sequence[Any], offset: int) -> Optional[Person]:
    if row[offset] is None:
        return None
    return Person(
        id=int(row[offset]),
        github_id=row[offset + 1] or "",
        first_name=row[offset + 2] or "",
        last_name=row[offset + 3] or "",
    )


def _course_task_from_row(row: Sequence[Any]) -> CourseTask:
    template = None
    if row[18] is not None:
        template = TaskTemplate(id=int(row[18]), name=row[19] or "", type=row[20], description_url=row[21])
    return CourseTask(
        id=int(row[0]),
        course_id=int(row[1]),
        task_id=int(row[2]),
        student_start_date=row[3],
        student_end_date=row[4],
        mentor_start_date=row[5],
        mentor_end_date=row[6],
        cross_check_end_date=row[7],
        max_score=_float(row[8]),
        score_weight=_float(row[9]),
        checker=row[10],
        type=row[11],
        pair_count=int(row[12]) if row[12] is not None else None,
        task_owner_id=int(row[13]) if row[13] is not None else None,
        cross_check_status=row[14] or "initial",
        disabled=bool(row[15]),
        created_at=row[16],
        updated_at=row[17],
        task=template,
        task_owner=_person(row, 22),
    )


_COURSE_EVENT_COLUMNS_SQL = """
    ce.id,
    ce.course_id,
    ce.event_id,
    ce.date_time,
    ce.duration,
    ce."date",
    ce."time",
    ce.place,
    ce.comment,
    ce.organizer_id,
    ce.created_at,
    ce.updated_at,
    e.id,
    e.name,
    e.type,
    e.description_url,
    u.id,
    u.github_id,
    u.first_name,
    u.last_name
"""


def _course_event_from_row(row: Sequence[Any]) -> CourseEvent:
    template = None
    if row[12] is not None:
        template = EventTemplate(id=int(row[12]), name=row[13] or "", type=row[14], description_url=row[15])
    return CourseEvent(
        id=int(row[0]),
        course_id=int(row[1]),
        event_id=int(row[2]),
        date_time=row[3],
        duration=int(row[4]) if row[4] is not None else None,
        date=row[5],
        time=row[6],
        place=row[7],
        comment=row[8],
        organizer_id=int(row[9]) if row[9] is not None else None,
        created_at=row[10],
        updated_at=row[11],
        event=template,
        organizer=_person(row, 16),
    )


_FILTER_BOUNDS = (
    ("start_lte", "ct.student_start_date <= %s"),
    ("end_gt", "ct.student_end_date > %s"),
    ("end_lt", "ct.student_end_date < %s"),
    ("end_gte", "ct.student_end_date >= %s"),
    ("end_lte", "ct.student_end_date <= %s"),
    ("updated_gte", "ct.updated_at >= %s"),
)

_ORDER_SQL = {
    "end_name": "order by ct.student_end_date asc, t.name asc",
    "end": "order by ct.student_end_date asc",
    "id": "order by ct.id asc",
}


def _build_course_task_query(flt: CourseTaskFilter) -> Tuple[str, List[Any]]:
    """Translate a ``CourseTaskFilter`` into SQL text and positional params."""
    where: List[str] = []
    params: List[Any] = []
    if flt.course_id is not None:
        where.append("ct.course_id = %s")
        params.append(flt.course_id)
    if not flt.include_disabled:
        where.append("ct.disabled = false")
    for attr, clause in _FILTER_BOUNDS:
        bound = getattr(flt, attr)
        if bound is not None:
            where.append(clause)
            params.append(bound)
    if flt.checker is not None:
        where.append("ct.checker = %s")
        params.append(flt.checker)
    if flt.owner_github_id is not None:
        where.append("u.github_id = %s")
        params.append(flt.owner_github_id)
    order = _ORDER_SQL.get(flt.order)
    if order is None:
        raise ValueError("invalid_order")
    sql = f"select {_COURSE_TASK_COLUMNS_SQL} {_COURSE_TASK_FROM_SQL} where {' and '.join(where) or 'true'} {order}"
    return sql, params


_WRITABLE_COURSE_TASK_COLUMNS = (
    "course_id",
    "task_id",
    "student_start_date",
    "student_end_date",
    "mentor_start_date",
    "mentor_end_date",
    "cross_check_end_date",
    "max_score",
    "score_weight",
    "checker",
    "type",
    "pair_count",
    "task_owner_id",
    "cross_check_status",
    "disabled",
)

_WRITABLE_COURSE_EVENT_COLUMNS = (
    "course_id",
    "event_id",
    "date_time",
    "duration",
    "date",
    "time",
    "place",
    "comment",
    "organizer_id",
)


class DBScheduleRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        """Initialize a Postgres-backed repository.

        Parameters:
            dsn: Optional explicit DSN. When omitted, resolves from env via
                 ``backend.schedule.config.resolve_dsn``.

        Behavior:
            Does not open a connection eagerly; connections are per-call.
        """
        self._dsn = dsn or resolve_dsn()

    def _fetchall(self, sql: str, params: Sequence[Any]) -> List[Tuple]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return list(cur.fetchall())

    # --- Courses ----------------------------------------------------------------
    def get_course(self, course_id: int) -> Optional[Course]:
        rows = self._fetchall(
            "select id, name, start_date, end_date, primary_skill_name from public.courses where id = %s",
            (course_id,),
        )
        if not rows:
            return None
        row = rows[0]
        return Course(id=int(row[0]), name=row[1], start_date=row[2], end_date=row[3], primary_skill_name=row[4])

    # --- Tasks & events ---------------------------------------------------------
    def list_active_course_tasks(self, course_id: int) -> List[CourseTask]:
        return self.find_course_tasks(CourseTaskFilter(course_id=course_id, order="id"))

    def list_course_tasks(self, course_id: int) -> List[CourseTask]:
        return self.find_course_tasks(CourseTaskFilter(course_id=course_id, include_disabled=True, order="id"))

    def find_course_tasks(self, flt: CourseTaskFilter) -> List[CourseTask]:
        sql, params = _build_course_task_query(flt)
        return [_course_task_from_row(row) for row in self._fetchall(sql, params)]

    def get_course_task(self, course_task_id: int) -> Optional[CourseTask]:
        rows = self._fetchall(
            f"select {_COURSE_TASK_COLUMNS_SQL} {_COURSE_TASK_FROM_SQL} where ct.id = %s",
            (course_task_id,),
        )
        return _course_task_from_row(rows[0]) if rows else None

    def list_course_events(self, course_id: int) -> List[CourseEvent]:
        rows = self._fetchall(
            f"""
            select {_COURSE_EVENT_COLUMNS_SQL}
              from public.course_events ce
              left join public.events e on e.id = ce.event_id
              left join public.users u on u.id = ce.organizer_id
             where ce.course_id = %s
             order by ce.id asc
            """,
            (course_id,),
        )
        return [_course_event_from_row(row) for row in rows]

    # --- Student progress -------------------------------------------------------
    def list_task_results(self, student_id: int) -> List[TaskResult]:
        rows = self._fetchall(
            "select id, student_id, course_task_id, score from public.task_results where student_id = %s",
            (student_id,),
        )
        return [TaskResult(id=int(r[0]), student_id=int(r[1]), course_task_id=int(r[2]), score=_float(r[3])) for r in rows]

    def list_interview_results(self, student_id: int) -> List[TaskInterviewResult]:
        rows = self._fetchall(
            "select id, student_id, course_task_id, score from public.task_interview_results where student_id = %s",
            (student_id,),
        )
        return [
            TaskInterviewResult(id=int(r[0]), student_id=int(r[1]), course_task_id=int(r[2]), score=_float(r[3]))
            for r in rows
        ]

    def list_completed_stage_interviews(self, student_id: int) -> List[StageInterview]:
        rows = self._fetchall(
            """
            select si.id, si.student_id, si.course_task_id, si.is_completed, f.id, f.json
              from public.stage_interviews si
              left join public.stage_interview_feedbacks f on f.stage_interview_id = si.id
             where si.student_id = %s and si.is_completed = true
             order by si.id asc, f.id asc
            """,
            (student_id,),
        )
        interviews: Dict[int, StageInterview] = {}
        for row in rows:
            sid = int(row[0])
            interview = interviews.get(sid)
            if interview is None:
                interview = StageInterview(
                    id=sid, student_id=int(row[1]), course_task_id=int(row[2]), is_completed=bool(row[3])
                )
                interviews[sid] = interview
            if row[4] is not None:
                interview.feedbacks.append(StageInterviewFeedback(id=int(row[4]), stage_interview_id=sid, json=row[5]))
        return list(interviews.values())

    def list_task_solutions(self, student_id: int) -> List[TaskSolution]:
        rows = self._fetchall(
            "select id, student_id, course_task_id, url from public.task_solutions where student_id = %s",
            (student_id,),
        )
        return [TaskSolution(id=int(r[0]), student_id=int(r[1]), course_task_id=int(r[2]), url=r[3]) for r in rows]

    def list_task_checkers(self, student_id: int) -> List[TaskChecker]:
        rows = self._fetchall(
            "select id, student_id, course_task_id, mentor_id from public.task_checkers where student_id = %s",
            (student_id,),
        )
        return [
            TaskChecker(
                id=int(r[0]),
                student_id=int(r[1]),
                course_task_id=int(r[2]),
                mentor_id=int(r[3]) if r[3] is not None else None,
            )
            for r in rows
        ]

    # --- Writes -----------------------------------------------------------------
    def insert_course_task(self, course_task: CourseTask) -> CourseTask:
        columns = ", ".join(f'"{name}"' for name in _WRITABLE_COURSE_TASK_COLUMNS)
        placeholders = ", ".join(["%s"] * len(_WRITABLE_COURSE_TASK_COLUMNS))
        values = [getattr(course_task, name) for name in _WRITABLE_COURSE_TASK_COLUMNS]
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"insert into public.course_tasks ({columns}) values ({placeholders}) returning id",
                    values,
                )
                new_id = int(cur.fetchone()[0])
        stored = self.get_course_task(new_id)
        if stored is None:  # pragma: no cover - row vanished between statements
            raise LookupError("course_task_not_found")
        return stored

    def insert_course_event(self, course_event: CourseEvent) -> CourseEvent:
        columns = ", ".join(f'"{name}"' for name in _WRITABLE_COURSE_EVENT_COLUMNS)
        placeholders = ", ".join(["%s"] * len(_WRITABLE_COURSE_EVENT_COLUMNS))
        values = [getattr(course_event, name) for name in _WRITABLE_COURSE_EVENT_COLUMNS]
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"insert into public.course_events ({columns}) values ({placeholders}) returning id",
                    values,
                )
                new_id = int(cur.fetchone()[0])
        return replace(course_event, id=new_id)

    def create_course_task(self, course_task: CourseTask) -> CourseTask:
        return self.insert_course_task(course_task)

    def update_course_task(self, course_task_id: int, changes: Dict[str, Any]) -> Optional[CourseTask]:
        unknown = set(changes) - set(_WRITABLE_COURSE_TASK_COLUMNS)
        if unknown:
            raise ValueError("invalid_update_fields")
        if changes:
            assignments = ", ".join(f'"{name}" = %s' for name in changes)
            with psycopg.connect(self._dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"update public.course_tasks set {assignments}, updated_at = now() where id = %s",
                        [*changes.values(), course_task_id],
                    )
                    if cur.rowcount == 0:
                        return None
        return self.get_course_task(course_task_id)

    def set_course_task_disabled(self, course_task_id: int, disabled: bool) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "update public.course_tasks set disabled = %s, updated_at = now() where id = %s",
                    (disabled, course_task_id),
                )
                return cur.rowcount > 0
