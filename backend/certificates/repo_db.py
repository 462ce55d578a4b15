"""Postgres-backed student lookups for certificate issuance."""
from __future__ import annotations

from typing import Any, List, Optional, Sequence

import psycopg

from backend.schedule.config import resolve_dsn

from .service import Student

_STUDENT_COLUMNS_SQL = """
    s.id,
    s.course_id,
    u.first_name,
    u.last_name,
    c.name,
    c.primary_skill_name,
    u.github_id,
    s.is_expelled,
    s.is_failed
"""

_STUDENT_FROM_SQL = """
    from public.students s
    join public.courses c on c.id = s.course_id
    join public.users u on u.id = s.user_id
"""


def _student_from_row(row: Sequence[Any]) -> Student:
    return Student(
        id=int(row[0]),
        course_id=int(row[1]),
        first_name=row[2] or "",
        last_name=row[3] or "",
        course_name=row[4] or "",
        primary_skill_name=row[5],
        github_id=row[6],
        is_expelled=bool(row[7]),
        is_failed=bool(row[8]),
    )


class DBStudentsRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = dsn or resolve_dsn()

    def list_students_by_ids(self, student_ids: Sequence[int]) -> List[Student]:
        if not student_ids:
            return []
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_STUDENT_COLUMNS_SQL} {_STUDENT_FROM_SQL} where s.id = any(%s) order by s.id asc",
                    (list(student_ids),),
                )
                rows = cur.fetchall()
        return [_student_from_row(row) for row in rows]

    def list_active_students(self, course_id: int) -> List[Student]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select {_STUDENT_COLUMNS_SQL} {_STUDENT_FROM_SQL}
                     where s.course_id = %s and s.is_expelled = false and s.is_failed = false
                     order by s.id asc
                    """,
                    (course_id,),
                )
                rows = cur.fetchall()
        return [_student_from_row(row) for row in rows]
