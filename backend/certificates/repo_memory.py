"""In-memory student lookups for certificate issuance (tests, offline work)."""
from __future__ import annotations

from typing import Dict, List, Sequence

from .service import Student


class InMemoryStudentsRepo:
    def __init__(self) -> None:
        self.students: Dict[int, Student] = {}

    def add_student(self, student: Student) -> Student:
        self.students[student.id] = student
        return student

    def list_students_by_ids(self, student_ids: Sequence[int]) -> List[Student]:
        wanted = set(student_ids)
        return [s for sid, s in sorted(self.students.items()) if sid in wanted]

    def list_active_students(self, course_id: int) -> List[Student]:
        return [
            s
            for _, s in sorted(self.students.items())
            if s.course_id == course_id and not s.is_expelled and not s.is_failed
        ]
