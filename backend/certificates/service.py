"""Certificate issuance use case.

Why:
    Collects the students of a course who earned a certificate (or an
    explicit list of students) and hands them to the external generator.
    Pure glue: no scoring decisions are made here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any, Callable, List, Optional, Protocol, Sequence


@dataclass
class Student:
    id: int
    course_id: int
    first_name: str
    last_name: str
    course_name: str
    primary_skill_name: Optional[str] = None
    github_id: Optional[str] = None
    is_expelled: bool = False
    is_failed: bool = False


class StudentsRepoProtocol(Protocol):
    def list_students_by_ids(self, student_ids: Sequence[int]) -> List[Student]:
        ...

    def list_active_students(self, course_id: int) -> List[Student]:
        ...


class CertificateGeneratorProtocol(Protocol):
    def generate(self, entries: List[dict[str, Any]]) -> None:
        ...


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def certificate_entry(student: Student, issued_at_ms: int) -> dict[str, Any]:
    return {
        "studentId": student.id,
        "course": f"{student.course_name} ({student.primary_skill_name})",
        "name": f"{student.first_name} {student.last_name}",
        "date": issued_at_ms,
    }


@dataclass
class CertificatesService:
    repo: StudentsRepoProtocol
    generator: CertificateGeneratorProtocol
    clock_ms: Callable[[], int] = field(default=_epoch_millis)

    def issue(self, course_id: int, student_ids: Optional[Sequence[int]] = None) -> List[dict[str, Any]]:
        """Trigger certificate generation and return the posted entries.

        Behavior:
            - Non-empty ``student_ids``: exactly those students.
            - Otherwise: students of the course who are neither expelled nor
              failed.
            - The list is posted even when empty.
        """
        if student_ids:
            students = self.repo.list_students_by_ids(list(student_ids))
        else:
            students = self.repo.list_active_students(course_id)
        issued_at = self.clock_ms()
        entries = [certificate_entry(s, issued_at) for s in students]
        self.generator.generate(entries)
        return entries
