"""
In-memory repository for the schedule context.

Why:
    Serves local offline work and the test-suite when no Postgres is
    reachable. Implements the same protocols as ``DBScheduleRepo`` including
    relation expansion (template, owner, organizer) and the SQL-like null
    semantics of ``CourseTaskFilter``.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from backend.schedule.models import (
    Course,
    CourseEvent,
    CourseTask,
    EventTemplate,
    Person,
    StageInterview,
    TaskChecker,
    TaskInterviewResult,
    TaskResult,
    TaskSolution,
    TaskTemplate,
)
from backend.schedule.services.course_tasks import CourseTaskFilter


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryScheduleRepo:
    def __init__(self) -> None:
        self.courses: Dict[int, Course] = {}
        self.persons: Dict[int, Person] = {}
        self.task_templates: Dict[int, TaskTemplate] = {}
        self.event_templates: Dict[int, EventTemplate] = {}
        self.course_tasks: Dict[int, CourseTask] = {}
        self.course_events: Dict[int, CourseEvent] = {}
        self.task_results: List[TaskResult] = []
        self.interview_results: List[TaskInterviewResult] = []
        self.stage_interviews: List[StageInterview] = []
        self.task_solutions: List[TaskSolution] = []
        self.task_checkers: List[TaskChecker] = []

    # --- Seeding ----------------------------------------------------------------
    def add_course(self, course: Course) -> Course:
        self.courses[course.id] = course
        return course

    def add_person(self, person: Person) -> Person:
        self.persons[person.id] = person
        return person

    def add_task_template(self, template: TaskTemplate) -> TaskTemplate:
        self.task_templates[template.id] = template
        return template

    def add_event_template(self, template: EventTemplate) -> EventTemplate:
        self.event_templates[template.id] = template
        return template

    # --- Expansion --------------------------------------------------------------
    def _expand_task(self, course_task: CourseTask) -> CourseTask:
        owner = self.persons.get(course_task.task_owner_id) if course_task.task_owner_id is not None else None
        return replace(course_task, task=self.task_templates.get(course_task.task_id), task_owner=owner)

    def _expand_event(self, course_event: CourseEvent) -> CourseEvent:
        organizer = self.persons.get(course_event.organizer_id) if course_event.organizer_id is not None else None
        return replace(course_event, event=self.event_templates.get(course_event.event_id), organizer=organizer)

    # --- Schedule reads ---------------------------------------------------------
    def get_course(self, course_id: int) -> Optional[Course]:
        return self.courses.get(course_id)

    def list_active_course_tasks(self, course_id: int) -> List[CourseTask]:
        return [
            self._expand_task(t)
            for t in self.course_tasks.values()
            if t.course_id == course_id and not t.disabled
        ]

    def list_course_tasks(self, course_id: int) -> List[CourseTask]:
        return [replace(t) for t in self.course_tasks.values() if t.course_id == course_id]

    def list_course_events(self, course_id: int) -> List[CourseEvent]:
        return [self._expand_event(e) for e in self.course_events.values() if e.course_id == course_id]

    def list_task_results(self, student_id: int) -> List[TaskResult]:
        return [r for r in self.task_results if r.student_id == student_id]

    def list_interview_results(self, student_id: int) -> List[TaskInterviewResult]:
        return [r for r in self.interview_results if r.student_id == student_id]

    def list_completed_stage_interviews(self, student_id: int) -> List[StageInterview]:
        return [s for s in self.stage_interviews if s.student_id == student_id and s.is_completed]

    def list_task_solutions(self, student_id: int) -> List[TaskSolution]:
        return [s for s in self.task_solutions if s.student_id == student_id]

    def list_task_checkers(self, student_id: int) -> List[TaskChecker]:
        return [c for c in self.task_checkers if c.student_id == student_id]

    # --- Writes -----------------------------------------------------------------
    def insert_course_task(self, course_task: CourseTask) -> CourseTask:
        now = _now()
        stored = replace(course_task, id=_next_id(self.course_tasks), task=None, task_owner=None, created_at=now, updated_at=now)
        self.course_tasks[stored.id] = stored
        return self._expand_task(stored)

    def insert_course_event(self, course_event: CourseEvent) -> CourseEvent:
        now = _now()
        stored = replace(course_event, id=_next_id(self.course_events), event=None, organizer=None, created_at=now, updated_at=now)
        self.course_events[stored.id] = stored
        return self._expand_event(stored)

    # --- Course task queries ------------------------------------------------------
    def find_course_tasks(self, flt: CourseTaskFilter) -> List[CourseTask]:
        items = [self._expand_task(t) for t in self.course_tasks.values() if self._matches(t, flt)]
        if flt.order == "end_name":
            items.sort(key=lambda t: (t.task.name if t.task else "",))
            items.sort(key=_end_sort_key)
        elif flt.order == "end":
            items.sort(key=_end_sort_key)
        else:
            items.sort(key=lambda t: t.id or 0)
        return items

    def _matches(self, t: CourseTask, flt: CourseTaskFilter) -> bool:
        if flt.course_id is not None and t.course_id != flt.course_id:
            return False
        if not flt.include_disabled and t.disabled:
            return False
        if flt.checker is not None and t.checker != flt.checker:
            return False
        if flt.owner_github_id is not None:
            owner = self.persons.get(t.task_owner_id) if t.task_owner_id is not None else None
            if owner is None or owner.github_id != flt.owner_github_id:
                return False
        checks = (
            (flt.start_lte, t.student_start_date, lambda v, b: v <= b),
            (flt.end_gt, t.student_end_date, lambda v, b: v > b),
            (flt.end_lt, t.student_end_date, lambda v, b: v < b),
            (flt.end_gte, t.student_end_date, lambda v, b: v >= b),
            (flt.end_lte, t.student_end_date, lambda v, b: v <= b),
            (flt.updated_gte, t.updated_at, lambda v, b: v >= b),
        )
        for bound, value, op in checks:
            if bound is None:
                continue
            if value is None or not op(value, bound):
                return False
        return True

    def get_course_task(self, course_task_id: int) -> Optional[CourseTask]:
        stored = self.course_tasks.get(course_task_id)
        return self._expand_task(stored) if stored else None

    def create_course_task(self, course_task: CourseTask) -> CourseTask:
        return self.insert_course_task(course_task)

    def update_course_task(self, course_task_id: int, changes: Dict[str, Any]) -> Optional[CourseTask]:
        stored = self.course_tasks.get(course_task_id)
        if stored is None:
            return None
        updated = replace(stored, **changes, updated_at=_now())
        self.course_tasks[course_task_id] = updated
        return self._expand_task(updated)

    def set_course_task_disabled(self, course_task_id: int, disabled: bool) -> bool:
        stored = self.course_tasks.get(course_task_id)
        if stored is None:
            return False
        self.course_tasks[course_task_id] = replace(stored, disabled=disabled, updated_at=_now())
        return True


def _end_sort_key(t: CourseTask):
    # Postgres sorts nulls last for ascending order.
    end = t.student_end_date
    return (end is None, end or datetime.min.replace(tzinfo=timezone.utc))


def _next_id(table: Dict[int, Any]) -> int:
    return max(table, default=0) + 1
