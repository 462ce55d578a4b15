"""Course schedule service layer (aggregation and cloning).

Why:
    Builds the unified, time-aware timeline of a course from its tasks and
    events, and clones a course's schedule to a new cohort. Web adapters and
    the operator CLI stay thin; this module holds the decision logic and is
    unit-tested against an in-memory repository.

Concurrency:
    Repository calls are blocking (psycopg). Independent reads run in worker
    threads via ``asyncio.to_thread`` and are joined with ``asyncio.gather``.
    Cloning writes sequentially and is not transactional: a failure partway
    leaves earlier copies in place.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Protocol, Tuple

from backend.schedule.cache import ReadCache
from backend.schedule.models import (
    Course,
    CourseEvent,
    CourseTask,
    ScheduleItem,
    StageInterview,
    TaskChecker,
    TaskInterviewResult,
    TaskResult,
    TaskSolution,
)
from backend.schedule.rules import (
    DEFAULT_EVENT_DURATION_MINUTES,
    StudentTaskProgress,
    course_event_status,
    course_event_tag,
    course_task_status,
    course_task_tag,
    is_task_submitted,
    resolve_task_score,
)

logger = logging.getLogger(__name__)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class ScheduleRepoProtocol(Protocol):
    def get_course(self, course_id: int) -> Optional[Course]:
        ...

    def list_active_course_tasks(self, course_id: int) -> List[CourseTask]:
        ...

    def list_course_tasks(self, course_id: int) -> List[CourseTask]:
        ...

    def list_course_events(self, course_id: int) -> List[CourseEvent]:
        ...

    def list_task_results(self, student_id: int) -> List[TaskResult]:
        ...

    def list_interview_results(self, student_id: int) -> List[TaskInterviewResult]:
        ...

    def list_completed_stage_interviews(self, student_id: int) -> List[StageInterview]:
        ...

    def list_task_solutions(self, student_id: int) -> List[TaskSolution]:
        ...

    def list_task_checkers(self, student_id: int) -> List[TaskChecker]:
        ...

    def insert_course_task(self, course_task: CourseTask) -> CourseTask:
        ...

    def insert_course_event(self, course_event: CourseEvent) -> CourseEvent:
        ...


@dataclass(frozen=True)
class ScheduleCopyPlan:
    from_course_id: int
    to_course_id: int
    delta: timedelta
    course_tasks: Tuple[CourseTask, ...]
    course_events: Tuple[CourseEvent, ...]


@dataclass(frozen=True)
class ScheduleCopyResult:
    delta: timedelta
    tasks_copied: int
    events_copied: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def shift_date(value: Optional[datetime], delta: timedelta) -> Optional[datetime]:
    if value is None:
        return None
    return value + delta


class ScheduleService:
    """Use cases for the course schedule (framework-independent)."""

    def __init__(
        self,
        repo: ScheduleRepoProtocol,
        *,
        cache: ReadCache | None = None,
        clock: Callable[[], datetime] | None = None,
        default_event_duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES,
    ) -> None:
        self._repo = repo
        self._cache = cache
        self._clock = clock or _utcnow
        self._default_event_duration = default_event_duration_minutes

    async def get_all(self, course_id: int, student_id: Optional[int] = None) -> List[ScheduleItem]:
        """Return the course timeline, optionally scoped to one student.

        Behavior:
            - Tasks (active only) and events are read concurrently.
            - With a student id, the student's results, interview results,
              completed stage interviews, solutions and checker records are
              read concurrently as well, and tasks get a score plus
              ``Done``/``Review``/``Missed`` awareness.
            - Items are sorted by start date; ties keep tasks before events.
              Tasks without a start date sort last.
        """
        course_tasks, course_events = await asyncio.gather(
            self._active_course_tasks(course_id, student_id),
            self._course_events(course_id, student_id),
        )
        if student_id is not None:
            task_results, interview_results, stage_interviews, solutions, checkers = await asyncio.gather(
                asyncio.to_thread(self._repo.list_task_results, student_id),
                asyncio.to_thread(self._repo.list_interview_results, student_id),
                asyncio.to_thread(self._repo.list_completed_stage_interviews, student_id),
                asyncio.to_thread(self._repo.list_task_solutions, student_id),
                asyncio.to_thread(self._repo.list_task_checkers, student_id),
            )
        else:
            task_results, interview_results, stage_interviews, solutions, checkers = [], [], [], [], []

        now = self._clock()
        items: List[ScheduleItem] = []
        for course_task in course_tasks:
            score: Optional[float] = None
            progress: Optional[StudentTaskProgress] = None
            if student_id is not None:
                score = resolve_task_score(course_task.id, task_results, interview_results, stage_interviews)
                progress = StudentTaskProgress(
                    current_score=score,
                    submitted=is_task_submitted(course_task.id, solutions, checkers),
                )
            template = course_task.task
            items.append(
                ScheduleItem(
                    id=course_task.id,
                    course_id=course_task.course_id,
                    name=template.name if template else "",
                    start_date=course_task.student_start_date,
                    end_date=course_task.student_end_date,
                    max_score=course_task.max_score,
                    score_weight=course_task.score_weight,
                    score=score,
                    status=course_task_status(course_task, now, progress),
                    tag=course_task_tag(course_task),
                    description_url=template.description_url if template else None,
                    organizer=course_task.task_owner,
                )
            )
        for course_event in course_events:
            template = course_event.event
            items.append(
                ScheduleItem(
                    id=course_event.id,
                    course_id=course_event.course_id,
                    name=template.name if template else "",
                    start_date=course_event.date_time,
                    end_date=course_event.date_time,
                    status=course_event_status(
                        course_event, now, default_duration_minutes=self._default_event_duration
                    ),
                    tag=course_event_tag(course_event),
                    description_url=template.description_url if template else None,
                    organizer=course_event.organizer,
                )
            )
        items.sort(key=lambda item: item.start_date or _FAR_FUTURE)
        return items

    async def plan_copy(self, from_course_id: int, to_course_id: int) -> ScheduleCopyPlan:
        """Resolve both courses and the records to clone without writing.

        Raises:
            LookupError("course_not_found") when either course is missing.
        """
        from_course, to_course = await asyncio.gather(
            asyncio.to_thread(self._repo.get_course, from_course_id),
            asyncio.to_thread(self._repo.get_course, to_course_id),
        )
        if from_course is None or to_course is None:
            raise LookupError("course_not_found")
        delta = to_course.start_date - from_course.start_date
        course_tasks = await asyncio.to_thread(self._repo.list_course_tasks, from_course_id)
        course_events = await asyncio.to_thread(self._repo.list_course_events, from_course_id)
        return ScheduleCopyPlan(
            from_course_id=from_course_id,
            to_course_id=to_course_id,
            delta=delta,
            course_tasks=tuple(course_tasks),
            course_events=tuple(course_events),
        )

    async def copy_from_to(self, from_course_id: int, to_course_id: int) -> ScheduleCopyResult:
        """Duplicate every task and event of one course into another.

        Behavior:
            - All date fields move by ``to.start_date - from.start_date``
              (may be negative); null dates stay null.
            - Tasks lose id, timestamps and cross-check status; events lose
              id and timestamps, and their plain date/time fields are cleared.
            - Inserts run one by one. A failing insert is logged and re-raised;
              records copied before it remain.
        """
        plan = await self.plan_copy(from_course_id, to_course_id)
        logger.info(
            "schedule.copy.start from=%s to=%s delta=%s tasks=%d events=%d",
            from_course_id,
            to_course_id,
            plan.delta,
            len(plan.course_tasks),
            len(plan.course_events),
        )
        tasks_copied = 0
        for course_task in plan.course_tasks:
            clone = _clone_course_task(course_task, to_course_id, plan.delta)
            try:
                await asyncio.to_thread(self._repo.insert_course_task, clone)
            except Exception:
                logger.exception(
                    "schedule.copy.task_failed source_id=%s to=%s copied=%d", course_task.id, to_course_id, tasks_copied
                )
                raise
            tasks_copied += 1
        events_copied = 0
        for course_event in plan.course_events:
            clone = _clone_course_event(course_event, to_course_id, plan.delta)
            try:
                await asyncio.to_thread(self._repo.insert_course_event, clone)
            except Exception:
                logger.exception(
                    "schedule.copy.event_failed source_id=%s to=%s copied=%d", course_event.id, to_course_id, events_copied
                )
                raise
            events_copied += 1
        logger.info(
            "schedule.copy.done from=%s to=%s tasks=%d events=%d", from_course_id, to_course_id, tasks_copied, events_copied
        )
        return ScheduleCopyResult(delta=plan.delta, tasks_copied=tasks_copied, events_copied=events_copied)

    async def _active_course_tasks(self, course_id: int, student_id: Optional[int]) -> List[CourseTask]:
        return await self._read(("course_tasks", course_id), student_id, self._repo.list_active_course_tasks, course_id)

    async def _course_events(self, course_id: int, student_id: Optional[int]) -> List[CourseEvent]:
        return await self._read(("course_events", course_id), student_id, self._repo.list_course_events, course_id)

    async def _read(self, key, student_id, fetch, course_id):
        # Staff views (no student id) always read live.
        if student_id is None or self._cache is None:
            return await asyncio.to_thread(fetch, course_id)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("schedule.cache.hit key=%s", key)
            return cached
        logger.debug("schedule.cache.miss key=%s", key)
        value = await asyncio.to_thread(fetch, course_id)
        self._cache.put(key, value)
        return value


def _clone_course_task(course_task: CourseTask, to_course_id: int, delta: timedelta) -> CourseTask:
    return replace(
        course_task,
        id=None,
        course_id=to_course_id,
        created_at=None,
        updated_at=None,
        cross_check_status="initial",
        cross_check_end_date=shift_date(course_task.cross_check_end_date, delta),
        student_start_date=shift_date(course_task.student_start_date, delta),
        student_end_date=shift_date(course_task.student_end_date, delta),
        mentor_start_date=shift_date(course_task.mentor_start_date, delta),
        mentor_end_date=shift_date(course_task.mentor_end_date, delta),
    )


def _clone_course_event(course_event: CourseEvent, to_course_id: int, delta: timedelta) -> CourseEvent:
    return replace(
        course_event,
        id=None,
        course_id=to_course_id,
        created_at=None,
        updated_at=None,
        date_time=shift_date(course_event.date_time, delta),
        date=None,
        time=None,
    )
