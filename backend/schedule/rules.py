"""
Schedule rules: status, tag and score derivation for schedule items.

Intent:
    Keep every decision about how a course task or event is presented on the
    timeline in pure functions. They receive "now" explicitly so the same
    inputs always yield the same result, and they never perform I/O.

Behavior:
    - Task status is evaluated in a fixed, short-circuiting order (missing
      window, future, scored, submitted, open window, fallback).
    - ``Done``/``Review``/``Missed`` only appear when student progress is
      supplied; without it the fallback is ``Archived`` (staff view).
    - Stage-interview feedback is read through a typed payload; payloads that
      are not valid JSON are skipped instead of failing the request.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from .models import (
    Checker,
    CourseEvent,
    CourseTask,
    EventType,
    ScheduleItemStatus,
    ScheduleItemTag,
    StageInterview,
    StageInterviewFeedback,
    TaskChecker,
    TaskInterviewResult,
    TaskResult,
    TaskSolution,
)

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DURATION_MINUTES = 60

_TEST_TYPES = {"selfeducation", "test"}
_INTERVIEW_TYPES = {"interview", "stage-interview"}


@dataclass(frozen=True)
class StudentTaskProgress:
    current_score: Optional[float]
    submitted: bool


def _numeric_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


class ResumeFeedback(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: Optional[float] = None

    @field_validator("score", mode="before")
    @classmethod
    def _numeric_score(cls, v):
        return _numeric_or_none(v)


class InterviewFeedbackPayload(BaseModel):
    """Typed view on the JSON blob stored with a stage-interview feedback."""

    model_config = ConfigDict(extra="ignore")

    resume: Optional[ResumeFeedback] = None

    @field_validator("resume", mode="before")
    @classmethod
    def _object_only(cls, v):
        return v if isinstance(v, dict) else None

    @property
    def resume_score(self) -> float:
        """Nested ``resume.score``; missing or non-numeric counts as 0."""
        if self.resume is None or self.resume.score is None:
            return 0.0
        return self.resume.score


def feedback_resume_score(feedback: StageInterviewFeedback) -> Optional[float]:
    """Return the resume score of one feedback entry.

    Returns ``None`` when the stored payload is not valid JSON so the caller
    can leave it out of the maximum.
    """
    try:
        data = json.loads(feedback.json) if feedback.json is not None else None
    except ValueError:
        logger.warning("Unparseable stage interview feedback id=%s; ignoring", feedback.id)
        return None
    if not isinstance(data, dict):
        return 0.0
    return InterviewFeedbackPayload.model_validate(data).resume_score


def resolve_task_score(
    course_task_id: int,
    task_results: Sequence[TaskResult],
    interview_results: Sequence[TaskInterviewResult],
    stage_interviews: Sequence[StageInterview],
) -> Optional[float]:
    """Pick the current score of a task from the first source that has one.

    Order:
        1) direct task result, 2) interview result, 3) maximum resume score
        over the feedback of the first completed stage interview for the task.
    A record whose score is null falls through to the next source.
    """
    result = next((r for r in task_results if r.course_task_id == course_task_id), None)
    if result is not None and result.score is not None:
        return _numeric_or_none(result.score)

    interview = next((r for r in interview_results if r.course_task_id == course_task_id), None)
    if interview is not None and interview.score is not None:
        return _numeric_or_none(interview.score)

    stage_interview = next((s for s in stage_interviews if s.course_task_id == course_task_id), None)
    if stage_interview is None:
        return None
    scores = [feedback_resume_score(f) for f in stage_interview.feedbacks]
    parsed = [s for s in scores if s is not None]
    if not parsed:
        return None
    return _numeric_or_none(max(parsed))


def is_task_submitted(
    course_task_id: int,
    solutions: Iterable[TaskSolution],
    checkers: Iterable[TaskChecker],
) -> bool:
    return any(s.course_task_id == course_task_id for s in solutions) or any(
        c.course_task_id == course_task_id for c in checkers
    )


def course_task_status(
    course_task: CourseTask,
    now: datetime,
    progress: Optional[StudentTaskProgress] = None,
) -> ScheduleItemStatus:
    if course_task.student_start_date is None or course_task.student_end_date is None:
        return ScheduleItemStatus.Archived
    start = course_task.student_start_date
    end = course_task.student_end_date
    current_score = progress.current_score if progress is not None else None
    submitted = progress.submitted if progress is not None else False
    if start > now:
        return ScheduleItemStatus.Future
    if current_score is not None:
        return ScheduleItemStatus.Done
    if submitted:
        return ScheduleItemStatus.Review
    if start <= now <= end:
        return ScheduleItemStatus.Available
    return ScheduleItemStatus.Missed if progress is not None else ScheduleItemStatus.Archived


def course_event_status(
    course_event: CourseEvent,
    now: datetime,
    *,
    default_duration_minutes: int = DEFAULT_EVENT_DURATION_MINUTES,
) -> ScheduleItemStatus:
    start = course_event.date_time
    duration = course_event.duration if course_event.duration is not None else default_duration_minutes
    end = start + timedelta(minutes=duration)
    if end < now:
        return ScheduleItemStatus.Archived
    if start < now:
        return ScheduleItemStatus.Available
    return ScheduleItemStatus.Future


def course_task_tag(course_task: CourseTask) -> ScheduleItemTag:
    # Checker wins over any task type.
    if course_task.checker == Checker.CrossCheck:
        return ScheduleItemTag.CrossCheck
    task_type = course_task.type or (course_task.task.type if course_task.task else None)
    if task_type in _TEST_TYPES:
        return ScheduleItemTag.Test
    if task_type in _INTERVIEW_TYPES:
        return ScheduleItemTag.Interview
    return ScheduleItemTag.Coding


def course_event_tag(course_event: CourseEvent) -> ScheduleItemTag:
    event_type = course_event.event.type if course_event.event else None
    if event_type == EventType.SelfStudy:
        return ScheduleItemTag.SelfStudy
    return ScheduleItemTag.Lecture
