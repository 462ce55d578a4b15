"""
Domain records for the course schedule context.

Intent:
    Plain dataclasses shared by the rules, services and repositories. The
    repositories (Postgres or in-memory) hydrate these records including
    their expanded relations (template, owner, organizer), so the service
    layer never touches SQL or framework objects.

Notes:
    All datetimes are timezone-aware (UTC). ``ScheduleItem`` is computed per
    request and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class ScheduleItemStatus(str, Enum):
    Done = "done"
    Available = "available"
    Archived = "archived"
    Future = "future"
    Missed = "missed"
    Review = "review"


class ScheduleItemTag(str, Enum):
    Lecture = "lecture"
    Coding = "coding"
    SelfStudy = "self-study"
    Interview = "interview"
    CrossCheck = "cross-check"
    Test = "test"


class Checker(str, Enum):
    AutoTest = "auto-test"
    Mentor = "mentor"
    Assigned = "assigned"
    TaskOwner = "taskOwner"
    CrossCheck = "crossCheck"


class EventType(str, Enum):
    LectureOnline = "lecture_online"
    LectureOffline = "lecture_offline"
    LectureMixed = "lecture_mixed"
    Workshop = "workshop"
    Meetup = "meetup"
    Info = "info"
    SelfStudy = "self-study"


class TaskTemporalStatus(str, Enum):
    Started = "started"
    InProgress = "inprogress"
    Finished = "finished"


@dataclass
class Person:
    id: int
    github_id: str
    first_name: str = ""
    last_name: str = ""

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Course:
    id: int
    name: str
    start_date: datetime
    end_date: Optional[datetime] = None
    primary_skill_name: Optional[str] = None


@dataclass
class TaskTemplate:
    id: int
    name: str
    type: Optional[str] = None
    description_url: Optional[str] = None


@dataclass
class EventTemplate:
    id: int
    name: str
    type: Optional[str] = None
    description_url: Optional[str] = None


@dataclass
class CourseTask:
    id: Optional[int]
    course_id: int
    task_id: int
    task: Optional[TaskTemplate] = None
    student_start_date: Optional[datetime] = None
    student_end_date: Optional[datetime] = None
    mentor_start_date: Optional[datetime] = None
    mentor_end_date: Optional[datetime] = None
    cross_check_end_date: Optional[datetime] = None
    max_score: Optional[float] = None
    score_weight: Optional[float] = None
    checker: Optional[str] = None
    type: Optional[str] = None
    pair_count: Optional[int] = None
    task_owner_id: Optional[int] = None
    task_owner: Optional[Person] = None
    cross_check_status: str = "initial"
    disabled: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CourseEvent:
    id: Optional[int]
    course_id: int
    event_id: int
    date_time: datetime
    event: Optional[EventTemplate] = None
    duration: Optional[int] = None
    # Plain display fields kept alongside date_time by older clients.
    date: Optional[str] = None
    time: Optional[str] = None
    place: Optional[str] = None
    comment: Optional[str] = None
    organizer_id: Optional[int] = None
    organizer: Optional[Person] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TaskResult:
    id: int
    student_id: int
    course_task_id: int
    score: Optional[float] = None


@dataclass
class TaskInterviewResult:
    id: int
    student_id: int
    course_task_id: int
    score: Optional[float] = None


@dataclass
class StageInterviewFeedback:
    id: int
    stage_interview_id: int
    json: Optional[str] = None


@dataclass
class StageInterview:
    id: int
    student_id: int
    course_task_id: int
    is_completed: bool = True
    feedbacks: List[StageInterviewFeedback] = field(default_factory=list)


@dataclass
class TaskSolution:
    id: int
    student_id: int
    course_task_id: int
    url: Optional[str] = None


@dataclass
class TaskChecker:
    id: int
    student_id: int
    course_task_id: int
    mentor_id: Optional[int] = None


@dataclass
class ScheduleItem:
    id: int
    course_id: int
    name: str
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    status: ScheduleItemStatus
    tag: ScheduleItemTag
    max_score: Optional[float] = None
    score_weight: Optional[float] = None
    score: Optional[float] = None
    description_url: Optional[str] = None
    organizer: Optional[Person] = None


__all__ = [
    "Checker",
    "Course",
    "CourseEvent",
    "CourseTask",
    "EventTemplate",
    "EventType",
    "Person",
    "ScheduleItem",
    "ScheduleItemStatus",
    "ScheduleItemTag",
    "StageInterview",
    "StageInterviewFeedback",
    "TaskChecker",
    "TaskInterviewResult",
    "TaskResult",
    "TaskSolution",
    "TaskTemplate",
    "TaskTemporalStatus",
]
