"""Course tasks service layer (queries and CRUD).

Why:
    Encapsulates the temporal task queries (started / in progress / finished,
    recently updated, deadline pending) and the create/update/disable use
    cases so the web adapter stays framework-thin and the validation logic can
    be unit-tested without FastAPI or a database.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from backend.schedule.models import Checker, CourseTask, TaskTemporalStatus


@dataclass(frozen=True)
class CourseTaskFilter:
    """Repository query for course tasks.

    Bounds follow SQL semantics: a task whose compared date is null never
    matches a bound on that date.
    """

    course_id: Optional[int] = None
    include_disabled: bool = False
    start_lte: Optional[datetime] = None
    end_gt: Optional[datetime] = None
    end_lt: Optional[datetime] = None
    end_gte: Optional[datetime] = None
    end_lte: Optional[datetime] = None
    updated_gte: Optional[datetime] = None
    checker: Optional[str] = None
    owner_github_id: Optional[str] = None
    order: str = "end_name"  # "end_name" | "end" | "id"


class CourseTasksRepoProtocol(Protocol):
    def find_course_tasks(self, flt: CourseTaskFilter) -> List[CourseTask]:
        ...

    def get_course_task(self, course_task_id: int) -> Optional[CourseTask]:
        ...

    def create_course_task(self, course_task: CourseTask) -> CourseTask:
        ...

    def update_course_task(self, course_task_id: int, changes: Dict[str, Any]) -> Optional[CourseTask]:
        ...

    def set_course_task_disabled(self, course_task_id: int, disabled: bool) -> bool:
        ...


_DATE_FIELDS = (
    "student_start_date",
    "student_end_date",
    "mentor_start_date",
    "mentor_end_date",
    "cross_check_end_date",
)
_CHECKERS = {c.value for c in Checker}
# Ten years; wider hour windows overflow datetime arithmetic.
_MAX_WINDOW_HOURS = 24 * 365 * 10


def _parse_date(value: object, code: str) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(code) from exc
    else:
        raise ValueError(code)
    if parsed.tzinfo is None:
        raise ValueError(code)
    return parsed.astimezone(timezone.utc)


def _positive_int(value: object, code: str) -> int:
    if isinstance(value, bool):
        raise ValueError(code)
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(code) from exc
    if number < 1:
        raise ValueError(code)
    return number


def _non_negative_number(value: object, code: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(code)
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(code) from exc
    if number != number or number < 0:
        raise ValueError(code)
    return number


def _normalize_checker(value: object) -> str:
    if not isinstance(value, str) or value not in _CHECKERS:
        raise ValueError("invalid_checker")
    return value


def _normalize_type(value: object) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("invalid_type")
    trimmed = value.strip()
    return trimmed or None


def _check_window(start: Optional[datetime], end: Optional[datetime], code: str) -> None:
    if start is not None and end is not None and start > end:
        raise ValueError(code)


def _normalize_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for name in _DATE_FIELDS:
        if name in raw:
            normalized[name] = _parse_date(raw[name], f"invalid_{name}")
    if "task_id" in raw:
        normalized["task_id"] = _positive_int(raw["task_id"], "invalid_task_id")
    if "max_score" in raw:
        normalized["max_score"] = _non_negative_number(raw["max_score"], "invalid_max_score")
    if "score_weight" in raw:
        normalized["score_weight"] = _non_negative_number(raw["score_weight"], "invalid_score_weight")
    if "checker" in raw:
        normalized["checker"] = _normalize_checker(raw["checker"])
    if "type" in raw:
        normalized["type"] = _normalize_type(raw["type"])
    if "pair_count" in raw:
        value = raw["pair_count"]
        normalized["pair_count"] = None if value is None else _positive_int(value, "invalid_pair_count")
    if "task_owner_id" in raw:
        value = raw["task_owner_id"]
        normalized["task_owner_id"] = None if value is None else _positive_int(value, "invalid_task_owner_id")
    return normalized


def _parse_status(status: object) -> Optional[TaskTemporalStatus]:
    if status is None or status == "":
        return None
    try:
        return TaskTemporalStatus(status)
    except ValueError as exc:
        raise ValueError("invalid_status") from exc


def _positive_hours(value: object, code: str) -> float:
    if isinstance(value, bool):
        raise ValueError(code)
    try:
        hours = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(code) from exc
    if not math.isfinite(hours) or hours <= 0 or hours > _MAX_WINDOW_HOURS:
        raise ValueError(code)
    return hours


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CourseTasksService:
    """Use cases for course tasks (framework-independent)."""

    repo: CourseTasksRepoProtocol
    clock: Callable[[], datetime] = field(default=_utcnow)
    pending_deadline_hours: int = 24

    def get_all(self, course_id: int, status: object = None) -> List[CourseTask]:
        """Active tasks of a course, optionally narrowed by temporal status.

        Status is evaluated against the current time:
            - started: student start <= now
            - inprogress: start <= now < end
            - finished: end < now
        Ordered by student end date, then template name.
        """
        parsed = _parse_status(status)
        now = self.clock()
        bounds: Dict[str, Any] = {}
        if parsed is TaskTemporalStatus.Started:
            bounds = {"start_lte": now}
        elif parsed is TaskTemporalStatus.InProgress:
            bounds = {"start_lte": now, "end_gt": now}
        elif parsed is TaskTemporalStatus.Finished:
            bounds = {"end_lt": now}
        return self.repo.find_course_tasks(CourseTaskFilter(course_id=course_id, order="end_name", **bounds))

    def get_by_id(self, course_task_id: int) -> CourseTask:
        course_task = self.repo.get_course_task(course_task_id)
        if course_task is None:
            raise LookupError("course_task_not_found")
        return course_task

    def get_by_owner(self, github_id: str) -> List[CourseTask]:
        """Tasks checked by their owner where the owner has the given GitHub id."""
        username = (github_id or "").strip()
        if not username:
            return []
        return self.repo.find_course_tasks(
            CourseTaskFilter(
                include_disabled=True,
                checker=Checker.TaskOwner.value,
                owner_github_id=username,
                order="id",
            )
        )

    def get_updated_tasks(self, course_id: int, last_hours: object) -> List[CourseTask]:
        hours = _positive_hours(last_hours, "invalid_last_hours")
        since = self.clock() - timedelta(hours=hours)
        return self.repo.find_course_tasks(
            CourseTaskFilter(course_id=course_id, include_disabled=True, updated_gte=since, order="id")
        )

    def get_tasks_pending_deadline(self, course_id: int, deadline_within_hours: object = None) -> List[CourseTask]:
        """Started, active tasks whose deadline falls within ``[now, now + hours]``."""
        if deadline_within_hours is None:
            deadline_within_hours = self.pending_deadline_hours
        hours = _positive_hours(deadline_within_hours, "invalid_deadline_hours")
        now = self.clock()
        return self.repo.find_course_tasks(
            CourseTaskFilter(
                course_id=course_id,
                start_lte=now,
                end_gte=now,
                end_lte=now + timedelta(hours=hours),
                order="end",
            )
        )

    def create(self, course_id: int, **fields: Any) -> CourseTask:
        if "task_id" not in fields:
            raise ValueError("invalid_task_id")
        normalized = _normalize_fields(fields)
        _check_window(
            normalized.get("student_start_date"), normalized.get("student_end_date"), "invalid_student_window"
        )
        _check_window(normalized.get("mentor_start_date"), normalized.get("mentor_end_date"), "invalid_mentor_window")
        normalized.setdefault("checker", Checker.AutoTest.value)
        return self.repo.create_course_task(CourseTask(id=None, course_id=course_id, **normalized))

    def update(self, course_task_id: int, **fields: Any) -> CourseTask:
        """Apply a partial update; only provided fields change.

        Explicit ``None`` clears optional fields. Date windows are validated
        against the merged (stored + provided) values.
        """
        current = self.get_by_id(course_task_id)
        if "checker" in fields and fields["checker"] is None:
            raise ValueError("invalid_checker")
        if "task_id" in fields and fields["task_id"] is None:
            raise ValueError("invalid_task_id")
        changes = _normalize_fields(fields)
        merged = {name: changes.get(name, getattr(current, name)) for name in _DATE_FIELDS}
        _check_window(merged["student_start_date"], merged["student_end_date"], "invalid_student_window")
        _check_window(merged["mentor_start_date"], merged["mentor_end_date"], "invalid_mentor_window")
        if not changes:
            return current
        updated = self.repo.update_course_task(course_task_id, changes)
        if updated is None:
            raise LookupError("course_task_not_found")
        return updated

    def disable(self, course_task_id: int) -> None:
        """Soft-delete a task; calling it again on a disabled task is a no-op."""
        if not self.repo.set_course_task_disabled(course_task_id, True):
            raise LookupError("course_task_not_found")
