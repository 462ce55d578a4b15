"""
Course task API routes (temporal queries and CRUD).

Why:
    Give staff tooling the task lists it needs (started, in progress,
    finished, recently updated, deadline pending, owned by a checker) and
    simple create/update/disable operations.

Notes:
    - Validation happens in `CourseTasksService`; its snake_case `ValueError`
      codes are surfaced as `400 {"error": "bad_request", "detail": code}`.
    - Repository calls are blocking and run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic.functional_validators import field_validator

from backend.schedule.models import CourseTask
from backend.web import schedule_wiring
from .schedule import iso_utc, serialize_person

course_tasks_router = APIRouter(tags=["Course Tasks"])
logger = logging.getLogger("schedule.web.course_tasks")

_KNOWN_ERROR_CODES = {
    "invalid_status",
    "invalid_last_hours",
    "invalid_deadline_hours",
    "invalid_task_id",
    "invalid_max_score",
    "invalid_score_weight",
    "invalid_checker",
    "invalid_type",
    "invalid_pair_count",
    "invalid_task_owner_id",
    "invalid_student_window",
    "invalid_mentor_window",
    "invalid_student_start_date",
    "invalid_student_end_date",
    "invalid_mentor_start_date",
    "invalid_mentor_end_date",
    "invalid_cross_check_end_date",
}


class CourseTaskPayload(BaseModel):
    """Fields accepted on create and update (all optional for PATCH)."""

    task_id: Optional[int] = None
    # ISO-8601 with offset; parsed by the service so bad values map to 400.
    student_start_date: Optional[str] = None
    student_end_date: Optional[str] = None
    mentor_start_date: Optional[str] = None
    mentor_end_date: Optional[str] = None
    cross_check_end_date: Optional[str] = None
    max_score: Optional[float] = None
    score_weight: Optional[float] = None
    checker: Optional[str] = None
    type: Optional[str] = None
    pair_count: Optional[int] = None
    task_owner_id: Optional[int] = None

    @field_validator("checker", "type")
    @classmethod
    def _strip_empty(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v if v else None
        return v


def _json_private(payload, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _bad_request(exc: ValueError) -> JSONResponse:
    code = str(exc.args[0]) if exc.args else ""
    detail = code if code in _KNOWN_ERROR_CODES else "invalid_input"
    return _json_private({"error": "bad_request", "detail": detail}, status_code=400)


def _not_found(exc: LookupError) -> JSONResponse:
    code = str(exc.args[0]) if exc.args else None
    return _json_private({"error": "not_found", "detail": code}, status_code=404)


def _serialize_course_task(t: CourseTask) -> dict[str, Any]:
    return {
        "id": t.id,
        "course_id": t.course_id,
        "task_id": t.task_id,
        "name": t.task.name if t.task else None,
        "task_type": t.task.type if t.task else None,
        "description_url": t.task.description_url if t.task else None,
        "student_start_date": iso_utc(t.student_start_date),
        "student_end_date": iso_utc(t.student_end_date),
        "mentor_start_date": iso_utc(t.mentor_start_date),
        "mentor_end_date": iso_utc(t.mentor_end_date),
        "cross_check_end_date": iso_utc(t.cross_check_end_date),
        "max_score": t.max_score,
        "score_weight": t.score_weight,
        "checker": t.checker,
        "type": t.type,
        "pair_count": t.pair_count,
        "task_owner": serialize_person(t.task_owner),
        "cross_check_status": t.cross_check_status,
        "disabled": t.disabled,
        "created_at": iso_utc(t.created_at),
        "updated_at": iso_utc(t.updated_at),
    }


def _serialize_many(items) -> list[dict[str, Any]]:
    return [_serialize_course_task(t) for t in items]


@course_tasks_router.get("/api/courses/{course_id}/tasks")
async def list_course_tasks(course_id: int, status: Optional[str] = None):
    """List active tasks of a course, optionally by `started|inprogress|finished`."""
    service = schedule_wiring.get_course_tasks_service()
    try:
        items = await asyncio.to_thread(service.get_all, course_id, status)
    except ValueError as exc:
        return _bad_request(exc)
    return _json_private(_serialize_many(items))


@course_tasks_router.get("/api/courses/{course_id}/tasks/updated")
async def list_updated_course_tasks(course_id: int, last_hours: Optional[str] = None):
    """Tasks (disabled included) modified within the last `last_hours` hours."""
    service = schedule_wiring.get_course_tasks_service()
    try:
        items = await asyncio.to_thread(service.get_updated_tasks, course_id, last_hours)
    except ValueError as exc:
        return _bad_request(exc)
    return _json_private(_serialize_many(items))


@course_tasks_router.get("/api/courses/{course_id}/tasks/pending-deadline")
async def list_pending_deadline_tasks(course_id: int, within_hours: Optional[str] = None):
    service = schedule_wiring.get_course_tasks_service()
    try:
        items = await asyncio.to_thread(service.get_tasks_pending_deadline, course_id, within_hours)
    except ValueError as exc:
        return _bad_request(exc)
    return _json_private(_serialize_many(items))


@course_tasks_router.get("/api/courses/{course_id}/tasks/{course_task_id}")
async def get_course_task(course_id: int, course_task_id: int):
    service = schedule_wiring.get_course_tasks_service()
    try:
        course_task = await asyncio.to_thread(service.get_by_id, course_task_id)
    except LookupError as exc:
        return _not_found(exc)
    if course_task.course_id != course_id:
        return _json_private({"error": "not_found", "detail": "course_task_not_found"}, status_code=404)
    return _json_private(_serialize_course_task(course_task))


@course_tasks_router.post("/api/courses/{course_id}/tasks")
async def create_course_task(course_id: int, payload: CourseTaskPayload):
    """Create a course task.

    Behavior:
        - 201 with the stored task
        - 400 with a detail code on invalid fields (missing `task_id`,
          inverted date windows, negative scores, unknown checker)
    """
    service = schedule_wiring.get_course_tasks_service()
    fields = payload.model_dump(mode="python", exclude_unset=True)
    try:
        created = await asyncio.to_thread(lambda: service.create(course_id, **fields))
    except ValueError as exc:
        return _bad_request(exc)
    logger.info("Course task created id=%s course=%s", created.id, course_id)
    return _json_private(_serialize_course_task(created), status_code=201)


@course_tasks_router.patch("/api/courses/{course_id}/tasks/{course_task_id}")
async def update_course_task(course_id: int, course_task_id: int, payload: CourseTaskPayload):
    """Partially update a course task; only fields present in the body change."""
    service = schedule_wiring.get_course_tasks_service()
    fields = payload.model_dump(mode="python", exclude_unset=True)
    try:
        current = await asyncio.to_thread(service.get_by_id, course_task_id)
        if current.course_id != course_id:
            raise LookupError("course_task_not_found")
        updated = await asyncio.to_thread(lambda: service.update(course_task_id, **fields))
    except LookupError as exc:
        return _not_found(exc)
    except ValueError as exc:
        return _bad_request(exc)
    return _json_private(_serialize_course_task(updated))


@course_tasks_router.delete("/api/courses/{course_id}/tasks/{course_task_id}")
async def disable_course_task(course_id: int, course_task_id: int):
    """Soft-delete (disable) a course task. Repeating the call is a no-op."""
    service = schedule_wiring.get_course_tasks_service()
    try:
        current = await asyncio.to_thread(service.get_by_id, course_task_id)
        if current.course_id != course_id:
            raise LookupError("course_task_not_found")
        await asyncio.to_thread(service.disable, course_task_id)
    except LookupError as exc:
        return _not_found(exc)
    logger.info("Course task disabled id=%s course=%s", course_task_id, course_id)
    return Response(status_code=204, headers={"Cache-Control": "private, no-store"})


@course_tasks_router.get("/api/tasks/owned/{github_id}")
async def list_owned_course_tasks(github_id: str):
    """Tasks checked by their owner, for the owner's GitHub id (all courses)."""
    service = schedule_wiring.get_course_tasks_service()
    items = await asyncio.to_thread(service.get_by_owner, github_id)
    return _json_private(_serialize_many(items))
