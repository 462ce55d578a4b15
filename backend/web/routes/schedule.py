"""
Course schedule API routes.

Why:
    Expose the unified course timeline (tasks and events with status, tag and
    optional per-student score) and the cohort schedule copy. Decision logic
    lives in `backend.schedule.services.schedule`; this adapter only parses
    input, maps errors and serializes.

Notes:
    - Responses are user-scoped (student scores) and must never be cached by
      intermediaries: every response carries `Cache-Control: private, no-store`.
    - Persistence is wired lazily via `backend.web.schedule_wiring`; tests can
      call `set_repo` there to inject an in-memory repository.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.schedule.models import Person, ScheduleItem
from backend.web import schedule_wiring

schedule_router = APIRouter(tags=["Schedule"])
logger = logging.getLogger("schedule.web.schedule")


class ScheduleCopyRequest(BaseModel):
    from_course_id: int = Field(..., ge=1)


def _json_private(payload, *, status_code: int = 200) -> JSONResponse:
    """Return a JSONResponse with cache disabled for shared caches and browsers."""
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def iso_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def serialize_person(person: Optional[Person]) -> Optional[dict[str, Any]]:
    if person is None:
        return None
    return {"id": person.id, "github_id": person.github_id, "name": person.name}


def _serialize_item(item: ScheduleItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "course_id": item.course_id,
        "name": item.name,
        "start_date": iso_utc(item.start_date),
        "end_date": iso_utc(item.end_date),
        "max_score": item.max_score,
        "score_weight": item.score_weight,
        "score": item.score,
        "status": item.status.value,
        "tag": item.tag.value,
        "description_url": item.description_url,
        "organizer": serialize_person(item.organizer),
    }


@schedule_router.get("/api/courses/{course_id}/schedule")
async def get_course_schedule(course_id: int, student_id: Optional[int] = None):
    """Return the course timeline sorted by start date.

    Behavior:
        - Without `student_id`: staff view, no scores, always read live.
        - With `student_id`: tasks carry the student's score and the
          submission-aware status; course data may be served from the
          short-lived read cache.
    """
    service = schedule_wiring.get_schedule_service()
    items = await service.get_all(course_id, student_id)
    return _json_private([_serialize_item(i) for i in items])


@schedule_router.post("/api/courses/{course_id}/schedule/copy")
async def copy_course_schedule(course_id: int, payload: ScheduleCopyRequest):
    """Clone every task and event of `from_course_id` into this course.

    Behavior:
        - 204 on success (dates shifted by the difference of course start dates)
        - 404 when either course is unknown (nothing is written)

    Notes:
        Not transactional. A failing insert aborts the copy with a 500 and
        leaves the records copied so far in place.
    """
    service = schedule_wiring.get_schedule_service()
    try:
        result = await service.copy_from_to(payload.from_course_id, course_id)
    except LookupError as exc:
        return _json_private({"error": "not_found", "detail": str(exc.args[0]) if exc.args else None}, status_code=404)
    logger.info(
        "Schedule copied from=%s to=%s tasks=%d events=%d",
        payload.from_course_id,
        course_id,
        result.tasks_copied,
        result.events_copied,
    )
    return Response(status_code=204, headers={"Cache-Control": "private, no-store"})
