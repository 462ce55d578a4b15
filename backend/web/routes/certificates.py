"""
Certificate issuance API route.

Why:
    Staff trigger certificate generation for a whole course (students neither
    expelled nor failed) or for an explicit list of students.

Behavior:
    - 200 with the list of entries sent to the generator
    - 502 when the generator is not configured, unreachable or rejects the call
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.certificates.client import CertificateGenerationError
from backend.web import schedule_wiring

certificates_router = APIRouter(tags=["Certificates"])
logger = logging.getLogger("schedule.web.certificates")


class CertificateStudent(BaseModel):
    student_id: int = Field(..., ge=1)


def _json_private(payload, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


@certificates_router.post("/api/courses/{course_id}/certificates")
async def issue_certificates(course_id: int, payload: Optional[List[CertificateStudent]] = Body(default=None)):
    """Issue certificates; a missing body means the whole course."""
    service = schedule_wiring.get_certificates_service()
    student_ids = None if payload is None else [s.student_id for s in payload]
    try:
        entries = await asyncio.to_thread(service.issue, course_id, student_ids)
    except CertificateGenerationError as exc:
        code = str(exc.args[0]) if exc.args else "certificate_generation_failed"
        logger.warning("Certificate issuance failed course=%s code=%s", course_id, code)
        return _json_private({"error": "bad_gateway", "detail": code}, status_code=502)
    return _json_private(entries)
