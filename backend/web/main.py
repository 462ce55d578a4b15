"""
FastAPI application for the course schedule service.

Why:
    Single ASGI entry point that loads local configuration, enforces the
    production safety guard and mounts the schedule, course task and
    certificate routers.
"""
from __future__ import annotations

import logging
import os
import sys

from fastapi import FastAPI
from fastapi.responses import JSONResponse


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out/opt-in via SCHEDULE_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("SCHEDULE_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


from dotenv import load_dotenv  # noqa: E402

if _should_load_dotenv():
    load_dotenv()

from backend.web import config as _cfg  # noqa: E402
from backend.web.routes.certificates import certificates_router  # noqa: E402
from backend.web.routes.course_tasks import course_tasks_router  # noqa: E402
from backend.web.routes.schedule import schedule_router  # noqa: E402

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

logger = logging.getLogger("schedule.web")

app = FastAPI(title="Course Schedule", description="Course schedule, task and certificate API", version="0.1.0")

app.include_router(schedule_router)
app.include_router(course_tasks_router)
app.include_router(certificates_router)


@app.get("/health")
async def health_check():
    # Minimal health endpoint used by orchestrators and tests.
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})
