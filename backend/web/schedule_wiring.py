"""
Shared wiring for the schedule, course task and certificate routes.

Why:
    Routes must not build repositories at import time: tests swap in
    in-memory fakes and the DSN may only be known after `.env` is loaded.
    This module builds the defaults lazily and exposes setters for tests.

Behavior:
    - With `SCHEDULE_DATABASE_URL` or `DATABASE_URL` set, Postgres-backed
      repositories are used.
    - Without a DSN in dev/test, in-memory repositories are used (with a
      warning). In prod-like environments the DB repository is always used,
      so a missing DSN fails on first access.
    - The student read cache is process-wide and reset whenever the schedule
      repository is swapped.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from backend.certificates.client import CertificateGeneratorClient
from backend.certificates.config import load_certificates_config
from backend.certificates.service import CertificateGeneratorProtocol, CertificatesService
from backend.schedule.cache import ReadCache
from backend.schedule.config import ScheduleConfig, is_prod_like, load_schedule_config
from backend.schedule.services.course_tasks import CourseTasksService
from backend.schedule.services.schedule import ScheduleService

logger = logging.getLogger("schedule.web")

_CONFIG: Optional[ScheduleConfig] = None
_REPO = None
_STUDENTS_REPO = None
_GENERATOR: Optional[CertificateGeneratorProtocol] = None
_CACHE: Optional[ReadCache] = None


def _dsn_configured() -> bool:
    return bool((os.getenv("SCHEDULE_DATABASE_URL") or os.getenv("DATABASE_URL") or "").strip())


def get_config() -> ScheduleConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_schedule_config()
    return _CONFIG


def _build_default_repo():
    """Prefer the DB-backed repo; fall back to in-memory in dev without a DSN."""
    if not _dsn_configured() and not is_prod_like():
        from backend.schedule.repo_memory import InMemoryScheduleRepo

        logger.warning("No database DSN configured; using in-memory schedule repo")
        return InMemoryScheduleRepo()
    from backend.schedule.repo_db import DBScheduleRepo

    return DBScheduleRepo()


def _build_default_students_repo():
    if not _dsn_configured() and not is_prod_like():
        from backend.certificates.repo_memory import InMemoryStudentsRepo

        logger.warning("No database DSN configured; using in-memory students repo")
        return InMemoryStudentsRepo()
    from backend.certificates.repo_db import DBStudentsRepo

    return DBStudentsRepo()


def get_repo():
    global _REPO
    if _REPO is None:
        _REPO = _build_default_repo()
    return _REPO


def get_students_repo():
    global _STUDENTS_REPO
    if _STUDENTS_REPO is None:
        _STUDENTS_REPO = _build_default_students_repo()
    return _STUDENTS_REPO


def get_cache() -> ReadCache:
    global _CACHE
    if _CACHE is None:
        _CACHE = ReadCache(get_config().cache_ttl_seconds)
    return _CACHE


def get_certificate_generator() -> CertificateGeneratorProtocol:
    global _GENERATOR
    if _GENERATOR is None:
        _GENERATOR = CertificateGeneratorClient(load_certificates_config())
    return _GENERATOR


def set_repo(repo) -> None:
    """Allow tests to swap the schedule repository implementation."""
    global _REPO
    _REPO = repo
    if _CACHE is not None:
        _CACHE.clear()


def set_students_repo(repo) -> None:
    """Allow tests to swap the students repository implementation."""
    global _STUDENTS_REPO
    _STUDENTS_REPO = repo


def set_certificate_generator(generator: Optional[CertificateGeneratorProtocol]) -> None:
    """Allow tests to provide a fake generator (None restores the default)."""
    global _GENERATOR
    _GENERATOR = generator


def reset() -> None:
    """Drop all wired instances so the next access rebuilds them from env."""
    global _CONFIG, _REPO, _STUDENTS_REPO, _GENERATOR, _CACHE
    _CONFIG = None
    _REPO = None
    _STUDENTS_REPO = None
    _GENERATOR = None
    _CACHE = None


def get_schedule_service() -> ScheduleService:
    cfg = get_config()
    return ScheduleService(
        get_repo(),
        cache=get_cache(),
        default_event_duration_minutes=cfg.default_event_duration_minutes,
    )


def get_course_tasks_service() -> CourseTasksService:
    return CourseTasksService(get_repo(), pending_deadline_hours=get_config().pending_deadline_hours)


def get_certificates_service() -> CertificatesService:
    return CertificatesService(get_students_repo(), get_certificate_generator())
