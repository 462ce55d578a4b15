"""
Schedule configuration parsing and validation.

Intent:
    Provide a single place to read environment variables that control the
    student read cache, the default event duration and the pending-deadline
    window, plus the Postgres DSN used by the schedule repository.

Behavior:
    Invalid values raise ``ValueError`` naming the variable so misconfigured
    deployments fail at start-up instead of on the first request.
"""
from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class ScheduleConfig:
    cache_ttl_seconds: int
    default_event_duration_minutes: int
    pending_deadline_hours: int


def _int_env(name: str, default: int, *, minimum: int, maximum: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < minimum or value > maximum:
        raise ValueError(f"{name} out of range ({minimum}..{maximum}), got: {value}")
    return value


def is_prod_like() -> bool:
    env = (os.getenv("SCHEDULE_ENV") or "dev").lower()
    return env in {"prod", "production", "stage", "staging"}


def load_schedule_config() -> ScheduleConfig:
    """
    Parse schedule settings from the environment.

    Defaults:
        - SCHEDULE_CACHE_TTL_SECONDS: 90 (0 disables the student read cache)
        - SCHEDULE_DEFAULT_EVENT_DURATION_MINUTES: 60
        - SCHEDULE_PENDING_DEADLINE_HOURS: 24
    """
    return ScheduleConfig(
        cache_ttl_seconds=_int_env("SCHEDULE_CACHE_TTL_SECONDS", 90, minimum=0, maximum=3600),
        default_event_duration_minutes=_int_env(
            "SCHEDULE_DEFAULT_EVENT_DURATION_MINUTES", 60, minimum=1, maximum=1440
        ),
        pending_deadline_hours=_int_env("SCHEDULE_PENDING_DEADLINE_HOURS", 24, minimum=1, maximum=720),
    )


def _default_local_dsn() -> str:
    host = os.getenv("SCHEDULE_DB_HOST", "127.0.0.1")
    port = os.getenv("SCHEDULE_DB_PORT", "5432")
    user = os.getenv("SCHEDULE_DB_USER", "schedule_app")
    password = os.getenv("SCHEDULE_DB_PASSWORD", "CHANGE_ME_DEV")
    return f"postgresql://{user}:{password}@{host}:{port}/postgres"


def resolve_dsn() -> str:
    """Resolve the Postgres DSN for the schedule repository.

    Order of precedence (first non-empty wins):
      1) SCHEDULE_DATABASE_URL (context-specific override)
      2) DATABASE_URL (app-wide default)
      3) Local development DSN, refused in production-like environments
    """
    candidates = [
        os.getenv("SCHEDULE_DATABASE_URL"),
        os.getenv("DATABASE_URL"),
    ]
    if not is_prod_like():
        candidates.append(_default_local_dsn())
    for candidate in candidates:
        if candidate:
            return candidate
    raise RuntimeError("Database DSN unavailable for schedule repo")
