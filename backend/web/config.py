"""
Configuration and startup security checks for the schedule service.

Why: Course data includes student scores. We must prevent accidental insecure
deployments without burdening local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
from urllib.parse import urlparse


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - Database DSNs must not explicitly disable TLS in prod-like envs.
    - When certificate generation is configured, its URL must use https and
      the API key must be set and not a placeholder.
    """

    env = os.getenv("SCHEDULE_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    # 1) Postgres TLS: basic guard to avoid explicit disable
    for key in ("SCHEDULE_DATABASE_URL", "DATABASE_URL"):
        dsn = os.getenv(key, "")
        if "sslmode=disable" in dsn:
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )

    # 2) Certificate generator
    url = (os.getenv("CERTIFICATE_GENERATION_URL", "") or "").strip()
    if not url:
        return
    if urlparse(url).scheme != "https":
        raise SystemExit("Refusing to start: CERTIFICATE_GENERATION_URL must use https in production.")
    api_key = (os.getenv("CERTIFICATE_GENERATION_API_KEY", "") or "").strip()
    if not api_key or api_key.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: CERTIFICATE_GENERATION_API_KEY is unset or a placeholder in production."
        )
