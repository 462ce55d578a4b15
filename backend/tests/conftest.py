"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and
keep the process-wide web wiring from leaking between tests.
"""
import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable (``backend.*`` namespace)
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_schedule_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test from the dev defaults.

    Why:
        A developer shell may export DSNs or tuning variables. Tests opt into
        them explicitly via ``monkeypatch.setenv``.
    """
    for var in (
        "SCHEDULE_ENV",
        "SCHEDULE_DATABASE_URL",
        "DATABASE_URL",
        "SCHEDULE_CACHE_TTL_SECONDS",
        "SCHEDULE_DEFAULT_EVENT_DURATION_MINUTES",
        "SCHEDULE_PENDING_DEADLINE_HOURS",
        "CERTIFICATE_GENERATION_URL",
        "CERTIFICATE_GENERATION_API_KEY",
        "CERTIFICATE_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_web_wiring():
    """Drop wired repositories, cache and generator before and after each test."""
    from backend.web import schedule_wiring

    schedule_wiring.reset()
    yield
    schedule_wiring.reset()
