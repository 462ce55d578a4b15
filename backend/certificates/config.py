"""
Certificate generator configuration.

Intent:
    Read the external certificate-generation endpoint, its API key and the
    outbound timeout from the environment in one place.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional
from urllib.parse import urlparse


@dataclass(frozen=True)
class CertificatesConfig:
    generation_url: Optional[str]
    api_key: Optional[str]
    timeout_seconds: int


def _timeout_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value <= 0 or value > 120:
        raise ValueError(f"{name} out of range (1..120), got: {value}")
    return value


def load_certificates_config() -> CertificatesConfig:
    """
    Parse certificate settings from environment variables.

    Behavior:
        - CERTIFICATE_GENERATION_URL is optional; when set it must be http(s).
        - CERTIFICATE_GENERATION_API_KEY is sent as ``x-api-key``.
        - CERTIFICATE_TIMEOUT_SECONDS defaults to 10 (1..120).
    """
    url = (os.getenv("CERTIFICATE_GENERATION_URL") or "").strip() or None
    if url is not None and urlparse(url).scheme not in {"http", "https"}:
        raise ValueError("CERTIFICATE_GENERATION_URL must start with http:// or https://")
    api_key = (os.getenv("CERTIFICATE_GENERATION_API_KEY") or "").strip() or None
    return CertificatesConfig(
        generation_url=url,
        api_key=api_key,
        timeout_seconds=_timeout_env("CERTIFICATE_TIMEOUT_SECONDS", 10),
    )
