"""
HTTP client for the external certificate generator.

Design:
- Framework-agnostic, callable from the certificates service.
- Uses requests under the hood; transport errors and non-2xx replies are
  raised as ``CertificateGenerationError`` with a snake_case code.

Security:
- Never log the API key or the posted names.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import requests

from .config import CertificatesConfig

logger = logging.getLogger("schedule.certificates")


class CertificateGenerationError(RuntimeError):
    """Certificate generation could not be triggered."""


class CertificateGeneratorClient:
    def __init__(self, cfg: CertificatesConfig, *, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self._http = session or requests

    def generate(self, entries: List[dict[str, Any]]) -> None:
        if not self.cfg.generation_url:
            raise CertificateGenerationError("certificate_generation_not_configured")
        headers = {"x-api-key": self.cfg.api_key or ""}
        try:
            r = self._http.post(
                self.cfg.generation_url,
                json=entries,
                headers=headers,
                timeout=self.cfg.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.warning("Certificate generator unreachable: %s", exc.__class__.__name__)
            raise CertificateGenerationError("certificate_generation_failed") from exc
        if not 200 <= r.status_code < 300:
            logger.warning("Certificate generator rejected request status=%s", r.status_code)
            raise CertificateGenerationError("certificate_generation_failed")
        logger.info("Certificate generation requested for %d students", len(entries))
